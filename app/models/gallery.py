"""
Gallery Models

FLOW OVERVIEW
- Gallery: password-protected client collection addressed publicly by access_code.
  • find_active_by_access_code → the only lookup public routes may use.
  • set_password / check_password → werkzeug salted hashes.
- GalleryImage: one hosted photo (primary, thumbnail, watermark URLs). Rows with no
  gallery_id are portfolio/homepage images managed in bulk.
- GalleryAccessLog / GalleryFavorite / GalleryDownload: engagement tracking rows.
"""

from datetime import datetime, timedelta
from werkzeug.security import generate_password_hash, check_password_hash
from .database import db
from .utils import generate_access_code, iso


class Gallery(db.Model):
    """Client gallery"""
    __tablename__ = 'galleries'

    id = db.Column(db.Integer, primary_key=True)
    client_name = db.Column(db.String(120), nullable=False)
    client_email = db.Column(db.String(254), nullable=False)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    access_code = db.Column(db.String(160), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    status = db.Column(db.String(20), default='active')  # active, archived
    expires_at = db.Column(db.DateTime)
    allow_downloads = db.Column(db.Boolean, default=False)
    require_purchase = db.Column(db.Boolean, default=True)
    cover_image_url = db.Column(db.Text)
    total_photos = db.Column(db.Integer, default=0)
    views_count = db.Column(db.Integer, default=0)
    downloads_count = db.Column(db.Integer, default=0)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow)

    images = db.relationship(
        'GalleryImage', backref='gallery', lazy=True,
        cascade='all, delete-orphan', order_by='GalleryImage.display_order'
    )
    access_logs = db.relationship('GalleryAccessLog', backref='gallery', lazy=True,
                                  cascade='all, delete-orphan')
    favorites = db.relationship('GalleryFavorite', backref='gallery', lazy=True,
                                cascade='all, delete-orphan')
    downloads = db.relationship('GalleryDownload', backref='gallery', lazy=True,
                                cascade='all, delete-orphan')

    # Fields an admin PATCH may change
    EDITABLE_FIELDS = (
        'client_name', 'client_email', 'title', 'description', 'status',
        'allow_downloads', 'require_purchase', 'cover_image_url',
    )

    @classmethod
    def create(cls, client_name, client_email, title, password, description=None,
               expires_days=None, allow_downloads=False, require_purchase=True):
        """Build a new active gallery with a fresh access code"""
        gallery = cls(
            client_name=client_name,
            client_email=client_email,
            title=title,
            description=description,
            access_code=generate_access_code(client_name),
            status='active',
            allow_downloads=bool(allow_downloads),
            require_purchase=bool(require_purchase),
            total_photos=0,
            views_count=0,
            downloads_count=0,
        )
        gallery.set_password(password)
        if expires_days and int(expires_days) > 0:
            gallery.expires_at = datetime.utcnow() + timedelta(days=int(expires_days))
        return gallery

    @classmethod
    def find_active_by_access_code(cls, access_code):
        return cls.query.filter_by(access_code=access_code, status='active').first()

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    def is_expired(self, now=None):
        now = now or datetime.utcnow()
        return self.expires_at is not None and self.expires_at < now

    def touch(self):
        self.updated_at = datetime.utcnow()

    def to_public_dict(self):
        """Fields a client sees after unlocking the gallery"""
        return {
            'id': self.id,
            'client_name': self.client_name,
            'title': self.title,
            'description': self.description,
            'allow_downloads': self.allow_downloads,
            'require_purchase': self.require_purchase,
        }

    def to_dict(self, include_images=False):
        data = {
            'id': self.id,
            'client_name': self.client_name,
            'client_email': self.client_email,
            'title': self.title,
            'description': self.description,
            'access_code': self.access_code,
            'status': self.status,
            'expires_at': iso(self.expires_at),
            'allow_downloads': self.allow_downloads,
            'require_purchase': self.require_purchase,
            'cover_image_url': self.cover_image_url,
            'total_photos': self.total_photos or 0,
            'views_count': self.views_count or 0,
            'downloads_count': self.downloads_count or 0,
            'created_at': iso(self.created_at),
            'updated_at': iso(self.updated_at),
        }
        if include_images:
            data['images'] = [image.to_dict() for image in self.images]
        return data


class GalleryImage(db.Model):
    """Hosted photo, either in a client gallery or in the public portfolio"""
    __tablename__ = 'gallery_images'

    id = db.Column(db.Integer, primary_key=True)
    gallery_id = db.Column(db.Integer, db.ForeignKey('galleries.id', ondelete='CASCADE'), nullable=True)
    cloudinary_public_id = db.Column(db.String(255))
    image_url = db.Column(db.Text, nullable=False)
    thumbnail_url = db.Column(db.Text)
    watermarked_url = db.Column(db.Text)
    title = db.Column(db.String(200))
    description = db.Column(db.Text)
    alt_text = db.Column(db.String(255))
    category = db.Column(db.String(60))
    tags = db.Column(db.JSON, default=list)
    featured = db.Column(db.Boolean, default=False)
    filename = db.Column(db.String(255))
    file_size = db.Column(db.Integer)
    width = db.Column(db.Integer)
    height = db.Column(db.Integer)
    format = db.Column(db.String(20))
    display_order = db.Column(db.Integer, default=0)
    favorite_count = db.Column(db.Integer, default=0)
    download_count = db.Column(db.Integer, default=0)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # Fields accepted by the per-image PATCH and the bulk update
    EDITABLE_FIELDS = (
        'title', 'description', 'alt_text', 'category', 'tags', 'featured',
        'display_order', 'image_url', 'thumbnail_url',
    )

    @classmethod
    def ordered_for_gallery(cls, gallery_id):
        return (cls.query.filter_by(gallery_id=gallery_id)
                .order_by(cls.display_order.asc(), cls.created_at.asc())
                .all())

    def to_public_dict(self):
        return {
            'id': self.id,
            'image_url': self.image_url,
            'thumbnail_url': self.thumbnail_url,
            'watermarked_url': self.watermarked_url,
            'caption': self.description,
            'alt_text': self.alt_text,
            'is_featured': bool(self.featured),
            'display_order': self.display_order,
        }

    def to_dict(self):
        return {
            'id': self.id,
            'gallery_id': self.gallery_id,
            'cloudinary_public_id': self.cloudinary_public_id,
            'image_url': self.image_url,
            'thumbnail_url': self.thumbnail_url,
            'watermarked_url': self.watermarked_url,
            'title': self.title,
            'description': self.description,
            'alt_text': self.alt_text,
            'category': self.category,
            'tags': self.tags or [],
            'featured': bool(self.featured),
            'filename': self.filename,
            'file_size': self.file_size,
            'width': self.width,
            'height': self.height,
            'format': self.format,
            'display_order': self.display_order,
            'favorite_count': self.favorite_count or 0,
            'download_count': self.download_count or 0,
            'created_at': iso(self.created_at),
        }


class GalleryAccessLog(db.Model):
    """One password attempt against a gallery"""
    __tablename__ = 'gallery_access_log'

    id = db.Column(db.Integer, primary_key=True)
    gallery_id = db.Column(db.Integer, db.ForeignKey('galleries.id', ondelete='CASCADE'), nullable=False)
    access_code = db.Column(db.String(160), nullable=False)
    password_attempt = db.Column(db.Boolean, default=True)
    success = db.Column(db.Boolean, default=False)
    ip_address = db.Column(db.String(64))
    user_agent = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'gallery_id': self.gallery_id,
            'access_code': self.access_code,
            'password_attempt': self.password_attempt,
            'success': self.success,
            'ip_address': self.ip_address,
            'user_agent': self.user_agent,
            'created_at': iso(self.created_at),
        }


class GalleryFavorite(db.Model):
    __tablename__ = 'gallery_favorites'

    id = db.Column(db.Integer, primary_key=True)
    gallery_id = db.Column(db.Integer, db.ForeignKey('galleries.id', ondelete='CASCADE'), nullable=False)
    image_id = db.Column(db.Integer, db.ForeignKey('gallery_images.id', ondelete='CASCADE'), nullable=False)
    session_id = db.Column(db.String(64), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint('gallery_id', 'image_id', 'session_id', name='unique_gallery_favorite'),
    )


class GalleryDownload(db.Model):
    __tablename__ = 'gallery_downloads'

    id = db.Column(db.Integer, primary_key=True)
    gallery_id = db.Column(db.Integer, db.ForeignKey('galleries.id', ondelete='CASCADE'), nullable=False)
    image_id = db.Column(db.Integer, db.ForeignKey('gallery_images.id', ondelete='CASCADE'), nullable=False)
    session_id = db.Column(db.String(64))
    download_type = db.Column(db.String(20))  # watermarked, full_res
    ip_address = db.Column(db.String(64))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
