"""
Gallery Routes

FLOW OVERVIEW
Admin (session required):
- /api/admin/galleries [GET, POST], /api/admin/galleries/<id> [GET, PATCH, DELETE]
- /api/admin/galleries/<id>/images [POST]
  • Multipart field "images"; sequential Cloudinary uploads into galleries/<id>.
    A failed file is logged and skipped; total_photos is updated afterwards.
- /api/admin/galleries/<id>/images/remote [POST]
  • Import up to 25 public image URLs through the same pipeline.
- /api/admin/galleries/<id>/images/<image_id> [PATCH, DELETE]
- /api/admin/gallery-images/bulk [PATCH] and /seed-homepage [POST]

Public (addressed by access_code):
- /api/galleries/<access_code>/access [POST]
  • Password check. Every attempt on an existing gallery writes an access log
    row; views_count only moves on success.
- /api/galleries/<access_code>/favorites [GET, POST]
- /api/galleries/<access_code>/downloads [POST]
- /api/gallery/generate-alt-text [POST]
"""

from flask import Blueprint, jsonify, request
from ..models import db, Gallery, GalleryImage, GalleryAccessLog, GalleryFavorite, GalleryDownload, Setting
from ..models.utils import generate_session_id
from ..utils.ai_client import ai_client, AIClientError
from ..utils.api_utils import get_client_ip, request_validator
from ..utils.auth_utils import admin_required
from ..utils.blog_content import build_alt_text_prompt, clean_alt_text
from ..utils.logger import get_logger
from ..utils.media import media_pipeline, MediaError
from ..utils.validators import non_string_fields

galleries_bp = Blueprint('galleries', __name__)
log = get_logger('api/galleries')

REQUIRED_GALLERY_FIELDS = ('client_name', 'client_email', 'title', 'password')
REMOTE_IMPORT_LIMIT = 25
SESSION_COOKIE = 'session_id'
SESSION_COOKIE_MAX_AGE = 365 * 24 * 3600

HOMEPAGE_IMAGES = (
    'https://res.cloudinary.com/dmjxho2rl/image/upload/v1769255715/PS374317_mqqiyv.jpg',
    'https://res.cloudinary.com/dmjxho2rl/image/upload/v1769255713/D9E4E5AE-12BE-498B-B7C1-9CDE7FFC1B59_qiaj3v.jpg',
    'https://res.cloudinary.com/dmjxho2rl/image/upload/v1769255711/PS372952_gkvxjl.jpg',
    'https://res.cloudinary.com/dmjxho2rl/image/upload/v1769255706/PS373287_d7fl9k.jpg',
    'https://res.cloudinary.com/dmjxho2rl/image/upload/v1769255672/PS379781_kttvv3.jpg',
)


def _homepage_fields(index):
    return {
        'title': f'Portfolio Highlight {index + 1}',
        'alt_text': 'Studio37 portfolio highlight',
        'description': 'Featured work (homepage)',
        'category': 'homepage',
        'featured': True,
    }


def _image_from_asset(gallery_id, asset, display_order):
    return GalleryImage(
        gallery_id=gallery_id,
        cloudinary_public_id=asset.public_id,
        image_url=asset.secure_url,
        thumbnail_url=asset.thumbnail_url,
        watermarked_url=asset.watermarked_url,
        filename=asset.original_filename,
        file_size=asset.bytes,
        width=asset.width,
        height=asset.height,
        format=asset.format,
        display_order=display_order,
    )


def _visitor_session_id():
    """(session_id, is_new) from the cookie, the X-Session-Id header, or a fresh id"""
    session_id = request.cookies.get(SESSION_COOKIE) or request.headers.get('X-Session-Id')
    if session_id:
        return session_id, False
    return generate_session_id(), True


def _with_session_cookie(response, session_id, is_new):
    if is_new:
        response.set_cookie(SESSION_COOKIE, session_id, max_age=SESSION_COOKIE_MAX_AGE,
                            httponly=True, samesite='Lax')
    return response


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------

@galleries_bp.route('/admin/galleries', methods=['GET'])
@admin_required
def list_galleries():
    galleries = Gallery.query.order_by(Gallery.created_at.desc()).all()
    return jsonify({'galleries': [gallery.to_dict() for gallery in galleries]})


@galleries_bp.route('/admin/galleries', methods=['POST'])
@admin_required
def create_gallery():
    """Create a client gallery with a hashed password and generated access code"""
    is_valid, data, error_response = request_validator.validate_json_request()
    if not is_valid:
        return error_response

    if any(not data.get(field) for field in REQUIRED_GALLERY_FIELDS):
        return jsonify({'error': 'Missing required fields'}), 400

    wrong_type = non_string_fields(data, REQUIRED_GALLERY_FIELDS + ('description',))
    if wrong_type:
        return jsonify({'error': f"Invalid field type: {', '.join(wrong_type)}"}), 400

    try:
        gallery = Gallery.create(
            client_name=data['client_name'],
            client_email=data['client_email'],
            title=data['title'],
            password=data['password'],
            description=data.get('description'),
            expires_days=data.get('expires_days'),
            allow_downloads=data.get('allow_downloads', False),
            require_purchase=data.get('require_purchase', True),
        )
        db.session.add(gallery)
        db.session.commit()
        log.info('gallery_created', gallery_id=gallery.id, access_code=gallery.access_code)
        return jsonify({'success': True, 'gallery': gallery.to_dict()}), 201
    except (TypeError, ValueError) as e:
        db.session.rollback()
        return jsonify({'error': f'Invalid gallery data: {e}'}), 400
    except Exception as e:
        db.session.rollback()
        log.error('gallery_create_failed', exc=e)
        return jsonify({'error': 'Failed to create gallery'}), 500


@galleries_bp.route('/admin/galleries/<int:gallery_id>', methods=['GET'])
@admin_required
def get_gallery(gallery_id):
    gallery = db.session.get(Gallery, gallery_id)
    if gallery is None:
        return jsonify({'error': 'Gallery not found'}), 404
    return jsonify({'gallery': gallery.to_dict(include_images=True)})


@galleries_bp.route('/admin/galleries/<int:gallery_id>', methods=['PATCH'])
@admin_required
def update_gallery(gallery_id):
    is_valid, data, error_response = request_validator.validate_json_request()
    if not is_valid:
        return error_response

    gallery = db.session.get(Gallery, gallery_id)
    if gallery is None:
        return jsonify({'error': 'Gallery not found'}), 404

    try:
        for field in Gallery.EDITABLE_FIELDS:
            if field in data:
                setattr(gallery, field, data[field])
        if data.get('password'):
            gallery.set_password(data['password'])
        gallery.touch()
        db.session.commit()
        log.info('gallery_updated', gallery_id=gallery_id, fields=sorted(data.keys()))
        return jsonify({'success': True, 'gallery': gallery.to_dict()})
    except Exception as e:
        db.session.rollback()
        log.error('gallery_update_failed', exc=e, gallery_id=gallery_id)
        return jsonify({'error': 'Failed to update gallery'}), 500


@galleries_bp.route('/admin/galleries/<int:gallery_id>', methods=['DELETE'])
@admin_required
def delete_gallery(gallery_id):
    gallery = db.session.get(Gallery, gallery_id)
    if gallery is None:
        return jsonify({'error': 'Gallery not found'}), 404
    try:
        db.session.delete(gallery)
        db.session.commit()
        log.info('gallery_deleted', gallery_id=gallery_id)
        return jsonify({'success': True})
    except Exception as e:
        db.session.rollback()
        log.error('gallery_delete_failed', exc=e, gallery_id=gallery_id)
        return jsonify({'error': 'Failed to delete gallery'}), 500


@galleries_bp.route('/admin/galleries/<int:gallery_id>/images', methods=['POST'])
@admin_required
def upload_gallery_images(gallery_id):
    gallery = db.session.get(Gallery, gallery_id)
    if gallery is None:
        return jsonify({'error': 'Gallery not found'}), 404

    files = [upload for upload in request.files.getlist('images') if upload and upload.filename]
    if not files:
        return jsonify({'error': 'No images provided'}), 400
    if not media_pipeline.is_configured():
        return jsonify({'error': 'Image hosting is not configured'}), 503

    base_order = gallery.total_photos or 0
    created = []
    try:
        for index, upload in enumerate(files):
            try:
                asset = media_pipeline.upload_image(upload.read(), f'galleries/{gallery_id}', upload.filename)
            except MediaError as e:
                log.warning('gallery_image_upload_skipped', gallery_id=gallery_id,
                            filename=upload.filename, error=str(e))
                continue
            image = _image_from_asset(gallery_id, asset, base_order + index)
            db.session.add(image)
            created.append(image)

        gallery.total_photos = base_order + len(created)
        gallery.touch()
        db.session.commit()
        log.info('gallery_images_uploaded', gallery_id=gallery_id, uploaded=len(created), submitted=len(files))
        return jsonify({'success': True, 'images': [image.to_dict() for image in created],
                        'count': len(created)}), 201
    except Exception as e:
        db.session.rollback()
        log.error('gallery_image_upload_failed', exc=e, gallery_id=gallery_id)
        return jsonify({'error': 'Failed to upload images'}), 500


@galleries_bp.route('/admin/galleries/<int:gallery_id>/images/remote', methods=['POST'])
@admin_required
def import_remote_images(gallery_id):
    is_valid, data, error_response = request_validator.validate_json_request()
    if not is_valid:
        return error_response

    urls = data.get('urls')
    if not isinstance(urls, list) or not urls:
        return jsonify({'error': 'urls must be a non-empty list'}), 400
    if len(urls) > REMOTE_IMPORT_LIMIT:
        return jsonify({'error': f'Too many URLs (max {REMOTE_IMPORT_LIMIT})'}), 400

    gallery = db.session.get(Gallery, gallery_id)
    if gallery is None:
        return jsonify({'error': 'Gallery not found'}), 404
    if not media_pipeline.is_configured():
        return jsonify({'error': 'Image hosting is not configured'}), 503

    base_order = gallery.total_photos or 0
    created, skipped = [], []
    try:
        for url in urls:
            try:
                content, _ = media_pipeline.fetch_remote_image(str(url))
                filename = str(url).rstrip('/').rsplit('/', 1)[-1].split('?')[0] or None
                asset = media_pipeline.upload_image(content, f'galleries/{gallery_id}', filename)
            except MediaError as e:
                skipped.append({'url': url, 'error': str(e)})
                continue
            image = _image_from_asset(gallery_id, asset, base_order + len(created))
            db.session.add(image)
            created.append(image)

        gallery.total_photos = base_order + len(created)
        gallery.touch()
        db.session.commit()
        log.info('gallery_remote_import', gallery_id=gallery_id, imported=len(created), skipped=len(skipped))
        return jsonify({'success': True, 'images': [image.to_dict() for image in created],
                        'count': len(created), 'skipped': skipped}), 201
    except Exception as e:
        db.session.rollback()
        log.error('gallery_remote_import_failed', exc=e, gallery_id=gallery_id)
        return jsonify({'error': 'Failed to import images'}), 500


def _gallery_image_or_404(gallery_id, image_id):
    image = GalleryImage.query.filter_by(id=image_id, gallery_id=gallery_id).first()
    if image is None:
        return None, (jsonify({'error': 'Image not found'}), 404)
    return image, None


@galleries_bp.route('/admin/galleries/<int:gallery_id>/images/<int:image_id>', methods=['PATCH'])
@admin_required
def update_gallery_image(gallery_id, image_id):
    is_valid, data, error_response = request_validator.validate_json_request()
    if not is_valid:
        return error_response

    image, not_found = _gallery_image_or_404(gallery_id, image_id)
    if not_found:
        return not_found

    try:
        for field in ('title', 'description', 'alt_text', 'display_order', 'featured'):
            if field in data:
                setattr(image, field, data[field])
        db.session.commit()
        return jsonify({'success': True, 'image': image.to_dict()})
    except Exception as e:
        db.session.rollback()
        log.error('gallery_image_update_failed', exc=e, image_id=image_id)
        return jsonify({'error': 'Failed to update image'}), 500


@galleries_bp.route('/admin/galleries/<int:gallery_id>/images/<int:image_id>', methods=['DELETE'])
@admin_required
def delete_gallery_image(gallery_id, image_id):
    image, not_found = _gallery_image_or_404(gallery_id, image_id)
    if not_found:
        return not_found

    if image.cloudinary_public_id and not media_pipeline.destroy(image.cloudinary_public_id):
        log.warning('cloudinary_destroy_failed', image_id=image_id, public_id=image.cloudinary_public_id)

    try:
        gallery = image.gallery
        db.session.delete(image)
        if gallery is not None:
            gallery.total_photos = max(0, (gallery.total_photos or 0) - 1)
            gallery.touch()
        db.session.commit()
        log.info('gallery_image_deleted', gallery_id=gallery_id, image_id=image_id)
        return jsonify({'success': True})
    except Exception as e:
        db.session.rollback()
        log.error('gallery_image_delete_failed', exc=e, image_id=image_id)
        return jsonify({'error': 'Failed to delete image'}), 500


@galleries_bp.route('/admin/gallery-images/bulk', methods=['PATCH'])
@admin_required
def bulk_update_images():
    """Apply whitelisted field updates to many images in one commit"""
    data = request.get_json(silent=True)
    updates = data.get('updates') if isinstance(data, dict) else None
    if not isinstance(updates, list) or not updates:
        return jsonify({'error': 'Invalid payload'}), 400

    try:
        updated = []
        for item in updates:
            if not isinstance(item, dict) or item.get('id') is None:
                continue
            image = db.session.get(GalleryImage, item['id'])
            if image is None:
                continue
            changes = {field: item[field] for field in GalleryImage.EDITABLE_FIELDS if field in item}
            if not changes:
                continue
            for field, value in changes.items():
                setattr(image, field, value)
            updated.append(image)
        db.session.commit()
        log.info('gallery_images_bulk_updated', count=len(updated))
        return jsonify({'success': True, 'updated': [image.to_dict() for image in updated],
                        'count': len(updated)})
    except Exception as e:
        db.session.rollback()
        log.error('gallery_images_bulk_update_failed', exc=e)
        return jsonify({'error': 'Failed to update images'}), 500


@galleries_bp.route('/admin/gallery-images/seed-homepage', methods=['POST'])
@admin_required
def seed_homepage_images():
    try:
        existing = {image.image_url: image for image in
                    GalleryImage.query.filter(GalleryImage.image_url.in_(HOMEPAGE_IMAGES)).all()}
        inserted = []
        for index, url in enumerate(HOMEPAGE_IMAGES):
            fields = _homepage_fields(index)
            if url in existing:
                for field, value in fields.items():
                    setattr(existing[url], field, value)
            else:
                image = GalleryImage(image_url=url, display_order=index, **fields)
                db.session.add(image)
                inserted.append(image)
        db.session.commit()
        log.info('homepage_images_seeded', inserted=len(inserted), updated=len(existing))
        return jsonify({
            'success': True,
            'message': 'Homepage images seeded and marked featured',
            'inserted': [image.to_dict() for image in inserted],
            'updated': len(existing),
        })
    except Exception as e:
        db.session.rollback()
        log.error('homepage_seed_failed', exc=e)
        return jsonify({'success': False, 'error': 'Unexpected server error'}), 500


# ---------------------------------------------------------------------------
# Public
# ---------------------------------------------------------------------------

@galleries_bp.route('/galleries/<access_code>/access', methods=['POST'])
def access_gallery(access_code):
    """Unlock a gallery with its password"""
    is_valid, data, error_response = request_validator.validate_json_request(allow_empty=True)
    if not is_valid:
        return error_response

    password = data.get('password')
    if not password:
        return jsonify({'error': 'Password is required'}), 400

    try:
        gallery = Gallery.find_active_by_access_code(access_code)
        if gallery is None:
            log.warning('gallery_not_found', access_code=access_code)
            return jsonify({'error': 'Gallery not found'}), 404

        expired = gallery.is_expired()
        success = not expired and gallery.check_password(password)
        db.session.add(GalleryAccessLog(
            gallery_id=gallery.id,
            access_code=access_code,
            password_attempt=True,
            success=success,
            ip_address=get_client_ip(),
            user_agent=request.headers.get('User-Agent'),
        ))

        if expired:
            db.session.commit()
            return jsonify({'error': 'This gallery has expired'}), 403
        if not success:
            db.session.commit()
            log.warning('gallery_invalid_password', gallery_id=gallery.id)
            return jsonify({'error': 'Invalid password'}), 401

        gallery.views_count = (gallery.views_count or 0) + 1
        db.session.commit()

        images = GalleryImage.ordered_for_gallery(gallery.id)
        log.info('gallery_accessed', gallery_id=gallery.id, images=len(images))
        return jsonify({
            'success': True,
            'gallery': gallery.to_public_dict(),
            'images': [image.to_public_dict() for image in images],
        })
    except Exception as e:
        db.session.rollback()
        log.error('gallery_access_failed', exc=e, access_code=access_code)
        return jsonify({'error': 'Failed to access gallery'}), 500


@galleries_bp.route('/galleries/<access_code>/favorites', methods=['POST'])
def add_favorite(access_code):
    is_valid, data, error_response = request_validator.validate_json_request()
    if not is_valid:
        return error_response

    image_id = data.get('image_id')
    if image_id is None:
        return jsonify({'error': 'image_id is required'}), 400

    gallery = Gallery.find_active_by_access_code(access_code)
    if gallery is None:
        return jsonify({'error': 'Gallery not found'}), 404
    image = GalleryImage.query.filter_by(id=image_id, gallery_id=gallery.id).first()
    if image is None:
        return jsonify({'error': 'Image not found'}), 404

    session_id, is_new = _visitor_session_id()
    try:
        favorite = GalleryFavorite.query.filter_by(
            gallery_id=gallery.id, image_id=image.id, session_id=session_id).first()
        if favorite is None:
            db.session.add(GalleryFavorite(gallery_id=gallery.id, image_id=image.id, session_id=session_id))
            image.favorite_count = (image.favorite_count or 0) + 1
            db.session.commit()

        response = jsonify({'success': True, 'session_id': session_id})
        return _with_session_cookie(response, session_id, is_new)
    except Exception as e:
        db.session.rollback()
        log.error('gallery_favorite_failed', exc=e, gallery_id=gallery.id, image_id=image_id)
        return jsonify({'error': 'Failed to save favorite'}), 500


@galleries_bp.route('/galleries/<access_code>/favorites', methods=['GET'])
def list_favorites(access_code):
    gallery = Gallery.find_active_by_access_code(access_code)
    if gallery is None:
        return jsonify({'error': 'Gallery not found'}), 404

    session_id = request.cookies.get(SESSION_COOKIE) or request.headers.get('X-Session-Id')
    if not session_id:
        return jsonify({'favorites': []})

    favorites = GalleryFavorite.query.filter_by(gallery_id=gallery.id, session_id=session_id).all()
    return jsonify({'favorites': [favorite.image_id for favorite in favorites]})


@galleries_bp.route('/galleries/<access_code>/downloads', methods=['POST'])
def record_download(access_code):
    is_valid, data, error_response = request_validator.validate_json_request()
    if not is_valid:
        return error_response

    image_id = data.get('image_id')
    if image_id is None:
        return jsonify({'error': 'image_id is required'}), 400

    gallery = Gallery.find_active_by_access_code(access_code)
    if gallery is None:
        return jsonify({'error': 'Gallery not found'}), 404
    if not gallery.allow_downloads:
        return jsonify({'error': 'Downloads are not enabled for this gallery'}), 403

    image = GalleryImage.query.filter_by(id=image_id, gallery_id=gallery.id).first()
    if image is None:
        return jsonify({'error': 'Image not found'}), 404

    if gallery.require_purchase:
        download_type, download_url = 'watermarked', image.watermarked_url or image.image_url
    else:
        download_type, download_url = 'full_res', image.image_url

    session_id, is_new = _visitor_session_id()
    try:
        db.session.add(GalleryDownload(
            gallery_id=gallery.id,
            image_id=image.id,
            session_id=session_id,
            download_type=download_type,
            ip_address=get_client_ip(),
        ))
        image.download_count = (image.download_count or 0) + 1
        gallery.downloads_count = (gallery.downloads_count or 0) + 1
        db.session.commit()

        response = jsonify({'success': True, 'download_url': download_url, 'download_type': download_type})
        return _with_session_cookie(response, session_id, is_new)
    except Exception as e:
        db.session.rollback()
        log.error('gallery_download_failed', exc=e, gallery_id=gallery.id, image_id=image_id)
        return jsonify({'error': 'Failed to record download'}), 500


@galleries_bp.route('/gallery/generate-alt-text', methods=['POST'])
def generate_alt_text():
    is_valid, data, error_response = request_validator.validate_json_request()
    if not is_valid:
        return error_response

    image_url = data.get('imageUrl')
    if not image_url:
        log.warning('alt_text_missing_url')
        return jsonify({'error': 'Image URL is required'}), 400

    if not Setting.get_bool('ai_enabled', default=True):
        log.warning('alt_text_ai_disabled')
        return jsonify({'error': 'AI is disabled in settings'}), 403

    if not ai_client.is_configured():
        log.error('alt_text_missing_api_key')
        return jsonify({'error': 'AI provider is not configured'}), 503

    tags = data.get('tags') if isinstance(data.get('tags'), list) else None
    prompt = build_alt_text_prompt(
        title=data.get('title'),
        description=data.get('description'),
        category=data.get('category'),
        tags=tags,
        context=data.get('context'),
    )
    try:
        raw = ai_client.analyze_image(prompt, b'', preset='concise', image_url=image_url)
    except AIClientError as e:
        log.error('alt_text_generation_failed', exc=e)
        return jsonify({'error': str(e) or 'Alt text generation failed'}), 500

    alt_text = clean_alt_text(raw)
    log.info('alt_text_generated', length=len(alt_text))
    return jsonify({'altText': alt_text})
