"""
Content Models

FLOW OVERVIEW
- BlogPost: markdown posts; `published()` is the public visibility filter.
- ContentPage: CMS pages addressed by slug; verification/utility pages live here too
  and are filtered out of the sitemap.
"""

import re
from datetime import datetime
from .database import db
from .utils import iso


class BlogPost(db.Model):
    __tablename__ = 'blog_posts'

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    slug = db.Column(db.String(255), unique=True, nullable=False, index=True)
    content = db.Column(db.Text, nullable=False)
    excerpt = db.Column(db.Text)
    meta_description = db.Column(db.String(320))
    meta_keywords = db.Column(db.JSON, default=list)
    category = db.Column(db.String(80))
    tags = db.Column(db.JSON, default=list)
    featured_image = db.Column(db.Text)
    author = db.Column(db.String(120), default='Studio37')
    published = db.Column(db.Boolean, default=False)
    published_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow)

    EDITABLE_FIELDS = ('title', 'slug', 'content', 'excerpt', 'meta_description', 'meta_keywords',
                       'category', 'tags', 'featured_image', 'author', 'published')

    @classmethod
    def published_query(cls):
        return (cls.query.filter_by(published=True)
                .order_by(cls.published_at.desc().nullslast(), cls.created_at.desc()))

    @classmethod
    def published_posts(cls):
        return cls.published_query().all()

    def to_summary(self):
        return {
            'id': self.id,
            'title': self.title,
            'slug': self.slug,
            'excerpt': self.excerpt,
            'featured_image': self.featured_image,
            'category': self.category,
            'published': self.published,
            'published_at': iso(self.published_at),
            'created_at': iso(self.created_at),
            'author': self.author,
        }

    def to_dict(self):
        data = self.to_summary()
        data.update({
            'content': self.content,
            'meta_description': self.meta_description,
            'meta_keywords': self.meta_keywords or [],
            'tags': self.tags or [],
            'updated_at': iso(self.updated_at),
        })
        return data


class ContentPage(db.Model):
    __tablename__ = 'content_pages'

    # Search-console/site-ownership pages that must never reach the sitemap
    VERIFICATION_SLUGS = frozenset({
        'algolia-verification',
        'bing-site-auth',
        'google-site-verification',
        'yandex-verification',
    })
    VERIFICATION_PATTERNS = (
        re.compile(r'verification', re.IGNORECASE),
        re.compile(r'^a[0-9a-f]{30,}$', re.IGNORECASE),
    )

    id = db.Column(db.Integer, primary_key=True)
    slug = db.Column(db.String(255), unique=True, nullable=False, index=True)
    title = db.Column(db.String(255))
    content = db.Column(db.Text)
    meta_description = db.Column(db.String(320))
    published = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow)

    @classmethod
    def published_pages(cls):
        return cls.query.filter_by(published=True).order_by(cls.slug.asc()).all()

    @classmethod
    def exclusion_reason(cls, slug):
        """Why a slug is kept out of the sitemap, or None when it is indexable"""
        if slug in cls.VERIFICATION_SLUGS:
            return 'excluded-slug'
        for pattern in cls.VERIFICATION_PATTERNS:
            if pattern.search(slug):
                return f'pattern:{pattern.pattern}'
        return None

    @classmethod
    def is_verification_slug(cls, slug):
        return cls.exclusion_reason(slug) is not None

    def to_dict(self):
        return {
            'id': self.id,
            'slug': self.slug,
            'title': self.title,
            'meta_description': self.meta_description,
            'published': self.published,
            'updated_at': iso(self.updated_at),
        }
