"""
Blog Routes

FLOW OVERVIEW
- /api/blog/save [POST, DELETE] (admin)
  • Create (no id) or update (id) a post. meta_keywords may arrive as CSV.
    published_at is stamped the first time a post is published.
- /api/blog/list [GET]
  • Published posts only, newest first. Rate limited per IP.
- /api/blog/suggestions [GET] (admin)
  • Recent titles and keyword pool for the generator form.
- /api/blog/generate [POST] (admin)
  • AI draft grounded in the about/service pages and recent posts, then
    post-processed (section headings, internal links, booking CTA).
"""

from datetime import datetime
from flask import Blueprint, jsonify, request
from sqlalchemy.exc import IntegrityError
from ..models import db, BlogPost, ContentPage, Setting
from ..utils.ai_client import ai_client, parse_json_with_repair, AIClientError, AIUnavailableError
from ..utils.api_utils import request_validator
from ..utils.auth_utils import admin_required
from ..utils.blog_content import (
    SERVICE_PAGE_SLUGS, build_blog_prompt, build_site_context, process_generated_post
)
from ..utils.logger import get_logger
from ..utils.rate_limiter import rate_limit
from ..utils.validators import non_string_fields, parse_int, split_csv

blog_bp = Blueprint('blog', __name__)
log = get_logger('api/blog')

LIST_FIELDS_LIMIT = 100


def _apply_post_fields(post, data):
    for field in BlogPost.EDITABLE_FIELDS:
        if field in data:
            value = data[field]
            if field in ('meta_keywords', 'tags') and not isinstance(value, list):
                value = split_csv(value)
            setattr(post, field, value)
    if post.published and not post.published_at:
        post.published_at = datetime.utcnow()
    post.updated_at = datetime.utcnow()


@blog_bp.route('/blog/save', methods=['POST'])
@admin_required
def save_post():
    is_valid, data, error_response = request_validator.validate_json_request()
    if not is_valid:
        return error_response

    if not data.get('title') or not data.get('slug') or not data.get('content'):
        return jsonify({'error': 'Missing required fields: title, slug, and content are required'}), 400

    post_id = data.get('id')
    try:
        if post_id:
            post = db.session.get(BlogPost, post_id)
            if post is None:
                return jsonify({'error': 'Blog post not found'}), 404
        else:
            post = BlogPost(published=False)
            db.session.add(post)

        _apply_post_fields(post, data)
        db.session.commit()
        log.info('blog_post_saved', post_id=post.id, created=not post_id, published=post.published)
        return jsonify({'success': True, 'post': post.to_dict()})
    except IntegrityError:
        db.session.rollback()
        return jsonify({'error': 'A post with this slug already exists'}), 409
    except Exception as e:
        db.session.rollback()
        log.error('blog_post_save_failed', exc=e, post_id=post_id)
        return jsonify({'error': 'Failed to save blog post'}), 500


@blog_bp.route('/blog/save', methods=['DELETE'])
@admin_required
def delete_post():
    post_id = request.args.get('id')
    if not post_id:
        return jsonify({'error': 'Blog post ID is required'}), 400

    post = db.session.get(BlogPost, parse_int(post_id, 0))
    if post is None:
        return jsonify({'error': 'Blog post not found'}), 404

    try:
        db.session.delete(post)
        db.session.commit()
        log.info('blog_post_deleted', post_id=post_id)
        return jsonify({'success': True, 'message': 'Blog post deleted successfully'})
    except Exception as e:
        db.session.rollback()
        log.error('blog_post_delete_failed', exc=e, post_id=post_id)
        return jsonify({'error': 'Failed to delete blog post'}), 500


@blog_bp.route('/blog/list', methods=['GET'])
@rate_limit('blog-list', 60, 60 * 1000, 'Too many requests')
def list_posts():
    limit = parse_int(request.args.get('limit'), LIST_FIELDS_LIMIT, minimum=1, maximum=LIST_FIELDS_LIMIT)
    category = request.args.get('category')

    try:
        query = BlogPost.published_query()
        if category:
            query = query.filter(BlogPost.category == category)
        posts = query.limit(limit).all()
        return jsonify({'posts': [post.to_summary() for post in posts]})
    except Exception as e:
        log.error('blog_list_failed', exc=e)
        return jsonify({'error': 'Failed to fetch blog posts'}), 500


@blog_bp.route('/blog/suggestions', methods=['GET'])
@admin_required
def suggestions():
    posts = BlogPost.query.order_by(BlogPost.created_at.desc()).limit(20).all()
    about = ContentPage.query.filter_by(slug='about').first()
    services = ContentPage.query.filter_by(slug='services').first()

    topics, keywords = [], []
    for post in posts:
        if post.title and post.title not in topics:
            topics.append(post.title)
        candidates = split_csv(post.meta_keywords) + split_csv(post.tags) + ([post.category] if post.category else [])
        for keyword in candidates:
            if keyword not in keywords:
                keywords.append(keyword)

    return jsonify({'suggestions': {
        'topics': topics[:10],
        'keywords': keywords[:15],
        'about': about.content if about and about.content else '',
        'services': services.content if services and services.content else '',
    }})


@blog_bp.route('/blog/generate', methods=['POST'])
@admin_required
def generate_post():
    is_valid, data, error_response = request_validator.validate_json_request()
    if not is_valid:
        return error_response

    if non_string_fields(data, ('topic', 'tone')):
        return jsonify({'error': 'Topic and tone must be strings'}), 400
    topic = (data.get('topic') or '').strip()
    if not topic:
        return jsonify({'error': 'Topic is required'}), 400

    if not Setting.get_bool('ai_enabled', default=True):
        return jsonify({'error': 'AI is disabled in settings'}), 403

    about = ContentPage.query.filter_by(slug='about').first()
    service_pages = ContentPage.query.filter(ContentPage.slug.in_(SERVICE_PAGE_SLUGS)).all()
    recent_posts = BlogPost.published_query().limit(3).all()
    site_context = build_site_context(about.content if about else None, service_pages, recent_posts)

    prompt = build_blog_prompt(topic, data.get('keywords'), data.get('tone'),
                               parse_int(data.get('wordCount'), 800, minimum=200, maximum=3000), site_context)
    log.info('blog_generation_started', topic=topic, tone=data.get('tone'))

    try:
        raw = ai_client.generate_json(prompt, preset='creative')
        post = process_generated_post(parse_json_with_repair(raw))
    except AIUnavailableError as e:
        log.error('blog_generation_unavailable', exc=e)
        return jsonify({'error': 'AI service not configured. Missing API key.'}), 503
    except AIClientError as e:
        log.error('blog_generation_failed', exc=e, topic=topic)
        return jsonify({'error': str(e) or 'Failed to generate content'}), 502

    log.info('blog_generated', title=post['title'])
    return jsonify({'success': True, 'post': post})
