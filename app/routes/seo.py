"""
SEO Routes

FLOW OVERVIEW
- /sitemap.xml [GET]
  • Static marketing pages + published content pages (verification pages
    excluded) + published blog posts and their categories. Cached 30 minutes.
- /api/sitemap-debug [GET]
  • What the sitemap includes and why each excluded page was dropped.
- /api/revalidate [POST]
  • On-demand revalidation of frontend paths/tags. When REVALIDATE_SECRET is
    configured the X-Revalidate-Secret header must match it.
"""

from flask import Blueprint, Response, current_app, jsonify, request
from ..models import BlogPost, ContentPage
from ..utils.api_utils import request_validator
from ..utils.auth_utils import secrets_match
from ..utils.logger import get_logger
from ..utils.rate_limiter import rate_limit
from ..utils.revalidation import revalidate
from ..utils.sitemap import EMPTY_SITEMAP, build_entries, debug_report, render_sitemap

seo_bp = Blueprint('seo', __name__)
log = get_logger('api/sitemap')

SITEMAP_CACHE_CONTROL = 'public, max-age=1800'


@seo_bp.route('/sitemap.xml', methods=['GET'])
def sitemap():
    base_url = current_app.config.get('SITE_URL', '')
    try:
        entries = build_entries(base_url, ContentPage.published_pages(), BlogPost.published_posts())
    except Exception as e:
        log.error('sitemap_generation_failed', exc=e)
        return Response(EMPTY_SITEMAP, status=500, mimetype='application/xml')

    log.info('sitemap_generated', entries=len(entries))
    response = Response(render_sitemap(entries), mimetype='application/xml')
    response.headers['Cache-Control'] = SITEMAP_CACHE_CONTROL
    return response


@seo_bp.route('/api/sitemap-debug', methods=['GET'])
def sitemap_debug():
    base_url = current_app.config.get('SITE_URL', '')
    return jsonify(debug_report(base_url, ContentPage.published_pages(), BlogPost.published_posts()))


@seo_bp.route('/api/revalidate', methods=['POST'])
@rate_limit('revalidate', 20, 60 * 1000, 'Rate limit exceeded')
def revalidate_content():
    expected = current_app.config.get('REVALIDATE_SECRET')
    if expected and not secrets_match(request.headers.get('X-Revalidate-Secret'), expected):
        log.warning('unauthorized_revalidate', ip=request.remote_addr)
        return jsonify({'error': 'Unauthorized'}), 401

    is_valid, data, error_response = request_validator.validate_json_request(allow_empty=True)
    if not is_valid:
        return error_response

    revalidated, errors = revalidate(data.get('paths') or [], data.get('tags') or [])
    log.info('revalidated', paths=revalidated['paths'], tags=revalidated['tags'], errors=len(errors))
    return jsonify({'success': True, 'revalidated': revalidated, 'errors': errors})
