"""
Admin Routes

FLOW OVERVIEW
- /api/admin/login [POST]
  • Authenticate an active admin → session cookie carries admin_user_id.
- /api/admin/logout [POST] / /api/admin/session [GET]
- /api/admin/settings[/<key>] [GET, PUT]
  • Key/value site settings (ai_enabled, integration state).
- /api/admin/appointment-reminders-settings [GET, POST]
  • Reminder job configuration stored as JSON under one settings key.
- /api/admin/revalidate-page [POST]
  • Revalidate a single frontend path.
- /api/admin/unpublish-verification [POST]
  • Hide search-console verification pages and refresh the sitemap.
"""

from flask import Blueprint, jsonify, request, session
from ..models import db, ContentPage, Setting
from ..utils.api_utils import request_validator
from ..utils.auth_utils import admin_required, authenticate_admin, current_admin, login_admin
from ..utils.logger import get_logger
from ..utils.notifications import REMINDER_SETTINGS_KEY, load_reminder_settings
from ..utils.revalidation import revalidate
from ..utils.validators import non_string_fields

admin_bp = Blueprint('admin', __name__)
log = get_logger('api/admin')

# Settings that hold credentials are never echoed back
PRIVATE_SETTING_KEYS = frozenset({'google_calendar_tokens'})


@admin_bp.route('/admin/login', methods=['POST'])
def login():
    """Admin login endpoint"""
    is_valid, data, error_response = request_validator.validate_json_request()
    if not is_valid:
        return error_response

    if non_string_fields(data, ('email', 'password')):
        return jsonify({'error': 'Email and password must be strings'}), 400

    email = (data.get('email') or '').strip().lower()
    password = data.get('password') or ''
    if not email or not password:
        return jsonify({'error': 'Email and password are required'}), 400

    try:
        user = authenticate_admin(email, password)
        if user is None:
            log.warning('admin_login_failed', email=email)
            return jsonify({'error': 'Invalid email or password'}), 401

        login_admin(user)
        user.update_last_login()
        log.info('admin_login', user_id=user.id)
        return jsonify({'success': True, 'user': user.to_dict()})
    except Exception as e:
        db.session.rollback()
        log.error('admin_login_error', exc=e)
        return jsonify({'error': 'Login failed. Please try again.'}), 500


@admin_bp.route('/admin/logout', methods=['POST'])
def logout():
    session.clear()
    return jsonify({'success': True})


@admin_bp.route('/admin/session', methods=['GET'])
def session_status():
    user = current_admin()
    return jsonify({'authenticated': user is not None, 'user': user.to_dict() if user else None})


@admin_bp.route('/admin/settings', methods=['GET'])
@admin_required
def list_settings():
    settings = Setting.query.order_by(Setting.key.asc()).all()
    return jsonify({'settings': {s.key: s.value for s in settings if s.key not in PRIVATE_SETTING_KEYS}})


@admin_bp.route('/admin/settings', methods=['PUT'])
@admin_required
def update_settings():
    """Bulk update: body is {key: value, ...}"""
    is_valid, data, error_response = request_validator.validate_json_request()
    if not is_valid:
        return error_response
    try:
        for key, value in data.items():
            Setting.upsert(key, value)
        db.session.commit()
        log.info('settings_updated', keys=list(data.keys()))
        return jsonify({'success': True, 'updated': len(data)})
    except Exception as e:
        db.session.rollback()
        log.error('settings_update_failed', exc=e)
        return jsonify({'error': 'Failed to update settings'}), 500


@admin_bp.route('/admin/settings/<key>', methods=['GET'])
@admin_required
def get_setting(key):
    if key in PRIVATE_SETTING_KEYS:
        return jsonify({'key': key, 'configured': Setting.get(key) is not None})
    setting = Setting.query.filter_by(key=key).first()
    if setting is None:
        return jsonify({'error': 'Setting not found'}), 404
    return jsonify(setting.to_dict())


@admin_bp.route('/admin/settings/<key>', methods=['PUT'])
@admin_required
def put_setting(key):
    is_valid, data, error_response = request_validator.validate_json_request()
    if not is_valid:
        return error_response
    if 'value' not in data:
        return jsonify({'error': 'value is required'}), 400
    try:
        setting = Setting.upsert(key, data['value'])
        db.session.commit()
        return jsonify({'success': True, 'setting': setting.to_dict()})
    except Exception as e:
        db.session.rollback()
        log.error('setting_update_failed', exc=e, key=key)
        return jsonify({'error': 'Failed to update setting'}), 500


@admin_bp.route('/admin/appointment-reminders-settings', methods=['GET'])
@admin_required
def get_reminder_settings():
    try:
        return jsonify({'success': True, 'settings': load_reminder_settings()})
    except Exception as e:
        log.error('reminder_settings_fetch_failed', exc=e)
        return jsonify({'error': 'Failed to fetch settings'}), 500


@admin_bp.route('/admin/appointment-reminders-settings', methods=['POST'])
@admin_required
def update_reminder_settings():
    is_valid, body, error_response = request_validator.validate_json_request()
    if not is_valid:
        return error_response

    def flag(name):
        return bool(body[name]) if body.get(name) is not None else True

    try:
        settings = {
            'enabled': flag('enabled'),
            'hours_before': int(body.get('hours_before') or 24),
            'send_email': flag('send_email'),
            'send_sms': flag('send_sms'),
            'auto_resend_on_reschedule': flag('auto_resend_on_reschedule'),
            'max_retries': int(body.get('max_retries') or 3),
        }
    except (TypeError, ValueError):
        return jsonify({'error': 'hours_before and max_retries must be numbers'}), 400

    if settings['hours_before'] < 1 or settings['hours_before'] > 168:
        return jsonify({'error': 'hours_before must be between 1 and 168 (1 week)'}), 400
    if settings['max_retries'] < 1 or settings['max_retries'] > 10:
        return jsonify({'error': 'max_retries must be between 1 and 10'}), 400

    try:
        Setting.upsert(REMINDER_SETTINGS_KEY, settings)
        db.session.commit()
        log.info('reminder_settings_updated', settings=settings)
        return jsonify({'success': True, 'message': 'Settings updated successfully', 'settings': settings})
    except Exception as e:
        db.session.rollback()
        log.error('reminder_settings_update_failed', exc=e)
        return jsonify({'error': 'Failed to update settings'}), 500


@admin_bp.route('/admin/revalidate-page', methods=['POST'])
@admin_required
def revalidate_page():
    is_valid, data, error_response = request_validator.validate_json_request()
    if not is_valid:
        return error_response
    path = data.get('path')
    if not path or not isinstance(path, str):
        return jsonify({'error': 'Invalid path parameter'}), 400

    revalidated, errors = revalidate(paths=[path])
    log.info('admin_revalidate', path=path, errors=errors)
    return jsonify({'success': not errors, 'revalidated': revalidated, 'errors': errors})


@admin_bp.route('/admin/unpublish-verification', methods=['POST'])
@admin_required
def unpublish_verification():
    try:
        pages = ContentPage.query.filter_by(published=True).all()
        unpublished = []
        for page in pages:
            if ContentPage.is_verification_slug(page.slug):
                page.published = False
                unpublished.append(page.slug)
        db.session.commit()

        revalidate(paths=['/sitemap.xml'])
        log.info('verification_pages_unpublished', slugs=unpublished)
        return jsonify({'success': True, 'message': 'Verification pages unpublished', 'unpublished': unpublished})
    except Exception as e:
        db.session.rollback()
        log.error('unpublish_verification_failed', exc=e)
        return jsonify({'error': 'Internal server error'}), 500
