"""
Google Calendar Routes

FLOW OVERVIEW
- /api/calendar/auth [GET] (admin)
  • Consent URL with offline access so a refresh token comes back.
- /api/calendar/callback [GET]
  • Exchange ?code for tokens, store them under the google_calendar_tokens
    setting, redirect to the admin settings page with calendar=success|error.
- /api/calendar/busy [GET]
  • Free/busy blocks between startDate and endDate; connected=false when no
    tokens are stored.
"""

from flask import Blueprint, current_app, jsonify, redirect, request
from ..models import db
from ..utils import google_calendar
from ..utils.auth_utils import admin_required
from ..utils.logger import get_logger

calendar_bp = Blueprint('calendar', __name__)
log = get_logger('api/calendar')


def _settings_redirect(outcome):
    return redirect(f"{current_app.config.get('SITE_URL', '')}/admin/settings?calendar={outcome}")


@calendar_bp.route('/calendar/auth', methods=['GET'])
@admin_required
def calendar_auth():
    if not google_calendar.is_configured():
        return jsonify({'error': 'Google Calendar is not configured'}), 503
    return jsonify({'authUrl': google_calendar.get_auth_url()})


@calendar_bp.route('/calendar/callback', methods=['GET'])
def calendar_callback():
    if request.args.get('error'):
        log.warning('oauth_error', error=request.args.get('error'))
        return _settings_redirect('error')

    code = request.args.get('code')
    if not code:
        return jsonify({'error': 'No authorization code'}), 400

    try:
        tokens = google_calendar.exchange_code(code)
        google_calendar.save_tokens(tokens)
        db.session.commit()
    except google_calendar.CalendarError as e:
        db.session.rollback()
        log.error('oauth_callback_failed', exc=e)
        return _settings_redirect('error')
    except Exception as e:
        db.session.rollback()
        log.error('calendar_token_save_failed', exc=e)
        return _settings_redirect('error')

    log.info('calendar_connected', has_refresh_token=bool(tokens.get('refresh_token')))
    return _settings_redirect('success')


@calendar_bp.route('/calendar/busy', methods=['GET'])
def calendar_busy():
    start_date = request.args.get('startDate')
    end_date = request.args.get('endDate')
    if not start_date or not end_date:
        return jsonify({'error': 'startDate and endDate are required'}), 400

    tokens = google_calendar.load_tokens()
    if not tokens:
        log.warning('calendar_not_connected')
        return jsonify({'connected': False, 'busyTimes': []})

    try:
        access_token, tokens, refreshed = google_calendar.fresh_access_token(tokens)
        if refreshed:
            google_calendar.save_tokens(tokens)
            db.session.commit()
        busy_times = google_calendar.get_busy_times(access_token, start_date, end_date)
    except google_calendar.CalendarError as e:
        db.session.rollback()
        log.error('calendar_busy_failed', exc=e)
        return jsonify({'error': 'Failed to fetch calendar availability'}), 502

    log.info('calendar_busy_fetched', start=start_date, end=end_date, count=len(busy_times))
    return jsonify({'connected': True, 'busyTimes': busy_times})
