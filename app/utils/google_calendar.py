"""
Google Calendar Integration

FLOW OVERVIEW
- get_auth_url() → consent URL (offline access so a refresh token is issued).
- exchange_code(code) → token dict stored as JSON in the `google_calendar_tokens` setting.
- load_tokens() / save_tokens(tokens) → settings round trip (caller commits).
- fresh_access_token(tokens) → refreshes through the token endpoint when the
  stored access token has expired; returns (access_token, tokens, refreshed).
- get_busy_times(tokens, start, end) → freebusy query for the studio calendar.
- create_consultation_event(tokens, date, time, ...) → 15-minute event in
  America/Chicago with the client as attendee and popup/email reminders.

All calls go through `requests` with explicit timeouts; failures raise CalendarError.
"""

import logging
import time
from datetime import datetime, timedelta
from urllib.parse import urlencode

import requests
from flask import current_app

from ..models import Setting
from ..models.appointment import parse_appointment_time


AUTH_ENDPOINT = 'https://accounts.google.com/o/oauth2/v2/auth'
TOKEN_ENDPOINT = 'https://oauth2.googleapis.com/token'
CALENDAR_API = 'https://www.googleapis.com/calendar/v3'
SCOPES = (
    'https://www.googleapis.com/auth/calendar',
    'https://www.googleapis.com/auth/calendar.events',
)
TOKENS_SETTING_KEY = 'google_calendar_tokens'
STUDIO_TIMEZONE = 'America/Chicago'
CONSULTATION_MINUTES = 15
REQUEST_TIMEOUT = 10

logger = logging.getLogger(__name__)


class CalendarError(Exception):
    """Google OAuth or Calendar API call failed"""


def _config(key, default=None):
    return current_app.config.get(key, default)


def is_configured():
    return bool(_config('GOOGLE_CLIENT_ID') and _config('GOOGLE_CLIENT_SECRET'))


def get_auth_url():
    params = {
        'client_id': _config('GOOGLE_CLIENT_ID'),
        'redirect_uri': _config('GOOGLE_REDIRECT_URI'),
        'response_type': 'code',
        'scope': ' '.join(SCOPES),
        'access_type': 'offline',
        # Force consent so Google returns a refresh token every time
        'prompt': 'consent',
    }
    return f"{AUTH_ENDPOINT}?{urlencode(params)}"


def _json_body(response, source):
    try:
        body = response.json()
    except ValueError as e:
        raise CalendarError(f"{source} returned a non-JSON body: {response.text[:300]}") from e
    if not isinstance(body, dict):
        raise CalendarError(f"{source} returned an unexpected body")
    return body


def _token_request(data):
    try:
        response = requests.post(TOKEN_ENDPOINT, data=data, timeout=REQUEST_TIMEOUT)
    except requests.RequestException as e:
        raise CalendarError(f"Token request failed: {e}") from e
    if not response.ok:
        raise CalendarError(f"Token endpoint returned {response.status_code}: {response.text[:300]}")
    tokens = _json_body(response, 'Token endpoint')
    if not tokens.get('access_token'):
        raise CalendarError('Token endpoint response carried no access_token')
    if 'expires_in' in tokens:
        tokens['expiry_date'] = int((time.time() + int(tokens['expires_in'])) * 1000)
    return tokens


def exchange_code(code):
    return _token_request({
        'code': code,
        'client_id': _config('GOOGLE_CLIENT_ID'),
        'client_secret': _config('GOOGLE_CLIENT_SECRET'),
        'redirect_uri': _config('GOOGLE_REDIRECT_URI'),
        'grant_type': 'authorization_code',
    })


def load_tokens():
    tokens = Setting.get_json(TOKENS_SETTING_KEY)
    return tokens if isinstance(tokens, dict) and tokens else None


def save_tokens(tokens):
    return Setting.upsert(TOKENS_SETTING_KEY, tokens)


def fresh_access_token(tokens):
    """
    Return (access_token, tokens, refreshed).

    The refresh token is carried over because Google omits it from refresh responses.
    """
    expiry = tokens.get('expiry_date')
    expired = expiry is not None and int(expiry) <= int(time.time() * 1000) + 60_000
    if tokens.get('access_token') and not expired:
        return tokens['access_token'], tokens, False

    refresh_token = tokens.get('refresh_token')
    if not refresh_token:
        raise CalendarError('Stored calendar tokens have expired and carry no refresh token')

    refreshed = _token_request({
        'refresh_token': refresh_token,
        'client_id': _config('GOOGLE_CLIENT_ID'),
        'client_secret': _config('GOOGLE_CLIENT_SECRET'),
        'grant_type': 'refresh_token',
    })
    merged = dict(tokens)
    merged.update(refreshed)
    merged.setdefault('refresh_token', refresh_token)
    logger.info("Refreshed Google Calendar access token")
    return merged['access_token'], merged, True


def _api_call(method, path, access_token, **kwargs):
    try:
        response = requests.request(
            method, f"{CALENDAR_API}{path}",
            headers={'Authorization': f"Bearer {access_token}"},
            timeout=REQUEST_TIMEOUT,
            **kwargs
        )
    except requests.RequestException as e:
        raise CalendarError(f"Calendar request failed: {e}") from e
    if not response.ok:
        raise CalendarError(f"Calendar API returned {response.status_code}: {response.text[:300]}")
    return _json_body(response, 'Calendar API') if response.content else {}


def _as_rfc3339(value):
    """'2026-03-01' or an ISO datetime → RFC 3339 UTC timestamp"""
    parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    if parsed.tzinfo is not None:
        parsed = parsed.replace(tzinfo=None) - parsed.utcoffset()
    return parsed.strftime('%Y-%m-%dT%H:%M:%SZ')


def get_busy_times(access_token, start_date, end_date):
    calendar_id = _config('GOOGLE_CALENDAR_ID', 'primary')
    try:
        time_min, time_max = _as_rfc3339(start_date), _as_rfc3339(end_date)
    except ValueError as e:
        raise CalendarError(f"Invalid date range: {e}") from e

    data = _api_call('POST', '/freeBusy', access_token, json={
        'timeMin': time_min,
        'timeMax': time_max,
        'timeZone': STUDIO_TIMEZONE,
        'items': [{'id': calendar_id}],
    })
    busy = data.get('calendars', {}).get(calendar_id, {}).get('busy', [])
    return [{'start': slot.get('start', ''), 'end': slot.get('end', '')} for slot in busy]


def build_consultation_event(date_str, time_str, client_name, client_email, phone, notes=None):
    start_time = parse_appointment_time(time_str)
    if start_time is None:
        raise CalendarError(f"Unparseable consultation time: {time_str}")
    starts_at = datetime.combine(datetime.strptime(date_str, '%Y-%m-%d').date(), start_time)
    ends_at = starts_at + timedelta(minutes=CONSULTATION_MINUTES)

    return {
        'summary': f"Consultation: {client_name}",
        'description': (f"15-minute consultation call with {client_name}\n\nPhone: {phone}\n"
                        f"Email: {client_email}\n\nNotes:\n{notes or 'No notes provided'}"),
        'start': {'dateTime': starts_at.isoformat(), 'timeZone': STUDIO_TIMEZONE},
        'end': {'dateTime': ends_at.isoformat(), 'timeZone': STUDIO_TIMEZONE},
        'attendees': [{'email': client_email, 'displayName': client_name}],
        'reminders': {
            'useDefault': False,
            'overrides': [
                {'method': 'popup', 'minutes': 60},
                {'method': 'email', 'minutes': 60},
            ],
        },
    }


def create_consultation_event(access_token, date_str, time_str, client_name, client_email, phone, notes=None):
    event = build_consultation_event(date_str, time_str, client_name, client_email, phone, notes)
    calendar_id = _config('GOOGLE_CALENDAR_ID', 'primary')
    created = _api_call('POST', f"/calendars/{calendar_id}/events", access_token,
                        params={'sendUpdates': 'all'}, json=event)
    logger.info(f"Calendar event created {created.get('id')} for {date_str} {time_str}")
    return created
