"""
Tests for the Google Calendar integration (OAuth connect, free/busy lookups
and consultation events). All Google HTTP traffic is patched.
"""

import time
import pytest
from unittest.mock import MagicMock, patch
from app.models import Setting
from app.utils import google_calendar
from app.utils.google_calendar import CalendarError, TOKENS_SETTING_KEY


def google_response(payload, ok=True, status_code=200):
    response = MagicMock(ok=ok, status_code=status_code, text='', content=b'{}')
    response.json.return_value = payload
    return response


@pytest.fixture
def google_app(app):
    app.config.update(GOOGLE_CLIENT_ID='client-id', GOOGLE_CLIENT_SECRET='client-secret',
                      GOOGLE_REDIRECT_URI='https://studio37.cc/api/calendar/callback')
    return app


@pytest.fixture
def stored_tokens(db_session):
    tokens = {'access_token': 'ya29.valid', 'refresh_token': 'refresh-1',
              'expiry_date': int((time.time() + 3600) * 1000)}
    Setting.upsert(TOKENS_SETTING_KEY, tokens)
    db_session.commit()
    return tokens


class TestCalendarAuth:
    def test_not_configured(self, admin_client):
        assert admin_client.get('/api/calendar/auth').status_code == 503

    def test_auth_url_requests_offline_access(self, google_app, admin_client):
        url = admin_client.get('/api/calendar/auth').get_json()['authUrl']
        assert url.startswith(google_calendar.AUTH_ENDPOINT)
        assert 'access_type=offline' in url
        assert 'prompt=consent' in url
        assert 'client_id=client-id' in url

    def test_callback_requires_code(self, client, db_session):
        response = client.get('/api/calendar/callback')
        assert response.status_code == 400
        assert response.get_json()['error'] == 'No authorization code'

    def test_callback_error_redirects(self, client, db_session):
        response = client.get('/api/calendar/callback?error=access_denied')
        assert response.status_code == 302
        assert response.headers['Location'].endswith('/admin/settings?calendar=error')

    def test_callback_stores_tokens(self, google_app, client, db_session):
        token_payload = {'access_token': 'ya29.new', 'refresh_token': 'refresh-2', 'expires_in': 3599}
        with patch('app.utils.google_calendar.requests.post', return_value=google_response(token_payload)) as post:
            response = client.get('/api/calendar/callback?code=auth-code')

        assert response.status_code == 302
        assert response.headers['Location'].endswith('/admin/settings?calendar=success')
        assert post.call_args.kwargs['data']['grant_type'] == 'authorization_code'
        stored = Setting.get_json(TOKENS_SETTING_KEY)
        assert stored['refresh_token'] == 'refresh-2'
        assert stored['expiry_date'] > int(time.time() * 1000)

    def test_callback_token_failure_redirects(self, google_app, client, db_session):
        with patch('app.utils.google_calendar.requests.post',
                   return_value=google_response({}, ok=False, status_code=400)):
            response = client.get('/api/calendar/callback?code=bad')
        assert response.headers['Location'].endswith('calendar=error')
        assert Setting.get_json(TOKENS_SETTING_KEY) is None


class TestBusyTimes:
    def test_requires_dates(self, client, db_session):
        response = client.get('/api/calendar/busy?startDate=2025-06-01')
        assert response.status_code == 400
        assert response.get_json()['error'] == 'startDate and endDate are required'

    def test_not_connected(self, client, db_session):
        body = client.get('/api/calendar/busy?startDate=2025-06-01&endDate=2025-06-07').get_json()
        assert body == {'connected': False, 'busyTimes': []}

    def test_connected(self, client, stored_tokens):
        free_busy = {'calendars': {'primary': {'busy': [
            {'start': '2025-06-02T17:00:00Z', 'end': '2025-06-02T19:00:00Z'},
        ]}}}
        with patch('app.utils.google_calendar.requests.request', return_value=google_response(free_busy)) as req:
            body = client.get('/api/calendar/busy?startDate=2025-06-01&endDate=2025-06-07').get_json()

        assert body['connected'] is True
        assert body['busyTimes'] == [{'start': '2025-06-02T17:00:00Z', 'end': '2025-06-02T19:00:00Z'}]
        sent = req.call_args.kwargs['json']
        assert sent['timeMin'] == '2025-06-01T00:00:00Z'
        assert req.call_args.kwargs['headers']['Authorization'] == 'Bearer ya29.valid'

    def test_expired_token_is_refreshed_and_saved(self, google_app, client, db_session):
        Setting.upsert(TOKENS_SETTING_KEY, {'access_token': 'old', 'refresh_token': 'refresh-1', 'expiry_date': 0})
        db_session.commit()

        with patch('app.utils.google_calendar.requests.post',
                   return_value=google_response({'access_token': 'fresh', 'expires_in': 3600})), \
                patch('app.utils.google_calendar.requests.request',
                      return_value=google_response({'calendars': {}})) as req:
            body = client.get('/api/calendar/busy?startDate=2025-06-01&endDate=2025-06-07').get_json()

        assert body == {'connected': True, 'busyTimes': []}
        assert req.call_args.kwargs['headers']['Authorization'] == 'Bearer fresh'
        stored = Setting.get_json(TOKENS_SETTING_KEY)
        assert stored['access_token'] == 'fresh'
        assert stored['refresh_token'] == 'refresh-1'

    def test_api_failure(self, client, stored_tokens):
        with patch('app.utils.google_calendar.requests.request',
                   return_value=google_response({}, ok=False, status_code=500)):
            response = client.get('/api/calendar/busy?startDate=2025-06-01&endDate=2025-06-07')
        assert response.status_code == 502


class TestConsultationEvent:
    def test_event_shape(self):
        event = google_calendar.build_consultation_event(
            '2025-06-14', '4:30 PM', 'Jane Doe', 'jane@example.com', '936-555-0100')
        assert event['summary'] == 'Consultation: Jane Doe'
        assert event['start']['dateTime'] == '2025-06-14T16:30:00'
        assert event['end']['dateTime'] == '2025-06-14T16:45:00'
        assert event['start']['timeZone'] == 'America/Chicago'
        assert 'No notes provided' in event['description']

    def test_bad_time(self):
        with pytest.raises(CalendarError):
            google_calendar.build_consultation_event('2025-06-14', 'later', 'Jane', 'j@x.com', '1')

    def test_non_json_token_response(self, google_app, db_session):
        html = MagicMock(ok=True, status_code=200, text='<html>maintenance</html>')
        html.json.side_effect = ValueError('Expecting value')
        with patch('app.utils.google_calendar.requests.post', return_value=html):
            with pytest.raises(CalendarError):
                google_calendar.fresh_access_token({'access_token': 'old', 'refresh_token': 'r', 'expiry_date': 0})

    def test_token_response_without_access_token(self, google_app, db_session):
        with patch('app.utils.google_calendar.requests.post', return_value=google_response({'error': 'x'})):
            with pytest.raises(CalendarError):
                google_calendar.exchange_code('auth-code')

    def test_missing_refresh_token(self):
        with pytest.raises(CalendarError):
            google_calendar.fresh_access_token({'access_token': 'old', 'expiry_date': 0})
