"""
Tests for the JSON error handlers registered on the app.
"""

import pytest
from flask import abort


class TestJsonErrors:
    """Every HTTP error leaves the API as {error}"""

    @pytest.mark.parametrize('status_code, message', [
        (400, 'Bad request'),
        (401, 'Unauthorized'),
        (403, 'Forbidden'),
        (404, 'Not found'),
        (413, 'Payload too large'),
        (429, 'Too many requests'),
    ])
    def test_aborts_render_json(self, app, status_code, message):
        app.add_url_rule(f'/boom/{status_code}', f'boom_{status_code}', lambda: abort(status_code))

        response = app.test_client().get(f'/boom/{status_code}')

        assert response.status_code == status_code
        assert response.is_json
        assert response.get_json() == {'error': message}

    def test_unknown_route(self, client):
        response = client.get('/api/does-not-exist')
        assert response.status_code == 404
        assert response.get_json() == {'error': 'Not found'}

    def test_wrong_method(self, client):
        response = client.delete('/api/status')
        assert response.status_code == 405
        assert response.get_json() == {'error': 'Method not allowed'}
