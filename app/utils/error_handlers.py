"""
Error Handlers

Every error leaves the API as JSON `{error}`; unhandled failures roll back
the session so the next request starts clean.
"""

import logging
from flask import jsonify

logger = logging.getLogger(__name__)


def error_response(message, status_code):
    return jsonify({'error': message}), status_code


def register_error_handlers(app):
    """Register error handlers with the Flask app"""

    @app.errorhandler(400)
    def bad_request(error):
        return error_response('Bad request', 400)

    @app.errorhandler(401)
    def unauthorized(error):
        return error_response('Unauthorized', 401)

    @app.errorhandler(403)
    def forbidden(error):
        return error_response('Forbidden', 403)

    @app.errorhandler(404)
    def not_found(error):
        return error_response('Not found', 404)

    @app.errorhandler(405)
    def method_not_allowed(error):
        return error_response('Method not allowed', 405)

    @app.errorhandler(413)
    def payload_too_large(error):
        return error_response('Payload too large', 413)

    @app.errorhandler(429)
    def too_many_requests(error):
        return error_response('Too many requests', 429)

    @app.errorhandler(500)
    def internal_error(error):
        from ..models import db
        db.session.rollback()
        logger.error(f"Unhandled server error: {error}")
        return error_response('Internal server error', 500)
