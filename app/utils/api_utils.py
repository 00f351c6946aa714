"""
API Utilities Module

FLOW OVERVIEW
- get_client_ip() → first X-Forwarded-For hop, X-Real-IP, or remote_addr.

- APIRequestValidator
  • validate_json_request → parse/validate JSON object and return (ok, data, error_response).
  • validate_image_upload → enforce presence, image/* type and a byte ceiling on one file.

- APIResponseFormatter
  • error → `{error}` JSON body with a status code (plus optional extra keys).

Used by every blueprint so request parsing and error shapes stay uniform.
"""

import logging
from typing import Any, Dict, Optional, Tuple
from flask import jsonify, request


def get_client_ip() -> str:
    forwarded = request.headers.get('X-Forwarded-For', '')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.headers.get('X-Real-IP') or request.remote_addr or 'unknown'


class APIResponseFormatter:
    """Handles common response formatting logic."""

    @staticmethod
    def error(message: str, status_code: int = 400, **extra):
        body = {'error': message}
        body.update(extra)
        return jsonify(body), status_code


class APIRequestValidator:
    """Handles common request validation logic."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def validate_json_request(self, allow_empty: bool = False) -> Tuple[bool, Optional[Dict[str, Any]], Optional[tuple]]:
        """
        Parse the JSON body.

        Args:
            allow_empty: Treat a missing body as {}

        Returns:
            Tuple of (is_valid, data, error_response)
        """
        data = request.get_json(silent=True)
        if data is None:
            if allow_empty and not request.get_data():
                return True, {}, None
            self.logger.warning(f"Invalid JSON from {get_client_ip()} on {request.path}")
            return False, None, APIResponseFormatter.error('Invalid JSON body', 400)

        if not isinstance(data, dict):
            return False, None, APIResponseFormatter.error('Request body must be a JSON object', 400)

        return True, data, None

    def validate_image_upload(self, upload, max_bytes: int) -> Tuple[bool, Optional[bytes], Optional[tuple]]:
        """
        Read one uploaded image into memory.

        Returns:
            Tuple of (is_valid, file_bytes, error_response)
        """
        if upload is None or not upload.filename:
            return False, None, APIResponseFormatter.error('No file uploaded', 400)

        mimetype = (upload.mimetype or '').lower()
        if not mimetype.startswith('image/'):
            return False, None, APIResponseFormatter.error('File must be an image', 400)

        content = upload.read()
        if len(content) > max_bytes:
            limit_mb = max_bytes // (1024 * 1024)
            return False, None, APIResponseFormatter.error(f'File too large (max {limit_mb}MB)', 413)

        return True, content, None


# Global instance
request_validator = APIRequestValidator()
