"""
Model Utilities

This module contains utility functions for the models package.
"""

import re
import secrets
import string
import time


BASE36_ALPHABET = string.digits + string.ascii_lowercase


def to_base36(number):
    """Encode a non-negative integer in lowercase base36"""
    if number < 0:
        raise ValueError("number must be non-negative")
    if number == 0:
        return '0'
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(BASE36_ALPHABET[remainder])
    return ''.join(reversed(digits))


def generate_access_code(client_name, now_ms=None):
    """Build a gallery access code: slugged client name plus a base36 timestamp"""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    slug = re.sub(r'\s+', '-', client_name.strip().lower())
    return f"{slug}-{to_base36(now_ms)}"


def generate_session_id():
    """Anonymous visitor id used for gallery favorites/downloads"""
    return secrets.token_hex(16)


def generate_project_code():
    """Short human-facing project code, e.g. PRJ-7K2M9Q"""
    return 'PRJ-' + ''.join(secrets.choice(string.ascii_uppercase + string.digits) for _ in range(6))


def iso(value):
    """Serialize a date/datetime (or None) for JSON payloads"""
    return value.isoformat() if value else None
