"""
Tests for Input Validation Utilities

Covers email checks, the public lead-form payload, event-date normalisation and
the small parsing helpers the routes share.
"""

import pytest
from datetime import date, datetime
from app.utils.validators import (
    InputValidator, non_string_fields, normalize_event_date, parse_int, sanitize_input, split_csv,
    validate_email, validate_lead_payload, validate_required
)


class TestEmailValidation:
    """Test email validation"""

    def test_valid_emails(self):
        """Valid addresses pass and are lower-cased"""
        for email in ('test@example.com', 'User.Name@Domain.co.uk', 'user+tag@example.org'):
            result = validate_email(email)
            assert result.is_valid, f"Email '{email}' should be valid: {result.error_message}"
            assert result.sanitized_value == email.lower()

    def test_invalid_emails(self):
        """Malformed addresses fail with a message"""
        for email in ('', '   ', 'invalid-email', '@example.com', 'user@', 'user@example..com', 'a..b@example.com'):
            result = validate_email(email)
            assert not result.is_valid, f"Email '{email}' should be invalid"
            assert result.error_message is not None

    def test_email_too_long(self):
        result = validate_email('a' * 250 + '@example.com')
        assert not result.is_valid
        assert 'too long' in result.error_message


class TestLeadPayload:
    """Test the contact form payload validation"""

    def valid_payload(self, **overrides):
        payload = {
            'name': 'Jane Doe',
            'email': 'Jane@Example.com',
            'service_interest': 'Wedding Photography',
            'message': 'We are getting married next spring!',
        }
        payload.update(overrides)
        return payload

    def test_valid_payload_is_cleaned(self):
        result = validate_lead_payload(self.valid_payload(phone='  555-123-4567 '))
        assert result.is_valid
        assert result.data['email'] == 'jane@example.com'
        assert result.data['phone'] == '555-123-4567'
        assert result.data['source'] == 'web-form'
        assert result.data['budget_range'] is None

    def test_missing_email_uses_placeholder(self):
        """Email is optional on the public form"""
        result = validate_lead_payload(self.valid_payload(email=''))
        assert result.is_valid
        assert '@' in result.data['email']

    def test_short_name_and_message_fail(self):
        result = validate_lead_payload(self.valid_payload(name='J', message='Hi'))
        assert not result.is_valid
        assert set(result.errors) == {'name', 'message'}

    def test_invalid_email_fails(self):
        result = validate_lead_payload(self.valid_payload(email='not-an-email'))
        assert not result.is_valid
        assert 'email' in result.errors

    def test_non_string_optional_field_fails(self):
        result = validate_lead_payload(self.valid_payload(phone=5551234567))
        assert not result.is_valid
        assert 'phone' in result.errors

    def test_custom_source_is_kept(self):
        result = validate_lead_payload(self.valid_payload(source='newsletter-modal'))
        assert result.data['source'] == 'newsletter-modal'


class TestEventDateNormalization:
    """Test event date normalisation to ISO dates"""

    @pytest.mark.parametrize('value, expected', [
        ('2025-06-14', '2025-06-14'),
        ('2025-06-14T15:30:00Z', '2025-06-14'),
        ('06/14/2025', '2025-06-14'),
        (date(2025, 6, 14), '2025-06-14'),
        (datetime(2025, 6, 14, 9, 0), '2025-06-14'),
    ])
    def test_complete_dates(self, value, expected):
        assert normalize_event_date(value) == expected

    @pytest.mark.parametrize('value', [None, '', 'next summer', '2025-13-40'])
    def test_incomplete_dates_are_none(self, value):
        assert normalize_event_date(value) is None


class TestHelpers:
    """Test small parsing helpers"""

    def test_parse_int_clamps(self):
        assert parse_int('500', 50, minimum=1, maximum=100) == 100
        assert parse_int('-3', 50, minimum=0) == 0
        assert parse_int('abc', 50) == 50
        assert parse_int(None, 7) == 7

    def test_split_csv(self):
        assert split_csv('a, b,,c ') == ['a', 'b', 'c']
        assert split_csv([' x ', '', 'y']) == ['x', 'y']
        assert split_csv(None) == []

    def test_validate_required_treats_blank_as_missing(self):
        ok, missing = validate_required({'a': 'x', 'b': '  ', 'c': 0}, ('a', 'b', 'c', 'd'))
        assert not ok
        assert missing == ['b', 'd']

    def test_sanitize_input(self):
        assert sanitize_input('  hello\x00\r\nworld  ') == 'hello\nworld'
        assert sanitize_input('x' * 20, max_length=5) == 'xxxxx'
        assert InputValidator.sanitize_input('') == ''


class TestNonStringFields:
    def test_reports_wrong_types_only(self):
        data = {'name': 12345, 'phone': '555-0100', 'notes': None, 'time': ['5:00 PM']}
        assert non_string_fields(data, ('name', 'phone', 'notes', 'time', 'email')) == ['name', 'time']
