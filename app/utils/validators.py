"""
Input Validation Utilities

FLOW OVERVIEW
- validate_email(email)
  • Syntax checks; returns sanitized lowercased value.
- validate_length(value, field, min_length, max_length)
  • Bounded string fields (names, messages).
- validate_lead_payload(data)
  • Contact-form rules: name 2-120, optional email (defaults to a placeholder),
    service_interest required, message 10-5000, source default 'web-form'.
- normalize_event_date(value)
  • Accept common date spellings; anything that is not a full date becomes None.
- sanitize_input(input, max_length) / escape_html(text)
  • Trim, bound length, strip null bytes; escape for HTML email bodies.
"""

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Optional, Tuple


PLACEHOLDER_LEAD_EMAIL = 'lead@example.com'

DATE_FORMATS = (
    '%Y-%m-%d',
    '%m/%d/%Y',
    '%m-%d-%Y',
    '%B %d, %Y',
    '%b %d, %Y',
    '%B %d %Y',
    '%b %d %Y',
    '%d %B %Y',
)


@dataclass
class ValidationResult:
    """Result of validation operation"""
    is_valid: bool
    error_message: Optional[str] = None
    sanitized_value: Optional[Any] = None


@dataclass
class PayloadValidation:
    """Result of validating a whole request body"""
    is_valid: bool
    data: Dict[str, Any] = field(default_factory=dict)
    errors: Dict[str, str] = field(default_factory=dict)


class InputValidator:
    """Field-level validation shared by the public forms"""

    EMAIL_PATTERN = re.compile(
        r'^[a-zA-Z0-9.!#$%&\'*+/=?^_`{|}~-]+@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)+$'
    )

    @classmethod
    def validate_email(cls, email: str) -> ValidationResult:
        """
        Validate email address

        Args:
            email: Email address to validate

        Returns:
            ValidationResult with validation status and sanitized value
        """
        if not email or not isinstance(email, str):
            return ValidationResult(False, "Email must be a non-empty string")

        email = email.strip()
        if email == "":
            return ValidationResult(False, "Email cannot be empty")

        if len(email) > 254:
            return ValidationResult(False, "Email address too long (max 254 characters)")

        if not cls.EMAIL_PATTERN.match(email):
            return ValidationResult(False, "Invalid email format")

        local_part, domain = email.split('@')
        if len(local_part) > 64:
            return ValidationResult(False, "Email local part too long (max 64 characters)")

        if local_part.startswith('.') or local_part.endswith('.') or '..' in local_part:
            return ValidationResult(False, "Invalid email format")

        if '..' in domain:
            return ValidationResult(False, "Invalid email format")

        return ValidationResult(True, sanitized_value=email.lower())

    @classmethod
    def validate_length(cls, value, field_name: str, min_length: int = 0,
                        max_length: Optional[int] = None) -> ValidationResult:
        if value is None:
            value = ''
        if not isinstance(value, str):
            return ValidationResult(False, f"{field_name} must be a string")
        value = value.strip()
        if len(value) < min_length:
            return ValidationResult(False, f"{field_name} must be at least {min_length} characters")
        if max_length is not None and len(value) > max_length:
            return ValidationResult(False, f"{field_name} must be at most {max_length} characters")
        return ValidationResult(True, sanitized_value=value)

    @classmethod
    def normalize_event_date(cls, value) -> Optional[str]:
        """Return an ISO date string, or None when value is not a complete date"""
        if not value:
            return None
        if isinstance(value, datetime):
            return value.date().isoformat()
        if isinstance(value, date):
            return value.isoformat()

        text = str(value).strip()
        try:
            return datetime.fromisoformat(text.replace('Z', '+00:00')).date().isoformat()
        except ValueError:
            pass
        for date_format in DATE_FORMATS:
            try:
                return datetime.strptime(text, date_format).date().isoformat()
            except ValueError:
                continue
        return None

    @classmethod
    def validate_lead_payload(cls, data: Dict[str, Any]) -> PayloadValidation:
        errors = {}
        cleaned = {}

        name = cls.validate_length(data.get('name'), 'name', 2, 120)
        if name.is_valid:
            cleaned['name'] = name.sanitized_value
        else:
            errors['name'] = name.error_message

        raw_email = data.get('email')
        raw_email = raw_email.strip() if isinstance(raw_email, str) else ''
        email = cls.validate_email(raw_email or PLACEHOLDER_LEAD_EMAIL)
        if email.is_valid:
            cleaned['email'] = email.sanitized_value
        else:
            errors['email'] = email.error_message

        service = cls.validate_length(data.get('service_interest'), 'service_interest', 1)
        if service.is_valid:
            cleaned['service_interest'] = service.sanitized_value
        else:
            errors['service_interest'] = service.error_message

        message = cls.validate_length(data.get('message'), 'message', 10, 5000)
        if message.is_valid:
            cleaned['message'] = message.sanitized_value
        else:
            errors['message'] = message.error_message

        for optional in ('phone', 'budget_range', 'event_date'):
            value = data.get(optional)
            if value is not None and not isinstance(value, str):
                errors[optional] = f"{optional} must be a string"
            else:
                cleaned[optional] = (value or '').strip() or None

        source = data.get('source')
        cleaned['source'] = source.strip() if isinstance(source, str) and source.strip() else 'web-form'

        return PayloadValidation(not errors, cleaned, errors)

    @classmethod
    def sanitize_input(cls, input_string: str, max_length: int = 1000) -> str:
        """
        Trim, bound length, drop null bytes and normalize line endings
        """
        if not input_string:
            return ""

        sanitized = str(input_string).strip()
        if len(sanitized) > max_length:
            sanitized = sanitized[:max_length]
        sanitized = sanitized.replace('\x00', '')
        return sanitized.replace('\r\n', '\n').replace('\r', '\n')


def escape_html(text) -> str:
    """Escape text for interpolation into HTML email bodies"""
    return (str(text or '')
            .replace('&', '&amp;')
            .replace('<', '&lt;')
            .replace('>', '&gt;')
            .replace('"', '&quot;'))


# Convenience functions for common validations
def validate_email(email: str) -> ValidationResult:
    """Validate email address"""
    return InputValidator.validate_email(email)


def validate_lead_payload(data: Dict[str, Any]) -> PayloadValidation:
    return InputValidator.validate_lead_payload(data)


def normalize_event_date(value) -> Optional[str]:
    return InputValidator.normalize_event_date(value)


def sanitize_input(input_string: str, max_length: int = 1000) -> str:
    """Sanitize user input"""
    return InputValidator.sanitize_input(input_string, max_length)


def split_csv(value) -> list:
    """'a, b,,c' -> ['a', 'b', 'c']; lists pass through trimmed"""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(item).strip() for item in value if str(item).strip()]
    return [part.strip() for part in str(value).split(',') if part.strip()]


def parse_int(value, default: int, minimum: Optional[int] = None, maximum: Optional[int] = None) -> int:
    """Lenient query-string integer parsing with clamping"""
    try:
        number = int(value)
    except (TypeError, ValueError):
        number = default
    if minimum is not None:
        number = max(minimum, number)
    if maximum is not None:
        number = min(maximum, number)
    return number


def validate_required(data: Dict[str, Any], fields) -> Tuple[bool, list]:
    """Return (all_present, missing_fields); blank strings count as missing"""
    missing = [name for name in fields
               if data.get(name) is None or (isinstance(data.get(name), str) and not data.get(name).strip())]
    return not missing, missing


def non_string_fields(data: Dict[str, Any], fields) -> list:
    """Fields present with a non-string value, e.g. {'name': 12345}"""
    return [name for name in fields
            if data.get(name) is not None and not isinstance(data.get(name), str)]
