"""
Lead Extraction (AI vision)

FLOW OVERVIEW
- extract_from_screenshot(image_bytes, mime_type, mode, source_hint, notes)
  • mode 'screenshot'    → lead-platform inbox (Thumbtack, Bark, WeddingWire...)
  • mode 'business-card' → photographed card; company/title/website fold into message
  • Returns (extracted_lead, raw_model_text); raises AIResponseError when the
    model JSON cannot be parsed even after one brace-balancing repair.
- extract_batch_item(image_bytes, mime_type, filename, source)
  • Looser prompt for batch imports; email/phone fall back to regex scans of
    the transcribed text.
"""

import logging
import re
from typing import Any, Dict, Optional, Tuple

from .ai_client import ai_client, parse_json_with_repair


SCREENSHOT_MAX_BYTES = 8 * 1024 * 1024
BATCH_MAX_FILES = 5
BATCH_MAX_BYTES = 6 * 1024 * 1024
MIN_MESSAGE_LENGTH = 12

EMAIL_PATTERN = re.compile(r'[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}', re.IGNORECASE)
PHONE_PATTERN = re.compile(r'(\+?1?[-.\s()]?\d{3}[-.\s)]?\d{3}[-.\s]?\d{4})')

SYSTEM_INSTRUCTION = ('You are a careful data-entry assistant. Extract only real lead/contact details '
                      'visible in the image and respond with COMPLETE valid JSON only. Do not truncate '
                      'or omit fields.')

SCREENSHOT_PROMPT = """{system}

Extract lead/contact details from the provided screenshot of a lead platform.
Source hint: {source}
Additional context from the admin: {notes}

Return ONLY valid JSON with this exact shape:
{{
  "name": string | null,
  "email": string | null,
  "phone": string | null,
  "service_interest": string | null,
  "event_date": string | null,
  "budget_range": string | null,
  "location": string | null,
  "message": string,
  "source": string
}}

Rules:
- Do not fabricate contact info that is not visible.
- Normalize phone numbers to digits and symbols only (e.g., +1-212-555-1234).
- Keep values concise without labels.
- message must summarize what the lead wants (service type, timing, budget hints if present) in at least 12 words."""

BUSINESS_CARD_PROMPT = """{system}

Extract contact details from the provided business card photo.
Source hint: {source}
Additional context from the admin: {notes}

Return ONLY valid JSON with this exact shape:
{{
  "name": string | null,
  "email": string | null,
  "phone": string | null,
  "company": string | null,
  "title": string | null,
  "website": string | null,
  "location": string | null,
  "message": string,
  "source": string
}}

Rules:
- Do not fabricate contact info that is not visible.
- Normalize phone numbers to digits and symbols only (e.g., +1-212-555-1234).
- If a field is not visible, return null.
- message should briefly describe who the contact is and where the card came from."""

BATCH_PROMPT = """You are extracting lead details from a screenshot (e.g., Thumbtack lead inbox).
Return ONLY valid JSON with these keys:
{
  "name": string,
  "email": string | null,
  "phone": string | null,
  "service_interest": string | null,
  "budget_range": string | null,
  "event_date": string | null,
  "message": string | null,
  "source": string | null,
  "raw_text": string,
  "platform": string | null,
  "additional_contacts": string[] | null,
  "confidence": number | null
}
Keep punctuation as-is and avoid adding text not present. If a field is missing, use null."""

logger = logging.getLogger(__name__)


def _text(parsed: Dict[str, Any], *keys) -> str:
    """First non-empty value among keys, as a trimmed string"""
    for key in keys:
        value = parsed.get(key)
        if value not in (None, ''):
            return str(value).strip()
    return ''


def find_email(text: str) -> Optional[str]:
    match = EMAIL_PATTERN.search(text or '')
    return match.group(0) if match else None


def find_phone(text: str) -> Optional[str]:
    match = PHONE_PATTERN.search(text or '')
    return match.group(0).strip() if match else None


def normalize_extracted_lead(parsed: Dict[str, Any], mode: str, source_hint: str, notes: str = '') -> Dict[str, str]:
    is_business_card = mode == 'business-card'
    extracted = {
        'name': _text(parsed, 'name'),
        'email': _text(parsed, 'email'),
        'phone': _text(parsed, 'phone'),
        'service_interest': _text(parsed, 'service_interest', 'service'),
        'event_date': _text(parsed, 'event_date', 'date'),
        'budget_range': _text(parsed, 'budget_range', 'budget'),
        'location': _text(parsed, 'location', 'city', 'venue', 'address'),
        'message': _text(parsed, 'message'),
        'source': _text(parsed, 'source') or source_hint or 'screenshot-import',
    }

    if len(extracted['message']) < MIN_MESSAGE_LENGTH:
        if is_business_card:
            company = _text(parsed, 'company', 'organization', 'business')
            title = _text(parsed, 'title', 'role', 'position')
            website = _text(parsed, 'website', 'url', 'site')
            parts = ['Business card']
            if extracted['name']:
                parts.append(f"from {extracted['name']}")
            if company:
                parts.append(f"at {company}")
            if title:
                parts.append(f"({title})")
            if website:
                parts.append(f"Website: {website}.")
            if notes:
                parts.append(f"Notes: {notes}")
            extracted['message'] = ' '.join(parts)
        else:
            extracted['message'] = f"Imported from screenshot ({extracted['source']})." + (
                f" Notes: {notes}" if notes else '')

    return extracted


def extract_from_screenshot(image_bytes: bytes, mime_type: str, mode: str = 'screenshot',
                            source_hint: str = 'screenshot-import', notes: str = '') -> Tuple[Dict[str, str], str]:
    template = BUSINESS_CARD_PROMPT if mode == 'business-card' else SCREENSHOT_PROMPT
    prompt = template.format(system=SYSTEM_INSTRUCTION, source=source_hint, notes=notes or 'None provided')

    raw = ai_client.analyze_image(prompt, image_bytes, mime_type=mime_type or 'image/jpeg', preset='structured')
    parsed = parse_json_with_repair(raw)

    extracted = normalize_extracted_lead(parsed, mode, source_hint, notes)
    logger.info(f"Lead extracted ({mode}) source={extracted['source']} "
                f"email={bool(extracted['email'])} phone={bool(extracted['phone'])}")
    return extracted, raw


def normalize_batch_lead(parsed: Dict[str, Any], filename: str, source: Optional[str]) -> Dict[str, Any]:
    raw_text = _text(parsed, 'raw_text', 'rawText')
    return {
        'name': _text(parsed, 'name', 'full_name'),
        'email': _text(parsed, 'email') or find_email(raw_text) or '',
        'phone': _text(parsed, 'phone', 'phone_number') or find_phone(raw_text) or '',
        'service_interest': _text(parsed, 'service_interest', 'service') or 'General',
        'budget_range': _text(parsed, 'budget_range', 'budget'),
        'event_date': _text(parsed, 'event_date', 'date'),
        'message': _text(parsed, 'message', 'notes') or 'Captured from screenshot',
        'source': _text(parsed, 'source') or source or 'thumbtack-screenshot',
        'extracted_text': raw_text,
        'source_metadata': {
            'fileName': filename,
            'platform': _text(parsed, 'platform') or source or 'thumbtack',
            'rawConfidence': parsed.get('confidence'),
            'secondary_contacts': parsed.get('additional_contacts'),
        },
    }


def extract_batch_item(image_bytes: bytes, mime_type: str, filename: str, source: Optional[str]) -> Dict[str, Any]:
    raw = ai_client.analyze_image(BATCH_PROMPT, image_bytes, mime_type=mime_type or 'image/jpeg', preset='structured')
    return normalize_batch_lead(parse_json_with_repair(raw), filename, source)
