"""
Package recommendations for the quote form.

recommend_package(request_data) asks the model for one package in a fixed
JSON shape. Any failure (provider, parse or shape) falls back to the
Complete Package so the quote page always has something to show.
"""

import logging
from typing import Any, Dict, Tuple

from .ai_client import ai_client, parse_json_with_repair, AIClientError


REQUIRED_KEYS = ('name', 'price', 'features', 'bestFor')

FALLBACK_RECOMMENDATION = {
    'name': 'Complete Package',
    'price': '$2,500',
    'features': [
        '8 hours of professional coverage',
        '150+ beautifully edited photos',
        'High-resolution digital gallery',
        'Engagement or pre-session included',
        'Professional print options available',
    ],
    'bestFor': 'Most popular choice for comprehensive coverage',
    'confidence': 75,
}

PACKAGE_OPTIONS = """1. Essential Package ($200-500): Mini sessions, 1-2 hours, 15-50 photos
2. Standard Package ($500-1000): Standard sessions, 2-4 hours, 30-100 photos, multiple looks
3. Complete Package ($1000-2500): Full coverage, 4-8 hours, 100-200 photos, engagement session
4. Premium Package ($2500-4000): Full day, 8+ hours, 200+ photos, two photographers, album
5. Enterprise/Custom ($4000+): Multi-day, unlimited hours, full team, video, complete deliverables"""

logger = logging.getLogger(__name__)


def build_quote_prompt(data: Dict[str, Any]) -> str:
    lines = [
        'You are a photography business consultant for Studio37, a professional photography studio in Pinehurst, TX.',
        '',
        "Based on this client's requirements, recommend the perfect photography package:",
        '',
        f"Service Type: {data.get('serviceType') or 'general'}",
    ]
    if data.get('guestCount'):
        lines.append(f"Guest Count: {data['guestCount']}")
    if data.get('duration'):
        lines.append(f"Duration: {data['duration']} hours")
    if data.get('location'):
        lines.append(f"Location: {data['location']}")
    lines.append(f"Budget Range: {data.get('budget') or 'Not specified'}")
    if data.get('eventDate'):
        lines.append(f"Event Date: {data['eventDate']}")
    lines.extend([
        '',
        'Our Package Options:',
        PACKAGE_OPTIONS,
        '',
        'Consider service type, duration, guest count (more people may need a second photographer) and budget.',
        '',
        'Return ONLY valid JSON with this structure:',
        '{"name": string, "price": string, "features": [5 strings], "bestFor": string, "confidence": number 0-100}',
    ])
    return '\n'.join(lines)


def recommend_package(data: Dict[str, Any]) -> Tuple[Dict[str, Any], bool]:
    """Return (recommendation, is_fallback)"""
    try:
        raw = ai_client.generate_json(build_quote_prompt(data), preset='structured')
        recommendation = parse_json_with_repair(raw)
    except AIClientError as e:
        logger.error(f"Package recommendation failed: {e}")
        return dict(FALLBACK_RECOMMENDATION), True

    if any(not recommendation.get(key) for key in REQUIRED_KEYS) or not isinstance(recommendation['features'], list):
        logger.error(f"Package recommendation has an invalid structure: {sorted(recommendation.keys())}")
        return dict(FALLBACK_RECOMMENDATION), True

    return recommendation, False
