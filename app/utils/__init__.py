"""
Utilities Package

FLOW OVERVIEW
- Request plumbing: auth_utils, api_utils, validators, rate_limiter,
  error_handlers, logger, prom_metrics.
- Provider facades: ai_client (OpenAI), media (Cloudinary), mailer (Flask-Mail),
  sms (Twilio), google_calendar.
- Studio helpers: availability, blog_content, email_templates, lead_extraction,
  notifications, quotes, revalidation, sitemap.
"""

from . import validators
from . import email_templates
from . import mailer

__all__ = [
    'validators',
    'email_templates',
    'mailer',
]
