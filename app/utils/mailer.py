"""
Outbound Email (Flask-Mail)

FLOW OVERVIEW
- mail.init_app(app) is called from create_app.
- send_email(to, subject, html, reply_to=None)
  • Builds a flask_mail.Message from MAIL_DEFAULT_SENDER and sends it.
  • Raises EmailDeliveryError on failure; callers decide whether that fails
    the request (lead notifications never do).
"""

import logging
from flask import current_app
from flask_mail import Mail, Message


mail = Mail()
logger = logging.getLogger(__name__)


class EmailDeliveryError(Exception):
    """SMTP send failed"""


def is_configured():
    config = current_app.config
    return bool(config.get('MAIL_SERVER')) and (
        bool(config.get('MAIL_USERNAME')) or config.get('TESTING', False)
    )


def send_email(to, subject, html, reply_to=None):
    recipients = [to] if isinstance(to, str) else list(to)
    message = Message(
        subject=subject,
        recipients=recipients,
        html=html,
        sender=current_app.config.get('MAIL_DEFAULT_SENDER'),
        reply_to=reply_to,
    )
    try:
        mail.send(message)
    except Exception as e:
        logger.error(f"Email send failed to {', '.join(recipients)} ({subject}): {e}")
        raise EmailDeliveryError(str(e)) from e

    logger.info(f"Email sent to {', '.join(recipients)}: {subject}")
    return True
