"""
Session reminders and confirmations.

send_session_notice emails (and, with a phone number, texts) a client about a
session and records one communication_logs row per channel. It is shared by
the manual send-reminder endpoint and the cron reminder job.
"""

import logging
from dataclasses import dataclass, field
from typing import List

from ..models import db, CommunicationLog, Setting
from . import email_templates, mailer, sms


NOTICE_TYPES = ('reminder', 'confirmation')

REMINDER_SETTINGS_KEY = 'appointment_reminders_settings'
REMINDER_DEFAULTS = {
    'enabled': True,
    'hours_before': 24,
    'send_email': True,
    'send_sms': True,
    'auto_resend_on_reschedule': True,
    'max_retries': 3,
}

logger = logging.getLogger(__name__)


@dataclass
class NoticeResult:
    email_sent: bool = False
    sms_sent: bool = False
    errors: List[str] = field(default_factory=list)


def send_session_notice(notice_type, lead_id, name, email, starts_at, phone=None,
                        session_type=None, location=None, notes=None,
                        send_email=True, send_sms=True) -> NoticeResult:
    """Send the notice on every enabled channel. Caller commits."""
    result = NoticeResult()

    if send_email:
        subject = email_templates.session_notice_subject(notice_type)
        html = email_templates.session_notice_html(notice_type, name, starts_at, session_type, location, notes)
        try:
            mailer.send_email(email, subject, html)
            result.email_sent = True
        except mailer.EmailDeliveryError as e:
            result.errors.append(f"email: {e}")

        db.session.add(CommunicationLog(
            lead_id=str(lead_id) if lead_id is not None else None,
            type='email',
            direction='outbound',
            subject=subject,
            content=html,
            status='sent' if result.email_sent else 'failed',
            details={'notice_type': notice_type, 'session_at': starts_at.isoformat()},
        ))

    if phone and send_sms:
        body = email_templates.session_notice_sms(notice_type, name, starts_at, location)
        sid, sms_failed = None, False
        try:
            sid = sms.send_sms(phone, body)
            result.sms_sent = sid is not None
        except sms.SMSDeliveryError as e:
            sms_failed = True
            result.errors.append(f"sms: {e}")

        if result.sms_sent or sms_failed:
            db.session.add(CommunicationLog(
                lead_id=str(lead_id) if lead_id is not None else None,
                type='sms',
                direction='outbound',
                content=body,
                status='sent' if result.sms_sent else 'failed',
                details={'notice_type': notice_type, 'sid': sid},
            ))

    logger.info(f"Session {notice_type} for lead {lead_id}: email={result.email_sent} sms={result.sms_sent}")
    return result


def load_reminder_settings():
    """Stored reminder settings layered over the defaults"""
    settings = dict(REMINDER_DEFAULTS)
    stored = Setting.get_json(REMINDER_SETTINGS_KEY)
    if isinstance(stored, dict):
        settings.update(stored)
    return settings
