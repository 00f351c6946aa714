"""
Twilio SMS over its REST API (requests, HTTP basic auth).

send_sms returns the message SID, or None when Twilio is not configured so
callers can report `smsSent: false` without treating it as a failure.
"""

import logging
import requests
from flask import current_app


TWILIO_MESSAGES_URL = 'https://api.twilio.com/2010-04-01/Accounts/{sid}/Messages.json'
TWILIO_TIMEOUT = 10

logger = logging.getLogger(__name__)


class SMSDeliveryError(Exception):
    pass


def is_configured():
    config = current_app.config
    return all(config.get(key) for key in ('TWILIO_ACCOUNT_SID', 'TWILIO_AUTH_TOKEN', 'TWILIO_FROM_NUMBER'))


def send_sms(to, body):
    if not is_configured():
        logger.info(f"SMS service not configured; skipping message to {to[-4:] if to else 'unknown'}")
        return None

    config = current_app.config
    account_sid = config['TWILIO_ACCOUNT_SID']
    try:
        response = requests.post(
            TWILIO_MESSAGES_URL.format(sid=account_sid),
            auth=(account_sid, config['TWILIO_AUTH_TOKEN']),
            data={'To': to, 'From': config['TWILIO_FROM_NUMBER'], 'Body': body},
            timeout=TWILIO_TIMEOUT,
        )
    except requests.RequestException as e:
        raise SMSDeliveryError(f"Twilio request failed: {e}") from e

    if not response.ok:
        raise SMSDeliveryError(f"Twilio error {response.status_code}: {response.text[:300]}")

    return response.json().get('sid')
