"""
Appointment Model

Photo sessions and 15-minute consultations. appointment_time keeps the
12-hour string the booking form submits (e.g. "4:30 PM").
"""

import re
from datetime import datetime, time
from .database import db
from .utils import iso


TIME_PATTERN = re.compile(r'^\s*(\d{1,2}):(\d{2})\s*(AM|PM)?\s*$', re.IGNORECASE)


def parse_appointment_time(value):
    """Parse '4:30 PM' or '16:30' into a datetime.time; None when unparseable"""
    match = TIME_PATTERN.match(value or '')
    if not match:
        return None
    hour, minute = int(match.group(1)), int(match.group(2))
    ampm = (match.group(3) or '').upper()
    if ampm == 'PM' and hour != 12:
        hour += 12
    elif ampm == 'AM' and hour == 12:
        hour = 0
    if hour > 23 or minute > 59:
        return None
    return time(hour, minute)


class Appointment(db.Model):
    __tablename__ = 'appointments'

    id = db.Column(db.Integer, primary_key=True)
    client_name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(254), nullable=False)
    phone = db.Column(db.String(40))
    appointment_date = db.Column(db.Date, nullable=False, index=True)
    appointment_time = db.Column(db.String(20))
    service_type = db.Column(db.String(60))
    booking_type = db.Column(db.String(30))  # consultation, session
    status = db.Column(db.String(20), default='pending')  # pending, confirmed, cancelled
    notes = db.Column(db.Text)
    calendar_event_id = db.Column(db.String(255))
    reminder_sent_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow)

    def is_consultation(self):
        return (self.service_type or '').lower() == 'consultation'

    def starts_at(self):
        """Combined start datetime, or None when the time string is unparseable"""
        parsed = parse_appointment_time(self.appointment_time)
        if parsed is None or self.appointment_date is None:
            return None
        return datetime.combine(self.appointment_date, parsed)

    def to_dict(self):
        return {
            'id': self.id,
            'client_name': self.client_name,
            'email': self.email,
            'phone': self.phone,
            'appointment_date': iso(self.appointment_date),
            'appointment_time': self.appointment_time,
            'service_type': self.service_type,
            'booking_type': self.booking_type,
            'status': self.status,
            'notes': self.notes,
            'calendar_event_id': self.calendar_event_id,
            'reminder_sent_at': iso(self.reminder_sent_at),
            'created_at': iso(self.created_at),
        }
