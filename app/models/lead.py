"""
Lead Models

FLOW OVERVIEW
- Lead: prospective client captured from the contact form, a screenshot of a
  lead platform, or a business card.
- LeadFollowUp: scheduled day1/day3/day7 nurture emails for a lead.
- CommunicationLog: outbound email/SMS audit trail (reminders, confirmations).
"""

from datetime import datetime, timedelta
from .database import db
from .utils import iso


class Lead(db.Model):
    __tablename__ = 'leads'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(254), nullable=False)
    phone = db.Column(db.String(40))
    service_interest = db.Column(db.String(120))
    budget_range = db.Column(db.String(80))
    event_date = db.Column(db.Date)
    message = db.Column(db.Text)
    source = db.Column(db.String(60), default='web-form')
    status = db.Column(db.String(20), default='new')  # new, contacted, qualified, booked, lost
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow)

    follow_ups = db.relationship('LeadFollowUp', backref='lead', lazy=True, cascade='all, delete-orphan')

    EDITABLE_FIELDS = ('name', 'email', 'phone', 'service_interest', 'budget_range',
                       'message', 'source', 'status', 'notes')

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'phone': self.phone,
            'service_interest': self.service_interest,
            'budget_range': self.budget_range,
            'event_date': iso(self.event_date),
            'message': self.message,
            'source': self.source,
            'status': self.status,
            'notes': self.notes,
            'created_at': iso(self.created_at),
            'updated_at': iso(self.updated_at),
        }


class LeadFollowUp(db.Model):
    """One scheduled nurture email"""
    __tablename__ = 'lead_follow_ups'

    # sequence_type -> delay from scheduling time
    SEQUENCE_DELAYS = {
        'day1': timedelta(hours=1),
        'day3': timedelta(days=3),
        'day7': timedelta(days=7),
    }

    id = db.Column(db.Integer, primary_key=True)
    lead_id = db.Column(db.Integer, db.ForeignKey('leads.id', ondelete='CASCADE'), nullable=False)
    sequence_type = db.Column(db.String(10), nullable=False)
    scheduled_for = db.Column(db.DateTime, nullable=False)
    status = db.Column(db.String(20), default='pending')  # pending, sent, failed
    sent_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    @classmethod
    def build_sequence(cls, lead_id, now=None):
        """Return the three pending follow-ups for a lead (not yet added to the session)"""
        now = now or datetime.utcnow()
        return [
            cls(lead_id=lead_id, sequence_type=sequence_type,
                scheduled_for=now + delay, status='pending')
            for sequence_type, delay in cls.SEQUENCE_DELAYS.items()
        ]

    @classmethod
    def due(cls, now=None):
        now = now or datetime.utcnow()
        return (cls.query.filter(cls.status == 'pending', cls.scheduled_for <= now)
                .order_by(cls.scheduled_for.asc()).all())

    def to_dict(self):
        return {
            'id': self.id,
            'lead_id': self.lead_id,
            'sequence_type': self.sequence_type,
            'status': self.status,
            'scheduled_for': iso(self.scheduled_for),
            'sent_at': iso(self.sent_at),
        }


class CommunicationLog(db.Model):
    __tablename__ = 'communication_logs'

    id = db.Column(db.Integer, primary_key=True)
    # Free-form: reminders can be sent for leads that live outside this database
    lead_id = db.Column(db.String(64))
    type = db.Column(db.String(20), nullable=False)  # email, sms
    direction = db.Column(db.String(10), default='outbound')
    subject = db.Column(db.String(255))
    content = db.Column(db.Text)
    status = db.Column(db.String(20), default='sent')
    details = db.Column('metadata', db.JSON, default=dict)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'lead_id': self.lead_id,
            'type': self.type,
            'direction': self.direction,
            'subject': self.subject,
            'status': self.status,
            'metadata': self.details or {},
            'created_at': iso(self.created_at),
        }
