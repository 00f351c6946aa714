"""
Settings Model

Key/value store for site-wide switches and integration state. Structured
values (calendar tokens, reminder settings) are stored as JSON text.
"""

import json
from datetime import datetime
from .database import db


class Setting(db.Model):
    __tablename__ = 'settings'

    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(120), unique=True, nullable=False, index=True)
    value = db.Column(db.Text)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow)

    @classmethod
    def get(cls, key, default=None):
        setting = cls.query.filter_by(key=key).first()
        return setting.value if setting and setting.value is not None else default

    @classmethod
    def get_json(cls, key, default=None):
        raw = cls.get(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            return default

    @classmethod
    def get_bool(cls, key, default=True):
        raw = cls.get(key)
        if raw is None:
            return default
        return str(raw).strip().lower() not in ('false', '0', 'no', 'off', '')

    @classmethod
    def upsert(cls, key, value):
        """Insert or update a setting; dict/list values are JSON-encoded. Caller commits."""
        if isinstance(value, (dict, list, bool)):
            value = json.dumps(value)
        setting = cls.query.filter_by(key=key).first()
        if setting is None:
            setting = cls(key=key)
            db.session.add(setting)
        setting.value = value
        setting.updated_at = datetime.utcnow()
        return setting

    def to_dict(self):
        return {
            'key': self.key,
            'value': self.value,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
