"""
Admin User Model

Back-office accounts. Only users with status 'active' can sign in; the
session stores the numeric id under 'admin_user_id'.
"""

from datetime import datetime
from .database import db


class AdminUser(db.Model):
    """Back-office user for the admin dashboard"""
    __tablename__ = 'admin_users'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    name = db.Column(db.String(120))
    role = db.Column(db.String(20), default='admin')
    status = db.Column(db.String(20), default='active')  # active, disabled
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    last_login = db.Column(db.DateTime)

    def __init__(self, email, password_hash, name=None, role='admin'):
        from ..utils.validators import validate_email

        email_validation = validate_email(email)
        if not email_validation.is_valid:
            raise ValueError(email_validation.error_message)

        self.email = email_validation.sanitized_value
        self.password_hash = password_hash
        self.name = name
        self.role = role
        self.status = 'active'

    def is_active(self):
        """Check if the account may sign in"""
        return self.status == 'active'

    def is_admin(self):
        return self.role == 'admin'

    def update_last_login(self):
        """Update the last login timestamp"""
        self.last_login = datetime.utcnow()
        db.session.commit()

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'name': self.name,
            'role': self.role,
            'status': self.status,
            'last_login': self.last_login.isoformat() if self.last_login else None,
        }
