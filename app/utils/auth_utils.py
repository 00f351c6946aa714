"""
Authentication Utilities

FLOW OVERVIEW
- hash_password / verify_password
  • werkzeug salted hashes for admin accounts.
- create_admin_user / ensure_admin_user / authenticate_admin
  • Only users with status 'active' authenticate.
- current_admin / admin_required
  • Session carries 'admin_user_id'; admin routes answer 401 without it.
- cron_authorized / bearer_or_admin_required
  • Shared-secret checks for cron-invoked endpoints (X-Cron-Secret header,
    ?secret= or a Bearer token equal to CRON_SECRET).
"""

import hmac
from functools import wraps
from flask import current_app, jsonify, request, session
from werkzeug.security import generate_password_hash, check_password_hash
from ..models import db, AdminUser


def hash_password(password):
    """Hash a password with werkzeug's salted scheme"""
    return generate_password_hash(password)


def verify_password(password, password_hash):
    """Verify a password against its hash"""
    if not password_hash:
        return False
    return check_password_hash(password_hash, password)


def create_admin_user(email, password, name=None, role='admin'):
    """Create an active admin account"""
    user = AdminUser(email=email, password_hash=hash_password(password), name=name, role=role)
    db.session.add(user)
    db.session.commit()
    return user


def ensure_admin_user(email, password, name=None):
    """Create the admin, or re-activate an existing one with a new password.

    Returns (user, created).
    """
    user = AdminUser.query.filter_by(email=(email or '').strip().lower()).first()
    if user is None:
        return create_admin_user(email, password, name=name), True

    user.password_hash = hash_password(password)
    user.status = 'active'
    if name:
        user.name = name
    db.session.commit()
    return user, False


def authenticate_admin(email, password):
    """Authenticate an admin with email and password"""
    user = AdminUser.query.filter_by(email=(email or '').strip().lower()).first()

    # Disabled accounts never authenticate
    if user and user.is_active() and verify_password(password, user.password_hash):
        return user

    return None


def login_admin(user):
    session.clear()
    session.permanent = True
    session['admin_user_id'] = user.id
    session['admin_email'] = user.email


def current_admin():
    user_id = session.get('admin_user_id')
    if not user_id:
        return None
    user = db.session.get(AdminUser, user_id)
    if user is None or not user.is_active():
        return None
    return user


def admin_required(f):
    """Decorator to require an admin session"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if current_admin() is None:
            return jsonify({'error': 'Unauthorized. Please log in.'}), 401
        return f(*args, **kwargs)
    return decorated_function


def secrets_match(provided, expected):
    if not provided or not expected:
        return False
    return hmac.compare_digest(str(provided), str(expected))


def bearer_token():
    header = request.headers.get('Authorization', '')
    if header.lower().startswith('bearer '):
        return header[7:].strip()
    return None


def cron_authorized():
    """X-Cron-Secret header or ?secret= must equal CRON_SECRET"""
    expected = current_app.config.get('CRON_SECRET')
    provided = request.headers.get('X-Cron-Secret') or request.args.get('secret')
    return secrets_match(provided, expected)


def bearer_or_admin_required(f):
    """Decorator for endpoints callable by the cron runner or a signed-in admin"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = bearer_token()
        if not secrets_match(token, current_app.config.get('CRON_SECRET')) and current_admin() is None:
            return jsonify({'error': 'Unauthorized'}), 401
        return f(*args, **kwargs)
    return decorated_function
