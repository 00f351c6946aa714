"""
Test configuration and shared fixtures for the Studio37 back office tests.

This file contains:
- Centralized test configuration
- Shared fixtures used across multiple test files
- Common test utilities
"""

import pytest
from app import create_app
from app.models import db, Gallery, GalleryImage
from app.utils.auth_utils import create_admin_user
from app.utils.rate_limiter import rate_limiter


# Centralized test configuration
TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    'SECRET_KEY': 'test-secret-key',
    'SITE_URL': 'https://www.studio37.cc',
    'ADMIN_EMAIL': 'admin@studio37.cc',
    'CRON_SECRET': 'test-cron-secret',
    'MAIL_SERVER': 'localhost',
    'MAIL_PORT': 587,
    'MAIL_USE_TLS': False,
    'MAIL_USE_SSL': False,
    'MAIL_USERNAME': 'test@example.com',
    'MAIL_PASSWORD': 'test-password',
    'MAIL_DEFAULT_SENDER': 'test@example.com',
    'MAIL_SUPPRESS_SEND': True,
}

ADMIN_PASSWORD = 'AdminPass123!'


@pytest.fixture(autouse=True)
def reset_rate_limits():
    """Rate-limit windows are process-global; start every test with a clean map."""
    rate_limiter.reset()
    yield
    rate_limiter.reset()


@pytest.fixture
def app():
    """Create and configure a new app instance for each test."""
    app = create_app(TEST_CONFIG)
    return app


@pytest.fixture
def client(app):
    """Create a test client for the app."""
    return app.test_client()


@pytest.fixture
def app_context(app):
    """Create an application context for database operations."""
    with app.app_context():
        yield


@pytest.fixture
def db_session(app_context):
    """Create a database session and clean up after tests."""
    db.create_all()
    yield db.session
    db.session.remove()
    db.drop_all()


@pytest.fixture
def admin_user(db_session):
    """Create an active admin account."""
    return create_admin_user('admin@studio37.cc', ADMIN_PASSWORD, name='Studio Admin')


@pytest.fixture
def admin_client(client, admin_user):
    """Test client carrying a signed-in admin session."""
    with client.session_transaction() as sess:
        sess['admin_user_id'] = admin_user.id
        sess['admin_email'] = admin_user.email
    return client


@pytest.fixture
def gallery(db_session):
    """Active gallery with password 'secret123' and two images."""
    gallery = Gallery.create(
        client_name='Jane Doe',
        client_email='jane@example.com',
        title='Doe Wedding',
        password='secret123',
        allow_downloads=True,
        require_purchase=True,
    )
    db_session.add(gallery)
    db_session.flush()
    for order in range(2):
        db_session.add(GalleryImage(
            gallery_id=gallery.id,
            image_url=f'https://res.cloudinary.com/demo/image/upload/photo{order}.jpg',
            watermarked_url=f'https://res.cloudinary.com/demo/image/upload/l_text/photo{order}.jpg',
            display_order=order,
        ))
    gallery.total_photos = 2
    db_session.commit()
    return gallery
