"""
Application Configuration

FLOW OVERVIEW
- Config.__init__
  • Reads FLASK_ENV to select which .env file to load (dev/prod). Testing bypasses file load.
- Properties expose configuration values, defaulting to sensible development-safe defaults.
- External services (AI, Cloudinary, Google Calendar, Twilio) stay disabled when their
  credentials are absent; the routes that need them answer 503 or skip the step.
"""

import os
from dotenv import load_dotenv


def _env_flag(name, default='False'):
    return os.getenv(name, default).lower() == 'true'


class Config:
    """Base configuration class"""

    def __init__(self):
        env_file = os.getenv('FLASK_ENV', 'development')
        if env_file == 'testing':
            pass
        elif env_file == 'production':
            load_dotenv('config.prod.env')
        else:
            load_dotenv('config.env')

    @property
    def SECRET_KEY(self):
        """Application secret key (signs the admin session cookie)"""
        return os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')

    @property
    def SQLALCHEMY_DATABASE_URI(self):
        """Database connection URI (Postgres in production)"""
        url = os.getenv('DATABASE_URL', 'sqlite:///studio37.db')
        # Hosted Postgres providers still hand out the legacy scheme
        if url.startswith('postgres://'):
            url = 'postgresql://' + url[len('postgres://'):]
        return url

    @property
    def SQLALCHEMY_TRACK_MODIFICATIONS(self):
        return False

    @property
    def APP_VERSION(self):
        return os.getenv('APP_VERSION', '0.1.0')

    @property
    def LOG_LEVEL(self):
        return os.getenv('LOG_LEVEL', 'INFO').upper()

    @property
    def SITE_URL(self):
        """Public site origin used in sitemap and email links"""
        return os.getenv('SITE_URL', 'https://www.studio37.cc').rstrip('/')

    # Mail

    @property
    def MAIL_SERVER(self):
        return os.getenv('MAIL_SERVER', 'smtp.gmail.com')

    @property
    def MAIL_PORT(self):
        return int(os.getenv('MAIL_PORT', 587))

    @property
    def MAIL_USE_TLS(self):
        return _env_flag('MAIL_USE_TLS', 'True')

    @property
    def MAIL_USE_SSL(self):
        return _env_flag('MAIL_USE_SSL')

    @property
    def MAIL_USERNAME(self):
        return os.getenv('MAIL_USERNAME')

    @property
    def MAIL_PASSWORD(self):
        return os.getenv('MAIL_PASSWORD')

    @property
    def MAIL_DEFAULT_SENDER(self):
        return os.getenv('MAIL_DEFAULT_SENDER', 'Studio37 <contact@studio37.cc>')

    @property
    def ADMIN_EMAIL(self):
        """Recipient of new-lead notifications"""
        return os.getenv('ADMIN_EMAIL', 'ceo@studio37.cc')

    # Shared secrets

    @property
    def CRON_SECRET(self):
        return os.getenv('CRON_SECRET')

    @property
    def REVALIDATE_SECRET(self):
        return os.getenv('REVALIDATE_SECRET')

    @property
    def REVALIDATE_WEBHOOK_URL(self):
        """Frontend endpoint that purges statically rendered pages"""
        return os.getenv('REVALIDATE_WEBHOOK_URL')

    # AI provider

    @property
    def OPENAI_API_KEY(self):
        return os.getenv('OPENAI_API_KEY')

    @property
    def AI_MODEL(self):
        return os.getenv('AI_MODEL', 'gpt-4o-mini')

    @property
    def AI_VISION_MODEL(self):
        return os.getenv('AI_VISION_MODEL', 'gpt-4o-mini')

    # Cloudinary

    @property
    def CLOUDINARY_CLOUD_NAME(self):
        return os.getenv('CLOUDINARY_CLOUD_NAME')

    @property
    def CLOUDINARY_API_KEY(self):
        return os.getenv('CLOUDINARY_API_KEY')

    @property
    def CLOUDINARY_API_SECRET(self):
        return os.getenv('CLOUDINARY_API_SECRET')

    # Google Calendar

    @property
    def GOOGLE_CLIENT_ID(self):
        return os.getenv('GOOGLE_CLIENT_ID')

    @property
    def GOOGLE_CLIENT_SECRET(self):
        return os.getenv('GOOGLE_CLIENT_SECRET')

    @property
    def GOOGLE_REDIRECT_URI(self):
        return os.getenv('GOOGLE_REDIRECT_URI', 'http://localhost:5000/api/calendar/callback')

    @property
    def GOOGLE_CALENDAR_ID(self):
        return os.getenv('GOOGLE_CALENDAR_ID', 'primary')

    # Twilio SMS

    @property
    def TWILIO_ACCOUNT_SID(self):
        return os.getenv('TWILIO_ACCOUNT_SID')

    @property
    def TWILIO_AUTH_TOKEN(self):
        return os.getenv('TWILIO_AUTH_TOKEN')

    @property
    def TWILIO_FROM_NUMBER(self):
        return os.getenv('TWILIO_FROM_NUMBER')

    # Session

    @property
    def SESSION_COOKIE_SECURE(self):
        """Whether session cookies should be secure (HTTPS only)"""
        return _env_flag('SESSION_COOKIE_SECURE')

    @property
    def SESSION_COOKIE_HTTPONLY(self):
        return True

    @property
    def SESSION_COOKIE_SAMESITE(self):
        return 'Lax'

    @property
    def PERMANENT_SESSION_LIFETIME(self):
        """Admin session lifetime in seconds"""
        return 8 * 3600

    @property
    def MAX_CONTENT_LENGTH(self):
        """Upper bound for multipart uploads (gallery batches)"""
        return int(os.getenv('MAX_CONTENT_LENGTH', 64 * 1024 * 1024))
