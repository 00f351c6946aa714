"""
Studio37 Back Office Application Package

FLOW OVERVIEW
- create_app(test_config=None)
  • Build Flask app, apply config (test or env-based), init extensions (DB, Mail,
    Cloudinary).
  • Register blueprints under /api; the sitemap blueprint owns its own paths
    (/sitemap.xml, /api/sitemap-debug, /api/revalidate).
  • Register global error handlers and per-request Prometheus metrics.
"""

import time
from flask import Flask, g, request
from .models import db
from .routes import (
    admin_bp, galleries_bp, leads_bp, booking_bp, calendar_bp,
    blog_bp, projects_bp, system_bp, seo_bp
)
from .config import Config
from .utils.logger import configure_logging
from .utils.mailer import mail
from .utils.media import media_pipeline
from .utils.prom_metrics import observe_request

API_BLUEPRINTS = (admin_bp, galleries_bp, leads_bp, booking_bp, calendar_bp,
                  blog_bp, projects_bp, system_bp)


def create_app(test_config=None):
    """Application factory pattern for production deployment"""
    app = Flask(__name__)

    # Configuration
    if test_config:
        # Use test configuration if provided
        app.config.update(test_config)
    else:
        # Use environment-based configuration
        app.config.from_object(Config())

    configure_logging(app)

    # Initialize extensions
    db.init_app(app)
    mail.init_app(app)
    media_pipeline.configure(app)

    # Register blueprints
    for blueprint in API_BLUEPRINTS:
        app.register_blueprint(blueprint, url_prefix='/api')
    app.register_blueprint(seo_bp)

    # Register error handlers
    from .utils.error_handlers import register_error_handlers
    register_error_handlers(app)

    @app.before_request
    def start_timer():
        g.request_started = time.perf_counter()

    @app.after_request
    def record_metrics(response):
        started = g.pop('request_started', None)
        if started is not None:
            observe_request(request.endpoint or 'unknown', response.status_code, time.perf_counter() - started)
        return response

    with app.app_context():
        db.create_all()

    return app
