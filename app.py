#!/usr/bin/env python3
"""
Studio37 back office entry point.

Creates the Flask application via `create_app` using environment-based
configuration (see app/config/config.py). When executed directly, it runs the
development server. In production, a WSGI server should import `app` from this
module.

Environment variables of interest:
- FLASK_ENV: 'production' loads config.prod.env, anything else config.env.
- DATABASE_URL, SECRET_KEY, SITE_URL, mail settings, CRON_SECRET: consumed by
  `create_app`.
"""

import os
from app import create_app

app = create_app()

if __name__ == '__main__':
    app.run(debug=os.getenv('FLASK_ENV') != 'production', host='0.0.0.0', port=int(os.getenv('PORT', 5000)))
