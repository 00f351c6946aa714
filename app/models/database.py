"""
Database Configuration

FLOW OVERVIEW
- Provides the global SQLAlchemy instance `db` used across all models.
- Initialized in app factory (app/__init__.py) with app context.
- Admin routes use the session directly; public routes go through the
  visibility classmethods on each model (published posts, active galleries).
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
