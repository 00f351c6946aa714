"""
Routes Package

This package contains all Flask route blueprints.
"""

from .admin import admin_bp
from .galleries import galleries_bp
from .leads import leads_bp
from .booking import booking_bp
from .calendar_sync import calendar_bp
from .blog import blog_bp
from .projects import projects_bp
from .system import system_bp
from .seo import seo_bp

__all__ = [
    'admin_bp',
    'galleries_bp',
    'leads_bp',
    'booking_bp',
    'calendar_bp',
    'blog_bp',
    'projects_bp',
    'system_bp',
    'seo_bp'
]
