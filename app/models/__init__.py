"""
Database Models Package

FLOW OVERVIEW
- Centralizes the SQLAlchemy DB instance and model imports for convenient usage.
- Exposes: db, AdminUser, gallery models, lead models, Appointment, content models,
  Setting and project-management models.
"""

from .database import db
from .user import AdminUser
from .gallery import Gallery, GalleryImage, GalleryAccessLog, GalleryFavorite, GalleryDownload
from .lead import Lead, LeadFollowUp, CommunicationLog
from .appointment import Appointment
from .content import BlogPost, ContentPage
from .setting import Setting
from .project import (
    ClientProject, ProjectWorkflow, Project, ProjectPhase, ProjectTask,
    ProjectMilestone, ProjectTimeline, ProjectComment, ProjectFile
)

__all__ = [
    'db',
    'AdminUser',
    'Gallery',
    'GalleryImage',
    'GalleryAccessLog',
    'GalleryFavorite',
    'GalleryDownload',
    'Lead',
    'LeadFollowUp',
    'CommunicationLog',
    'Appointment',
    'BlogPost',
    'ContentPage',
    'Setting',
    'ClientProject',
    'ProjectWorkflow',
    'Project',
    'ProjectPhase',
    'ProjectTask',
    'ProjectMilestone',
    'ProjectTimeline',
    'ProjectComment',
    'ProjectFile',
]
