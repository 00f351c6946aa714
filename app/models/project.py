"""
Project Models

FLOW OVERVIEW
- ClientProject: what a client sees in their portal (package, payment, dates).
- ProjectWorkflow: template of default phases/tasks per project type.
- Project (table project_management): internal production tracker, optionally seeded
  from a workflow via `apply_workflow`.
- ProjectPhase / ProjectTask / ProjectMilestone / ProjectTimeline / ProjectComment /
  ProjectFile: children returned by the project detail endpoint.
"""

from datetime import datetime, timedelta
from .database import db
from .utils import iso, generate_project_code


def _parse_datetime(value):
    """Accept ISO date/datetime strings from JSON bodies"""
    if value in (None, ''):
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace('Z', '+00:00')).replace(tzinfo=None)


class ClientProject(db.Model):
    __tablename__ = 'client_projects'

    id = db.Column(db.Integer, primary_key=True)
    client_user_id = db.Column(db.String(64), nullable=False, index=True)
    name = db.Column(db.String(200), default='New Project')
    type = db.Column(db.String(60), default='portrait')
    description = db.Column(db.Text)
    status = db.Column(db.String(30), default='pending')
    session_date = db.Column(db.DateTime)
    due_date = db.Column(db.DateTime)
    package_name = db.Column(db.String(120))
    total_amount_cents = db.Column(db.Integer)
    paid_amount_cents = db.Column(db.Integer, default=0)
    payment_status = db.Column(db.String(30), default='pending')
    cover_image_url = db.Column(db.Text)
    tags = db.Column(db.JSON, default=list)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow)

    EDITABLE_FIELDS = ('name', 'type', 'description', 'status', 'session_date', 'due_date',
                       'package_name', 'total_amount_cents', 'paid_amount_cents',
                       'payment_status', 'cover_image_url', 'tags')
    DATE_FIELDS = ('session_date', 'due_date')

    @classmethod
    def from_payload(cls, body):
        return cls(
            client_user_id=body.get('client_user_id'),
            name=body.get('name') or 'New Project',
            type=body.get('type') or 'portrait',
            description=body.get('description') or None,
            status=body.get('status') or 'pending',
            session_date=_parse_datetime(body.get('session_date')),
            due_date=_parse_datetime(body.get('due_date')),
            package_name=body.get('package_name') or None,
            total_amount_cents=body.get('total_amount_cents') or None,
            paid_amount_cents=body.get('paid_amount_cents') or 0,
            payment_status=body.get('payment_status') or 'pending',
            cover_image_url=body.get('cover_image_url') or None,
            tags=body.get('tags') or [],
        )

    def apply_updates(self, body):
        for field in self.EDITABLE_FIELDS:
            if field in body:
                value = body[field]
                if field in self.DATE_FIELDS:
                    value = _parse_datetime(value)
                setattr(self, field, value)
        self.updated_at = datetime.utcnow()

    def to_dict(self):
        return {
            'id': self.id,
            'client_user_id': self.client_user_id,
            'name': self.name,
            'type': self.type,
            'description': self.description,
            'status': self.status,
            'session_date': iso(self.session_date),
            'due_date': iso(self.due_date),
            'package_name': self.package_name,
            'total_amount_cents': self.total_amount_cents,
            'paid_amount_cents': self.paid_amount_cents,
            'payment_status': self.payment_status,
            'cover_image_url': self.cover_image_url,
            'tags': self.tags or [],
            'created_at': iso(self.created_at),
            'updated_at': iso(self.updated_at),
        }


class ProjectWorkflow(db.Model):
    __tablename__ = 'project_workflows'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    description = db.Column(db.Text)
    project_type = db.Column(db.String(60))
    # [{"name": "Pre-Production", "order": 1, "duration_days": 7}, ...]
    default_phases = db.Column(db.JSON, default=list)
    # [{"name": "Send contract", "phase": "Pre-Production", "due_offset_days": 1}, ...]
    default_tasks = db.Column(db.JSON, default=list)
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'project_type': self.project_type,
            'default_phases': self.default_phases or [],
            'default_tasks': self.default_tasks or [],
            'is_active': self.is_active,
        }


class Project(db.Model):
    __tablename__ = 'project_management'

    id = db.Column(db.Integer, primary_key=True)
    project_code = db.Column(db.String(20), unique=True, default=generate_project_code)
    project_name = db.Column(db.String(200), nullable=False)
    project_type = db.Column(db.String(60), nullable=False)
    lead_id = db.Column(db.Integer, db.ForeignKey('leads.id', ondelete='SET NULL'))
    appointment_id = db.Column(db.Integer, db.ForeignKey('appointments.id', ondelete='SET NULL'))
    client_project_id = db.Column(db.Integer, db.ForeignKey('client_projects.id', ondelete='SET NULL'))
    workflow_id = db.Column(db.Integer, db.ForeignKey('project_workflows.id', ondelete='SET NULL'))
    status = db.Column(db.String(30), default='planning')
    priority = db.Column(db.String(20), default='normal')
    health_status = db.Column(db.String(20), default='on_track')
    start_date = db.Column(db.DateTime)
    target_completion_date = db.Column(db.DateTime)
    session_date = db.Column(db.DateTime)
    project_manager_id = db.Column(db.String(64))
    assigned_photographer_id = db.Column(db.String(64))
    assigned_editor_id = db.Column(db.String(64))
    client_name = db.Column(db.String(120))
    client_email = db.Column(db.String(254))
    client_phone = db.Column(db.String(40))
    description = db.Column(db.Text)
    notes = db.Column(db.Text)
    tags = db.Column(db.JSON, default=list)
    details = db.Column('metadata', db.JSON, default=dict)
    created_by = db.Column(db.String(64))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow)

    lead = db.relationship('Lead', lazy=True)
    workflow = db.relationship('ProjectWorkflow', lazy=True)
    phases = db.relationship('ProjectPhase', backref='project', lazy=True,
                             cascade='all, delete-orphan', order_by='ProjectPhase.phase_order')
    tasks = db.relationship('ProjectTask', backref='project', lazy=True, cascade='all, delete-orphan')
    milestones = db.relationship('ProjectMilestone', backref='project', lazy=True,
                                 cascade='all, delete-orphan', order_by='ProjectMilestone.target_date')
    timeline = db.relationship('ProjectTimeline', backref='project', lazy=True, cascade='all, delete-orphan')
    comments = db.relationship('ProjectComment', backref='project', lazy=True, cascade='all, delete-orphan')
    files = db.relationship('ProjectFile', backref='project', lazy=True, cascade='all, delete-orphan')

    # Never writable through PATCH
    READ_ONLY_FIELDS = ('id', 'created_at', 'project_code')
    DATE_FIELDS = ('start_date', 'target_completion_date', 'session_date')
    COLUMN_FIELDS = (
        'project_name', 'project_type', 'lead_id', 'appointment_id', 'client_project_id',
        'workflow_id', 'status', 'priority', 'health_status', 'start_date',
        'target_completion_date', 'session_date', 'project_manager_id',
        'assigned_photographer_id', 'assigned_editor_id', 'client_name', 'client_email',
        'client_phone', 'description', 'notes', 'tags', 'created_by',
    )

    @classmethod
    def from_payload(cls, body):
        project = cls(status='planning', priority='normal')
        project.apply_updates(body)
        return project

    def apply_updates(self, body):
        for field in self.COLUMN_FIELDS:
            if field in body and field not in self.READ_ONLY_FIELDS:
                value = body[field]
                if field in self.DATE_FIELDS:
                    value = _parse_datetime(value)
                setattr(self, field, value)
        if 'metadata' in body:
            self.details = body['metadata']
        self.updated_at = datetime.utcnow()

    def apply_workflow(self, workflow):
        """Create phases and tasks from a workflow template. Caller commits."""
        phase_ids_by_name = {}
        for index, phase_spec in enumerate(workflow.default_phases or []):
            phase = ProjectPhase(
                project_id=self.id,
                name=phase_spec.get('name'),
                phase_order=phase_spec.get('order') or index + 1,
                duration_days=phase_spec.get('duration_days'),
            )
            db.session.add(phase)
            db.session.flush()
            phase_ids_by_name[phase.name] = phase.id

        tasks = []
        for task_spec in workflow.default_tasks or []:
            phase_name = task_spec.get('phase') or ''
            due_date = None
            if self.start_date:
                due_date = self.start_date + timedelta(days=task_spec.get('due_offset_days') or 0)
            task = ProjectTask(
                project_id=self.id,
                phase_id=phase_ids_by_name.get(phase_name),
                title=task_spec.get('name'),
                task_type='-'.join(phase_name.lower().split()) or None,
                due_date=due_date,
            )
            db.session.add(task)
            tasks.append(task)
        return tasks

    def log_event(self, event_type, title, description, user_id=None,
                  related_entity_type=None, related_entity_id=None, metadata=None):
        event = ProjectTimeline(
            project_id=self.id,
            event_type=event_type,
            event_title=title,
            event_description=description,
            related_entity_type=related_entity_type,
            related_entity_id=related_entity_id,
            user_id=user_id,
            details=metadata or {},
            is_system_generated=True,
        )
        db.session.add(event)
        return event

    def to_dict(self):
        return {
            'id': self.id,
            'project_code': self.project_code,
            'project_name': self.project_name,
            'project_type': self.project_type,
            'lead_id': self.lead_id,
            'lead': self.lead.to_dict() if self.lead else None,
            'appointment_id': self.appointment_id,
            'client_project_id': self.client_project_id,
            'workflow_id': self.workflow_id,
            'status': self.status,
            'priority': self.priority,
            'health_status': self.health_status,
            'start_date': iso(self.start_date),
            'target_completion_date': iso(self.target_completion_date),
            'session_date': iso(self.session_date),
            'project_manager_id': self.project_manager_id,
            'assigned_photographer_id': self.assigned_photographer_id,
            'assigned_editor_id': self.assigned_editor_id,
            'client_name': self.client_name,
            'client_email': self.client_email,
            'client_phone': self.client_phone,
            'description': self.description,
            'notes': self.notes,
            'tags': self.tags or [],
            'metadata': self.details or {},
            'created_by': self.created_by,
            'created_at': iso(self.created_at),
            'updated_at': iso(self.updated_at),
        }


class ProjectPhase(db.Model):
    __tablename__ = 'project_phases'

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(db.Integer, db.ForeignKey('project_management.id', ondelete='CASCADE'), nullable=False)
    name = db.Column(db.String(120), nullable=False)
    phase_order = db.Column(db.Integer, default=1)
    duration_days = db.Column(db.Integer)
    status = db.Column(db.String(30), default='not_started')
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    tasks = db.relationship('ProjectTask', backref='phase', lazy=True)

    def to_dict(self, include_tasks=False):
        data = {
            'id': self.id,
            'project_id': self.project_id,
            'name': self.name,
            'phase_order': self.phase_order,
            'duration_days': self.duration_days,
            'status': self.status,
        }
        if include_tasks:
            data['tasks'] = [task.to_dict() for task in self.tasks]
        return data


class ProjectTask(db.Model):
    __tablename__ = 'project_tasks'

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(db.Integer, db.ForeignKey('project_management.id', ondelete='CASCADE'), nullable=False)
    phase_id = db.Column(db.Integer, db.ForeignKey('project_phases.id', ondelete='SET NULL'))
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    task_type = db.Column(db.String(60))
    status = db.Column(db.String(30), default='todo')
    priority = db.Column(db.String(20), default='normal')
    assigned_to = db.Column(db.String(64))
    assigned_by = db.Column(db.String(64))
    due_date = db.Column(db.DateTime)
    estimated_hours = db.Column(db.Float)
    checklist = db.Column(db.JSON, default=list)
    tags = db.Column(db.JSON, default=list)
    notes = db.Column(db.Text)
    completed_at = db.Column(db.DateTime)
    created_by = db.Column(db.String(64))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow)

    # project_id is fixed at creation
    EDITABLE_FIELDS = ('phase_id', 'title', 'description', 'task_type', 'status', 'priority',
                       'assigned_to', 'assigned_by', 'due_date', 'estimated_hours', 'checklist',
                       'tags', 'notes')

    def apply_updates(self, body):
        for field in self.EDITABLE_FIELDS:
            if field in body:
                value = body[field]
                if field == 'due_date':
                    value = _parse_datetime(value)
                setattr(self, field, value)
        self.updated_at = datetime.utcnow()

    def to_dict(self):
        return {
            'id': self.id,
            'project_id': self.project_id,
            'phase_id': self.phase_id,
            'phase': {'id': self.phase.id, 'name': self.phase.name} if self.phase else None,
            'title': self.title,
            'description': self.description,
            'task_type': self.task_type,
            'status': self.status,
            'priority': self.priority,
            'assigned_to': self.assigned_to,
            'due_date': iso(self.due_date),
            'estimated_hours': self.estimated_hours,
            'checklist': self.checklist or [],
            'tags': self.tags or [],
            'notes': self.notes,
            'completed_at': iso(self.completed_at),
            'created_at': iso(self.created_at),
        }


class ProjectMilestone(db.Model):
    __tablename__ = 'project_milestones'

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(db.Integer, db.ForeignKey('project_management.id', ondelete='CASCADE'), nullable=False)
    name = db.Column(db.String(200), nullable=False)
    target_date = db.Column(db.DateTime)
    completed_at = db.Column(db.DateTime)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'target_date': iso(self.target_date),
            'completed_at': iso(self.completed_at),
        }


class ProjectTimeline(db.Model):
    __tablename__ = 'project_timeline'

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(db.Integer, db.ForeignKey('project_management.id', ondelete='CASCADE'), nullable=False)
    event_type = db.Column(db.String(60), nullable=False)
    event_title = db.Column(db.String(200))
    event_description = db.Column(db.Text)
    related_entity_type = db.Column(db.String(30))
    related_entity_id = db.Column(db.Integer)
    user_id = db.Column(db.String(64))
    details = db.Column('metadata', db.JSON, default=dict)
    is_system_generated = db.Column(db.Boolean, default=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'event_type': self.event_type,
            'event_title': self.event_title,
            'event_description': self.event_description,
            'related_entity_type': self.related_entity_type,
            'related_entity_id': self.related_entity_id,
            'metadata': self.details or {},
            'is_system_generated': self.is_system_generated,
            'created_at': iso(self.created_at),
        }


class ProjectComment(db.Model):
    __tablename__ = 'project_comments'

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(db.Integer, db.ForeignKey('project_management.id', ondelete='CASCADE'), nullable=False)
    task_id = db.Column(db.Integer, db.ForeignKey('project_tasks.id', ondelete='CASCADE'))
    phase_id = db.Column(db.Integer, db.ForeignKey('project_phases.id', ondelete='CASCADE'))
    author = db.Column(db.String(120))
    body = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'task_id': self.task_id,
            'phase_id': self.phase_id,
            'author': self.author,
            'body': self.body,
            'created_at': iso(self.created_at),
        }


class ProjectFile(db.Model):
    __tablename__ = 'project_files'

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(db.Integer, db.ForeignKey('project_management.id', ondelete='CASCADE'), nullable=False)
    file_name = db.Column(db.String(255), nullable=False)
    file_url = db.Column(db.Text, nullable=False)
    uploaded_at = db.Column(db.DateTime, default=datetime.utcnow)
    deleted_at = db.Column(db.DateTime)

    def to_dict(self):
        return {
            'id': self.id,
            'file_name': self.file_name,
            'file_url': self.file_url,
            'uploaded_at': iso(self.uploaded_at),
        }
