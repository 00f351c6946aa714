"""
Project Routes

FLOW OVERVIEW
- /api/admin/client-projects [POST] / /api/admin/client-projects/<id> [PATCH, DELETE]
  • Client-portal projects (package, payment, dates).
- /api/admin/client-portals/<client_user_id>/projects [GET]
- /api/projects [GET, POST]
  • Internal production tracker. Creation can seed phases/tasks from a workflow
    template and always writes a project_created timeline row.
- /api/projects/<id> [GET, PATCH, DELETE]
- /api/projects/<id>/tasks [GET, POST]
- /api/tasks/<id> [PATCH, DELETE]
  • Status changes are recorded on the project timeline.
- /api/workflows [GET]
"""

from datetime import datetime
from flask import Blueprint, jsonify, request
from ..models import (
    db, ClientProject, Project, ProjectComment, ProjectFile, ProjectTask,
    ProjectTimeline, ProjectWorkflow
)
from ..utils.api_utils import request_validator
from ..utils.auth_utils import admin_required, current_admin
from ..utils.logger import get_logger
from ..utils.rate_limiter import rate_limit
from ..utils.validators import non_string_fields, parse_int, validate_required

projects_bp = Blueprint('projects', __name__)
log = get_logger('api/projects')

PROJECT_FILTERS = ('status', 'priority', 'health_status')


def _actor_id():
    admin = current_admin()
    return str(admin.id) if admin else None


# ---------------------------------------------------------------------------
# Client-portal projects
# ---------------------------------------------------------------------------

@projects_bp.route('/admin/client-projects', methods=['POST'])
@admin_required
def create_client_project():
    is_valid, data, error_response = request_validator.validate_json_request()
    if not is_valid:
        return error_response

    if not data.get('client_user_id'):
        return jsonify({'error': 'client_user_id is required'}), 400

    try:
        project = ClientProject.from_payload(data)
        db.session.add(project)
        db.session.commit()
    except ValueError:
        db.session.rollback()
        return jsonify({'error': 'Invalid date format'}), 400
    except Exception as e:
        db.session.rollback()
        log.error('client_project_create_failed', exc=e, client_user_id=data.get('client_user_id'))
        return jsonify({'error': 'Failed to create project'}), 500

    log.info('client_project_created', project_id=project.id, client_user_id=project.client_user_id)
    return jsonify({'success': True, 'project': project.to_dict()}), 201


@projects_bp.route('/admin/client-projects/<int:project_id>', methods=['PATCH'])
@admin_required
def update_client_project(project_id):
    is_valid, data, error_response = request_validator.validate_json_request()
    if not is_valid:
        return error_response

    project = db.session.get(ClientProject, project_id)
    if project is None:
        return jsonify({'error': 'Project not found'}), 404

    try:
        project.apply_updates(data)
        db.session.commit()
    except ValueError:
        db.session.rollback()
        return jsonify({'error': 'Invalid date format'}), 400
    except Exception as e:
        db.session.rollback()
        log.error('client_project_update_failed', exc=e, project_id=project_id)
        return jsonify({'error': 'Failed to update project'}), 500

    return jsonify({'success': True, 'project': project.to_dict()})


@projects_bp.route('/admin/client-projects/<int:project_id>', methods=['DELETE'])
@admin_required
def delete_client_project(project_id):
    project = db.session.get(ClientProject, project_id)
    if project is None:
        return jsonify({'error': 'Project not found'}), 404

    try:
        db.session.delete(project)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        log.error('client_project_delete_failed', exc=e, project_id=project_id)
        return jsonify({'error': 'Failed to delete project'}), 500

    log.info('client_project_deleted', project_id=project_id)
    return jsonify({'success': True})


@projects_bp.route('/admin/client-portals/<client_user_id>/projects', methods=['GET'])
@admin_required
def client_portal_projects(client_user_id):
    projects = (ClientProject.query.filter_by(client_user_id=client_user_id)
                .order_by(ClientProject.created_at.desc()).all())
    return jsonify({'success': True, 'projects': [project.to_dict() for project in projects]})


# ---------------------------------------------------------------------------
# Production projects
# ---------------------------------------------------------------------------

@projects_bp.route('/projects', methods=['GET'])
@admin_required
@rate_limit('projects-get', 100, 60 * 1000, 'Too many requests')
def list_projects():
    limit = parse_int(request.args.get('limit'), 50, minimum=1, maximum=200)
    offset = parse_int(request.args.get('offset'), 0, minimum=0)

    query = Project.query
    for field in PROJECT_FILTERS:
        value = request.args.get(field)
        if value:
            query = query.filter(getattr(Project, field) == value)
    assigned_to = request.args.get('assigned_to')
    if assigned_to:
        query = query.filter(db.or_(
            Project.project_manager_id == assigned_to,
            Project.assigned_photographer_id == assigned_to,
            Project.assigned_editor_id == assigned_to,
        ))

    total = query.count()
    projects = query.order_by(Project.created_at.desc()).offset(offset).limit(limit).all()
    return jsonify({
        'projects': [project.to_dict() for project in projects],
        'pagination': {
            'total': total,
            'limit': limit,
            'offset': offset,
            'hasMore': offset + limit < total,
        },
    })


@projects_bp.route('/projects', methods=['POST'])
@admin_required
@rate_limit('projects-post', 20, 60 * 1000, 'Too many requests')
def create_project():
    is_valid, data, error_response = request_validator.validate_json_request()
    if not is_valid:
        return error_response

    ok, missing = validate_required(data, ('project_name', 'project_type'))
    if not ok:
        return jsonify({'error': 'project_name and project_type are required', 'missing': missing}), 400

    try:
        project = Project.from_payload(data)
        if not project.created_by:
            project.created_by = _actor_id()
        db.session.add(project)
        db.session.flush()

        task_count = 0
        workflow = db.session.get(ProjectWorkflow, project.workflow_id) if project.workflow_id else None
        if workflow is not None:
            task_count = len(project.apply_workflow(workflow))

        project.log_event('project_created', 'Project Created',
                          f"Project {project.project_name} was created",
                          user_id=project.created_by)
        db.session.commit()
    except ValueError:
        db.session.rollback()
        return jsonify({'error': 'Invalid date format'}), 400
    except Exception as e:
        db.session.rollback()
        log.error('project_create_failed', exc=e, project_type=data.get('project_type'))
        return jsonify({'error': 'Failed to create project'}), 500

    log.info('project_created', project_id=project.id, workflow_id=project.workflow_id, tasks=task_count)
    return jsonify({'project': project.to_dict()}), 201


@projects_bp.route('/projects/<int:project_id>', methods=['GET'])
@admin_required
def get_project(project_id):
    project = db.session.get(Project, project_id)
    if project is None:
        return jsonify({'error': 'Project not found'}), 404

    timeline = (ProjectTimeline.query.filter_by(project_id=project_id)
                .order_by(ProjectTimeline.created_at.desc()).all())
    comments = (ProjectComment.query.filter_by(project_id=project_id)
                .order_by(ProjectComment.created_at.desc()).all())
    files = (ProjectFile.query.filter_by(project_id=project_id, deleted_at=None)
             .order_by(ProjectFile.uploaded_at.desc()).all())

    return jsonify({
        'project': project.to_dict(),
        'phases': [phase.to_dict(include_tasks=True) for phase in project.phases],
        'milestones': [milestone.to_dict() for milestone in project.milestones],
        'timeline': [event.to_dict() for event in timeline],
        'comments': [comment.to_dict() for comment in comments],
        'files': [f.to_dict() for f in files],
    })


@projects_bp.route('/projects/<int:project_id>', methods=['PATCH'])
@admin_required
def update_project(project_id):
    is_valid, data, error_response = request_validator.validate_json_request()
    if not is_valid:
        return error_response

    project = db.session.get(Project, project_id)
    if project is None:
        return jsonify({'error': 'Project not found'}), 404

    try:
        project.apply_updates(data)
        db.session.commit()
    except ValueError:
        db.session.rollback()
        return jsonify({'error': 'Invalid date format'}), 400
    except Exception as e:
        db.session.rollback()
        log.error('project_update_failed', exc=e, project_id=project_id)
        return jsonify({'error': 'Failed to update project'}), 500

    return jsonify({'project': project.to_dict()})


@projects_bp.route('/projects/<int:project_id>', methods=['DELETE'])
@admin_required
def delete_project(project_id):
    project = db.session.get(Project, project_id)
    if project is None:
        return jsonify({'error': 'Project not found'}), 404

    try:
        db.session.delete(project)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        log.error('project_delete_failed', exc=e, project_id=project_id)
        return jsonify({'error': 'Failed to delete project'}), 500

    log.info('project_deleted', project_id=project_id)
    return jsonify({'success': True})


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------

@projects_bp.route('/projects/<int:project_id>/tasks', methods=['GET'])
@admin_required
def list_tasks(project_id):
    query = ProjectTask.query.filter_by(project_id=project_id)
    status = request.args.get('status')
    if status:
        query = query.filter_by(status=status)
    assigned_to = request.args.get('assigned_to')
    if assigned_to:
        query = query.filter_by(assigned_to=assigned_to)
    phase_id = request.args.get('phase_id')
    if phase_id:
        query = query.filter_by(phase_id=parse_int(phase_id, 0))

    tasks = query.order_by(ProjectTask.due_date.asc().nullslast(), ProjectTask.created_at.asc()).all()
    return jsonify({'tasks': [task.to_dict() for task in tasks]})


@projects_bp.route('/projects/<int:project_id>/tasks', methods=['POST'])
@admin_required
def create_task(project_id):
    is_valid, data, error_response = request_validator.validate_json_request()
    if not is_valid:
        return error_response

    if non_string_fields(data, ('title',)):
        return jsonify({'error': 'Task title must be a string'}), 400
    if not (data.get('title') or '').strip():
        return jsonify({'error': 'Task title is required'}), 400

    project = db.session.get(Project, project_id)
    if project is None:
        return jsonify({'error': 'Project not found'}), 404

    try:
        task = ProjectTask(project_id=project_id, created_by=_actor_id())
        task.apply_updates(data)
        db.session.add(task)
        db.session.flush()
        project.log_event('task_created', 'Task Created', f"Task \"{task.title}\" was created",
                          user_id=task.created_by, related_entity_type='task', related_entity_id=task.id)
        db.session.commit()
    except ValueError:
        db.session.rollback()
        return jsonify({'error': 'Invalid date format'}), 400
    except Exception as e:
        db.session.rollback()
        log.error('task_create_failed', exc=e, project_id=project_id)
        return jsonify({'error': 'Failed to create task'}), 500

    log.info('task_created', task_id=task.id, project_id=project_id)
    return jsonify({'task': task.to_dict()}), 201


@projects_bp.route('/tasks/<int:task_id>', methods=['PATCH'])
@admin_required
def update_task(task_id):
    is_valid, data, error_response = request_validator.validate_json_request()
    if not is_valid:
        return error_response

    task = db.session.get(ProjectTask, task_id)
    if task is None:
        return jsonify({'error': 'Task not found'}), 404

    previous_status = task.status
    try:
        task.apply_updates(data)
        if task.status != previous_status:
            if task.status == 'completed':
                task.completed_at = datetime.utcnow()
            task.project.log_event(
                'task_status_changed', 'Task Status Updated',
                f"Task \"{task.title}\" changed from {previous_status} to {task.status}",
                user_id=_actor_id(), related_entity_type='task', related_entity_id=task.id,
                metadata={'old_status': previous_status, 'new_status': task.status},
            )
        db.session.commit()
    except ValueError:
        db.session.rollback()
        return jsonify({'error': 'Invalid date format'}), 400
    except Exception as e:
        db.session.rollback()
        log.error('task_update_failed', exc=e, task_id=task_id)
        return jsonify({'error': 'Failed to update task'}), 500

    return jsonify({'task': task.to_dict()})


@projects_bp.route('/tasks/<int:task_id>', methods=['DELETE'])
@admin_required
def delete_task(task_id):
    task = db.session.get(ProjectTask, task_id)
    if task is None:
        return jsonify({'error': 'Task not found'}), 404

    try:
        db.session.delete(task)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        log.error('task_delete_failed', exc=e, task_id=task_id)
        return jsonify({'error': 'Failed to delete task'}), 500

    return jsonify({'success': True})


@projects_bp.route('/workflows', methods=['GET'])
@admin_required
def list_workflows():
    query = ProjectWorkflow.query
    project_type = request.args.get('project_type')
    if project_type:
        query = query.filter_by(project_type=project_type)
    active = request.args.get('active')
    if active is not None:
        query = query.filter_by(is_active=active.lower() == 'true')

    workflows = query.order_by(ProjectWorkflow.name.asc()).all()
    return jsonify({'workflows': [workflow.to_dict() for workflow in workflows]})
