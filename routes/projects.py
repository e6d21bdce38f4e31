"""
Projects API Routes
REST endpoints for projects, task-list saves, status toggles and drag reordering.
"""

from flask import Blueprint, jsonify
from flask_login import login_required

from services import project_service
from services.permissions import Action, require
from services.task_reconciler import parse_drafts, parse_removed_ids
from utils.auth import current_profile
from utils.etag_helper import with_etag
from utils.request_helpers import json_body

projects_bp = Blueprint('projects', __name__, url_prefix='/api/projects')


@projects_bp.route('/', methods=['GET'])
@login_required
@with_etag
def list_projects():
    """All projects with task counts, newest first."""
    current_profile()
    projects = project_service.list_projects()
    return jsonify({
        'success': True,
        'projects': [project.to_dict() for project in projects],
        'total': len(projects)
    })


@projects_bp.route('/completed', methods=['GET'])
@login_required
@with_etag
def list_completed_projects():
    projects = project_service.list_completed_projects(current_profile())
    return jsonify({
        'success': True,
        'projects': [project.to_dict() for project in projects],
        'total': len(projects)
    })


@projects_bp.route('/', methods=['POST'])
@login_required
def create_project():
    actor = require(current_profile(), Action.CREATE_PROJECT)
    data = json_body()
    project = project_service.create_project(
        actor,
        data.get('title'),
        description=data.get('description'),
        tasks=parse_drafts(data.get('tasks')),
    )
    return jsonify({
        'success': True,
        'message': 'Project created',
        'project': project.to_dict(include_tasks=True)
    }), 201


@projects_bp.route('/<int:project_id>', methods=['GET'])
@login_required
@with_etag
def get_project(project_id):
    current_profile()
    project = project_service.get_project(project_id)
    return jsonify({'success': True, 'project': project.to_dict(include_tasks=True)})


@projects_bp.route('/<int:project_id>', methods=['PUT'])
@login_required
def update_project(project_id):
    """
    Save an edit session. `tasks` is the full edited list in display order;
    `removed_task_ids` lists stored tasks the user deleted. A missing or null
    `tasks` leaves the task list alone.
    """
    actor = require(current_profile(), Action.EDIT_PROJECT)
    data = json_body()
    tasks = parse_drafts(data['tasks']) if data.get('tasks') is not None else None
    result = project_service.update_project(
        actor,
        project_id,
        title=data.get('title'),
        description=data.get('description'),
        tasks=tasks,
        removed_ids=parse_removed_ids(data.get('removed_task_ids')),
    )

    project = project_service.get_project(project_id)
    response = {
        'success': True,
        'message': 'Project updated',
        'project': project.to_dict(include_tasks=True)
    }
    if result is not None:
        response['changes'] = {
            'inserted': result.inserted,
            'updated': result.updated,
            'deleted': result.deleted,
        }
    return jsonify(response)


@projects_bp.route('/<int:project_id>', methods=['DELETE'])
@login_required
def delete_project(project_id):
    project_service.delete_project(current_profile(), project_id)
    return jsonify({'success': True, 'message': 'Project deleted'})


@projects_bp.route('/<int:project_id>/tasks/<int:task_id>/toggle', methods=['POST'])
@login_required
def toggle_task(project_id, task_id):
    """Flip a task between completed and uncompleted; returns the stored state."""
    task = project_service.toggle_task_status(current_profile(), project_id, task_id)
    return jsonify({'success': True, 'task': task.to_dict()})


@projects_bp.route('/<int:project_id>/tasks/reorder', methods=['POST'])
@login_required
def reorder_tasks(project_id):
    """Drag-and-drop move: {from_index, to_index}, both 0-based."""
    actor = require(current_profile(), Action.REORDER_TASKS)
    data = json_body()
    tasks = project_service.reorder_tasks(
        actor,
        project_id,
        data.get('from_index'),
        data.get('to_index'),
    )
    return jsonify({
        'success': True,
        'tasks': [task.to_dict() for task in tasks]
    })
