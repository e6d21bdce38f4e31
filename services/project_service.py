"""
Project Service

Project CRUD, task status toggling and drag reordering. Every mutation takes the
acting profile and checks it against services.permissions before writing.
"""

import logging
from typing import Optional, List, Any, Iterable

from sqlalchemy import select
from sqlalchemy.orm import selectinload
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from models import db, Project, Profile, Task, TaskStatus
from models.project import PROJECT_TITLE_MAX_LENGTH, PROJECT_DESCRIPTION_MAX_LENGTH
from services.errors import ValidationError, NotFoundError, ConflictError, database_error
from services.permissions import Action, require
from services.task_reconciler import (
    TaskDraft, ReconciliationResult, assign_positions, reconciler,
)

logger = logging.getLogger(__name__)


def clean_project_title(title: Any) -> str:
    if not isinstance(title, str) or not title.strip():
        raise ValidationError("Project title is required")
    title = title.strip()
    if len(title) > PROJECT_TITLE_MAX_LENGTH:
        raise ValidationError(f"Project title must be at most {PROJECT_TITLE_MAX_LENGTH} characters")
    return title


def clean_project_description(description: Any) -> str:
    if description is None:
        return ""
    if not isinstance(description, str):
        raise ValidationError("Project description must be text")
    description = description.strip()
    if len(description) > PROJECT_DESCRIPTION_MAX_LENGTH:
        raise ValidationError(
            f"Project description must be at most {PROJECT_DESCRIPTION_MAX_LENGTH} characters"
        )
    return description


def get_project(project_id: int) -> Project:
    stmt = select(Project).options(selectinload(Project.tasks)).where(Project.id == project_id)
    project = db.session.execute(stmt).scalar_one_or_none()
    if project is None:
        raise NotFoundError(f"Project {project_id} not found")
    return project


def list_projects() -> List[Project]:
    stmt = select(Project).options(selectinload(Project.tasks)).order_by(Project.created_at.desc(), Project.id.desc())
    return list(db.session.execute(stmt).scalars().all())


def list_completed_projects(actor: Profile) -> List[Project]:
    """Projects owned by `actor` whose tasks are all completed. A project with no tasks counts."""
    stmt = select(Project).options(selectinload(Project.tasks)).where(
        Project.owner_email == actor.email
    ).order_by(Project.created_at.desc(), Project.id.desc())
    projects = db.session.execute(stmt).scalars().all()
    return [project for project in projects if project.is_completed]


def create_project(
    actor: Profile,
    title: Any,
    description: Any = None,
    tasks: Iterable[TaskDraft] = (),
) -> Project:
    require(actor, Action.CREATE_PROJECT)
    title = clean_project_title(title)
    description = clean_project_description(description)
    drafts = list(tasks)
    if any(not draft.is_new for draft in drafts):
        raise ValidationError("New projects cannot reference existing tasks")

    project = Project(
        title=title,
        description=description,
        owner_id=actor.id,
        owner_email=actor.email,
    )
    project.tasks = [
        Task(title=draft.title, status=draft.status or TaskStatus.UNCOMPLETED)
        for draft in drafts
    ]
    assign_positions(project.tasks)

    try:
        db.session.add(project)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        raise database_error("create project", e)

    logger.info(f"Project {project.id} created by profile {actor.id} with {len(drafts)} tasks")
    return project


def update_project(
    actor: Profile,
    project_id: int,
    title: Any = None,
    description: Any = None,
    tasks: Optional[List[TaskDraft]] = None,
    removed_ids: Iterable[int] = (),
) -> Optional[ReconciliationResult]:
    """
    Update title/description and, when `tasks` is given, reconcile the task list.
    Project fields and task writes commit together.
    """
    require(actor, Action.EDIT_PROJECT)
    project = get_project(project_id)

    if title is not None:
        project.title = clean_project_title(title)
    if description is not None:
        project.description = clean_project_description(description)

    if tasks is not None:
        return reconciler.reconcile(project, tasks, removed_ids)

    try:
        db.session.commit()
    except StaleDataError:
        db.session.rollback()
        raise ConflictError("Project changed since it was loaded; reload and try again")
    except SQLAlchemyError as e:
        db.session.rollback()
        raise database_error("update project", e)
    return None


def delete_project(actor: Profile, project_id: int) -> None:
    require(actor, Action.DELETE_PROJECT)
    project = get_project(project_id)
    task_count = len(project.tasks)
    try:
        db.session.delete(project)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        raise database_error("delete project", e)
    logger.info(f"Project {project_id} deleted by profile {actor.id} ({task_count} tasks removed)")


def toggle_task_status(actor: Profile, project_id: int, task_id: int) -> Task:
    require(actor, Action.TOGGLE_TASK)
    task = db.session.get(Task, task_id)
    if task is None or task.project_id != project_id:
        raise NotFoundError(f"Task {task_id} not found in project {project_id}")

    new_status = task.toggle_status()
    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        raise database_error("update task status", e)

    logger.debug(f"Task {task_id} set to {new_status.value} by profile {actor.id}")
    return task


def reorder_tasks(actor: Profile, project_id: int, from_index: Any, to_index: Any) -> List[Task]:
    require(actor, Action.REORDER_TASKS)
    project = get_project(project_id)
    return reconciler.move_task(project, from_index, to_index)
