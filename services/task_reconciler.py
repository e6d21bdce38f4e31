"""
Task List Reconciler

Makes a project's stored task rows match an edited working copy in one save:
titles changed, tasks added (no id yet), tasks removed, tasks reordered.

Positions are always recomputed from list index (1-based), so after any save or
reorder a project's tasks occupy exactly 1..N. All writes of one save share a
single transaction; a failure rolls every one of them back.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any, Iterable, Sequence, Set

from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from models import db, Project, Task, TaskStatus
from models.task import TASK_TITLE_MAX_LENGTH
from services.errors import ValidationError, ReconciliationError, StaleTaskListError

logger = logging.getLogger(__name__)


@dataclass
class TaskDraft:
    """One entry of an edited task list. `id` is None for a task not yet stored."""
    title: str
    id: Optional[int] = None
    status: Optional[TaskStatus] = None

    @property
    def is_new(self) -> bool:
        return self.id is None

    @classmethod
    def from_dict(cls, data: Any) -> "TaskDraft":
        """
        Build a draft from request JSON. Any `position`/`order` key is ignored:
        order comes from the entry's index in the list.
        """
        if isinstance(data, str):
            data = {'title': data}
        if not isinstance(data, dict):
            raise ValidationError("Each task must be an object with a title")

        title = clean_task_title(data.get('title'))

        task_id = data.get('id')
        if task_id is not None:
            if isinstance(task_id, bool) or not isinstance(task_id, int):
                raise ValidationError(f"Invalid task id: {task_id!r}")

        status = data.get('status')
        if status is not None:
            try:
                status = TaskStatus.parse(status)
            except ValueError as e:
                raise ValidationError(str(e))

        return cls(title=title, id=task_id, status=status)


def clean_task_title(title: Any) -> str:
    if not isinstance(title, str) or not title.strip():
        raise ValidationError("Task title is required")
    title = title.strip()
    if len(title) > TASK_TITLE_MAX_LENGTH:
        raise ValidationError(f"Task title must be at most {TASK_TITLE_MAX_LENGTH} characters")
    return title


def parse_drafts(items: Any) -> List[TaskDraft]:
    if items is None:
        return []
    if not isinstance(items, list):
        raise ValidationError("tasks must be a list")
    return [TaskDraft.from_dict(item) for item in items]


def parse_removed_ids(ids: Any) -> Set[int]:
    if ids is None:
        return set()
    if not isinstance(ids, list) or any(isinstance(i, bool) or not isinstance(i, int) for i in ids):
        raise ValidationError("removed_task_ids must be a list of integers")
    return set(ids)


@dataclass
class TaskUpdate:
    task_id: int
    changes: Dict[str, Any]


@dataclass
class TaskInsert:
    title: str
    status: TaskStatus
    position: int


@dataclass
class ReconciliationPlan:
    """Writes needed to turn the stored list into the edited one."""
    updates: List[TaskUpdate] = field(default_factory=list)
    inserts: List[TaskInsert] = field(default_factory=list)
    deletes: Set[int] = field(default_factory=set)

    @property
    def is_empty(self) -> bool:
        return not (self.updates or self.inserts or self.deletes)


@dataclass
class ReconciliationResult:
    inserted: int
    updated: int
    deleted: int
    tasks: List[Task]

    def to_dict(self):
        return {
            'inserted': self.inserted,
            'updated': self.updated,
            'deleted': self.deleted,
            'tasks': [task.to_dict() for task in self.tasks],
        }


def plan_reconciliation(
    current_tasks: Sequence[Task],
    edited_tasks: Sequence[TaskDraft],
    removed_ids: Iterable[int] = (),
) -> ReconciliationPlan:
    """
    Compute the minimal writes for a save. Pure: reads attributes, touches no session.

    An id present in both `edited_tasks` and `removed_ids` is kept. A stored task
    missing from both means the working copy is stale and nothing is planned.
    """
    current_by_id = {task.id: task for task in current_tasks}

    edited_ids = [draft.id for draft in edited_tasks if not draft.is_new]
    if len(edited_ids) != len(set(edited_ids)):
        raise ReconciliationError("A task appears more than once in the edited list")

    unknown = [task_id for task_id in edited_ids if task_id not in current_by_id]
    if unknown:
        raise StaleTaskListError(
            "Task list changed since it was loaded; reload and try again",
            context={'unknown_task_ids': sorted(unknown)},
        )

    deletes = {task_id for task_id in removed_ids if task_id in current_by_id} - set(edited_ids)

    unaccounted = set(current_by_id) - set(edited_ids) - deletes
    if unaccounted:
        raise StaleTaskListError(
            "Task list changed since it was loaded; reload and try again",
            context={'missing_task_ids': sorted(unaccounted)},
        )

    plan = ReconciliationPlan(deletes=deletes)
    for index, draft in enumerate(edited_tasks):
        position = index + 1
        if draft.is_new:
            plan.inserts.append(TaskInsert(
                title=draft.title,
                status=draft.status or TaskStatus.UNCOMPLETED,
                position=position,
            ))
            continue

        stored = current_by_id[draft.id]
        changes: Dict[str, Any] = {}
        if stored.title != draft.title:
            changes['title'] = draft.title
        if stored.position != position:
            changes['position'] = position
        if draft.status is not None and stored.status != draft.status:
            changes['status'] = draft.status
        if changes:
            plan.updates.append(TaskUpdate(task_id=draft.id, changes=changes))

    return plan


def load_tasks(project_id: int) -> List[Task]:
    stmt = select(Task).where(Task.project_id == project_id).order_by(Task.position.asc(), Task.id.asc())
    return list(db.session.execute(stmt).scalars().all())


class TaskListReconciler:
    """
    Applies task-list saves and drag reorders for one project at a time.

    Pending changes already made to the project row in the current session
    (e.g. a new title) are committed or rolled back together with the task writes.
    """

    def reconcile(
        self,
        project: Project,
        edited_tasks: Sequence[TaskDraft],
        removed_ids: Iterable[int] = (),
    ) -> ReconciliationResult:
        project_id = project.id
        try:
            current = self._load_for_write(project_id)
            plan = plan_reconciliation(current, edited_tasks, removed_ids)
            self._apply(project, current, plan)
            db.session.commit()
        except StaleDataError as e:
            db.session.rollback()
            logger.warning(f"[RECONCILE] Project {project_id} changed during save: {e}")
            raise self._stale(project_id)
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"[RECONCILE] Save failed for project {project_id}: {e}", exc_info=True)
            raise ReconciliationError.from_database_error(e, project_id)
        except Exception:
            db.session.rollback()
            raise

        tasks = load_tasks(project_id)
        logger.info(
            f"[RECONCILE] Project {project_id}: {len(plan.inserts)} inserted, "
            f"{len(plan.updates)} updated, {len(plan.deletes)} deleted"
        )
        return ReconciliationResult(
            inserted=len(plan.inserts),
            updated=len(plan.updates),
            deleted=len(plan.deletes),
            tasks=tasks,
        )

    def _load_for_write(self, project_id: int) -> List[Task]:
        """
        Lock the project row (where the database supports FOR UPDATE) and read
        its tasks. The version held for the project is the one the commit checks.
        """
        db.session.execute(select(Project).where(Project.id == project_id).with_for_update())
        return load_tasks(project_id)

    def _stale(self, project_id: int) -> StaleTaskListError:
        return StaleTaskListError(
            "Task list changed since it was loaded; reload and try again",
            context={'project_id': project_id},
        )

    def _apply(self, project: Project, current: List[Task], plan: ReconciliationPlan):
        if plan.is_empty:
            return

        tasks_by_id = {task.id: task for task in current}
        # Drop any loaded collection so cascades never see deleted rows.
        db.session.expire(project, ['tasks'])
        # Touching the row makes this flush check and bump the project version.
        project.updated_at = func.now()

        # Deletes go first so a removed task's position is free before renumbering.
        for task_id in plan.deletes:
            db.session.delete(tasks_by_id[task_id])
        if plan.deletes:
            db.session.flush()

        for update in plan.updates:
            task = tasks_by_id[update.task_id]
            for attr, value in update.changes.items():
                setattr(task, attr, value)

        if plan.inserts:
            db.session.add_all([
                Task(
                    project_id=project.id,
                    title=insert.title,
                    status=insert.status,
                    position=insert.position,
                )
                for insert in plan.inserts
            ])
        db.session.flush()

    def move_task(self, project: Project, from_index: int, to_index: int) -> List[Task]:
        """
        Move the task at `from_index` to `to_index` (0-based) and renumber the
        whole list by index.
        """
        project_id = project.id
        tasks = self._load_for_write(project_id)
        for name, value in (('from_index', from_index), ('to_index', to_index)):
            if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value < len(tasks):
                db.session.rollback()
                raise ValidationError(
                    f"{name} must be an integer between 0 and {max(len(tasks) - 1, 0)}"
                )

        moved = tasks.pop(from_index)
        tasks.insert(to_index, moved)

        try:
            changed = assign_positions(tasks)
            if changed:
                project.updated_at = func.now()
            db.session.commit()
        except StaleDataError as e:
            db.session.rollback()
            logger.warning(f"[REORDER] Project {project_id} changed during reorder: {e}")
            raise self._stale(project_id)
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"[REORDER] Error reordering project {project_id}: {e}", exc_info=True)
            raise ReconciliationError.from_database_error(e, project_id)

        logger.info(
            f"[REORDER] Project {project_id}: task {moved.id} moved {from_index} -> {to_index}, "
            f"{changed} positions changed"
        )
        return load_tasks(project_id)


def assign_positions(tasks: Sequence[Task]) -> int:
    """Set every task's position to its 1-based index. Returns how many changed."""
    changed = 0
    for index, task in enumerate(tasks):
        if task.position != index + 1:
            changed += 1
        task.position = index + 1
    return changed


reconciler = TaskListReconciler()
