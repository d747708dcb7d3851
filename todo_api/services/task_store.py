"""Owner-scoped persistence for tasks.

Every operation takes the owner id explicitly. A task owned by someone else
is reported exactly like a missing one. Writes run in a single transaction
while holding the owner's lock, so readers only ever see the state before or
after a whole operation.
"""
import uuid
from contextlib import contextmanager
from typing import Any, Iterable, Iterator, List, Mapping, Optional, Union

import structlog
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlmodel import Session, select, func

from ..core.config import settings
from ..core.errors import Conflict, NotFound, StoreUnavailable, TodoAPIError, ValidationError
from ..models.task import Task, TaskStatus, utcnow
from ..models.user import User
from ..schemas.task import TaskCreate, TaskPage, TaskQuery, TaskRead, TaskUpdate
from . import ordering, query as query_engine
from .locking import OwnerLockRegistry, owner_locks

logger = structlog.get_logger(__name__)


def parse_task_id(task_id: Union[str, uuid.UUID]) -> uuid.UUID:
    if isinstance(task_id, uuid.UUID):
        return task_id
    try:
        return uuid.UUID(str(task_id))
    except ValueError:
        raise ValidationError(f"Invalid task id: {task_id}") from None


def parse_task_ids(task_ids: Iterable[Union[str, uuid.UUID]]) -> List[uuid.UUID]:
    """Parse ids for a best-effort batch: malformed ids are dropped, duplicates collapse."""
    parsed: List[uuid.UUID] = []
    for task_id in task_ids:
        try:
            value = parse_task_id(task_id)
        except ValidationError:
            continue
        if value not in parsed:
            parsed.append(value)
    return parsed


def _validated(schema, data):
    if isinstance(data, schema):
        return data
    try:
        return schema.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError(details=exc.errors(include_url=False, include_context=False, include_input=False)) from None


class TaskStore:
    def __init__(
        self,
        session: Session,
        locks: OwnerLockRegistry = owner_locks,
        lock_timeout: Optional[float] = None,
    ):
        self.session = session
        self.locks = locks
        self.lock_timeout = settings.STORE_LOCK_TIMEOUT_SECONDS if lock_timeout is None else lock_timeout

    # ---- transaction helpers ----

    @contextmanager
    def _store_errors(self) -> Iterator[None]:
        try:
            yield
        except TodoAPIError:
            self.session.rollback()
            raise
        except IntegrityError as exc:
            self.session.rollback()
            logger.warning("store integrity conflict", error=str(exc.orig))
            raise Conflict() from exc
        except OperationalError as exc:
            self.session.rollback()
            logger.error("store unavailable", error=str(exc.orig))
            raise StoreUnavailable() from exc
        except Exception:
            self.session.rollback()
            raise

    @contextmanager
    def _write(self, owner_id: uuid.UUID) -> Iterator[None]:
        with self.locks.hold(owner_id, self.lock_timeout):
            with self._store_errors():
                # Serializes writers across processes on databases with row locks;
                # SQLite ignores FOR UPDATE and relies on the in-process lock
                self.session.exec(select(User.id).where(User.id == owner_id).with_for_update()).first()
                yield
                self.session.commit()

    def _owned(self, owner_id: uuid.UUID, task_id: uuid.UUID) -> Task:
        task = self.session.exec(
            select(Task).where(Task.id == task_id, Task.user_id == owner_id)
        ).first()
        if task is None:
            raise NotFound()
        return task

    def _order_rows(self, owner_id: uuid.UUID) -> List[Task]:
        return list(
            self.session.exec(
                select(Task)
                .where(Task.user_id == owner_id)
                .order_by(Task.order, Task.created_at, Task.id)
            ).all()
        )

    def _apply_plan(self, tasks: List[Task], plan: ordering.OrderPlan) -> None:
        now = utcnow()
        for task in tasks:
            if task.id in plan:
                task.order = plan[task.id]
                task.updated_at = now
                self.session.add(task)

    # ---- reads ----

    def get(self, owner_id: uuid.UUID, task_id: Union[str, uuid.UUID]) -> Task:
        task_id = parse_task_id(task_id)
        with self._store_errors():
            return self._owned(owner_id, task_id)

    def list_tasks(self, owner_id: uuid.UUID, query: Union[TaskQuery, Mapping[str, Any], None] = None) -> TaskPage:
        query = _validated(TaskQuery, query or {})
        page_statement, count_statement = query_engine.build_page_statements(owner_id, query)
        with self._store_errors():
            total = self.session.exec(count_statement).one()
            tasks = self.session.exec(page_statement).all()
        skip = (query.page - 1) * query.limit
        return TaskPage(
            items=[TaskRead.model_validate(task) for task in tasks],
            total=total,
            page=query.page,
            limit=query.limit,
            total_pages=query_engine.total_pages(total, query.limit),
            has_more=skip + len(tasks) < total,
        )

    # ---- single-task writes ----

    def create(self, owner_id: uuid.UUID, fields: Union[TaskCreate, Mapping[str, Any]]) -> Task:
        data = _validated(TaskCreate, fields)
        with self._write(owner_id):
            max_order = self.session.exec(
                select(func.max(Task.order)).where(Task.user_id == owner_id)
            ).one()
            now = utcnow()
            task = Task(
                user_id=owner_id,
                title=data.title,
                description=data.description,
                priority=data.priority,
                due_date=data.due_date,
                category=data.category,
                order=0 if max_order is None else max_order + 1,
                created_at=now,
                updated_at=now,
            )
            task.set_status(data.status, now)
            task.set_tags(data.tags)
            self.session.add(task)
        self.session.refresh(task)
        logger.info("task created", owner_id=str(owner_id), task_id=str(task.id), order=task.order)
        return task

    def update(
        self,
        owner_id: uuid.UUID,
        task_id: Union[str, uuid.UUID],
        patch: Union[TaskUpdate, Mapping[str, Any]],
    ) -> Task:
        task_id = parse_task_id(task_id)
        patch = _validated(TaskUpdate, patch)
        task_data = patch.model_dump(exclude_unset=True)
        with self._write(owner_id):
            task = self._owned(owner_id, task_id)
            now = utcnow()
            status = task_data.pop("status", None)
            tags = task_data.pop("tags", None)
            for key, value in task_data.items():
                setattr(task, key, value)
            if status is not None:
                task.set_status(status, now)
            if tags is not None:
                task.set_tags(tags)
            task.updated_at = now
            self.session.add(task)
        self.session.refresh(task)
        logger.info("task updated", owner_id=str(owner_id), task_id=str(task_id), fields=sorted(patch.model_fields_set))
        return task

    def set_status(self, owner_id: uuid.UUID, task_id: Union[str, uuid.UUID], status: TaskStatus) -> Task:
        return self.update(owner_id, task_id, {"status": status})

    def delete(self, owner_id: uuid.UUID, task_id: Union[str, uuid.UUID]) -> None:
        task_id = parse_task_id(task_id)
        with self._write(owner_id):
            task = self._owned(owner_id, task_id)
            self.session.delete(task)
        logger.info("task deleted", owner_id=str(owner_id), task_id=str(task_id))

    # ---- best-effort batches ----

    def _owned_batch(self, owner_id: uuid.UUID, task_ids: List[uuid.UUID]) -> List[Task]:
        if not task_ids:
            return []
        return list(
            self.session.exec(
                select(Task).where(Task.user_id == owner_id, Task.id.in_(task_ids))
            ).all()
        )

    def batch_update_status(
        self,
        owner_id: uuid.UUID,
        task_ids: Iterable[Union[str, uuid.UUID]],
        status: Union[TaskStatus, str],
    ) -> int:
        """Set ``status`` on every listed task the owner has; returns how many were updated."""
        try:
            status = TaskStatus(status)
        except ValueError:
            raise ValidationError(f"Invalid status: {status}") from None
        ids = parse_task_ids(task_ids)
        with self._write(owner_id):
            tasks = self._owned_batch(owner_id, ids)
            now = utcnow()
            for task in tasks:
                task.set_status(status, now)
                task.updated_at = now
                self.session.add(task)
        logger.info(
            "batch status update",
            owner_id=str(owner_id),
            status=status.value,
            requested=len(ids),
            modified=len(tasks),
        )
        return len(tasks)

    def batch_delete(self, owner_id: uuid.UUID, task_ids: Iterable[Union[str, uuid.UUID]]) -> int:
        """Delete every listed task the owner has; returns how many were deleted."""
        ids = parse_task_ids(task_ids)
        with self._write(owner_id):
            tasks = self._owned_batch(owner_id, ids)
            for task in tasks:
                self.session.delete(task)
        logger.info("batch delete", owner_id=str(owner_id), requested=len(ids), deleted=len(tasks))
        return len(tasks)

    # ---- ordering ----

    def move_task(self, owner_id: uuid.UUID, task_id: Union[str, uuid.UUID], new_order: int) -> Task:
        task_id = parse_task_id(task_id)
        with self._write(owner_id):
            moved = self._owned(owner_id, task_id)
            tasks = self._order_rows(owner_id)
            plan = ordering.plan_move([(t.id, t.order) for t in tasks], task_id, new_order)
            self._apply_plan(tasks, plan)
        if plan:
            self.session.refresh(moved)
        logger.info(
            "task moved",
            owner_id=str(owner_id),
            task_id=str(task_id),
            requested_order=new_order,
            order=moved.order,
            shifted=len(plan),
        )
        return moved

    def reorder_all(self, owner_id: uuid.UUID, task_ids: Iterable[Union[str, uuid.UUID]]) -> List[Task]:
        """Renumber the owner's tasks from the position of each id in ``task_ids``."""
        requested = []
        for task_id in task_ids:
            try:
                requested.append(parse_task_id(task_id))
            except ValidationError:
                continue
        with self._write(owner_id):
            tasks = self._order_rows(owner_id)
            plan = ordering.plan_reorder([(t.id, t.order) for t in tasks], requested)
            self._apply_plan(tasks, plan)
        logger.info("tasks reordered", owner_id=str(owner_id), requested=len(requested), changed=len(plan))
        return self._order_rows(owner_id)
