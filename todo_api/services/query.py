"""Translate a ``TaskQuery`` into SQL.

Results always have a total order: the requested sort column first, then the
task id ascending, so equal sort values never reshuffle between pages.
"""
import math
import uuid
from typing import Tuple

from sqlalchemy import case, or_
from sqlmodel import select, func

from ..core.errors import ValidationError
from ..models.task import Task, TaskTag, TaskPriority
from ..schemas.task import TaskQuery, SortOrder

PRIORITY_RANK = case(
    {TaskPriority.low: 0, TaskPriority.medium: 1, TaskPriority.high: 2},
    value=Task.priority,
)

SORTABLE_COLUMNS = {
    "id": Task.id,
    "user_id": Task.user_id,
    "title": Task.title,
    "description": Task.description,
    "status": Task.status,
    "priority": PRIORITY_RANK,
    "due_date": Task.due_date,
    "category": Task.category,
    "order": Task.order,
    "completed_at": Task.completed_at,
    "created_at": Task.created_at,
    "updated_at": Task.updated_at,
}

# Field names as the web client sends them
SORT_ALIASES = {
    "dueDate": "due_date",
    "completedAt": "completed_at",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "userId": "user_id",
}


def sort_column(sort_by: str):
    name = SORT_ALIASES.get(sort_by, sort_by)
    try:
        return SORTABLE_COLUMNS[name]
    except KeyError:
        raise ValidationError(
            f"Cannot sort by '{sort_by}'",
            details={"allowed": sorted(SORTABLE_COLUMNS)},
        ) from None


def filtered_statement(owner_id: uuid.UUID, query: TaskQuery):
    statement = select(Task).where(Task.user_id == owner_id)

    if query.status is not None:
        statement = statement.where(Task.status == query.status)
    if query.priority is not None:
        statement = statement.where(Task.priority == query.priority)
    if query.category is not None:
        statement = statement.where(Task.category == query.category)
    if query.tags:
        tagged = select(TaskTag.task_id).where(TaskTag.tag.in_(query.tags))
        statement = statement.where(Task.id.in_(tagged))
    if query.search:
        # Literal substring: % and _ in the search text are escaped
        statement = statement.where(
            or_(
                Task.title.icontains(query.search, autoescape=True),
                Task.description.icontains(query.search, autoescape=True),
            )
        )
    if query.start_date is not None:
        statement = statement.where(Task.due_date >= query.start_date)
    if query.end_date is not None:
        statement = statement.where(Task.due_date <= query.end_date)
    return statement


def build_page_statements(owner_id: uuid.UUID, query: TaskQuery) -> Tuple:
    """Return ``(page_statement, count_statement)`` for ``query``."""
    column = sort_column(query.sort_by)
    statement = filtered_statement(owner_id, query)

    count_statement = select(func.count()).select_from(statement.subquery())

    primary = column.asc() if query.sort_order == SortOrder.asc else column.desc()
    page_statement = (
        statement.order_by(primary, Task.id.asc())
        .offset((query.page - 1) * query.limit)
        .limit(query.limit)
    )
    return page_statement, count_statement


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if total else 0
