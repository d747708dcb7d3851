"""Order maintenance for an owner's task list.

The functions here are pure: they take the owner's current list, sorted by
display position, and return only the ``{task_id: new_order}`` assignments
that differ from what is stored. The task store applies the plan inside one
transaction while holding the owner's lock.

After either plan is applied the owner's orders are exactly ``0..N-1``.
"""
import uuid
from typing import Dict, Iterable, List, Sequence, Tuple

from ..core.errors import ValidationError

OrderRow = Tuple[uuid.UUID, int]
OrderPlan = Dict[uuid.UUID, int]


def _changes(final: List[uuid.UUID], current: Dict[uuid.UUID, int]) -> OrderPlan:
    return {task_id: position for position, task_id in enumerate(final) if current[task_id] != position}


def plan_move(rows: Sequence[OrderRow], task_id: uuid.UUID, new_order: int) -> OrderPlan:
    """Plan moving ``task_id`` to order value ``new_order``.

    Moving down places the task after every other task with order
    ``<= new_order``; moving up places it before the task holding
    ``new_order``. Targets outside the list clamp to first or last. Gaps left
    behind by deletes are closed as part of the same plan, so the moved task
    may end up with a smaller order than requested.
    """
    current = dict(rows)
    if task_id not in current:
        raise KeyError(task_id)
    old_order = current[task_id]
    if old_order == new_order:
        return {}

    others = [row_id for row_id, _ in rows if row_id != task_id]
    if new_order > old_order:
        target = sum(1 for row_id in others if current[row_id] <= new_order)
    else:
        target = sum(1 for row_id in others if current[row_id] < new_order)
    others.insert(target, task_id)
    return _changes(others, current)


def plan_reorder(rows: Sequence[OrderRow], requested_ids: Iterable[uuid.UUID]) -> OrderPlan:
    """Plan a full reorder from the position of each id in ``requested_ids``.

    Ids the owner does not have are ignored. Owned tasks missing from the
    request keep their relative order and follow the requested ones.
    """
    requested = list(requested_ids)
    if len(set(requested)) != len(requested):
        raise ValidationError("Duplicate task ids in reorder request")

    current = dict(rows)
    head = [task_id for task_id in requested if task_id in current]
    placed = set(head)
    tail = [row_id for row_id, _ in rows if row_id not in placed]
    return _changes(head + tail, current)
