from fastapi import APIRouter, Depends, Query, status
from typing import List, Optional
from datetime import datetime
import uuid

from todo_api.api.deps import get_current_user, get_request_id, get_task_store
from todo_api.models.user import User
from todo_api.models.task import TaskStatus, TaskPriority
from todo_api.schemas.envelope import ApiResponse, ok
from todo_api.schemas.task import (
    BatchAction,
    BatchDelete,
    BatchOperation,
    BatchResult,
    BatchStatusUpdate,
    SortOrder,
    TaskCreate,
    TaskMove,
    TaskPage,
    TaskRead,
    TaskReorder,
    TaskStatusUpdate,
    TaskUpdate,
)
from todo_api.services.task_store import TaskStore

router = APIRouter()


def _read(task) -> TaskRead:
    return TaskRead.model_validate(task)


@router.get("/", response_model=ApiResponse[TaskPage])
def list_user_tasks(
    status_filter: Optional[TaskStatus] = Query(None, alias="status"),
    priority: Optional[TaskPriority] = None,
    category: Optional[str] = None,
    tags: Optional[List[str]] = Query(None),
    search: Optional[str] = None,
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=50),
    sort_by: str = Query("created_at", alias="sortBy"),
    sort_order: SortOrder = Query(SortOrder.desc, alias="sortOrder"),
    current_user: User = Depends(get_current_user),
    store: TaskStore = Depends(get_task_store),
    request_id: Optional[str] = Depends(get_request_id),
):
    # ?tags=a,b and ?tags=a&tags=b are both accepted
    if tags:
        tags = [tag for value in tags for tag in value.split(",")]
    # Validated by the store so bad combinations surface as VALIDATION_ERROR
    query = dict(
        status=status_filter,
        priority=priority,
        category=category,
        tags=tags,
        search=search,
        start_date=start_date,
        end_date=end_date,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return ok(store.list_tasks(current_user.id, query), request_id)


@router.post("/", response_model=ApiResponse[TaskRead], status_code=status.HTTP_201_CREATED)
def create_task(
    task_create: TaskCreate,
    current_user: User = Depends(get_current_user),
    store: TaskStore = Depends(get_task_store),
    request_id: Optional[str] = Depends(get_request_id),
):
    task = store.create(current_user.id, task_create)
    return ok(_read(task), request_id, "Task created")


# --- BATCH & ORDER ROUTES (declared before /{task_id}) ---
@router.post("/batch/status", response_model=ApiResponse[BatchResult])
def batch_update_status(
    payload: BatchStatusUpdate,
    current_user: User = Depends(get_current_user),
    store: TaskStore = Depends(get_task_store),
    request_id: Optional[str] = Depends(get_request_id),
):
    modified = store.batch_update_status(current_user.id, payload.ids, payload.status)
    result = BatchResult(requested=len(payload.ids), modified_count=modified, failed=len(payload.ids) - modified)
    return ok(result, request_id)


@router.post("/batch/delete", response_model=ApiResponse[BatchResult])
def batch_delete(
    payload: BatchDelete,
    current_user: User = Depends(get_current_user),
    store: TaskStore = Depends(get_task_store),
    request_id: Optional[str] = Depends(get_request_id),
):
    deleted = store.batch_delete(current_user.id, payload.ids)
    result = BatchResult(requested=len(payload.ids), deleted_count=deleted, failed=len(payload.ids) - deleted)
    return ok(result, request_id)


@router.post("/batch", response_model=ApiResponse[BatchResult])
def batch_operation(
    payload: BatchOperation,
    current_user: User = Depends(get_current_user),
    store: TaskStore = Depends(get_task_store),
    request_id: Optional[str] = Depends(get_request_id),
):
    requested = len(payload.task_ids)
    if payload.action == BatchAction.update_status:
        modified = store.batch_update_status(current_user.id, payload.task_ids, payload.data.status)
        result = BatchResult(requested=requested, modified_count=modified, failed=requested - modified)
    else:
        deleted = store.batch_delete(current_user.id, payload.task_ids)
        result = BatchResult(requested=requested, deleted_count=deleted, failed=requested - deleted)
    return ok(result, request_id)


@router.patch("/order", response_model=ApiResponse[List[TaskRead]])
# Path used by the drag-and-drop client
@router.patch("/batch/order", response_model=ApiResponse[List[TaskRead]])
def reorder_tasks(
    payload: TaskReorder,
    current_user: User = Depends(get_current_user),
    store: TaskStore = Depends(get_task_store),
    request_id: Optional[str] = Depends(get_request_id),
):
    tasks = store.reorder_all(current_user.id, [item.id for item in payload.tasks])
    return ok([_read(task) for task in tasks], request_id)


# --- SINGLE TASK ROUTES ---
@router.get("/{task_id}", response_model=ApiResponse[TaskRead])
def get_task(
    task_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    store: TaskStore = Depends(get_task_store),
    request_id: Optional[str] = Depends(get_request_id),
):
    return ok(_read(store.get(current_user.id, task_id)), request_id)


@router.put("/{task_id}", response_model=ApiResponse[TaskRead])
def update_task(
    task_id: uuid.UUID,
    task_update: TaskUpdate,
    current_user: User = Depends(get_current_user),
    store: TaskStore = Depends(get_task_store),
    request_id: Optional[str] = Depends(get_request_id),
):
    task = store.update(current_user.id, task_id, task_update)
    return ok(_read(task), request_id, "Task updated")


@router.patch("/{task_id}/status", response_model=ApiResponse[TaskRead])
def update_task_status(
    task_id: uuid.UUID,
    payload: TaskStatusUpdate,
    current_user: User = Depends(get_current_user),
    store: TaskStore = Depends(get_task_store),
    request_id: Optional[str] = Depends(get_request_id),
):
    task = store.set_status(current_user.id, task_id, payload.status)
    return ok(_read(task), request_id)


@router.patch("/{task_id}/order", response_model=ApiResponse[TaskRead])
def move_task(
    task_id: uuid.UUID,
    payload: TaskMove,
    current_user: User = Depends(get_current_user),
    store: TaskStore = Depends(get_task_store),
    request_id: Optional[str] = Depends(get_request_id),
):
    task = store.move_task(current_user.id, task_id, payload.order)
    return ok(_read(task), request_id)


@router.delete("/{task_id}", response_model=ApiResponse[None])
def delete_task(
    task_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    store: TaskStore = Depends(get_task_store),
    request_id: Optional[str] = Depends(get_request_id),
):
    store.delete(current_user.id, task_id)
    return ok(None, request_id, "Task deleted")
