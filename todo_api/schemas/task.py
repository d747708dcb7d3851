from sqlmodel import SQLModel, Field
from pydantic import field_validator, model_validator
from typing import Optional, List
from datetime import datetime, timezone
from enum import Enum
import uuid

from ..models.task import TaskStatus, TaskPriority, utcnow

MAX_TAGS = 10
MAX_PAGE_SIZE = 50


def _aware_utc(value: Optional[datetime]) -> Optional[datetime]:
    # Datetimes without an offset are read as UTC
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _clean_tags(tags: Optional[List[str]]) -> Optional[List[str]]:
    if tags is None:
        return None
    cleaned = []
    for tag in tags:
        tag = tag.strip()
        if not tag:
            raise ValueError("Tags cannot be empty")
        if len(tag) > 50:
            raise ValueError("Tags cannot exceed 50 characters")
        if tag not in cleaned:
            cleaned.append(tag)
    return cleaned


class TaskBase(SQLModel):
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    priority: TaskPriority = TaskPriority.medium
    due_date: Optional[datetime] = None
    tags: List[str] = Field(default_factory=list, max_length=MAX_TAGS)
    category: Optional[str] = Field(default=None, max_length=50)

    @field_validator("title", "description", "category", mode="before")
    @classmethod
    def strip_text(cls, value):
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("tags")
    @classmethod
    def clean_tags(cls, value):
        return _clean_tags(value)

    @field_validator("due_date")
    @classmethod
    def normalize_due_date(cls, value):
        return _aware_utc(value)


class TaskCreate(TaskBase):
    status: TaskStatus = TaskStatus.pending

    @field_validator("due_date")
    @classmethod
    def due_date_in_future(cls, value):
        value = _aware_utc(value)
        if value is not None and value <= utcnow():
            raise ValueError("Due date must be in the future")
        return value


class TaskUpdate(SQLModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[datetime] = None
    tags: Optional[List[str]] = Field(default=None, max_length=MAX_TAGS)
    category: Optional[str] = Field(default=None, max_length=50)

    @field_validator("title", "description", "category", mode="before")
    @classmethod
    def strip_text(cls, value):
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("tags")
    @classmethod
    def clean_tags(cls, value):
        return _clean_tags(value)

    @field_validator("due_date")
    @classmethod
    def normalize_due_date(cls, value):
        return _aware_utc(value)

    @model_validator(mode="after")
    def required_fields_not_null(self):
        for name in ("title", "status", "priority"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


class TaskStatusUpdate(SQLModel):
    status: TaskStatus


class TaskRead(SQLModel):
    model_config = {"from_attributes": True}

    id: uuid.UUID
    user_id: uuid.UUID
    title: str
    description: Optional[str] = None
    status: TaskStatus
    priority: TaskPriority
    due_date: Optional[datetime] = None
    tags: List[str] = []
    category: Optional[str] = None
    order: int
    completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


# --- QUERY ---
class SortOrder(str, Enum):
    asc = "asc"
    desc = "desc"


class TaskQuery(SQLModel):
    """One optional field per filter dimension, plus sort and page."""

    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    category: Optional[str] = None
    tags: Optional[List[str]] = None
    search: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    sort_by: str = "created_at"
    sort_order: SortOrder = SortOrder.desc
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=MAX_PAGE_SIZE)

    @field_validator("tags")
    @classmethod
    def drop_blank_tags(cls, value):
        if value is None:
            return None
        return [tag.strip() for tag in value if tag.strip()] or None

    @field_validator("search", "category")
    @classmethod
    def blank_is_unset(cls, value):
        if value is not None and not value.strip():
            return None
        return value

    @field_validator("start_date", "end_date")
    @classmethod
    def normalize_dates(cls, value):
        return _aware_utc(value)

    @model_validator(mode="after")
    def date_range_is_ordered(self):
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        return self


class TaskPage(SQLModel):
    items: List[TaskRead]
    total: int
    page: int
    limit: int
    total_pages: int
    has_more: bool


# --- BATCH & ORDER PAYLOADS ---
class BatchStatusUpdate(SQLModel):
    ids: List[str] = Field(min_length=1)
    status: TaskStatus


class BatchDelete(SQLModel):
    ids: List[str] = Field(min_length=1)


class BatchAction(str, Enum):
    update_status = "update_status"
    delete = "delete"


class BatchOperationData(SQLModel):
    status: Optional[TaskStatus] = None


class BatchOperation(SQLModel):
    task_ids: List[str] = Field(min_length=1)
    action: BatchAction
    data: Optional[BatchOperationData] = None

    @model_validator(mode="after")
    def status_required_for_update(self):
        if self.action == BatchAction.update_status and (self.data is None or self.data.status is None):
            raise ValueError("data.status is required for update_status")
        return self


class BatchResult(SQLModel):
    requested: int
    modified_count: Optional[int] = None
    deleted_count: Optional[int] = None
    failed: int


class TaskMove(SQLModel):
    order: int


class ReorderItem(SQLModel):
    id: str
    # Accepted for compatibility with drag-and-drop clients; position in the list wins
    order: Optional[int] = None


class TaskReorder(SQLModel):
    tasks: List[ReorderItem] = Field(min_length=1)
