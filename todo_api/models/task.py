from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import DateTime, Index
from sqlalchemy.types import TypeDecorator
from typing import Optional, List
from datetime import datetime, timezone
import uuid
from enum import Enum


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator):
    """Timezone-aware UTC datetimes on every backend.

    Naive values are taken to be UTC. SQLite drops the offset on storage, so
    values read back get UTC attached again.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class TaskStatus(str, Enum):
    pending = "pending"
    in_progress = "in_progress"
    completed = "completed"
    archived = "archived"


class TaskPriority(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"


class TaskTag(SQLModel, table=True):
    __tablename__ = "task_tags"

    task_id: uuid.UUID = Field(foreign_key="tasks.id", primary_key=True)
    tag: str = Field(primary_key=True, max_length=50, index=True)

    task: Optional["Task"] = Relationship(back_populates="tag_links")


class Task(SQLModel, table=True):
    __tablename__ = "tasks"
    __table_args__ = (
        Index("ix_tasks_user_id_order", "user_id", "order"),
        Index("ix_tasks_user_id_category", "user_id", "category"),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False)
    title: str = Field(nullable=False, max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    status: TaskStatus = Field(default=TaskStatus.pending)
    priority: TaskPriority = Field(default=TaskPriority.medium)
    due_date: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)
    category: Optional[str] = Field(default=None, max_length=50)
    order: int = Field(default=0, nullable=False)
    completed_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)

    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime, nullable=False)

    user: Optional["User"] = Relationship(back_populates="tasks")
    tag_links: List[TaskTag] = Relationship(
        back_populates="task",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "lazy": "selectin"},
    )

    @property
    def tags(self) -> List[str]:
        return sorted(link.tag for link in self.tag_links)

    def set_tags(self, tags: List[str]) -> None:
        # Existing links are kept so a tag that stays is never deleted and re-inserted
        wanted = list(dict.fromkeys(tags))
        keep = [link for link in self.tag_links if link.tag in wanted]
        have = {link.tag for link in keep}
        self.tag_links = keep + [TaskTag(tag=tag) for tag in wanted if tag not in have]

    def set_status(self, status: TaskStatus, now: datetime) -> None:
        """Change status keeping ``completed_at`` set exactly while completed."""
        if status == TaskStatus.completed:
            if self.status != TaskStatus.completed or self.completed_at is None:
                self.completed_at = now
        else:
            self.completed_at = None
        self.status = status
