# This file ensures all models are loaded together to resolve circular references
from .user import User
from .task import Task, TaskTag, TaskStatus, TaskPriority

__all__ = ["User", "Task", "TaskTag", "TaskStatus", "TaskPriority"]
