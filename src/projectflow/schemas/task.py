"""Pydantic schemas for tasks and task statistics.

Learn: Separate schemas for create/update/read keep the API clean.
- TaskCreate: what you POST (project is fixed at creation)
- TaskUpdate: what you PUT (title, description, due date, not the project)
- TaskRead: what the API returns
- TaskStats: the aggregate the project service pulls over HTTP
"""

from datetime import date, datetime
from typing import Optional

from pydantic import Field

from projectflow.schemas.base import CamelModel


class TaskCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    project_id: int
    due_date: Optional[date] = None


class TaskUpdate(CamelModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    due_date: Optional[date] = None


class TaskRead(CamelModel):
    id: int
    title: str
    description: Optional[str]
    project_id: int
    due_date: Optional[date]
    completed: bool
    created_at: Optional[datetime]
    updated_at: Optional[datetime]


class TaskStats(CamelModel):
    total_tasks: int = Field(0, ge=0)
    completed_tasks: int = Field(0, ge=0)
    progress_percentage: float = Field(0.0, ge=0.0, le=100.0)

    @classmethod
    def zero(cls) -> "TaskStats":
        """The fallback used when stats can't be fetched."""
        return cls(total_tasks=0, completed_tasks=0, progress_percentage=0.0)
