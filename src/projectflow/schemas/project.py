"""Pydantic schemas for projects.

Learn: ProjectRead merges stored fields with the transient stats triple
fetched from the task service. The stats are never persisted.
"""

from datetime import datetime
from typing import Optional

from pydantic import Field

from projectflow.schemas.base import CamelModel


class ProjectRequest(CamelModel):
    """Body for create (POST) and full update (PUT)."""
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None


class ProjectRead(CamelModel):
    id: int
    title: str
    description: Optional[str]
    user_id: int
    created_at: Optional[datetime]
    updated_at: Optional[datetime]
    total_tasks: int = 0
    completed_tasks: int = 0
    progress_percentage: float = 0.0
