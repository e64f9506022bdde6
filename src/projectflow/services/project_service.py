"""Project service — owner-scoped project CRUD with task stats.

Learn: Every lookup follows the same order:
1. load the row → NotFound if it doesn't exist
2. ensure_owner → Forbidden if it belongs to someone else

Reads are then enriched with task stats from the task service via the
StatsFetcher. A failed fetch turns into zeros inside the fetcher, so
nothing here has to handle the task service being down.
"""

import asyncio
from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from projectflow.auth.guard import Subject, ensure_owner
from projectflow.clients.task_stats import StatsFetcher
from projectflow.db.models import Project
from projectflow.errors import NotFound, ValidationFailed
from projectflow.schemas.project import ProjectRead
from projectflow.schemas.task import TaskStats

logger = structlog.get_logger()


def _clean_title(title: str) -> str:
    title = title.strip()
    if not title:
        raise ValidationFailed("Title is required")
    return title


class ProjectService:
    """Business logic for projects owned by a single identity."""

    def __init__(self, db: AsyncSession, stats: StatsFetcher):
        self.db = db
        self.stats = stats

    # ─── Create ──────────────────────────────────────────

    async def create_project(
        self, subject: Subject, title: str, description: Optional[str] = None
    ) -> ProjectRead:
        project = Project(
            title=_clean_title(title),
            description=description,
            user_id=subject.id,
        )
        self.db.add(project)
        await self.db.commit()
        await self.db.refresh(project)
        logger.info("project.created", project_id=project.id, user_id=subject.id)
        return await self._enrich(project, subject)

    # ─── Read ────────────────────────────────────────────

    async def get_owned(self, project_id: int, subject: Subject) -> Project:
        """Load a project the subject owns. NotFound before Forbidden."""
        project = await self.db.get(Project, project_id)
        if project is None:
            raise NotFound("Project not found")
        ensure_owner(project.user_id, subject)
        return project

    async def get_project(
        self, project_id: int, subject: Subject, with_stats: bool = True
    ) -> ProjectRead:
        project = await self.get_owned(project_id, subject)
        if not with_stats:
            return ProjectRead.model_validate(project)
        return await self._enrich(project, subject)

    async def list_projects(self, subject: Subject) -> list[ProjectRead]:
        result = await self.db.execute(
            select(Project)
            .where(Project.user_id == subject.id)
            .order_by(Project.id)
        )
        return await self._enrich_many(list(result.scalars().all()), subject)

    async def search_projects(self, subject: Subject, query: str) -> list[ProjectRead]:
        """Case-insensitive literal title search within the subject's projects.

        % and _ in the query match themselves, not any characters.
        """
        result = await self.db.execute(
            select(Project)
            .where(Project.user_id == subject.id)
            .where(Project.title.icontains(query, autoescape=True))
            .order_by(Project.id)
        )
        return await self._enrich_many(list(result.scalars().all()), subject)

    # ─── Update / Delete ─────────────────────────────────

    async def update_project(
        self,
        project_id: int,
        subject: Subject,
        title: str,
        description: Optional[str] = None,
    ) -> ProjectRead:
        project = await self.get_owned(project_id, subject)
        project.title = _clean_title(title)
        project.description = description
        await self.db.commit()
        await self.db.refresh(project)
        return await self._enrich(project, subject)

    async def delete_project(self, project_id: int, subject: Subject) -> None:
        # Tasks live in the task service and are left in place. Project ids
        # are never reused (see Project), so nothing can inherit them.
        project = await self.get_owned(project_id, subject)
        await self.db.delete(project)
        await self.db.commit()
        logger.info("project.deleted", project_id=project_id, user_id=subject.id)

    # ─── Stats enrichment ────────────────────────────────

    async def _enrich(self, project: Project, subject: Subject) -> ProjectRead:
        stats = await self.stats.fetch_stats(project.id, subject.authorization)
        return _with_stats(project, stats)

    async def _enrich_many(
        self, projects: list[Project], subject: Subject
    ) -> list[ProjectRead]:
        all_stats = await asyncio.gather(
            *(self.stats.fetch_stats(p.id, subject.authorization) for p in projects)
        )
        return [_with_stats(p, s) for p, s in zip(projects, all_stats)]


def _with_stats(project: Project, stats: TaskStats) -> ProjectRead:
    read = ProjectRead.model_validate(project)
    return read.model_copy(
        update={
            "total_tasks": stats.total_tasks,
            "completed_tasks": stats.completed_tasks,
            "progress_percentage": stats.progress_percentage,
        }
    )
