"""Task service — project-scoped task CRUD and statistics.

Learn: Tasks have no owner column; they belong to a project that lives in
the project service. Before any project-scoped operation the service asks
ProjectAccessClient whether the caller owns that project. That check can be
switched off (enforce_ownership=False), which restores the old behaviour of
trusting any caller-supplied project id. The gap is logged at startup.

Stats are the one exception: project_stats only needs an authenticated
caller. It is what the project service calls while building its own
responses, and checking ownership there would call straight back into the
project service.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

import structlog
from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from projectflow.auth.guard import Subject
from projectflow.clients.projects import ProjectAccessClient
from projectflow.db.models import Task
from projectflow.errors import NotFound, ValidationFailed
from projectflow.schemas.task import TaskStats

logger = structlog.get_logger()

TWO_PLACES = Decimal("0.01")


def progress_percentage(completed: int, total: int) -> float:
    """completed * 100 / total, rounded half-up to two places. 0.0 if no tasks."""
    if total <= 0:
        return 0.0
    ratio = Decimal(completed) * 100 / Decimal(total)
    return float(ratio.quantize(TWO_PLACES, rounding=ROUND_HALF_UP))


def _clean_title(title: str) -> str:
    title = title.strip()
    if not title:
        raise ValidationFailed("Title is required")
    return title


class TaskService:
    """Business logic for tasks within projects."""

    def __init__(
        self,
        db: AsyncSession,
        projects: ProjectAccessClient,
        enforce_ownership: bool = True,
    ):
        self.db = db
        self.projects = projects
        self.enforce_ownership = enforce_ownership

    async def _check_project(self, project_id: int, subject: Subject) -> None:
        if self.enforce_ownership:
            await self.projects.ensure_owned(project_id, subject)

    async def _get_task(self, task_id: int, subject: Subject) -> Task:
        """Load a task and check its project. NotFound before Forbidden."""
        task = await self.db.get(Task, task_id)
        if task is None:
            raise NotFound("Task not found")
        await self._check_project(task.project_id, subject)
        return task

    # ─── Create ──────────────────────────────────────────

    async def create_task(
        self,
        subject: Subject,
        project_id: int,
        title: str,
        description: Optional[str] = None,
        due_date=None,
    ) -> Task:
        """Create a task in 'not completed' state."""
        title = _clean_title(title)
        await self._check_project(project_id, subject)

        task = Task(
            title=title,
            description=description,
            project_id=project_id,
            due_date=due_date,
            completed=False,
        )
        self.db.add(task)
        await self.db.commit()
        await self.db.refresh(task)
        logger.info("task.created", task_id=task.id, project_id=project_id)
        return task

    # ─── Read ────────────────────────────────────────────

    async def get_task(self, task_id: int, subject: Subject) -> Task:
        return await self._get_task(task_id, subject)

    async def list_tasks(
        self,
        project_id: int,
        subject: Subject,
        completed: Optional[bool] = None,
        query: Optional[str] = None,
    ) -> list[Task]:
        """List a project's tasks, optionally filtered.

        Learn: Filters are applied conditionally, only when the caller
        provides them, so list, search and filter share one query.
        """
        await self._check_project(project_id, subject)

        stmt = select(Task).where(Task.project_id == project_id).order_by(Task.id)
        if completed is not None:
            stmt = stmt.where(Task.completed == completed)
        if query:
            stmt = stmt.where(Task.title.icontains(query, autoescape=True))

        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    # ─── Update ──────────────────────────────────────────

    async def update_task(
        self,
        task_id: int,
        subject: Subject,
        title: str,
        description: Optional[str] = None,
        due_date=None,
    ) -> Task:
        """Replace title, description and due date. The project is fixed."""
        task = await self._get_task(task_id, subject)
        task.title = _clean_title(title)
        task.description = description
        task.due_date = due_date
        await self.db.commit()
        await self.db.refresh(task)
        return task

    async def toggle_task(self, task_id: int, subject: Subject) -> Task:
        task = await self._get_task(task_id, subject)
        task.completed = not task.completed
        await self.db.commit()
        await self.db.refresh(task)
        logger.info("task.toggled", task_id=task_id, completed=task.completed)
        return task

    async def delete_task(self, task_id: int, subject: Subject) -> None:
        task = await self._get_task(task_id, subject)
        await self.db.delete(task)
        await self.db.commit()
        logger.info("task.deleted", task_id=task_id)

    # ─── Stats ───────────────────────────────────────────

    async def project_stats(self, project_id: int) -> TaskStats:
        """Counts for a project. Unknown project or no tasks → zeros."""
        result = await self.db.execute(
            select(
                func.count(Task.id),
                func.sum(case((Task.completed.is_(True), 1), else_=0)),
            ).where(Task.project_id == project_id)
        )
        total, completed = result.one()
        total, completed = int(total or 0), int(completed or 0)
        return TaskStats(
            total_tasks=total,
            completed_tasks=completed,
            progress_percentage=progress_percentage(completed, total),
        )
