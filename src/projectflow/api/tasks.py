"""Task API routes.

Learn: These routes are the HTTP interface to the task service. Project
ownership is checked inside the service (via the project service), so
routes just translate HTTP to service calls. The stats route is the one
the project service's StatsFetcher consumes.
"""

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from projectflow.auth.guard import Subject, get_current_subject
from projectflow.db.engine import get_db
from projectflow.schemas.task import TaskCreate, TaskRead, TaskStats, TaskUpdate
from projectflow.services.task_service import TaskService

router = APIRouter(prefix="/tasks")


def _svc(request: Request, db: AsyncSession = Depends(get_db)) -> TaskService:
    state = request.app.state
    return TaskService(
        db,
        state.project_access,
        enforce_ownership=state.settings.enforce_task_project_ownership,
    )


@router.post("", response_model=TaskRead, status_code=201)
async def create_task(
    body: TaskCreate,
    subject: Subject = Depends(get_current_subject),
    svc: TaskService = Depends(_svc),
):
    return await svc.create_task(
        subject,
        project_id=body.project_id,
        title=body.title,
        description=body.description,
        due_date=body.due_date,
    )


@router.get("/project/{project_id}", response_model=list[TaskRead])
async def list_project_tasks(
    project_id: int,
    subject: Subject = Depends(get_current_subject),
    svc: TaskService = Depends(_svc),
):
    return await svc.list_tasks(project_id, subject)


@router.get("/project/{project_id}/search", response_model=list[TaskRead])
async def search_tasks(
    project_id: int,
    query: str = Query(..., min_length=1, description="Title substring"),
    subject: Subject = Depends(get_current_subject),
    svc: TaskService = Depends(_svc),
):
    return await svc.list_tasks(project_id, subject, query=query)


@router.get("/project/{project_id}/filter", response_model=list[TaskRead])
async def filter_tasks(
    project_id: int,
    completed: bool = Query(..., description="Filter by completion"),
    subject: Subject = Depends(get_current_subject),
    svc: TaskService = Depends(_svc),
):
    return await svc.list_tasks(project_id, subject, completed=completed)


@router.get("/project/{project_id}/stats", response_model=TaskStats)
async def project_stats(project_id: int, svc: TaskService = Depends(_svc)):
    """Task counts for a project. Unknown project → zeros, not 404.

    Any authenticated caller may read this, with no ownership check: the
    project service calls it while answering its own requests. Nonzero
    counts therefore tell a non-owner that a project id is in use.
    """
    return await svc.project_stats(project_id)


@router.get("/{task_id}", response_model=TaskRead)
async def get_task(
    task_id: int,
    subject: Subject = Depends(get_current_subject),
    svc: TaskService = Depends(_svc),
):
    return await svc.get_task(task_id, subject)


@router.put("/{task_id}", response_model=TaskRead)
async def update_task(
    task_id: int,
    body: TaskUpdate,
    subject: Subject = Depends(get_current_subject),
    svc: TaskService = Depends(_svc),
):
    return await svc.update_task(
        task_id,
        subject,
        title=body.title,
        description=body.description,
        due_date=body.due_date,
    )


@router.patch("/{task_id}/toggle", response_model=TaskRead)
async def toggle_task(
    task_id: int,
    subject: Subject = Depends(get_current_subject),
    svc: TaskService = Depends(_svc),
):
    """Flip a task between completed and not completed."""
    return await svc.toggle_task(task_id, subject)


@router.delete("/{task_id}")
async def delete_task(
    task_id: int,
    subject: Subject = Depends(get_current_subject),
    svc: TaskService = Depends(_svc),
):
    await svc.delete_task(task_id, subject)
    return {"message": "Task deleted successfully"}
