"""Project API routes.

Learn: Every route here is protected at the include_router level (see
api/__init__.py), and additionally takes the Subject so the service can
scope queries and check ownership. /search is declared before /{project_id}
so it isn't swallowed by the path parameter.
"""

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from projectflow.auth.guard import Subject, get_current_subject
from projectflow.db.engine import get_db
from projectflow.schemas.project import ProjectRead, ProjectRequest
from projectflow.services.project_service import ProjectService

router = APIRouter(prefix="/projects")


def _svc(request: Request, db: AsyncSession = Depends(get_db)) -> ProjectService:
    return ProjectService(db, request.app.state.stats_fetcher)


@router.post("", response_model=ProjectRead, status_code=201)
async def create_project(
    body: ProjectRequest,
    subject: Subject = Depends(get_current_subject),
    svc: ProjectService = Depends(_svc),
):
    return await svc.create_project(subject, body.title, body.description)


@router.get("", response_model=list[ProjectRead])
async def list_projects(
    subject: Subject = Depends(get_current_subject),
    svc: ProjectService = Depends(_svc),
):
    """List the caller's projects, each with task stats."""
    return await svc.list_projects(subject)


@router.get("/search", response_model=list[ProjectRead])
async def search_projects(
    query: str = Query(..., min_length=1, description="Title substring"),
    subject: Subject = Depends(get_current_subject),
    svc: ProjectService = Depends(_svc),
):
    return await svc.search_projects(subject, query)


@router.get("/{project_id}", response_model=ProjectRead)
async def get_project(
    project_id: int,
    stats: bool = Query(True, description="Include task stats from the task service"),
    subject: Subject = Depends(get_current_subject),
    svc: ProjectService = Depends(_svc),
):
    """Get one project. 404 if it doesn't exist, 403 if it isn't yours."""
    return await svc.get_project(project_id, subject, with_stats=stats)


@router.put("/{project_id}", response_model=ProjectRead)
async def update_project(
    project_id: int,
    body: ProjectRequest,
    subject: Subject = Depends(get_current_subject),
    svc: ProjectService = Depends(_svc),
):
    return await svc.update_project(project_id, subject, body.title, body.description)


@router.delete("/{project_id}")
async def delete_project(
    project_id: int,
    subject: Subject = Depends(get_current_subject),
    svc: ProjectService = Depends(_svc),
):
    await svc.delete_project(project_id, subject)
    return {"message": "Project deleted successfully"}
