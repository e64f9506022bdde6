"""API route aggregation, one router per service.

Learn: Auth is applied at the include_router level using FastAPI's
dependencies parameter. This protects all routes in a router without
modifying individual handlers. Handlers that need the caller declare
get_current_subject again; FastAPI caches it per request, so the token is
verified once. Health and the identity routes are open.
"""

from fastapi import APIRouter, Depends

from projectflow.api.health import router as health_router
from projectflow.api.identity import router as identity_router
from projectflow.api.projects import router as projects_router
from projectflow.api.tasks import router as tasks_router
from projectflow.auth.guard import get_current_subject

# All protected routers require a valid bearer token
_auth = [Depends(get_current_subject)]


def identity_api() -> APIRouter:
    router = APIRouter()
    router.include_router(health_router, tags=["health"])
    router.include_router(identity_router, prefix="/api", tags=["auth"])
    return router


def projects_api() -> APIRouter:
    router = APIRouter()
    router.include_router(health_router, tags=["health"])
    router.include_router(
        projects_router, prefix="/api", tags=["projects"], dependencies=_auth
    )
    return router


def tasks_api() -> APIRouter:
    router = APIRouter()
    router.include_router(health_router, tags=["health"])
    router.include_router(tasks_router, prefix="/api", tags=["tasks"], dependencies=_auth)
    return router
