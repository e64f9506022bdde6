"""FastAPI application factories — one per service.

Learn: App factory pattern: each create_*_app() returns a configured
FastAPI instance for one service. They share _build_app for the common
parts (logging, token codec, database, middleware, error handlers) and
differ only in their router and their outbound client.

Everything a component needs is placed on app.state here, the composition
root: the signing secret goes into the TokenCodec, the task service URL
into the StatsFetcher. Nothing below this module reads Settings on its own.

Run one with uvicorn's factory mode, e.g.
    uvicorn projectflow.main:create_project_app --factory --port 8082
or via the CLI: projectflow serve projects
"""

from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from typing import Callable, Optional

import structlog
from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from projectflow import __version__
from projectflow.api import identity_api, projects_api, tasks_api
from projectflow.auth.tokens import TokenCodec, utcnow
from projectflow.clients.projects import ProjectAccessClient
from projectflow.clients.task_stats import StatsFetcher
from projectflow.config import Settings
from projectflow.config import settings as default_settings
from projectflow.db.engine import Database
from projectflow.db.models import IdentityBase, ProjectBase, TaskBase
from projectflow.errors import ProjectFlowError, Unauthorized
from projectflow.logging_config import configure_logging
from projectflow.middleware.request_id import RequestIdMiddleware

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: FastAPI lifespan replaces on_event("startup") / on_event("shutdown").
    Anything before `yield` runs at startup, after `yield` runs at shutdown.
    """
    state = app.state
    logger.info(
        "projectflow.starting",
        service=state.service_name,
        version=__version__,
        environment=state.settings.environment,
    )

    if state.settings.auto_create_tables:
        await state.db.create_all()

    if state.service_name == "tasks" and not state.settings.enforce_task_project_ownership:
        logger.warning(
            "projectflow.task_ownership_unchecked",
            detail="tasks accept any caller-supplied project id",
        )

    yield

    logger.info("projectflow.shutdown", service=state.service_name)
    await state.db.dispose()


# ─── Error handlers ──────────────────────────────────────


async def _domain_error(request: Request, exc: ProjectFlowError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthorized) else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.message},
        headers=headers,
    )


async def _storage_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("storage.error", error=type(exc).__name__, path=request.url.path)
    return JSONResponse(
        status_code=400,
        content={"message": "Request could not be processed"},
    )


# ─── Factories ───────────────────────────────────────────


def _build_app(
    service_name: str,
    title: str,
    router: APIRouter,
    settings: Settings,
    database: Database,
    clock: Optional[Callable[[], datetime]],
) -> FastAPI:
    configure_logging(settings.log_level, json=settings.log_json)

    app = FastAPI(title=title, version=__version__, lifespan=lifespan)
    app.state.service_name = service_name
    app.state.settings = settings
    app.state.db = database
    app.state.clock = clock or utcnow
    app.state.codec = TokenCodec(
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        lifetime=timedelta(hours=settings.token_expire_hours),
    )

    # ── Middleware stack ──────────────────────────────────────
    # Starlette middleware executes in reverse order of registration.
    # Request flow: CORS → RequestId → handler
    app.add_middleware(RequestIdMiddleware, service=service_name)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ProjectFlowError, _domain_error)
    app.add_exception_handler(SQLAlchemyError, _storage_error)

    app.include_router(router)
    return app


def create_identity_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> FastAPI:
    """Build the identity service (register, login, validate)."""
    settings = settings or default_settings
    database = database or Database(
        settings.identity_database_url, IdentityBase.metadata, echo=settings.debug
    )
    return _build_app(
        "identity", "ProjectFlow Identity", identity_api(), settings, database, clock
    )


def create_project_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    stats_fetcher: Optional[StatsFetcher] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> FastAPI:
    """Build the project service. Reads are enriched with task stats."""
    settings = settings or default_settings
    database = database or Database(
        settings.project_database_url, ProjectBase.metadata, echo=settings.debug
    )
    app = _build_app(
        "projects", "ProjectFlow Projects", projects_api(), settings, database, clock
    )
    app.state.stats_fetcher = stats_fetcher or StatsFetcher(
        settings.task_service_url, timeout=settings.stats_timeout_seconds
    )
    return app


def create_task_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    project_access: Optional[ProjectAccessClient] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> FastAPI:
    """Build the task service. Ownership is checked against the project service."""
    settings = settings or default_settings
    database = database or Database(
        settings.task_database_url, TaskBase.metadata, echo=settings.debug
    )
    app = _build_app(
        "tasks", "ProjectFlow Tasks", tasks_api(), settings, database, clock
    )
    app.state.project_access = project_access or ProjectAccessClient(
        settings.project_service_url,
        timeout=settings.project_access_timeout_seconds,
    )
    return app
