"""Test fixtures — three in-process services wired to each other.

Learn: Testing pattern for async SQLAlchemy + FastAPI + httpx:

1. Each service gets its own in-memory SQLite database (aiosqlite +
   StaticPool), created fresh per test, no cross-test pollution.
2. Apps are built with the real factories and a shared test Settings, so
   every service verifies tokens with the same secret, just like prod.
3. The project service's StatsFetcher and the task service's
   ProjectAccessClient talk to the other app through httpx.ASGITransport,
   so cross-service calls run for real, without sockets.
4. A FrozenClock is injected everywhere so expiry can be tested exactly.

httpx's ASGITransport doesn't run lifespan, so tables are created here.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from projectflow.clients.projects import ProjectAccessClient
from projectflow.clients.task_stats import StatsFetcher
from projectflow.config import Settings
from projectflow.db.engine import Database
from projectflow.db.models import IdentityBase, ProjectBase, TaskBase
from projectflow.main import create_identity_app, create_project_app, create_task_app

TEST_SECRET = "test-secret-not-for-production-0123456789"
SQLITE_URL = "sqlite+aiosqlite://"


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@dataclass
class Services:
    identity: FastAPI
    projects: FastAPI
    tasks: FastAPI
    identity_db: Database
    project_db: Database
    task_db: Database


@pytest.fixture
def settings() -> Settings:
    return Settings(
        jwt_secret=TEST_SECRET,
        bcrypt_rounds=4,
        identity_database_url=SQLITE_URL,
        project_database_url=SQLITE_URL,
        task_database_url=SQLITE_URL,
        task_service_url="http://tasks",
        project_service_url="http://projects",
        stats_timeout_seconds=5.0,
        auto_create_tables=False,
    )


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc))


async def _database(metadata) -> Database:
    db = Database(SQLITE_URL, metadata)
    await db.create_all()
    return db


@pytest_asyncio.fixture()
async def services(settings, clock):
    """All three apps, each with its own database, calling each other in-process."""
    identity_db = await _database(IdentityBase.metadata)
    project_db = await _database(ProjectBase.metadata)
    task_db = await _database(TaskBase.metadata)

    identity = create_identity_app(settings, database=identity_db, clock=clock)
    tasks = create_task_app(settings, database=task_db, clock=clock)
    projects = create_project_app(
        settings,
        database=project_db,
        clock=clock,
        stats_fetcher=StatsFetcher(
            settings.task_service_url,
            timeout=settings.stats_timeout_seconds,
            transport=ASGITransport(app=tasks),
        ),
    )
    tasks.state.project_access = ProjectAccessClient(
        settings.project_service_url,
        transport=ASGITransport(app=projects),
    )

    yield Services(identity, projects, tasks, identity_db, project_db, task_db)

    for db in (identity_db, project_db, task_db):
        await db.dispose()


def _client(app: FastAPI) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest_asyncio.fixture()
async def identity_client(services):
    async with _client(services.identity) as ac:
        yield ac


@pytest_asyncio.fixture()
async def project_client(services):
    async with _client(services.projects) as ac:
        yield ac


@pytest_asyncio.fixture()
async def task_client(services):
    async with _client(services.tasks) as ac:
        yield ac


@pytest.fixture
def register(identity_client):
    """Register a user and return the auth response body (token, id, ...)."""

    async def _register(email: str, name: str = "Test User", password: str = "password_123"):
        r = await identity_client.post(
            "/api/auth/register",
            json={"email": email, "name": name, "password": password},
        )
        assert r.status_code == 201, r.text
        return r.json()

    return _register