"""Async SQLAlchemy engine and session factory, one per service.

Learn: SQLAlchemy 2.0 async mode. create_async_engine for connection pooling,
AsyncSession for per-request database access, dependency injection via FastAPI.

Each app builds its own Database from its own URL and keeps it on app.state,
so the three services can run in one process (tests) without sharing a
connection pool or a schema.
"""

from typing import AsyncIterator

from fastapi import Request
from sqlalchemy import MetaData, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool


def _engine_for(url: str, echo: bool) -> AsyncEngine:
    if url.startswith("sqlite"):
        # In-memory SQLite only lives as long as its single connection.
        return create_async_engine(
            url,
            echo=echo,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    # Connection pool: min 5, max 20 connections.
    return create_async_engine(url, echo=echo, pool_size=5, max_overflow=15)


class Database:
    """Engine + session factory for one service's database."""

    def __init__(self, url: str, metadata: MetaData, echo: bool = False):
        self.url = url
        self.metadata = metadata
        self.engine = _engine_for(url, echo)
        # Session factory; each request gets its own session.
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def create_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(self.metadata.create_all)

    async def ping(self) -> None:
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def dispose(self) -> None:
        await self.engine.dispose()


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """FastAPI dependency: yields a session per request, auto-closes."""
    database: Database = request.app.state.db
    async with database.session_factory() as session:
        try:
            yield session
        finally:
            await session.close()
