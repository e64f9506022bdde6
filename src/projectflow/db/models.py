"""SQLAlchemy ORM models — one declarative base per service.

Learn: Each service owns its tables exclusively and lives in its own
database, so each gets its own DeclarativeBase (and MetaData). create_all
on IdentityBase never touches the projects table, and nothing here has a
ForeignKey across services: Task.project_id is a plain integer that only
the project service can resolve.

Key concepts:
- Integer autoincrement primary keys (opaque handles in the API)
- server_default for created_at so raw inserts get timestamps too
- onupdate for updated_at (last write wins)
"""

from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class IdentityBase(DeclarativeBase):
    """Tables owned by the identity service."""
    pass


class ProjectBase(DeclarativeBase):
    """Tables owned by the project service."""
    pass


class TaskBase(DeclarativeBase):
    """Tables owned by the task service."""
    pass


# ══════════════════════════════════════════════════════════════
# Identity service
# ══════════════════════════════════════════════════════════════


class User(IdentityBase):
    """A registered identity. Email is the natural key.

    Learn: Only the bcrypt hash is stored. The unique constraint on email
    backs up the service-level duplicate check against concurrent signups.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


# ══════════════════════════════════════════════════════════════
# Project service
# ══════════════════════════════════════════════════════════════


class Project(ProjectBase):
    """A project owned directly by one identity (user_id)."""

    __tablename__ = "projects"
    # Ids are never reused: tasks of a deleted project stay in the task
    # service keyed by its id, and a new project must not inherit them.
    # Postgres sequences already behave this way; SQLite needs AUTOINCREMENT.
    __table_args__ = (
        Index("idx_projects_user", "user_id"),
        {"sqlite_autoincrement": True},
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=utcnow
    )


# ══════════════════════════════════════════════════════════════
# Task service
# ══════════════════════════════════════════════════════════════


class Task(TaskBase):
    """A task belonging to a project (not directly to a user).

    Learn: Ownership of a task is derived from its project, which lives in
    another service. The task service asks the project service whether the
    caller owns project_id before acting on it.
    """

    __tablename__ = "tasks"
    __table_args__ = (
        Index("idx_tasks_project", "project_id"),
        Index("idx_tasks_project_completed", "project_id", "completed"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    project_id: Mapped[int] = mapped_column(Integer, nullable=False)
    due_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=utcnow
    )
