"""Pydantic schemas for the identity service."""

from datetime import datetime
from typing import Optional

from pydantic import Field

from projectflow.schemas.base import CamelModel


class RegisterRequest(CamelModel):
    email: str = Field(..., min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    name: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=8)


class LoginRequest(CamelModel):
    email: str
    password: str


class AuthResponse(CamelModel):
    """Returned by register and login. Never contains the password hash."""
    token: str
    id: int
    email: str
    name: str
    token_type: str = "bearer"


class ValidateResponse(CamelModel):
    valid: bool
    user_id: Optional[int] = None


class UserRead(CamelModel):
    id: int
    email: str
    name: str
    created_at: Optional[datetime] = None
