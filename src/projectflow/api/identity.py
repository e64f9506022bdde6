"""Identity API — registration, login, token validation, account.

Learn: Routes for the identity service:
- POST /auth/register → create an identity, returns a token
- POST /auth/login → email/password → token
- POST /auth/validate → is this token good AND does its user still exist?
- GET /auth/me → current user info
- DELETE /auth/me → delete the current identity

validate never fails: a missing or garbage header is just {"valid": false}.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from projectflow.auth.guard import Subject, extract_bearer, get_current_subject
from projectflow.db.engine import get_db
from projectflow.schemas.auth import (
    AuthResponse,
    LoginRequest,
    RegisterRequest,
    UserRead,
    ValidateResponse,
)
from projectflow.services.identity_service import IdentityService

router = APIRouter(prefix="/auth")


def _svc(request: Request, db: AsyncSession = Depends(get_db)) -> IdentityService:
    state = request.app.state
    return IdentityService(
        db,
        state.codec,
        clock=state.clock,
        bcrypt_rounds=state.settings.bcrypt_rounds,
    )


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(body: RegisterRequest, svc: IdentityService = Depends(_svc)):
    """Create a new identity. Email must be unused."""
    result = await svc.register(body.email, body.name, body.password)
    return AuthResponse.model_validate(result)


@router.post("/login", response_model=AuthResponse)
async def login(body: LoginRequest, svc: IdentityService = Depends(_svc)):
    """Login with email and password → token."""
    result = await svc.login(body.email, body.password)
    return AuthResponse.model_validate(result)


@router.post("/validate", response_model=ValidateResponse)
async def validate(
    authorization: Optional[str] = Header(None),
    svc: IdentityService = Depends(_svc),
):
    result = await svc.validate(extract_bearer(authorization))
    return ValidateResponse(valid=result.valid, user_id=result.user_id)


@router.get("/me", response_model=UserRead)
async def get_me(
    subject: Subject = Depends(get_current_subject),
    svc: IdentityService = Depends(_svc),
):
    """Get the current authenticated user's info."""
    return await svc.get_user(subject.id)


@router.delete("/me")
async def delete_me(
    subject: Subject = Depends(get_current_subject),
    svc: IdentityService = Depends(_svc),
):
    """Delete the current identity. Its tokens stop validating."""
    await svc.delete_user(subject.id)
    return {"message": "Account deleted successfully"}
