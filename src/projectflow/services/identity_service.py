"""Identity service — registration, login, token validation.

Learn: This is the only service that knows passwords. It issues tokens;
every other service verifies them locally. validate() exists for callers
that also want to know the identity still exists, something a self-contained
token can't tell you: a token stays signature-valid after its user is
deleted, so validate() re-checks the store every time.

Anti-enumeration: login gives the same InvalidCredentials for an unknown
email and for a wrong password, and runs a bcrypt check in both cases so
the timing doesn't differ either.
"""

from dataclasses import dataclass
from datetime import datetime
from functools import lru_cache
from typing import Callable, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from projectflow.auth.passwords import hash_password, verify_password
from projectflow.auth.tokens import TokenCodec, TokenError, utcnow
from projectflow.db.models import User
from projectflow.errors import DuplicateIdentity, InvalidCredentials, NotFound

logger = structlog.get_logger()

# Compared against when the email is unknown, so login costs one bcrypt
# check either way. Built with the same cost factor as real hashes;
# a cheaper one would make unknown emails measurably faster to reject.
@lru_cache(maxsize=None)
def _dummy_hash(rounds: int) -> str:
    return hash_password("projectflow-no-such-user", rounds=rounds)


@dataclass(frozen=True)
class AuthResult:
    token: str
    id: int
    email: str
    name: str


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    user_id: Optional[int] = None


class IdentityService:
    """Business logic for identities and token issuance."""

    def __init__(
        self,
        db: AsyncSession,
        codec: TokenCodec,
        clock: Callable[[], datetime] = utcnow,
        bcrypt_rounds: int = 12,
    ):
        self.db = db
        self.codec = codec
        self.clock = clock
        self.bcrypt_rounds = bcrypt_rounds

    async def _find_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.email == email))
        return result.scalars().first()

    # ─── Register ────────────────────────────────────────

    async def register(self, email: str, name: str, password: str) -> AuthResult:
        """Create an identity and return a token for it."""
        if await self._find_by_email(email):
            raise DuplicateIdentity()

        user = User(
            email=email,
            name=name,
            password_hash=hash_password(password, rounds=self.bcrypt_rounds),
        )
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError:
            # Lost a race with a concurrent signup for the same email.
            await self.db.rollback()
            raise DuplicateIdentity() from None
        await self.db.refresh(user)

        logger.info("identity.registered", user_id=user.id)
        return self._result_for(user)

    # ─── Login ───────────────────────────────────────────

    async def login(self, email: str, password: str) -> AuthResult:
        user = await self._find_by_email(email)
        if user is None:
            verify_password(password, _dummy_hash(self.bcrypt_rounds))
            logger.info("identity.login_failed", reason="unknown email")
            raise InvalidCredentials()

        if not verify_password(password, user.password_hash):
            logger.info("identity.login_failed", reason="bad password", user_id=user.id)
            raise InvalidCredentials()

        logger.info("identity.logged_in", user_id=user.id)
        return self._result_for(user)

    # ─── Validate ────────────────────────────────────────

    async def validate(self, token: Optional[str]) -> ValidationResult:
        """Check a token and that its subject still exists. Never raises."""
        if not token:
            return ValidationResult(valid=False)
        try:
            claims = self.codec.verify(token, now=self.clock())
        except TokenError:
            return ValidationResult(valid=False)

        if await self._find_by_email(claims.subject_key) is None:
            logger.info("identity.validate_unknown_subject", user_id=claims.subject_id)
            return ValidationResult(valid=False)
        return ValidationResult(valid=True, user_id=claims.subject_id)

    # ─── Account ─────────────────────────────────────────

    async def get_user(self, user_id: int) -> User:
        user = await self.db.get(User, user_id)
        if user is None:
            raise NotFound("User not found")
        return user

    async def delete_user(self, user_id: int) -> None:
        """Delete an identity. Its outstanding tokens stop validating."""
        user = await self.get_user(user_id)
        await self.db.delete(user)
        await self.db.commit()
        logger.info("identity.deleted", user_id=user_id)

    def _result_for(self, user: User) -> AuthResult:
        token = self.codec.issue(user.email, user.id, now=self.clock())
        return AuthResult(token=token, id=user.id, email=user.email, name=user.name)
