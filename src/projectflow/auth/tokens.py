"""JWT token creation and verification.

Learn: JWT (JSON Web Token) provides stateless authentication. The token
carries everything a service needs to trust the caller:
- sub: the user's email (natural key)
- uid: the user's integer id
- iat / exp: issue and expiry times as epoch seconds

Nothing is stored server-side. Every service that holds the shared secret
can verify a token on its own, so the project and task services never call
back to the identity service per request.

Expiry is checked here rather than by PyJWT so the clock can be injected:
a token is invalid once now >= exp.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
import structlog

logger = structlog.get_logger()

REQUIRED_CLAIMS = ["sub", "uid", "iat", "exp"]


class TokenError(Exception):
    """Raised for every kind of bad token.

    The message is always the same so callers can't tell an expired token
    from a forged one. The log line says which it was.
    """

    def __init__(self):
        super().__init__("Invalid token")


@dataclass(frozen=True)
class TokenClaims:
    subject_key: str
    subject_id: int
    issued_at: datetime
    expires_at: datetime


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenCodec:
    """Issue and verify signed tokens with an injected secret."""

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        lifetime: timedelta = timedelta(hours=24),
    ):
        if not secret:
            raise ValueError("Token signing secret must not be empty")
        self._secret = secret
        self.algorithm = algorithm
        self.lifetime = lifetime

    def issue(
        self, subject_key: str, subject_id: int, now: Optional[datetime] = None
    ) -> str:
        """Create a signed token for the given subject."""
        issued = int((now or utcnow()).timestamp())
        payload = {
            "sub": subject_key,
            "uid": subject_id,
            "iat": issued,
            "exp": issued + int(self.lifetime.total_seconds()),
        }
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def verify(self, token: str, now: Optional[datetime] = None) -> TokenClaims:
        """Check signature and expiry, return the embedded claims.

        Raises TokenError on any failure.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                options={
                    "require": REQUIRED_CLAIMS,
                    "verify_exp": False,
                    "verify_iat": False,
                },
            )
        except jwt.InvalidTokenError as e:
            logger.info("token.rejected", reason=str(e))
            raise TokenError() from None

        claims = _claims_from_payload(payload)
        if claims is None:
            logger.info("token.rejected", reason="malformed claims")
            raise TokenError()

        current = int((now or utcnow()).timestamp())
        if current >= int(claims.expires_at.timestamp()):
            logger.info(
                "token.expired",
                subject_id=claims.subject_id,
                expired_at=claims.expires_at.isoformat(),
            )
            raise TokenError()

        return claims

    def extract_subject_id(self, token: str) -> int:
        """Read the subject id WITHOUT checking the signature.

        Only for code that has already called verify() on this token.
        Never use it to decide whether a caller is trusted.
        """
        try:
            payload = jwt.decode(token, options={"verify_signature": False})
        except jwt.InvalidTokenError:
            raise TokenError() from None
        uid = payload.get("uid")
        if not _is_int(uid):
            raise TokenError()
        return uid


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _claims_from_payload(payload: dict) -> Optional[TokenClaims]:
    sub, uid = payload.get("sub"), payload.get("uid")
    iat, exp = payload.get("iat"), payload.get("exp")
    if not isinstance(sub, str) or not all(_is_int(v) for v in (uid, iat, exp)):
        return None
    return TokenClaims(
        subject_key=sub,
        subject_id=uid,
        issued_at=datetime.fromtimestamp(iat, tz=timezone.utc),
        expires_at=datetime.fromtimestamp(exp, tz=timezone.utc),
    )
