"""Resource owner guard — FastAPI auth dependencies for protected routes.

Learn: The project and task services never call the identity service to
check a token. get_current_subject verifies the bearer token locally with
the app's TokenCodec and hands the route a Subject. Anything wrong with the
header (missing, wrong scheme, bad signature, expired) becomes the same 401.

Ownership is a separate step: services load the record first (404 if it
doesn't exist), then call ensure_owner (403 if it belongs to someone else).
"""

from dataclasses import dataclass
from typing import Callable, Optional

from fastapi import Depends, Header, Request

from projectflow.auth.tokens import TokenCodec, TokenError
from projectflow.errors import Forbidden, Unauthorized

BEARER_PREFIX = "bearer "


@dataclass(frozen=True)
class Subject:
    """The verified caller of a request."""

    id: int
    email: str
    token: str

    @property
    def authorization(self) -> str:
        """Header value for forwarding this caller's identity to a peer service."""
        return f"Bearer {self.token}"


def extract_bearer(header: Optional[str]) -> Optional[str]:
    """Return the token from an Authorization header, or None."""
    if not header or not header.lower().startswith(BEARER_PREFIX):
        return None
    token = header[len(BEARER_PREFIX):].strip()
    return token or None


def authenticate(
    header: Optional[str],
    codec: TokenCodec,
    now=None,
) -> Subject:
    """Turn an Authorization header into a trusted Subject.

    Raises Unauthorized on any failure.
    """
    token = extract_bearer(header)
    if token is None:
        raise Unauthorized()
    try:
        claims = codec.verify(token, now=now)
    except TokenError:
        raise Unauthorized() from None
    return Subject(id=claims.subject_id, email=claims.subject_key, token=token)


def ensure_owner(owner_id: int, subject: Subject) -> None:
    """Raise Forbidden unless the subject owns the resource."""
    if owner_id != subject.id:
        raise Forbidden()


# ─── FastAPI dependencies ────────────────────────────────


def get_token_codec(request: Request) -> TokenCodec:
    return request.app.state.codec


def get_clock(request: Request) -> Callable:
    return request.app.state.clock


async def get_current_subject(
    authorization: Optional[str] = Header(None),
    codec: TokenCodec = Depends(get_token_codec),
    clock: Callable = Depends(get_clock),
) -> Subject:
    """Extract the current subject (required, 401 if no valid token)."""
    return authenticate(authorization, codec, now=clock())
