"""Error taxonomy shared by the three services.

Learn: Services raise these; they never build HTTP responses themselves.
main.py registers one exception handler that turns any ProjectFlowError
into {"message": ...} with the matching status code. Routes stay free of
try/except boilerplate.
"""

from typing import Optional


class ProjectFlowError(Exception):
    """Base for all domain errors that map to an HTTP response."""

    status_code = 400
    default_message = "Request could not be processed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthorized(ProjectFlowError):
    """No verifiable caller (missing, malformed, expired or mis-signed token)."""

    status_code = 401
    default_message = "Authentication required"


class Forbidden(ProjectFlowError):
    """Verified caller, but not the owner of the resource."""

    status_code = 403
    default_message = "You do not have access to this resource"


class NotFound(ProjectFlowError):
    status_code = 404
    default_message = "Resource not found"


class DuplicateIdentity(ProjectFlowError):
    status_code = 409
    default_message = "Email already registered"


class InvalidCredentials(ProjectFlowError):
    """Unknown email and wrong password share this one error."""

    status_code = 401
    default_message = "Invalid email or password"


class ValidationFailed(ProjectFlowError):
    status_code = 400
    default_message = "Invalid input"


class DependencyUnavailable(ProjectFlowError):
    """A peer service could not be reached or answered nonsense.

    The stats fetcher converts this into its zero fallback; only the
    project ownership check lets it reach a client (as a 503).
    """

    status_code = 503
    default_message = "A required service is unavailable"
