"""Project ownership client — used by the task service.

Learn: Tasks belong to projects, and projects live in the project service's
database. The task service can't query that table, so before it touches a
project's tasks it asks the project service directly, forwarding the
caller's own bearer token:

    GET /api/projects/{id}?stats=false

The project service runs its normal lookup + ownership check and the status
code is the answer. Unlike the stats fetcher this fails closed: if the
project service can't answer, the task operation is refused with a 503.
"""

from typing import Optional

import httpx
import structlog

from projectflow.auth.guard import Subject
from projectflow.errors import DependencyUnavailable, Forbidden, NotFound, Unauthorized

logger = structlog.get_logger()


class ProjectAccessClient:
    """Ask the project service whether a subject owns a project."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 2.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
        )

    async def ensure_owned(self, project_id: int, subject: Subject) -> None:
        """Raise NotFound / Forbidden / Unauthorized unless subject owns project_id."""
        try:
            async with self._client() as client:
                resp = await client.get(
                    f"/api/projects/{project_id}",
                    params={"stats": "false"},
                    headers={"Authorization": subject.authorization},
                )
        except httpx.HTTPError as e:
            logger.warning(
                "project_access.unreachable",
                project_id=project_id,
                error=type(e).__name__,
            )
            raise DependencyUnavailable("Project service is unavailable") from e

        if resp.status_code == 200:
            return
        if resp.status_code == 404:
            raise NotFound("Project not found")
        if resp.status_code == 403:
            raise Forbidden()
        if resp.status_code == 401:
            raise Unauthorized()

        logger.warning(
            "project_access.unexpected_status",
            project_id=project_id,
            status=resp.status_code,
        )
        raise DependencyUnavailable("Project service is unavailable")
