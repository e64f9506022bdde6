"""Aggregation fetcher — task statistics for the project service.

Learn: A project read is enriched with {totalTasks, completedTasks,
progressPercentage} from the task service. The task service being slow or
down must not break project reads, so fetch_stats has a fixed contract:

- one GET per call, bounded by `timeout` (httpx per-phase timeouts plus an
  overall asyncio.wait_for, so a slow trickle can't outlive the bound)
- success → the decoded triple, unchanged
- any failure → TaskStats.zero(), logged, never raised

No retries, no caching, no circuit breaker. Each call stands alone.
"""

import asyncio
from typing import Optional

import httpx
import pydantic
import structlog

from projectflow.errors import DependencyUnavailable
from projectflow.schemas.task import TaskStats

logger = structlog.get_logger()


class StatsFetcher:
    """Fetch per-project task stats from the task service with a fallback."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 0.3,
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

    async def fetch_stats(
        self, project_id: int, authorization: Optional[str] = None
    ) -> TaskStats:
        """Stats for one project, or the zero triple if anything goes wrong."""
        try:
            return await asyncio.wait_for(
                self._request(project_id, authorization), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            logger.warning(
                "stats.fetch_failed",
                project_id=project_id,
                error="timed out",
                timeout=self.timeout,
            )
        except DependencyUnavailable as e:
            logger.warning(
                "stats.fetch_failed", project_id=project_id, error=e.message
            )
        return TaskStats.zero()

    async def _request(
        self, project_id: int, authorization: Optional[str]
    ) -> TaskStats:
        headers = {"Authorization": authorization} if authorization else {}
        try:
            async with self._client() as client:
                resp = await client.get(
                    f"/api/tasks/project/{project_id}/stats", headers=headers
                )
                resp.raise_for_status()
                return TaskStats.model_validate(resp.json())
        except httpx.HTTPStatusError as e:
            raise DependencyUnavailable(
                f"task service returned {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise DependencyUnavailable(
                f"task service unreachable: {type(e).__name__}"
            ) from e
        except (ValueError, pydantic.ValidationError) as e:
            raise DependencyUnavailable("task service sent malformed stats") from e
