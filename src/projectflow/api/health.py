"""Health check endpoint.

Learn: Simple GET endpoint that verifies the server is running and its
own database is reachable. Peer services are deliberately not checked:
the project service stays healthy while the task service is down.
"""

from fastapi import APIRouter, Request

from projectflow import __version__

router = APIRouter()


@router.get("/health")
async def health_check(request: Request):
    """Check server health and database connectivity."""
    checks = {
        "server": "ok",
        "service": request.app.state.service_name,
        "version": __version__,
    }

    try:
        await request.app.state.db.ping()
        checks["database"] = "ok"
    except Exception as e:
        checks["database"] = f"error: {type(e).__name__}"

    status = "healthy" if checks["database"] == "ok" else "degraded"
    return {"status": status, **checks}
