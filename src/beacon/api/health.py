"""Health check endpoint.

Simple GET endpoint that verifies the server is running, the notification
store is reachable, and reports how many live connections are registered.
"""

from fastapi import APIRouter, Request

from beacon import __version__
from beacon.errors import StorageError

router = APIRouter()


@router.get("/health")
async def health_check(request: Request):
    """Check server health and dependency connectivity."""
    checks = {"server": "ok", "version": __version__}

    # Check the notification store
    try:
        await request.app.state.store.ping()
        checks["store"] = "ok"
    except StorageError as e:
        checks["store"] = f"error: {e}"

    status = "healthy" if all(
        v == "ok" for k, v in checks.items() if k != "version"
    ) else "degraded"

    return {
        "status": status,
        **checks,
        "realtime": request.app.state.registry.stats(),
    }
