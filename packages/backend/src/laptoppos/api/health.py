"""Health check endpoint.

Learn: Simple GET endpoint that verifies the server is running, reports
whether the Redis relay is reachable, and how many /ws clients are open.
"""

from fastapi import APIRouter, Request

from laptoppos import __version__

router = APIRouter()


@router.get("/health")
async def health_check(request: Request):
    """Check server health and dependency connectivity."""
    checks = {"server": "ok", "version": __version__}

    # Check Redis
    try:
        from redis.asyncio import from_url
        from laptoppos.config import settings

        r = from_url(settings.redis_url)
        await r.ping()
        await r.aclose()
        checks["redis"] = "ok"
    except Exception as e:
        checks["redis"] = f"error: {e}"

    status = "healthy" if all(
        v == "ok" for k, v in checks.items() if k != "version"
    ) else "degraded"

    return {
        "status": status,
        **checks,
        "clients": request.app.state.hub.connected_clients_count(),
    }
