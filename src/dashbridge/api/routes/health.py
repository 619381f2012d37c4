"""Health check endpoints."""

from fastapi import APIRouter, Depends, Request, Response

from dashbridge import __version__
from dashbridge.config import Settings, get_settings

router = APIRouter()


@router.get("/health")
async def health_check() -> dict:
    """Basic health check."""
    return {
        "status": "healthy",
        "version": __version__,
    }


@router.get("/health/ready")
async def readiness_check(
    request: Request,
    settings: Settings = Depends(get_settings),
):
    """Readiness probe: the proxy client is up and a credential is configured."""
    if getattr(request.app.state, "http_client", None) is None:
        return Response(status_code=503, content="HTTP client not ready")

    if not settings.dashscope_api_key:
        return Response(status_code=503, content="DashScope API key not configured")

    return {"status": "ready"}


@router.get("/health/live")
async def liveness_check() -> dict:
    """Liveness probe."""
    return {"status": "alive"}
