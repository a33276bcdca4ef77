"""
Health check endpoint.
"""

from fastapi import APIRouter, Request
from pydantic import BaseModel

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    status: str
    watching: bool


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request):
    """Liveness check. Also reports whether a watch loop is running."""
    runner = getattr(request.app.state, "watch_runner", None)
    return HealthResponse(
        status="ok",
        watching=runner is not None and runner.is_running,
    )
