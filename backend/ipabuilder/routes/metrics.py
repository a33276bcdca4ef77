"""
Metrics summary endpoint.
"""

from typing import Optional

from fastapi import APIRouter, Request
from pydantic import BaseModel

router = APIRouter(prefix="/metrics", tags=["metrics"])


class MetricsSummaryResponse(BaseModel):
    generations_today: int
    generations_all_time: int
    avg_generation_ms: Optional[float] = None
    unsent: int


@router.get("/summary", response_model=MetricsSummaryResponse)
async def metrics_summary(request: Request):
    """Dashboard counters: generations today, all time, and average speed."""
    metrics = request.app.state.metrics
    return MetricsSummaryResponse(
        **metrics.summary(),
        unsent=len(metrics.unsent()),
    )
