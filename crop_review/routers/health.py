"""
Health check endpoint.
"""
from datetime import datetime, timezone

from fastapi import APIRouter, Request

from crop_review.config import APP_VERSION

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(request: Request):
    """
    Basic liveness/uptime check, with live job counts once started.
    """
    startup_time = getattr(request.app.state, "startup_time", None)
    lifecycle = getattr(request.app.state, "lifecycle", None)
    now = datetime.now(timezone.utc)

    if startup_time is None:
        uptime_seconds = 0
    else:
        uptime_seconds = int((now - startup_time).total_seconds())

    return {
        "status": "ok",
        "uptimeSeconds": uptime_seconds,
        "version": APP_VERSION,
        "jobs": lifecycle.counts() if lifecycle else None,
    }
