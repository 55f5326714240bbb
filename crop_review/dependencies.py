"""
FastAPI dependencies exposing the application-scoped lifecycle manager.
"""
from fastapi import Request

from crop_review.services.lifecycle import CropLifecycleManager


def get_lifecycle_manager(request: Request) -> CropLifecycleManager:
    """Return the manager created at startup (see main.lifespan)."""
    return request.app.state.lifecycle
