"""Health check endpoints."""

from typing import Any

from fastapi import APIRouter

from backend.app.config import get_settings

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    """Simple health check for Docker/k8s.

    Returns:
        200 OK always (application is running)
    """
    return {"status": "ok"}


@router.get("/healthz")
async def healthz() -> dict[str, Any]:
    """Health check with component status.

    The service holds no connections of its own; the replanner is reported as
    configured (HTTP) or deterministic (offline fallback).
    """
    settings = get_settings()
    return {
        "status": "ok",
        "components": {
            "replanner": "http" if settings.replanner_url else "deterministic",
        },
    }
