from __future__ import annotations

from fastapi import APIRouter

from podstyles import __version__
from podstyles.core.observability.metrics import inc_named, snapshot_named

router = APIRouter()


@router.get("/health")
def health_check():
    return {"status": "healthy"}


@router.get("/api/v1/health/live")
def liveness():
    inc_named("health_live")
    return {"status": "alive", "version": __version__}


@router.get("/api/v1/metrics/named")
def named_counters():
    """In-process counter snapshot; the Prometheus view lives at /metrics."""
    return {"counters": snapshot_named()}
