from fastapi import APIRouter, Response

from nexus.db.session import check_db
from nexus.core.redis import check_redis
from nexus.core.metrics import get_metrics, get_metrics_content_type

router = APIRouter(tags=["health"])


@router.get("/healthz")
def healthz():
    """Liveness probe - Is the service alive?"""
    return {"ok": True}


@router.get("/readyz")
def readyz():
    """Readiness probe - Can we reach PostgreSQL and Redis?"""
    db_ok = check_db()
    redis_ok = check_redis()
    return {"ok": db_ok and redis_ok, "db": db_ok, "redis": redis_ok}


@router.get("/metrics")
def metrics():
    """
    Prometheus metrics endpoint.

    Exposed metrics:
    - nexus_auth_events_total{event, outcome}
    - nexus_tokens_issued_total{reason}
    - nexus_access_denied_total{reason}
    - nexus_invites_total{event}
    """
    return Response(
        content=get_metrics(),
        media_type=get_metrics_content_type(),
    )
