"""
Nexus API - Main Application.

- API versioning with /v1/ prefix
- Atomic rate limiting (INCR/EXPIRE)
- Query-based workspace/board authorization
- Fail-fast on dangerous defaults in production
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from nexus.routers.health import router as health_router
from nexus.routers.auth import router as auth_router
from nexus.routers.users import router as users_router
from nexus.routers.workspaces import router as workspaces_router
from nexus.routers.boards import router as boards_router
from nexus.routers.cards import router as cards_router
from nexus.routers.invites import router as invites_router
from nexus.routers.meta import router as meta_router
from nexus.core.logging import setup_logging
from nexus.core.errors import register_exception_handlers
from nexus.core.rate_limit import RateLimitMiddleware
from nexus.core.config import check_production_safety, settings

setup_logging()

# =============================================================================
# Production Safety Check (fail fast if misconfigured)
# =============================================================================
check_production_safety()

# =============================================================================
# Application Setup
# =============================================================================
app = FastAPI(
    title="Nexus API",
    description="Multi-tenant project management: workspaces, boards, lists and cards",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

register_exception_handlers(app)

# =============================================================================
# Middleware (order matters: first added = last executed)
# =============================================================================
app.add_middleware(RateLimitMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# =============================================================================
# Health/Metrics endpoints (no version prefix - for k8s probes)
# =============================================================================
app.include_router(health_router)

# =============================================================================
# API V1 Routes (with /v1 prefix)
# =============================================================================
V1_PREFIX = "/v1"

app.include_router(auth_router, prefix=V1_PREFIX)
app.include_router(users_router, prefix=V1_PREFIX)
app.include_router(workspaces_router, prefix=V1_PREFIX)
app.include_router(boards_router, prefix=V1_PREFIX)
app.include_router(cards_router, prefix=V1_PREFIX)
app.include_router(invites_router, prefix=V1_PREFIX)
app.include_router(meta_router, prefix=V1_PREFIX)


# =============================================================================
# Root endpoints
# =============================================================================
@app.get("/", tags=["root"])
def root():
    """API root - returns version info."""
    return {
        "name": "nexus",
        "version": "1.0.0",
        "api": "/v1",
        "docs": "/docs",
        "health": "/healthz",
    }


@app.get("/v1", tags=["root"])
def api_v1_root():
    """API V1 root - returns available endpoints."""
    return {
        "version": "v1",
        "status": "stable",
        "env": settings.ENV,
        "endpoints": {
            "auth": "/v1/auth",
            "users": "/v1/users",
            "workspaces": "/v1/workspaces",
            "members": "/v1/workspaces/{id}/members",
            "boards": "/v1/workspaces/{id}/boards",
            "cards": "/v1/cards",
            "invites": "/v1/invites",
            "meta": "/v1/meta",
        },
    }
