"""Prometheus metrics for observability."""
from prometheus_client import Counter, generate_latest, CONTENT_TYPE_LATEST

# =============================================================================
# Auth Metrics
# =============================================================================

auth_events = Counter(
    "nexus_auth_events_total",
    "Authentication events by outcome",
    ["event", "outcome"],
)

tokens_issued = Counter(
    "nexus_tokens_issued_total",
    "Access/refresh token pairs issued",
    ["reason"],
)

# =============================================================================
# Access Control Metrics
# =============================================================================

access_denied = Counter(
    "nexus_access_denied_total",
    "Authorization failures",
    ["reason"],
)

# =============================================================================
# Invitation Metrics
# =============================================================================

invites = Counter(
    "nexus_invites_total",
    "Invitation lifecycle events",
    ["event"],
)


def get_metrics():
    """Generate Prometheus metrics output."""
    return generate_latest()


def get_metrics_content_type():
    """Get Prometheus content type."""
    return CONTENT_TYPE_LATEST
