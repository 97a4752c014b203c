"""
Tests for rate limiting.

Contract:
- Key: rate:{bucket}:{principal}:{group}
- Atomic: INCR + EXPIRE
- Groups: auth (5/min), mutate (30/min), read (120/min)
"""
from unittest.mock import MagicMock, patch

from fastapi.testclient import TestClient
from redis.exceptions import ConnectionError as RedisConnectionError

from nexus.core.config import settings
from nexus.core.rate_limit import check_rate_limit_atomic, get_bucket, get_rate_limit_key
from nexus.main import app


def fake_request(path: str = "/v1/workspaces", method: str = "GET") -> MagicMock:
    request = MagicMock()
    request.client.host = "127.0.0.1"
    request.url.path = path
    request.method = method
    return request


class TestRateLimitBasic:
    """Basic rate limit tests."""

    def test_rate_limit_headers_present(self, auth_headers):
        """Rate limit headers should be present in response (without bypass)."""
        client = TestClient(app)
        headers = {"Authorization": auth_headers["Authorization"]}

        response = client.get("/v1/workspaces", headers=headers)

        assert response.status_code == 200
        assert response.headers["X-RateLimit-Limit"] == str(settings.RATE_LIMIT_READ)
        assert "X-RateLimit-Remaining" in response.headers

    def test_health_endpoints_not_rate_limited(self):
        """Health endpoints should not be rate limited."""
        client = TestClient(app)
        for _ in range(20):
            response = client.get("/healthz")
            assert response.status_code == 200
            assert "X-RateLimit-Limit" not in response.headers

    def test_bypass_header_skips_limits(self, client: TestClient):
        for _ in range(settings.RATE_LIMIT_AUTH + 3):
            response = client.post(
                "/v1/auth/login",
                json={"email": "bypass@example.com", "password": "WrongPassword1!"},
            )
            assert response.status_code == 401


class TestRateLimitEnforcement:
    """Rate limit enforcement tests."""

    def test_auth_endpoints_limited(self):
        """Auth group allows RATE_LIMIT_AUTH requests per minute, then 429."""
        client = TestClient(app)
        statuses = []
        for _ in range(settings.RATE_LIMIT_AUTH + 2):
            response = client.post(
                "/v1/auth/login",
                json={"email": "limited@example.com", "password": "WrongPassword1!"},
            )
            statuses.append(response.status_code)

        assert statuses[:settings.RATE_LIMIT_AUTH] == [401] * settings.RATE_LIMIT_AUTH
        assert statuses[-1] == 429

    def test_429_has_retry_after(self):
        client = TestClient(app)
        response = None
        for _ in range(settings.RATE_LIMIT_AUTH + 1):
            response = client.post(
                "/v1/auth/forgot-password",
                json={"email": "retry@example.com"},
            )

        assert response.status_code == 429
        assert int(response.headers["Retry-After"]) > 0
        assert response.headers["X-RateLimit-Remaining"] == "0"


class TestRateLimitAtomic:
    """INCR/EXPIRE semantics."""

    def test_counts_up_to_limit(self, fake_redis):
        results = [check_rate_limit_atomic("rate:test:atomic", 3)[0] for _ in range(5)]

        assert results == [True, True, True, False, False]
        fake_redis.expire.assert_called_once_with("rate:test:atomic", 60)

    def test_remaining_decreases(self):
        _, first, _ = check_rate_limit_atomic("rate:test:remaining", 5)
        _, second, _ = check_rate_limit_atomic("rate:test:remaining", 5)

        assert (first, second) == (4, 3)

    def test_fails_open_when_redis_down(self):
        broken = MagicMock()
        broken.incr.side_effect = RedisConnectionError("down")

        with patch("nexus.core.rate_limit.redis_client", broken):
            allowed, remaining, retry_after = check_rate_limit_atomic("rate:test:down", 5)

        assert allowed is True
        assert remaining == 5
        assert retry_after == 0


class TestRateLimitKeys:
    """Test rate limit key structure."""

    def test_key_includes_bucket(self):
        key, _ = get_rate_limit_key(fake_request(), None)
        assert key.startswith(f"rate:{get_bucket()}:")

    def test_key_uses_user_id_when_authenticated(self):
        key, _ = get_rate_limit_key(fake_request(), "user-123")

        assert "user-123" in key
        assert "ip:" not in key

    def test_key_uses_ip_when_anonymous(self):
        key, _ = get_rate_limit_key(fake_request(), None)
        assert "ip:127.0.0.1" in key

    def test_route_groups(self):
        _, auth_limit = get_rate_limit_key(fake_request("/v1/auth/login", "POST"), None)
        _, mutate_limit = get_rate_limit_key(fake_request("/v1/workspaces", "POST"), None)
        read_key, read_limit = get_rate_limit_key(fake_request("/v1/workspaces", "GET"), None)

        assert auth_limit == settings.RATE_LIMIT_AUTH
        assert mutate_limit == settings.RATE_LIMIT_MUTATE
        assert read_limit == settings.RATE_LIMIT_READ
        assert read_key.endswith(":read")
