import redis

from nexus.core.config import settings

redis_client = redis.Redis.from_url(
    settings.REDIS_URL,
    socket_connect_timeout=2,
    socket_timeout=2,
    decode_responses=True,
)


def check_redis() -> bool:
    try:
        return redis_client.ping() is True
    except Exception:
        return False
