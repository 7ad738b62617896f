import redis

from consultify.config import REDIS_URL

_client = None


def get_redis() -> redis.Redis:
    """Shared Redis connection (lazily created from REDIS_URL)."""
    global _client
    if _client is None:
        _client = redis.Redis.from_url(REDIS_URL, decode_responses=True)
    return _client
