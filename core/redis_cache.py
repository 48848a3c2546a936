import redis

from core.settings import load_settings

cache_db = redis.Redis.from_url(
    load_settings().redis_url,
    socket_connect_timeout=2,
    decode_responses=True,
)
