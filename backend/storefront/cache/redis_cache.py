import json
import logging
from typing import Any, Iterable

import redis
from fastapi.encoders import jsonable_encoder

from storefront.core.config import settings


logger = logging.getLogger(__name__)

_client: redis.Redis | None = None


def get_redis() -> redis.Redis | None:
    global _client
    if not settings.cache_enabled:
        return None
    if _client is not None:
        return _client
    try:
        _client = redis.Redis.from_url(settings.redis_url, socket_connect_timeout=1)
        _client.ping()
        return _client
    except redis.RedisError:
        logger.warning("Redis no disponible, se sirve sin cache")
        _client = None
        return None


def make_key(prefix: str, params: dict[str, Any]) -> str:
    parts = [prefix]
    for k in sorted(params.keys()):
        v = params[k]
        if hasattr(v, "value"):
            v = v.value
        parts.append(f"{k}={v}")
    return "|".join(parts)


def cache_get(key: str) -> Any | None:
    client = get_redis()
    if client is None:
        return None
    try:
        raw = client.get(key)
    except redis.RedisError:
        return None
    if not raw:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        return None


def cache_set(key: str, value: Any, ttl_seconds: int | None = None) -> None:
    client = get_redis()
    if client is None:
        return
    payload = json.dumps(jsonable_encoder(value))
    try:
        client.setex(key, ttl_seconds or settings.cache_ttl_seconds, payload)
    except redis.RedisError:
        logger.warning("No se pudo escribir la clave %s en cache", key)


def cache_invalidate_prefix(prefix: str) -> None:
    client = get_redis()
    if client is None:
        return
    pattern = f"{prefix}*"
    try:
        for key in client.scan_iter(match=pattern, count=200):
            client.delete(key)
    except redis.RedisError:
        logger.warning("No se pudo invalidar el prefijo %s", prefix)


def apply_invalidations(prefixes: Iterable[str]) -> None:
    for prefix in prefixes:
        cache_invalidate_prefix(prefix)


def ping() -> bool | None:
    """``None`` when caching is disabled, otherwise whether redis answered."""
    if not settings.cache_enabled:
        return None
    return get_redis() is not None
