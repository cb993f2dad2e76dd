import json
import logging
import os
from typing import Any, Awaitable, Callable, Iterable

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from redis import asyncio as aioredis
from redis.exceptions import RedisError

Redis = aioredis.Redis
from_url = aioredis.from_url

load_dotenv()

logger = logging.getLogger(__name__)

_redis: Redis | None = None
DEFAULT_TTL = int(os.getenv("CACHE_TTL", "300"))
VERSION_KEY_PREFIX = "cache:version:"

AUTHORS_CACHE_TAG = "authorsCache"
BOOKS_CACHE_TAG = "booksCache"


async def get_cache_version(name: str, r: Redis | None = None) -> int:
    r = r or await init_redis()
    raw = await r.get(f"{VERSION_KEY_PREFIX}{name}")
    # INCR on a missing key yields 1, so an untouched tag must read as 0
    return int(raw) if raw is not None else 0


async def bump_cache_version(name: str, r: Redis | None = None) -> int:
    r = r or await init_redis()
    return int(await r.incr(f"{VERSION_KEY_PREFIX}{name}"))


def _build_redis_url() -> str:
    if raw := os.getenv("REDIS_URL"):
        return raw

    host = os.getenv("REDIS_HOST", "localhost")
    port = os.getenv("REDIS_PORT", "6379")
    db = os.getenv("REDIS_DB", "0")
    return f"redis://{host}:{port}/{db}"


REDIS_URL = _build_redis_url()


async def init_redis() -> Redis:
    """Return the process-wide async Redis client, creating it on first use."""
    global _redis
    if _redis is None:
        _redis = from_url(REDIS_URL, decode_responses=True)
    return _redis


async def close_redis(app: FastAPI | None = None) -> None:
    """Close the process-wide client and drop the copy kept on ``app.state``."""
    global _redis
    if app is not None:
        app.state.redis = None
    if _redis is not None:
        await _redis.aclose()
        _redis = None


async def get_redis(request: Request) -> Redis:
    """FastAPI dependency returning the client cached on the application."""
    client = getattr(request.app.state, "redis", None)
    if client is None:
        client = request.app.state.redis = await init_redis()
    return client


def make_list_key(operation: str, page: int, limit: int) -> str:
    return f"{operation}-{page}-{limit}"


def make_tagged_key(key: str, versions: dict[str, int]) -> str:
    suffix = "|".join(f"{tag}=v{versions[tag]}" for tag in sorted(versions))
    return f"{key}|{suffix}" if suffix else key


async def get_or_compute(
    key: str,
    tags: Iterable[str],
    producer: Callable[[], Awaitable[Any]],
    r: Redis | None = None,
    ttl: int = DEFAULT_TTL,
) -> Any:
    """
    Return the cached value for ``key`` or compute, store and return it.

    The stored key embeds the current version of every tag, so bumping a
    tag version (see ``invalidate_tags``) makes all entries built under the
    old version unreachable at once. Stale entries then expire by TTL.
    A Redis failure degrades to calling ``producer`` directly.
    """
    try:
        r = r or await init_redis()
        versions = {tag: await get_cache_version(tag, r) for tag in tags}
        tagged_key = make_tagged_key(key, versions)
        raw = await r.get(tagged_key)
    except (RedisError, ConnectionError) as ex:
        logger.warning(f"Cache lookup failed for {key}, computing directly: {ex}")
        return await producer()

    if raw is not None:
        logger.debug(f"Cache hit for {tagged_key}")
        return json.loads(raw)

    logger.debug(f"Cache miss for {tagged_key}")
    data = await producer()
    try:
        await r.set(tagged_key, json.dumps(data), ex=ttl)
    except (RedisError, ConnectionError) as ex:
        logger.warning(f"Failed to store cache entry {tagged_key}: {ex}")
    return data


async def invalidate_tags(tags: Iterable[str], r: Redis | None = None) -> None:
    """Evict every entry tagged with any of ``tags``."""
    for tag in tags:
        try:
            r = r or await init_redis()
            version = await bump_cache_version(tag, r)
        except (RedisError, ConnectionError) as ex:
            logger.error(f"Failed to invalidate cache tag {tag}: {ex}")
            continue
        logger.info(f"Cache tag {tag} invalidated (now v{version})")
