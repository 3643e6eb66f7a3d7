"""Redis connection management.

Redis backs the background task queue that carries enrollment emails
from the API process to the worker.  When REDIS_URL is unset the pool is
None and the queue falls back to its in-memory implementation, which
only works when API and worker share a process (tests, local dev).
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import redis.asyncio as aioredis

from app.core.config import SETTINGS

logger = logging.getLogger(__name__)

if SETTINGS.redis_url:
    redis_pool: aioredis.Redis | None = aioredis.from_url(  # type: ignore[type-arg]
        SETTINGS.redis_url,
        decode_responses=True,  # task payloads are JSON text
        max_connections=20,
    )
else:
    redis_pool = None


@asynccontextmanager
async def lifespan_redis():
    """Verify Redis on startup and close the pool on shutdown.

    An unreachable Redis is logged, not fatal: enrollment still commits
    and only the confirmation email enqueue fails (and is reported).
    """
    if redis_pool is None:
        logger.info("No REDIS_URL configured — task queue is in-memory")
        yield
        return

    try:
        await redis_pool.ping()  # type: ignore[misc]  # redis stubs mistype async ping as bool
        logger.info("Redis connected: %s", SETTINGS.redis_url)
    except Exception:
        logger.exception("Redis connection failed on startup")
        yield
        return

    yield

    await redis_pool.aclose()
    logger.info("Redis connection pool closed")
