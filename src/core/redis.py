"""Redis client for rate limiting, failing open when Redis is unreachable."""
import logging
from typing import Any

from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import NoScriptError, RedisError

logger = logging.getLogger(__name__)

# Sliding window over a sorted set of request timestamps (per-minute limits).
# Returns {allowed, remaining, retry_after}.
SLIDING_WINDOW_SCRIPT = """
local key = KEYS[1]
local now = tonumber(ARGV[1])
local window = tonumber(ARGV[2])
local limit = tonumber(ARGV[3])
local member = ARGV[1] .. ':' .. ARGV[4]

redis.call('ZREMRANGEBYSCORE', key, 0, now - window)
local count = redis.call('ZCARD', key)

if count >= limit then
    local oldest = redis.call('ZRANGE', key, 0, 0, 'WITHSCORES')
    local retry_after = 0
    if oldest[2] then
        retry_after = math.ceil(tonumber(oldest[2]) + window - now)
    end
    return {0, 0, retry_after}
end

redis.call('ZADD', key, now, member)
redis.call('EXPIRE', key, window)
return {1, limit - count - 1, 0}
"""

# Fixed window counter (daily limits). Returns {allowed, remaining, ttl, retry_after}.
FIXED_WINDOW_SCRIPT = """
local key = KEYS[1]
local limit = tonumber(ARGV[1])
local window = tonumber(ARGV[2])

local count = redis.call('INCR', key)
if count == 1 then
    redis.call('EXPIRE', key, window)
end
local ttl = redis.call('TTL', key)

if count > limit then
    return {0, 0, ttl, ttl}
end
return {1, limit - count, ttl, 0}
"""


class RedisClient:
    """
    Async Redis client with a connection pool and preloaded Lua scripts.

    Every operation returns a neutral value (None/False) instead of raising
    when Redis is disabled or unreachable, so callers can fail open.
    """

    def __init__(self, url: str, enabled: bool = True, pool_size: int = 20) -> None:
        self._url = url
        self._enabled = enabled
        self._pool_size = pool_size
        self._client: Redis | None = None
        self._script_shas: dict[str, str] = {}

    async def connect(self) -> None:
        """Open the pool, verify connectivity and load the scripts."""
        if not self._enabled:
            logger.info("redis_disabled")
            return
        try:
            pool = ConnectionPool.from_url(self._url, max_connections=self._pool_size)
            self._client = Redis(connection_pool=pool)
            await self._client.ping()
            await self._load_scripts()
            logger.info("redis_connected")
        except RedisError as e:
            logger.warning("redis_connection_failed", extra={"error": str(e)})
            self._client = None

    async def _load_scripts(self) -> None:
        if not self._client:
            return
        try:
            self._script_shas = {
                "sliding_window": await self._client.script_load(SLIDING_WINDOW_SCRIPT),
                "fixed_window": await self._client.script_load(FIXED_WINDOW_SCRIPT),
            }
        except RedisError as e:
            logger.warning("redis_script_load_failed", extra={"error": str(e)})
            self._script_shas = {}

    async def close(self) -> None:
        """Close the connection pool."""
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("redis_closed")

    @property
    def is_connected(self) -> bool:
        """True once connect() succeeded."""
        return self._client is not None

    async def ping(self) -> bool:
        """Check Redis connectivity."""
        if not self._client:
            return False
        try:
            return await self._client.ping()
        except RedisError:
            return False

    async def flushdb(self) -> bool:
        """Flush the current database (tests only)."""
        if not self._client:
            return False
        try:
            await self._client.flushdb()
            return True
        except RedisError as e:
            logger.warning("redis_flushdb_failed", extra={"error": str(e)})
            return False

    async def _run_script(self, name: str, key: str, *args: Any) -> list[int] | None:
        """
        Run a preloaded script by SHA.

        After a Redis restart the script cache is empty (NOSCRIPT); the scripts
        are reloaded and the call is retried once. None means "unavailable".
        """
        if not self._client or name not in self._script_shas:
            return None
        try:
            return await self._client.evalsha(self._script_shas[name], 1, key, *args)
        except NoScriptError:
            logger.warning("redis_script_reload", extra={"script": name})
            await self._load_scripts()
            if name not in self._script_shas:
                return None
            try:
                return await self._client.evalsha(self._script_shas[name], 1, key, *args)
            except RedisError as e:
                logger.warning("redis_script_failed", extra={"script": name, "error": str(e)})
                return None
        except RedisError as e:
            logger.warning("redis_script_failed", extra={"script": name, "error": str(e)})
            return None

    async def eval_sliding_window(
        self,
        key: str,
        now: int,
        window_seconds: int,
        max_requests: int,
        request_id: str,
    ) -> list[int] | None:
        """
        Count a request against a sliding window.

        Returns:
            [allowed, remaining, retry_after] or None if Redis unavailable.
        """
        return await self._run_script(
            "sliding_window", key, now, window_seconds, max_requests, request_id,
        )

    async def eval_fixed_window(
        self,
        key: str,
        max_requests: int,
        window_seconds: int,
    ) -> list[int] | None:
        """
        Count a request against a fixed window.

        Returns:
            [allowed, remaining, ttl, retry_after] or None if Redis unavailable.
        """
        return await self._run_script("fixed_window", key, max_requests, window_seconds)


class _RedisState:
    """Holder for the process-wide client set up by the lifespan handler."""

    client: RedisClient | None = None


_state = _RedisState()


def get_redis_client() -> RedisClient | None:
    """Get the global Redis client instance."""
    return _state.client


def set_redis_client(client: RedisClient | None) -> None:
    """Set the global Redis client instance."""
    _state.client = client
