"""
Redis client for video job records
"""

import json
import structlog
from typing import Optional, Dict, Any, List
from redis import Redis, ConnectionPool
from redis.exceptions import RedisError, ConnectionError
from config import settings

logger = structlog.get_logger()


class RedisClient:
    """Redis client with connection pooling and JSON helpers"""

    def __init__(self, url: Optional[str] = None):
        """Initialize Redis client with connection pool"""
        self._url = url or settings.REDIS_URL
        self._pool: Optional[ConnectionPool] = None
        self._client: Optional[Redis] = None
        self._connect()

    def _connect(self):
        """Establish Redis connection with connection pool"""
        try:
            self._pool = ConnectionPool.from_url(
                self._url,
                max_connections=settings.REDIS_MAX_CONNECTIONS,
                socket_timeout=settings.REDIS_SOCKET_TIMEOUT,
                socket_connect_timeout=settings.REDIS_SOCKET_CONNECT_TIMEOUT,
                retry_on_timeout=settings.REDIS_RETRY_ON_TIMEOUT,
                health_check_interval=settings.REDIS_HEALTH_CHECK_INTERVAL,
                decode_responses=True
            )
            self._client = Redis(connection_pool=self._pool)

            self._client.ping()
            logger.info("redis_connected", url=self._url)

        except ConnectionError as e:
            logger.error("redis_connection_failed", error=str(e))
            raise

    def get_client(self) -> Redis:
        """Get Redis client instance"""
        if self._client is None:
            self._connect()
        return self._client

    def ping(self) -> bool:
        """Check if Redis is connected"""
        try:
            return self._client.ping()
        except RedisError as e:
            logger.error("redis_ping_failed", error=str(e))
            return False

    def close(self):
        """Close Redis connection"""
        if self._client:
            self._client.close()
            logger.info("redis_connection_closed")

    # ===== JSON records =====

    def set_json(self, key: str, data: Dict[str, Any], ttl: Optional[int] = None) -> None:
        """
        Store a JSON document, optionally expiring after `ttl` seconds.

        Raises:
            RedisError: propagated so callers can surface storage failures
        """
        payload = json.dumps(data)
        if ttl:
            self._client.set(key, payload, ex=ttl)
        else:
            self._client.set(key, payload)

    def get_json(self, key: str) -> Optional[Dict[str, Any]]:
        raw = self._client.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    # ===== Index sets =====

    def add_to_index(self, key: str, member: str, ttl: Optional[int] = None) -> None:
        self._client.sadd(key, member)
        if ttl:
            self._client.expire(key, ttl)

    def remove_from_index(self, key: str, member: str) -> None:
        self._client.srem(key, member)

    def index_members(self, key: str) -> List[str]:
        return sorted(self._client.smembers(key))


_redis_client: Optional[RedisClient] = None


def get_redis_client() -> RedisClient:
    """
    Return the process-wide Redis client, connecting on first use.
    """
    global _redis_client
    if _redis_client is None:
        _redis_client = RedisClient()
    return _redis_client


def close_redis_client() -> None:
    global _redis_client
    if _redis_client is not None:
        _redis_client.close()
        _redis_client = None
