"""
Redis service: cart persistence and order status notifications.
Degrades gracefully - when Redis is unreachable every call becomes a no-op.
"""

import logging
import json
from typing import Any, Optional, Dict

import redis
from redis.exceptions import RedisError, ConnectionError, TimeoutError
from flask import Flask

logger = logging.getLogger(__name__)

STATUS_CHANNEL = 'order-status'


class RedisService:
    """
    Redis client wrapper with namespaced keys.

    Keys pattern: {prefix}:{module}:{key}
    """

    def __init__(self, app: Optional[Flask] = None):
        """Initialize redis service."""
        self.client: Optional[redis.Redis] = None
        self._enabled: bool = False
        self._prefix: str = ""

        if app:
            self.init_app(app)

    def init_app(self, app: Flask) -> None:
        """Initialize Redis client from Flask app config."""
        self._enabled = app.config.get('REDIS_ENABLED', True)
        self._prefix = app.config.get('REDIS_KEY_PREFIX', 'furnihive')
        redis_url = app.config.get('REDIS_URL', 'redis://redis:6379/0')

        if not self._enabled:
            logger.info("[REDIS] Redis is DISABLED via config")
            return

        try:
            self.client = redis.from_url(
                redis_url,
                decode_responses=True,
                socket_connect_timeout=3,
                socket_timeout=3,
                socket_keepalive=True,
                max_connections=50,
                retry_on_timeout=True,
                health_check_interval=30
            )
            self.client.ping()
            logger.info(f"[REDIS] Connected: {redis_url}")
        except (ConnectionError, TimeoutError, RedisError) as e:
            logger.warning(f"[REDIS] Connection failed: {e}. Redis DISABLED.")
            self._enabled = False
            self.client = None

    def is_available(self) -> bool:
        """Check if redis is available and healthy."""
        if not self._enabled or not self.client:
            return False
        try:
            self.client.ping()
            return True
        except (ConnectionError, RedisError):
            return False

    def build_key(self, module: str, key: str) -> str:
        """Build namespaced key."""
        return f"{self._prefix}:{module}:{key}"

    def get_json(self, module: str, key: str) -> Optional[Any]:
        """Get a JSON value."""
        if not self.is_available():
            return None
        try:
            value = self.client.get(self.build_key(module, key))
            if value is None:
                return None
            return json.loads(value)
        except (RedisError, json.JSONDecodeError) as e:
            logger.warning(f"[REDIS] Get error: {e}")
            return None

    def set_json(self, module: str, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """Store a JSON value, optionally with a TTL in seconds."""
        if not self.is_available():
            return False
        try:
            serialized = json.dumps(value)
            if ttl:
                self.client.setex(self.build_key(module, key), ttl, serialized)
            else:
                self.client.set(self.build_key(module, key), serialized)
            return True
        except (RedisError, TypeError) as e:
            logger.warning(f"[REDIS] Set error: {e}")
            return False

    def delete(self, module: str, key: str) -> bool:
        """Delete specific key."""
        if not self.is_available():
            return False
        try:
            self.client.delete(self.build_key(module, key))
            return True
        except RedisError as e:
            logger.warning(f"[REDIS] Delete error: {e}")
            return False

    def status_channel(self, order_id) -> str:
        """Pub/sub channel carrying status changes of one order."""
        return self.build_key(STATUS_CHANNEL, str(order_id))

    def publish_status_change(self, order_id, status: str) -> int:
        """Notify trackers that an order changed. Returns the number of receivers."""
        if not self.is_available():
            return 0
        message: Dict[str, Any] = {'order_id': order_id, 'status': status}
        try:
            return self.client.publish(self.status_channel(order_id), json.dumps(message))
        except RedisError as e:
            logger.warning(f"[REDIS] Publish error: {e}")
            return 0


_redis_service: Optional[RedisService] = None


def init_redis(app: Flask) -> None:
    """Initialize redis service singleton."""
    global _redis_service
    _redis_service = RedisService(app)
    if not hasattr(app, 'extensions'):
        app.extensions = {}
    app.extensions['redis'] = _redis_service


def get_redis() -> RedisService:
    """Get redis service instance."""
    if _redis_service is None:
        raise RuntimeError("Redis not initialized.")
    return _redis_service
