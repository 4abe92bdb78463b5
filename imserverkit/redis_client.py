"""Synchronous, thread-safe Redis client with a compact command set."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional, TypeVar

import redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError

_log = logging.getLogger(__name__)

R = TypeVar("R")


class RedisClient:
    """Wraps one Redis connection behind a lock.

    Commands raise ``redis.exceptions.RedisError`` (``ConnectionError`` when
    not connected, ``ResponseError`` for an error reply); the message of the
    last failure is kept in :attr:`last_error`.
    """

    def __init__(self, client_factory: Callable[..., Any] = redis.Redis) -> None:
        self._factory = client_factory
        self._client: Any = None
        self._last_error = ""
        self._lock = threading.Lock()

    @property
    def last_error(self) -> str:
        """Message of the most recent failure, or an empty string."""
        return self._last_error

    def connect(self, host: str, port: int, timeout_ms: int = 2000) -> None:
        """Open a connection and check that the server answers."""
        with self._lock:
            self._close_locked()
            client = self._factory(
                host=host,
                port=port,
                socket_connect_timeout=timeout_ms / 1000.0,
                decode_responses=True,
            )
            try:
                client.ping()
            except RedisError as exc:
                self._last_error = str(exc) or type(exc).__name__
                _log.error("Redis connect failed: %s", self._last_error)
                client.close()
                raise
            self._client = client
        _log.info("Redis connected: %s:%d", host, port)

    def disconnect(self) -> None:
        """Close the connection if one is open."""
        with self._lock:
            self._close_locked()

    def is_connected(self) -> bool:
        """Whether a connection is open."""
        with self._lock:
            return self._client is not None

    def _close_locked(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
            _log.info("Redis disconnected")

    def _call(self, command: Callable[[Any], R]) -> R:
        with self._lock:
            if self._client is None:
                self._last_error = "not connected"
                _log.error("Redis error: %s", self._last_error)
                raise RedisConnectionError(self._last_error)
            try:
                return command(self._client)
            except RedisError as exc:
                self._last_error = str(exc) or type(exc).__name__
                _log.error("Redis error: %s", self._last_error)
                raise

    @staticmethod
    def _text(value: Any) -> Optional[str]:
        return value if isinstance(value, str) else None

    # strings

    def set(self, key: str, value: str) -> None:
        """SET key value."""
        self._call(lambda c: c.set(key, value))
        _log.debug("Redis SET %s = %s", key, value)

    def setex(self, key: str, value: str, expire_seconds: int) -> None:
        """SETEX key seconds value."""
        self._call(lambda c: c.setex(key, expire_seconds, value))
        _log.debug("Redis SETEX %s = %s (expire: %ds)", key, value, expire_seconds)

    def get(self, key: str) -> Optional[str]:
        """Value of ``key``, or ``None`` when it does not exist."""
        result = self._text(self._call(lambda c: c.get(key)))
        if result is not None:
            _log.debug("Redis GET %s = %s", key, result)
        return result

    def delete(self, key: str) -> None:
        """DEL key."""
        self._call(lambda c: c.delete(key))

    def exists(self, key: str) -> bool:
        """Whether ``key`` exists."""
        return self._call(lambda c: c.exists(key)) == 1

    def expire(self, key: str, seconds: int) -> None:
        """EXPIRE key seconds."""
        self._call(lambda c: c.expire(key, seconds))

    def ttl(self, key: str) -> int:
        """Seconds left to live; -1 without expiry, -2 when missing."""
        result = self._call(lambda c: c.ttl(key))
        return int(result) if isinstance(result, int) else -1

    # counters

    def incr(self, key: str) -> int:
        """Increment by one and return the new value."""
        return int(self._call(lambda c: c.incr(key)))

    def decr(self, key: str) -> int:
        """Decrement by one and return the new value."""
        return int(self._call(lambda c: c.decr(key)))

    def incr_by(self, key: str, increment: int) -> int:
        """Increment by ``increment`` and return the new value."""
        return int(self._call(lambda c: c.incrby(key, increment)))

    # hashes

    def hset(self, key: str, field: str, value: str) -> None:
        """HSET key field value."""
        self._call(lambda c: c.hset(key, field, value))

    def hget(self, key: str, field: str) -> Optional[str]:
        """Value of a hash field, or ``None`` when it does not exist."""
        return self._text(self._call(lambda c: c.hget(key, field)))

    def hdel(self, key: str, field: str) -> None:
        """HDEL key field."""
        self._call(lambda c: c.hdel(key, field))

    def hgetall(self, key: str) -> dict[str, str]:
        """Every field and value of a hash."""
        return dict(self._call(lambda c: c.hgetall(key)) or {})

    # lists

    def lpush(self, key: str, value: str) -> int:
        """Push to the head; returns the new list length."""
        return int(self._call(lambda c: c.lpush(key, value)))

    def rpush(self, key: str, value: str) -> int:
        """Push to the tail; returns the new list length."""
        return int(self._call(lambda c: c.rpush(key, value)))

    def lpop(self, key: str) -> Optional[str]:
        """Pop from the head, or ``None`` when the list is empty."""
        return self._text(self._call(lambda c: c.lpop(key)))

    def rpop(self, key: str) -> Optional[str]:
        """Pop from the tail, or ``None`` when the list is empty."""
        return self._text(self._call(lambda c: c.rpop(key)))

    def lrange(self, key: str, start: int, stop: int) -> list[str]:
        """Elements from ``start`` to ``stop`` inclusive; -1 is the last."""
        return list(self._call(lambda c: c.lrange(key, start, stop)) or [])

    # sets

    def sadd(self, key: str, member: str) -> None:
        """SADD key member."""
        self._call(lambda c: c.sadd(key, member))

    def srem(self, key: str, member: str) -> None:
        """SREM key member."""
        self._call(lambda c: c.srem(key, member))

    def sismember(self, key: str, member: str) -> bool:
        """Whether ``member`` belongs to the set."""
        return bool(self._call(lambda c: c.sismember(key, member)))

    def smembers(self, key: str) -> list[str]:
        """Every member of the set, in no particular order."""
        return list(self._call(lambda c: c.smembers(key)) or ())

    def execute_command(self, *args: Any) -> Any:
        """Send a raw command and return the server's reply."""
        return self._call(lambda c: c.execute_command(*args))