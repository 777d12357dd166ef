"""Persisted UI preferences on top of a pluggable key-value store.

A preference is read once when constructed and written synchronously
on every change. Writes are single key assignments, so concurrent
engines simply see the last write.

Usage:
    store = store_from_settings()
    show_candles = BooleanPreference(store, "show-candles", default=True)
    show_candles.set(False)
"""

from __future__ import annotations

from typing import Protocol

import redis

from timemachine.common.config import Settings, get_settings
from timemachine.common.logging import get_logger

logger = get_logger("PREFS")

_TRUE_VALUES = frozenset({"true", "1", "yes", "on"})


class KeyValueStore(Protocol):
    """Minimal string key-value capability."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...


class InMemoryKeyValueStore:
    """Process-local store, shared by every preference that holds it."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value


class RedisKeyValueStore:
    """Redis-backed store. Connection failures degrade to "no stored value".

    Args:
        client: A redis-py client. Bytes responses are decoded as UTF-8.
        prefix: Prepended to every key.
    """

    def __init__(self, client: redis.Redis, prefix: str = "") -> None:
        self.client = client
        self.prefix = prefix

    @classmethod
    def from_url(cls, url: str, prefix: str = "") -> RedisKeyValueStore:
        return cls(redis.Redis.from_url(url, decode_responses=True), prefix=prefix)

    def get(self, key: str) -> str | None:
        try:
            raw = self.client.get(self.prefix + key)
        except redis.RedisError as exc:
            logger.warning(
                "Preference read failed, using default",
                extra={"data": {"key": key, "error": str(exc)}},
            )
            return None
        if isinstance(raw, bytes):
            return raw.decode("utf-8")
        return raw

    def set(self, key: str, value: str) -> None:
        try:
            self.client.set(self.prefix + key, value)
        except redis.RedisError as exc:
            logger.error(
                "Preference write failed",
                extra={"data": {"key": key, "value": value, "error": str(exc)}},
            )


def store_from_settings(settings: Settings | None = None) -> RedisKeyValueStore:
    """Build the Redis preference store from REDIS_URL and PREFERENCE_KEY_PREFIX."""
    settings = settings or get_settings()
    return RedisKeyValueStore.from_url(settings.redis_url, prefix=settings.preference_key_prefix)


class BooleanPreference:
    """A boolean persisted as "true"/"false" under one key.

    Args:
        store: Backing key-value store.
        key: Caller-supplied key name.
        default: Value used when nothing is stored yet.
    """

    def __init__(self, store: KeyValueStore, key: str, default: bool = False) -> None:
        self.store = store
        self.key = key
        self.default = default
        raw = store.get(key)
        self._value = default if raw is None else raw.strip().lower() in _TRUE_VALUES

    @property
    def value(self) -> bool:
        return self._value

    def set(self, value: bool) -> None:
        self._value = bool(value)
        self.store.set(self.key, "true" if self._value else "false")
