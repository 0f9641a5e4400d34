"""
Idempotency Store

Remembers which notifications have already been sent so that reruns and
restarts do not notify twice. Keys expire after a TTL.

The JSON-file store is persisted to ~/.bridges/idempotency.json by default.
"""

import json
import logging
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Dict, Iterable, Optional

from .config import STATE_PATH

logger = logging.getLogger("bridges.common.idempotency")


class IdempotencyStore(ABC):
    """
    Keyed lookup of already-processed work with per-key expiry.

    Subclasses implement storage; the check-and-mark logic is shared.
    """

    def __init__(self, default_ttl: Optional[float] = None, clock: Callable[[], float] = time.time):
        """
        Args:
            default_ttl: Seconds a key stays marked (None = forever)
            clock: Wall-clock source, injectable for tests
        """
        self._default_ttl = default_ttl
        self._clock = clock

    @abstractmethod
    def _get_expiry(self, key: str) -> Optional[float]:
        """Return the stored expiry for key, or None if absent. Infinite expiry is float('inf')."""
        pass

    @abstractmethod
    def _set_expiry(self, key: str, expires_at: float) -> None:
        pass

    @abstractmethod
    def _delete(self, key: str) -> None:
        pass

    @abstractmethod
    def _keys(self) -> list:
        pass

    def seen(self, key: str) -> bool:
        """Check if key is marked and not yet expired"""
        expires_at = self._get_expiry(key)
        if expires_at is None:
            return False
        if expires_at <= self._clock():
            self._delete(key)
            return False
        return True

    def mark(self, key: str, ttl: Optional[float] = None) -> None:
        """Mark key as processed"""
        ttl = self._default_ttl if ttl is None else ttl
        expires_at = float("inf") if ttl is None else self._clock() + ttl
        self._set_expiry(key, expires_at)

    def check_and_mark(self, key: str, ttl: Optional[float] = None) -> bool:
        """
        Mark key and report whether this call was the first.

        Returns:
            True if the key was not seen before (caller should proceed)
        """
        if self.seen(key):
            return False
        self.mark(key, ttl)
        return True

    def purge_expired(self) -> int:
        """Drop expired keys. Returns the number removed."""
        now = self._clock()
        expired = [k for k in self._keys() if self._get_expiry(k) <= now]
        for key in expired:
            self._delete(key)
        return len(expired)


class MemoryIdempotencyStore(IdempotencyStore):
    """Process-local store. Forgets everything on restart."""

    def __init__(self, default_ttl: Optional[float] = None, clock: Callable[[], float] = time.time):
        super().__init__(default_ttl=default_ttl, clock=clock)
        self._entries: Dict[str, float] = {}

    def _get_expiry(self, key: str) -> Optional[float]:
        return self._entries.get(key)

    def _set_expiry(self, key: str, expires_at: float) -> None:
        self._entries[key] = expires_at

    def _delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def _keys(self) -> list:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


class JsonFileIdempotencyStore(MemoryIdempotencyStore):
    """
    Store persisted as a JSON object of key -> expiry (epoch seconds, null = never).

    Every mutation rewrites the file. Saves merge with what is on disk so
    several runners can share one file without dropping each other's keys.
    """

    def __init__(
        self,
        path: Optional[Path] = None,
        default_ttl: Optional[float] = None,
        clock: Callable[[], float] = time.time,
    ):
        super().__init__(default_ttl=default_ttl, clock=clock)
        self._path = Path(path) if path else STATE_PATH
        self._load()

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> Dict[str, float]:
        if not self._path.exists():
            return {}

        try:
            with open(self._path) as f:
                data = json.load(f)
            return {
                key: float("inf") if value is None else float(value)
                for key, value in data.items()
            }
        except (json.JSONDecodeError, IOError, AttributeError, TypeError, ValueError) as e:
            logger.warning("Failed to load idempotency store %s: %s", self._path, e)
            return {}

    def _load(self) -> None:
        """Load entries from disk"""
        self._entries = self._read()

    def _save(self, updates: Optional[Dict[str, float]] = None, removals: Iterable[str] = ()) -> None:
        """Apply changes on top of the file on disk and write the result"""
        merged = self._read()
        for key in removals:
            merged.pop(key, None)
        merged.update(updates or {})

        self._path.parent.mkdir(parents=True, exist_ok=True)
        data = {
            key: None if value == float("inf") else value
            for key, value in merged.items()
        }
        with open(self._path, "w") as f:
            json.dump(data, f, indent=2)

        self._entries = merged

    def _set_expiry(self, key: str, expires_at: float) -> None:
        super()._set_expiry(key, expires_at)
        self._save(updates={key: expires_at})

    def _delete(self, key: str) -> None:
        super()._delete(key)
        self._save(removals=[key])

    def purge_expired(self) -> int:
        """Drop expired keys, including ones written by other processes, in one save"""
        self._load()
        now = self._clock()
        expired = [key for key, expires_at in self._entries.items() if expires_at <= now]
        if expired:
            self._save(removals=expired)
        return len(expired)
