"""
In-process set of episode keys already handled by the monitor.

Keys are ``{series_slug}_{season}_{episode}`` strings. A key is added only
after its episode was persisted, so a card that failed is retried on the next
poll cycle. The cache lives for the lifetime of the process; a restart
starts empty and relies on idempotent upserts.
"""

import logging
from threading import Lock
from typing import Iterable, Optional

logger = logging.getLogger(__name__)


class DedupCache:
    """Thread-safe set of processed episode keys"""

    def __init__(self, keys: Optional[Iterable[str]] = None):
        self._keys = set(keys or [])
        self.lock = Lock()

    def __contains__(self, key: str) -> bool:
        return self.contains(key)

    def __len__(self) -> int:
        with self.lock:
            return len(self._keys)

    def contains(self, key: Optional[str]) -> bool:
        if not key:
            return False
        with self.lock:
            return key in self._keys

    def add(self, key: Optional[str]) -> bool:
        """Add a key; returns False if it was already present"""
        if not key:
            return False
        with self.lock:
            if key in self._keys:
                return False
            self._keys.add(key)
        logger.debug(f"Marked as processed: {key}")
        return True

    def clear(self) -> None:
        with self.lock:
            self._keys.clear()
