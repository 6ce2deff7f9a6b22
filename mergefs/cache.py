"""Memo of path prefixes known not to be shadowed in a primary source."""

from __future__ import annotations

import logging
import threading

logger = logging.getLogger(__name__)


class PrefixCache:
    """Thread-safe set of confirmed-OK path prefixes.

    Each ``MergedFS`` owns one. While disabled, lookups always miss and
    writes are dropped. Disabling empties the cache, so re-enabling always
    starts from nothing.
    """

    def __init__(self, enabled: bool = True):
        self._lock = threading.Lock()
        self._known_ok: set[str] = set()
        self._enabled = enabled

    @property
    def enabled(self) -> bool:
        return self._enabled

    def set_enabled(self, enabled: bool) -> None:
        with self._lock:
            self._enabled = enabled
            if not enabled:
                self._known_ok.clear()
        logger.debug("Path prefix caching %s", "enabled" if enabled else "disabled")

    def __contains__(self, prefix: object) -> bool:
        with self._lock:
            return self._enabled and prefix in self._known_ok

    def add(self, *prefixes: str) -> None:
        with self._lock:
            if self._enabled:
                self._known_ok.update(prefixes)

    def clear(self) -> None:
        with self._lock:
            self._known_ok.clear()

    def snapshot(self) -> frozenset[str]:
        """Return a copy of the cached prefixes."""
        with self._lock:
            return frozenset(self._known_ok)

    def __len__(self) -> int:
        with self._lock:
            return len(self._known_ok)
