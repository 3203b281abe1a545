"""Bounded FIFO cache of preview-image lookups.

Values are either a resolved image path or ``ABSENT`` ("checked, no image").
A key that was never stored reads back as ``None`` ("unknown"), so callers can
tell a cached negative apart from a miss.
"""

from __future__ import annotations

from collections import OrderedDict
from pathlib import Path

PREVIEW_CACHE_MAX = 50
NAME_KEY_PREFIX = "@name:"


class _Absent:
    """Marker type for a lookup that was performed and found nothing."""

    _instance: _Absent | None = None

    def __new__(cls) -> _Absent:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ABSENT"

    def __bool__(self) -> bool:
        return False


ABSENT = _Absent()

CacheValue = Path | _Absent


def name_key(name: str) -> str:
    """Return the synthetic cache key used for name-based lookups."""
    return NAME_KEY_PREFIX + name


def path_key(path: Path) -> str:
    """Return the cache key used for component-file lookups."""
    return str(path)


class PreviewCache:
    """Insertion-ordered cache that evicts its oldest entry when full.

    Entries are never expired by time; ``clear`` drops everything at once when
    the filesystem reports a relevant change.
    """

    def __init__(self, max_entries: int = PREVIEW_CACHE_MAX) -> None:
        if max_entries <= 0:
            raise ValueError("max_entries must be >= 1")
        self.max_entries = max_entries
        self._entries: OrderedDict[str, CacheValue] = OrderedDict()
        self.epoch = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def get(self, key: str) -> CacheValue | None:
        """Return the cached value, ``ABSENT`` for a cached negative, or ``None``."""
        value = self._entries.get(key)
        assert value is None or value is ABSENT or isinstance(value, Path), f"bad cache entry for {key!r}"
        return value

    def put(self, key: str, value: CacheValue) -> None:
        """Store ``value`` under ``key``, evicting the oldest entries when full.

        Re-storing an existing key updates it in place and keeps its original
        insertion position.
        """
        assert value is ABSENT or isinstance(value, Path), f"refusing ambiguous cache value {value!r}"
        if key in self._entries:
            self._entries[key] = value
            return
        while len(self._entries) >= self.max_entries:
            self._entries.popitem(last=False)
        self._entries[key] = value

    def clear(self) -> None:
        """Drop every entry and advance the epoch so in-flight lookups go stale."""
        self._entries.clear()
        self.epoch += 1

    def keys(self) -> list[str]:
        return list(self._entries)
