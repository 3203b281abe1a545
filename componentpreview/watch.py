"""Poll-based filesystem change notifications.

Each poll walks the workspace roots, records a stat tuple for every file that
matches at least one subscribed glob, and diffs it against the previous scan
to emit created/deleted/changed events. The first scan only sets a baseline.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

from .probe import DEFAULT_EXCLUDE_DIRS, glob_matches

logger = logging.getLogger(__name__)

CREATED = "created"
DELETED = "deleted"
CHANGED = "changed"
ALL_KINDS = frozenset({CREATED, DELETED, CHANGED})

StatSignature = tuple[int, int]


@dataclass(frozen=True)
class ChangeEvent:
    """One file creation, deletion, or modification."""

    kind: str
    path: Path


@dataclass
class _Subscription:
    pattern: str
    callback: Callable[[ChangeEvent], None]
    kinds: frozenset[str]


def _file_signature(path: str) -> StatSignature | None:
    """Return ``(mtime_ns, size)`` for ``path`` or ``None`` when it cannot be read."""
    try:
        st = os.stat(path)
    except OSError:
        return None
    return (st.st_mtime_ns, st.st_size)


class FileWatcher:
    """Glob-filtered change stream over one or more workspace roots."""

    def __init__(
        self,
        roots: Sequence[Path],
        exclude_dirs: Sequence[str] = DEFAULT_EXCLUDE_DIRS,
    ) -> None:
        self.roots = [Path(root) for root in roots]
        self.exclude_dirs = tuple(exclude_dirs)
        self._subscriptions: list[_Subscription] = []
        self._snapshot: dict[Path, StatSignature] | None = None

    def watch(
        self,
        pattern: str,
        callback: Callable[[ChangeEvent], None],
        kinds: frozenset[str] = ALL_KINDS,
    ) -> Callable[[], None]:
        """Subscribe ``callback`` to events whose root-relative path matches ``pattern``.

        Returns a callable that removes the subscription. Adding a pattern
        resets the baseline so files it newly covers are not reported as
        created on the next poll.
        """
        subscription = _Subscription(pattern=pattern, callback=callback, kinds=frozenset(kinds))
        self._subscriptions.append(subscription)
        self._snapshot = None

        def dispose() -> None:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

        return dispose

    def _matches_any(self, relative: str) -> bool:
        return any(glob_matches(subscription.pattern, relative) for subscription in self._subscriptions)

    def scan(self) -> dict[Path, StatSignature]:
        """Collect stat signatures for every watched file under all roots."""
        snapshot: dict[Path, StatSignature] = {}
        if not self._subscriptions:
            return snapshot
        for root in self.roots:
            for dirpath, dirnames, filenames in os.walk(root):
                dirnames[:] = [
                    name for name in dirnames if not name.startswith(".") and name not in self.exclude_dirs
                ]
                base = Path(dirpath)
                for filename in filenames:
                    path = base / filename
                    relative = path.relative_to(root).as_posix()
                    if not self._matches_any(relative):
                        continue
                    signature = _file_signature(str(path))
                    if signature is not None:
                        snapshot[path] = signature
        return snapshot

    def collect_changes(self) -> list[ChangeEvent]:
        """Rescan and return events since the previous call (blocking)."""
        current = self.scan()
        previous = self._snapshot
        self._snapshot = current
        if previous is None:
            return []

        events: list[ChangeEvent] = []
        for path, signature in current.items():
            old = previous.get(path)
            if old is None:
                events.append(ChangeEvent(CREATED, path))
            elif old != signature:
                events.append(ChangeEvent(CHANGED, path))
        for path in previous:
            if path not in current:
                events.append(ChangeEvent(DELETED, path))
        events.sort(key=lambda event: (str(event.path), event.kind))
        return events

    def _relative_to_roots(self, path: Path) -> str | None:
        for root in self.roots:
            try:
                return path.relative_to(root).as_posix()
            except ValueError:
                continue
        return None

    def dispatch(self, events: Sequence[ChangeEvent]) -> None:
        """Deliver ``events`` to every subscription whose glob and kinds match.

        A failing callback is logged and does not stop delivery to the others.
        """
        for event in events:
            relative = self._relative_to_roots(event.path)
            if relative is None:
                continue
            for subscription in list(self._subscriptions):
                if event.kind not in subscription.kinds:
                    continue
                if not glob_matches(subscription.pattern, relative):
                    continue
                try:
                    subscription.callback(event)
                except Exception:
                    logger.exception("watch callback failed for %s", event.path)

    def poll(self) -> list[ChangeEvent]:
        """Rescan, dispatch, and return the detected events."""
        events = self.collect_changes()
        if events:
            logger.debug("detected %d file change(s)", len(events))
        self.dispatch(events)
        return events

    def close(self) -> None:
        self._subscriptions.clear()
        self._snapshot = None
