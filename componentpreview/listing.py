"""Component listing and "has preview" decorations.

Feeds the navigable list of component files that currently have a preview
image, plus the per-file badge query. Refreshes are requested whenever
component source files appear/disappear or the preview cache is invalidated.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

from .locator import PreviewLocator
from .probe import WorkspaceSearch, search_workspace
from .watch import CREATED, DELETED, ChangeEvent

logger = logging.getLogger(__name__)

COMPONENT_FILE_SUFFIX = ".tsx"
COMPONENT_FILE_PATTERN = "**/*.tsx"
COMPONENT_LIST_MAX_FILES = 500
SOURCE_WATCH_KINDS = frozenset({CREATED, DELETED})


@dataclass(frozen=True)
class ComponentEntry:
    """One listed component file and the preview image that backs it."""

    label: str
    file_path: Path
    preview_path: Path


class ComponentListing:
    """Alphabetical list of component files with previews, refreshed on demand."""

    def __init__(
        self,
        locator: PreviewLocator,
        *,
        search: WorkspaceSearch = search_workspace,
        max_files: int = COMPONENT_LIST_MAX_FILES,
    ) -> None:
        self._locator = locator
        self._search = search
        self.max_files = max_files
        self.entries: list[ComponentEntry] = []
        self.stale = True
        self._listeners: list[Callable[[], None]] = []
        self._unsubscribe_locator = locator.subscribe(self.mark_stale)

    def has_decoration(self, path: Path) -> bool:
        """Badge query: only component source files with a preview qualify."""
        if path.suffix != COMPONENT_FILE_SUFFIX:
            return False
        return self._locator.has_preview(path)

    def subscribe(self, listener: Callable[[], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def mark_stale(self) -> None:
        self.stale = True
        for listener in list(self._listeners):
            listener()

    def handle_source_change(self, event: ChangeEvent) -> None:
        """Watcher callback for component source files being created or deleted."""
        if event.kind in SOURCE_WATCH_KINDS:
            logger.debug("component file %s %s; listing is stale", event.path, event.kind)
            self.mark_stale()

    async def refresh(self, workspace_roots: Sequence[Path] | None = None) -> list[ComponentEntry]:
        """Rebuild ``entries`` from a workspace search, sorted by filename."""
        roots = list(workspace_roots) if workspace_roots is not None else self._locator.workspace_roots
        files = await self._search(roots, COMPONENT_FILE_PATTERN, self._locator.exclude_dirs, self.max_files)
        files = sorted(files, key=lambda path: (path.name.casefold(), str(path)))

        entries: list[ComponentEntry] = []
        for file_path in files:
            preview_path = self._locator.find_by_path(file_path)
            if preview_path is not None:
                entries.append(ComponentEntry(label=file_path.name, file_path=file_path, preview_path=preview_path))
        self.entries = entries
        self.stale = False
        return list(entries)

    def close(self) -> None:
        self._unsubscribe_locator()
        self._listeners.clear()
        self.entries = []
