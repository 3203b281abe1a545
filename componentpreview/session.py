"""Long-lived preview session: owns every stateful collaborator.

The session wires the locator, orchestrator, component listing, file watcher,
and debouncer together for one workspace, exposes the two trigger adapters
(cursor movement and file selection), and tears all of it down in ``close``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from functools import partial
from pathlib import Path
from typing import Any

from .config import Settings
from .debounce import Debouncer
from .listing import COMPONENT_FILE_PATTERN, SOURCE_WATCH_KINDS, ComponentListing
from .locator import PreviewLocator
from .orchestrator import NOOP, PresentationCommand, Presenter, ResolutionOrchestrator
from .probe import ExistsProbe, WorkspaceSearch, path_exists, search_workspace
from .resolver import resolve_component_file
from .watch import FileWatcher

logger = logging.getLogger(__name__)

SUPPORTED_LANGUAGES_BY_SUFFIX = {
    ".tsx": "typescriptreact",
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".jsx": "javascriptreact",
    ".js": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".astro": "astro",
    ".vue": "vue",
    ".svelte": "svelte",
    ".mdx": "mdx",
}


def language_for_path(path: Path) -> str | None:
    """Map a document suffix to the language id used to gate cursor triggers."""
    return SUPPORTED_LANGUAGES_BY_SUFFIX.get(path.suffix.lower())


class PreviewSession:
    """Context object bound to one host session.

    Created at startup, cleared at shutdown: the preview cache and the
    last-shown slot live here instead of in module globals.
    """

    def __init__(
        self,
        workspace_roots: Sequence[Path],
        presenter: Presenter,
        settings: Settings | None = None,
        *,
        exists: ExistsProbe = path_exists,
        search: WorkspaceSearch = search_workspace,
    ) -> None:
        self.settings = settings if settings is not None else Settings()
        self.workspace_roots = [Path(root).resolve() for root in workspace_roots]
        self.presenter = presenter
        self.locator = PreviewLocator(
            self.workspace_roots,
            exists=exists,
            search=search,
            image_extensions=self.settings.image_extensions,
            exclude_dirs=self.settings.exclude_dirs,
            max_entries=self.settings.cache_max_entries,
        )
        resolve_file = partial(
            resolve_component_file,
            exists=exists,
            options=self.settings.resolver_options(),
        )
        self.orchestrator = ResolutionOrchestrator(self.locator, presenter, resolve_file=resolve_file)
        self.listing = ComponentListing(self.locator, search=search)
        self.watcher = FileWatcher(self.workspace_roots, exclude_dirs=self.settings.exclude_dirs)
        self.debouncer = Debouncer(self.settings.debounce_seconds)
        self._watch_disposers = [
            self.watcher.watch(self.locator.watch_pattern, self.locator.handle_change),
            self.watcher.watch(COMPONENT_FILE_PATTERN, self.listing.handle_source_change, SOURCE_WATCH_KINDS),
        ]
        self._watch_task: asyncio.Task[Any] | None = None
        self._tasks: set[asyncio.Task[Any]] = set()
        self.closed = False

    def start(self) -> None:
        """Render the idle panel and begin polling for file changes."""
        self.presenter.render_empty()
        if self._watch_task is None:
            self._watch_task = asyncio.get_running_loop().create_task(self._watch_loop())

    async def _watch_loop(self) -> None:
        while True:
            try:
                events = await asyncio.to_thread(self.watcher.collect_changes)
                self.watcher.dispatch(events)
            except Exception:
                logger.exception("file watch poll failed")
            await asyncio.sleep(self.settings.watch_poll_seconds)

    def on_cursor(self, document_path: Path, text: str, offset: int) -> bool:
        """Cursor trigger: debounce resolution for supported documents.

        Returns whether a resolution was scheduled.
        """
        if self.closed or language_for_path(document_path) is None:
            return False
        self.debouncer.schedule(self.resolve_cursor, document_path, text, offset)
        return True

    async def resolve_cursor(self, document_path: Path, text: str, offset: int) -> PresentationCommand:
        """Run the cursor pipeline immediately (the debounced callback)."""
        return await self.orchestrator.show_for_cursor(text, offset, document_path, self.workspace_roots)

    def on_file_selected(self, file_path: Path) -> asyncio.Task[PresentationCommand]:
        """File-selection trigger: start resolution for ``file_path`` right away."""
        task = asyncio.get_running_loop().create_task(self.show_file(file_path))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def show_file(self, file_path: Path) -> PresentationCommand:
        if self.closed:
            return NOOP
        return await self.orchestrator.show_for_file(Path(file_path).resolve())

    def has_preview(self, path: Path) -> bool:
        return self.listing.has_decoration(Path(path))

    async def settle(self) -> None:
        """Wait until fired debounced work and selection tasks have finished."""
        await self.debouncer.drain()
        while self._tasks:
            tasks = list(self._tasks)
            await asyncio.gather(*tasks, return_exceptions=True)
            self._tasks.difference_update(tasks)

    async def close(self) -> None:
        """Cancel timers, watches, and in-flight work; clear the cache."""
        if self.closed:
            return
        self.closed = True
        self.debouncer.cancel()
        for task in list(self._tasks):
            task.cancel()
        if self._watch_task is not None:
            self._watch_task.cancel()
            await asyncio.gather(self._watch_task, return_exceptions=True)
            self._watch_task = None
        for dispose in self._watch_disposers:
            dispose()
        self.watcher.close()
        self.listing.close()
        self.locator.close()
        self.orchestrator.reset_last_shown()
        logger.debug("preview session closed")
