"""Preview-image lookup for components.

Supported naming conventions, checked in this order:

- ``<Base>.preview.<ext>`` next to the component file
- ``__previews__/<Base>.<ext>`` in a sibling folder

``PreviewLocator`` owns the only preview cache. Path lookups and name lookups
share the same bounded store under distinct keys; any image-file change event
clears it and notifies subscribers.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from pathlib import Path

from .preview_cache import ABSENT, PREVIEW_CACHE_MAX, PreviewCache, name_key, path_key
from .probe import DEFAULT_EXCLUDE_DIRS, ExistsProbe, WorkspaceSearch, escape_glob, path_exists, search_workspace
from .watch import ChangeEvent

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg")
PREVIEWS_DIR_NAME = "__previews__"


def image_watch_pattern(image_extensions: Sequence[str] = IMAGE_EXTENSIONS) -> str:
    """Return the glob that matches every supported preview image."""
    suffixes = ",".join(extension.lstrip(".") for extension in image_extensions)
    return f"**/*.{{{suffixes}}}"


def expected_preview_names(name: str, image_extensions: Sequence[str] = IMAGE_EXTENSIONS) -> tuple[str, str]:
    """Return the two conventional filenames for ``name`` (with a glob extension)."""
    suffixes = "|".join(extension.lstrip(".") for extension in image_extensions)
    return (
        f"{name}.preview.{{{suffixes}}}",
        f"{PREVIEWS_DIR_NAME}/{name}.{{{suffixes}}}",
    )


class PreviewLocator:
    """Find preview images by component path (sync) or by name (async).

    Args:
        workspace_roots: Roots searched by ``find_by_name``.
        exists: Synchronous existence probe.
        search: Asynchronous globbed workspace search.
        image_extensions: Image suffixes in priority order.
        exclude_dirs: Directory names skipped by workspace searches.
        max_entries: Cache bound.
    """

    def __init__(
        self,
        workspace_roots: Sequence[Path] = (),
        *,
        exists: ExistsProbe = path_exists,
        search: WorkspaceSearch = search_workspace,
        image_extensions: Sequence[str] = IMAGE_EXTENSIONS,
        exclude_dirs: Sequence[str] = DEFAULT_EXCLUDE_DIRS,
        max_entries: int = PREVIEW_CACHE_MAX,
    ) -> None:
        self.workspace_roots = [Path(root) for root in workspace_roots]
        self.image_extensions = tuple(image_extensions)
        self.exclude_dirs = tuple(exclude_dirs)
        self._exists = exists
        self._search = search
        self._cache = PreviewCache(max_entries)
        self._listeners: list[Callable[[], None]] = []
        self.watch_pattern = image_watch_pattern(self.image_extensions)

    def _probe(self, directory: Path, base_name: str) -> Path | None:
        for extension in self.image_extensions:
            candidate = directory / f"{base_name}.preview{extension}"
            if self._exists(candidate):
                return candidate
        for extension in self.image_extensions:
            candidate = directory / PREVIEWS_DIR_NAME / f"{base_name}{extension}"
            if self._exists(candidate):
                return candidate
        return None

    def find_by_path(self, component_path: Path) -> Path | None:
        """Return the preview image for the component at ``component_path``.

        Cached, including negative results; a cache hit performs no probing.
        """
        key = path_key(component_path)
        cached = self._cache.get(key)
        if cached is not None:
            logger.debug("preview cache hit for %s", component_path)
            return cached if cached is not ABSENT else None

        result = self._probe(component_path.parent, component_path.stem)
        self._cache.put(key, result if result is not None else ABSENT)
        return result

    def has_preview(self, component_path: Path) -> bool:
        return self.find_by_path(component_path) is not None

    def find_by_name_in_dir(self, name: str, directory: Path) -> Path | None:
        """Probe both conventions for ``name`` inside ``directory`` (uncached).

        Covers barrel files: an import may resolve to ``blocks/index.tsx`` while
        the image sits at ``blocks/Hero8.preview.png``.
        """
        return self._probe(directory, name)

    def _name_patterns(self, name: str) -> list[str]:
        # File stems such as "[id]" must match literally.
        name = escape_glob(name)
        patterns = [f"**/{name}.preview{extension}" for extension in self.image_extensions]
        patterns.extend(f"**/{PREVIEWS_DIR_NAME}/{name}{extension}" for extension in self.image_extensions)
        return patterns

    async def find_by_name(self, name: str) -> Path | None:
        """Search the whole workspace for a preview image named after ``name``.

        Last-resort path for when no component file is known. The result is
        cached under a synthetic name key unless the cache was invalidated while
        the search was pending.
        """
        key = name_key(name)
        cached = self._cache.get(key)
        if cached is not None:
            return cached if cached is not ABSENT else None

        epoch = self._cache.epoch
        result: Path | None = None
        for pattern in self._name_patterns(name):
            matches = await self._search(self.workspace_roots, pattern, self.exclude_dirs, 1)
            if matches:
                result = matches[0]
                break

        if self._cache.epoch == epoch:
            self._cache.put(key, result if result is not None else ABSENT)
        logger.debug("workspace search for %s -> %s", name, result)
        return result

    def clear_cache(self) -> None:
        """Drop every cached lookup without notifying subscribers."""
        self._cache.clear()

    def subscribe(self, listener: Callable[[], None]) -> Callable[[], None]:
        """Register a cache-invalidation listener; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def invalidate(self) -> None:
        """Clear the cache and tell subscribers preview availability may have changed."""
        self.clear_cache()
        for listener in list(self._listeners):
            listener()

    def handle_change(self, event: ChangeEvent) -> None:
        """Watcher callback: invalidate on any preview-image create/delete/change."""
        if event.path.suffix.lower() not in self.image_extensions:
            return
        logger.debug("image %s %s; clearing preview cache", event.path, event.kind)
        self.invalidate()

    def close(self) -> None:
        self.clear_cache()
        self._listeners.clear()
