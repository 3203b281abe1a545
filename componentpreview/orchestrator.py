"""Compose name extraction, file resolution, and preview lookup.

Both trigger sources (cursor position and file selection) reduce to one
``ResolutionRequest`` consumed by ``ResolutionOrchestrator.show``:

1. name + resolved file: preview next to the file, then by name in the file's
   directory (barrel files), then the workspace-wide name search
2. name only: workspace-wide name search
3. no name: nothing happens

Requests for the name already on screen are dropped before any lookup work.
Asynchronous results from a request that has since been superseded are
discarded.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from .locator import PreviewLocator
from .names import extract_component_name
from .resolver import ResolvedComponent, resolve_component_file

logger = logging.getLogger(__name__)


class Presenter(Protocol):
    """Presentation surface driven by the orchestrator."""

    def render_empty(self) -> None: ...

    def render_image(self, component_name: str, image_path: Path) -> None: ...

    def render_not_found(self, component_name: str) -> None: ...


@dataclass(frozen=True)
class DocumentContext:
    """Where a cursor-derived name was seen; used to resolve its source file."""

    path: Path
    text: str
    workspace_roots: tuple[Path, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ResolutionRequest:
    """Common request value built by the cursor and file-selection adapters.

    ``file_path`` is set when the defining file is already known. Otherwise
    ``document`` carries what the resolver needs to look for it.
    """

    name: str
    file_path: Path | None = None
    document: DocumentContext | None = None


@dataclass(frozen=True)
class RenderImage:
    name: str
    image_path: Path


@dataclass(frozen=True)
class RenderNotFound:
    name: str


@dataclass(frozen=True)
class Noop:
    pass


NOOP = Noop()

PresentationCommand = RenderImage | RenderNotFound | Noop

FileResolverFn = Callable[[str, Path, str, Sequence[Path]], Path | None]


def request_for_cursor(
    text: str,
    offset: int,
    document_path: Path,
    workspace_roots: Sequence[Path],
) -> ResolutionRequest | None:
    """Cursor adapter: build a request from the identifier under ``offset``."""
    name = extract_component_name(text, offset)
    if name is None:
        return None
    return ResolutionRequest(
        name=name,
        document=DocumentContext(path=document_path, text=text, workspace_roots=tuple(workspace_roots)),
    )


def request_for_file(file_path: Path) -> ResolutionRequest:
    """File-selection adapter: the filename stem is the component name."""
    return ResolutionRequest(name=file_path.stem, file_path=file_path)


class ResolutionOrchestrator:
    """Drive preview lookups and translate outcomes into presentation calls."""

    def __init__(
        self,
        locator: PreviewLocator,
        presenter: Presenter | None = None,
        resolve_file: FileResolverFn = resolve_component_file,
    ) -> None:
        self.locator = locator
        self.presenter = presenter
        self._resolve_file = resolve_file
        self.last_shown: str | None = None
        self._generation = 0

    def reset_last_shown(self) -> None:
        """Forget the displayed name so the next request always renders."""
        self.last_shown = None

    async def show_for_cursor(
        self,
        text: str,
        offset: int,
        document_path: Path,
        workspace_roots: Sequence[Path],
    ) -> PresentationCommand:
        request = request_for_cursor(text, offset, document_path, workspace_roots)
        if request is None:
            return NOOP
        return await self.show(request)

    async def show_for_file(self, file_path: Path) -> PresentationCommand:
        return await self.show(request_for_file(file_path))

    async def show(self, request: ResolutionRequest) -> PresentationCommand:
        """Resolve ``request`` and emit at most one presentation call."""
        if request.name == self.last_shown:
            return NOOP
        # Claimed before any lookup so identical triggers arriving while an
        # async search is pending collapse into this one.
        self.last_shown = request.name
        self._generation += 1
        generation = self._generation

        component = self._resolve(request)
        if component is not None:
            image_path = self.locator.find_by_path(component.file_path)
            if image_path is None:
                image_path = self.locator.find_by_name_in_dir(component.name, component.file_path.parent)
            if image_path is not None:
                return self._emit(RenderImage(component.name, image_path))

        image_path = await self.locator.find_by_name(request.name)
        if generation != self._generation:
            logger.debug("dropping stale result for %s", request.name)
            return NOOP
        if image_path is not None:
            return self._emit(RenderImage(request.name, image_path))
        return self._emit(RenderNotFound(request.name))

    def _resolve(self, request: ResolutionRequest) -> ResolvedComponent | None:
        if request.file_path is not None:
            return ResolvedComponent(request.name, request.file_path)
        document = request.document
        if document is None:
            return None
        file_path = self._resolve_file(request.name, document.path, document.text, document.workspace_roots)
        if file_path is None:
            return None
        return ResolvedComponent(request.name, file_path)

    def _emit(self, command: PresentationCommand) -> PresentationCommand:
        if self.presenter is None:
            return command
        if isinstance(command, RenderImage):
            self.presenter.render_image(command.name, command.image_path)
        elif isinstance(command, RenderNotFound):
            self.presenter.render_not_found(command.name)
        return command
