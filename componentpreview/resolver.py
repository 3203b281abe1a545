"""Locate the source file that defines a component.

Strategies run in a fixed order and the first hit wins:

1. import statements in the current document
2. a file named after the component in the document's own directory
3. conventional component directories under each workspace root

Every strategy funnels candidate base paths through ``probe_source_file``,
which applies the same extension and ``index`` file probing each time. A
``None`` result is the normal "fall back to name-only search" outcome.
"""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from .probe import ExistsProbe, path_exists

logger = logging.getLogger(__name__)

SOURCE_EXTENSIONS = (".tsx", ".ts", ".jsx", ".js")
SOURCE_ROOT_PREFIXES = ("src", "app", "")
COMPONENT_DIRS = ("src/blocks", "src/components", "blocks", "components")
ALIAS_PREFIX = "@/"


@dataclass(frozen=True)
class ResolvedComponent:
    """Component name plus the absolute path of the file that defines it."""

    name: str
    file_path: Path


@dataclass(frozen=True)
class ResolverOptions:
    """Probe ordering knobs; defaults match the conventional project layout."""

    source_extensions: tuple[str, ...] = SOURCE_EXTENSIONS
    source_root_prefixes: tuple[str, ...] = SOURCE_ROOT_PREFIXES
    component_dirs: tuple[str, ...] = COMPONENT_DIRS
    alias_prefix: str = ALIAS_PREFIX


DEFAULT_RESOLVER_OPTIONS = ResolverOptions()


def _import_patterns(name: str) -> tuple[re.Pattern[str], ...]:
    escaped = re.escape(name)
    return (
        # import Name from '...'  /  import Name, { other } from '...'
        re.compile(rf"import\s+{escaped}\s*(?:,\s*\{{[^}}]*\}}\s*)?\s+from\s+['\"]([^'\"]+)['\"]"),
        # import { Name } / import { Other as Name } / import Default, { Name } from '...'
        re.compile(
            rf"import\s+(?:type\s+)?(?:[A-Za-z_$][\w$]*\s*,\s*)?\{{[^}}]*\b{escaped}\b[^}}]*\}}\s*from\s+['\"]([^'\"]+)['\"]"
        ),
    )


def find_import_specifiers(name: str, text: str) -> list[str]:
    """Return module specifiers that import ``name``, default imports first."""
    specifiers: list[str] = []
    for pattern in _import_patterns(name):
        match = pattern.search(text)
        if match is not None and match.group(1) not in specifiers:
            specifiers.append(match.group(1))
    return specifiers


def probe_source_file(
    base_path: Path,
    exists: ExistsProbe = path_exists,
    extensions: Sequence[str] = SOURCE_EXTENSIONS,
) -> Path | None:
    """Return the first existing source file for ``base_path``.

    A path that already carries a source extension is checked directly.
    Otherwise each extension is appended in order, then ``index.<ext>`` is
    tried inside ``base_path`` as a directory.
    """
    if base_path.suffix in extensions:
        return base_path if exists(base_path) else None

    for extension in extensions:
        candidate = Path(f"{base_path}{extension}")
        if exists(candidate):
            return candidate

    for extension in extensions:
        candidate = base_path / f"index{extension}"
        if exists(candidate):
            return candidate

    return None


def _containing_root(document_path: Path, workspace_roots: Sequence[Path]) -> Path | None:
    """Return the deepest workspace root containing ``document_path``."""
    best: Path | None = None
    for root in workspace_roots:
        if document_path.is_relative_to(root) and (best is None or len(root.parts) > len(best.parts)):
            best = root
    return best


def resolve_module_path(
    specifier: str,
    document_path: Path,
    workspace_roots: Sequence[Path],
    exists: ExistsProbe = path_exists,
    options: ResolverOptions = DEFAULT_RESOLVER_OPTIONS,
) -> Path | None:
    """Resolve an import specifier to an existing source file.

    Relative specifiers resolve against the document directory. Bare or
    aliased specifiers try each source-root prefix under the workspace root
    that contains the document, or under every root when none does.
    """
    if specifier.startswith("."):
        base = Path(_normalize(document_path.parent / specifier))
        return probe_source_file(base, exists, options.source_extensions)

    normalized = specifier
    if options.alias_prefix and normalized.startswith(options.alias_prefix):
        normalized = normalized[len(options.alias_prefix) :]
    normalized = normalized.lstrip("/")
    if not normalized:
        return None

    containing = _containing_root(document_path, workspace_roots)
    roots = [containing] if containing is not None else list(workspace_roots)
    for root in roots:
        for prefix in options.source_root_prefixes:
            base = root / prefix / normalized if prefix else root / normalized
            resolved = probe_source_file(Path(_normalize(base)), exists, options.source_extensions)
            if resolved is not None:
                return resolved
    return None


def _normalize(path: Path) -> str:
    """Collapse ``.``/``..`` segments lexically, without touching the filesystem."""
    return os.path.normpath(path)


def resolve_from_imports(
    name: str,
    document_path: Path,
    document_text: str,
    workspace_roots: Sequence[Path],
    exists: ExistsProbe = path_exists,
    options: ResolverOptions = DEFAULT_RESOLVER_OPTIONS,
) -> Path | None:
    for specifier in find_import_specifiers(name, document_text):
        resolved = resolve_module_path(specifier, document_path, workspace_roots, exists, options)
        if resolved is not None:
            return resolved
    return None


def resolve_from_same_directory(
    name: str,
    document_path: Path,
    exists: ExistsProbe = path_exists,
    options: ResolverOptions = DEFAULT_RESOLVER_OPTIONS,
) -> Path | None:
    return probe_source_file(document_path.parent / name, exists, options.source_extensions)


def resolve_from_component_dirs(
    name: str,
    workspace_roots: Sequence[Path],
    exists: ExistsProbe = path_exists,
    options: ResolverOptions = DEFAULT_RESOLVER_OPTIONS,
) -> Path | None:
    for root in workspace_roots:
        for sub_dir in options.component_dirs:
            resolved = probe_source_file(root / sub_dir / name, exists, options.source_extensions)
            if resolved is not None:
                return resolved
    return None


def resolve_component_file(
    name: str,
    document_path: Path,
    document_text: str,
    workspace_roots: Sequence[Path],
    exists: ExistsProbe = path_exists,
    options: ResolverOptions = DEFAULT_RESOLVER_OPTIONS,
) -> Path | None:
    """Return the absolute path of the file defining ``name``, or ``None``."""
    document_path = document_path.absolute()
    roots = [root.absolute() for root in workspace_roots]

    resolved = resolve_from_imports(name, document_path, document_text, roots, exists, options)
    if resolved is not None:
        logger.debug("resolved %s via import scan: %s", name, resolved)
        return resolved

    resolved = resolve_from_same_directory(name, document_path, exists, options)
    if resolved is not None:
        logger.debug("resolved %s in document directory: %s", name, resolved)
        return resolved

    resolved = resolve_from_component_dirs(name, roots, exists, options)
    if resolved is not None:
        logger.debug("resolved %s in component directory: %s", name, resolved)
        return resolved

    logger.debug("no source file found for %s", name)
    return None
