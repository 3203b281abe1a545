"""Filesystem probe capabilities used by the resolution pipeline.

``path_exists`` is the synchronous existence check; probe failures of any
kind count as "does not exist". ``search_workspace`` is the asynchronous
globbed search over workspace roots, backed by ``rg --files`` when available
and an ``os.walk`` scan otherwise.
"""

from __future__ import annotations

import asyncio
import logging
import os
import re
import shutil
import subprocess
from collections.abc import Awaitable, Callable, Iterable, Sequence
from functools import lru_cache
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_EXCLUDE_DIRS = ("node_modules", "bower_components", "jspm_packages", "vendor", ".git")

ExistsProbe = Callable[[Path], bool]
WorkspaceSearch = Callable[[Sequence[Path], str, Sequence[str], int], Awaitable[list[Path]]]


def path_exists(path: Path) -> bool:
    """Return whether ``path`` exists; permission and I/O errors read as absent."""
    try:
        return os.path.exists(path)
    except (OSError, ValueError):
        return False


@lru_cache(maxsize=256)
def _compile_glob(pattern: str) -> re.Pattern[str]:
    """Translate a workspace glob into a regex over POSIX relative paths.

    Supports ``**/`` (zero or more directories), ``*`` and ``?`` within one
    segment, ``{a,b}`` alternation, and backslash escapes.
    """
    out: list[str] = []
    idx = 0
    length = len(pattern)
    while idx < length:
        ch = pattern[idx]
        if ch == "\\" and idx + 1 < length:
            out.append(re.escape(pattern[idx + 1]))
            idx += 2
            continue
        if pattern.startswith("**/", idx):
            out.append("(?:.*/)?")
            idx += 3
            continue
        if pattern.startswith("**", idx):
            out.append(".*")
            idx += 2
            continue
        if ch == "*":
            out.append("[^/]*")
        elif ch == "?":
            out.append("[^/]")
        elif ch == "{":
            close = pattern.find("}", idx)
            if close < 0:
                out.append(re.escape(ch))
            else:
                options = pattern[idx + 1 : close].split(",")
                out.append("(?:" + "|".join(re.escape(option) for option in options) + ")")
                idx = close + 1
                continue
        else:
            out.append(re.escape(ch))
        idx += 1
    return re.compile("".join(out) + r"\Z")


_GLOB_SPECIAL_CHARS = frozenset("\\*?[]{},")


def escape_glob(text: str) -> str:
    """Backslash-escape glob metacharacters so ``text`` matches only itself."""
    return "".join("\\" + ch if ch in _GLOB_SPECIAL_CHARS else ch for ch in text)


def glob_matches(pattern: str, relative_path: str) -> bool:
    """Return whether POSIX ``relative_path`` matches workspace glob ``pattern``."""
    return _compile_glob(pattern).match(relative_path) is not None


def to_root_relative(path: Path, root: Path) -> str:
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return path.as_posix()


def _is_excluded(relative_parts: Iterable[str], exclude_dirs: Sequence[str]) -> bool:
    """Return whether any directory segment is hidden or excluded."""
    return any(part.startswith(".") or part in exclude_dirs for part in relative_parts)


def _collect_matches_walk(root: Path, pattern: str, exclude_dirs: Sequence[str]) -> list[Path]:
    matches: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(root):
        base = Path(dirpath)
        dirnames[:] = [name for name in dirnames if not name.startswith(".") and name not in exclude_dirs]
        dirnames.sort(key=str.lower)
        for filename in sorted(filenames, key=str.lower):
            if filename.startswith("."):
                continue
            path = base / filename
            relative = path.relative_to(root).as_posix()
            if glob_matches(pattern, relative):
                matches.append(path.resolve())
    return matches


def _collect_matches_rg(root: Path, pattern: str, exclude_dirs: Sequence[str]) -> list[Path] | None:
    if shutil.which("rg") is None:
        return None

    cmd = ["rg", "--files", "--no-ignore", "--glob", pattern]
    for name in exclude_dirs:
        cmd.extend(["--glob", f"!**/{name}/**"])

    try:
        proc = subprocess.run(
            cmd,
            cwd=root,
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            text=True,
            check=False,
        )
    except Exception:
        return None
    # rg exits 1 when nothing matched.
    if proc.returncode not in (0, 1):
        return None

    matches: list[Path] = []
    for raw in proc.stdout.splitlines():
        if not raw:
            continue
        relative = Path(raw)
        if relative.is_absolute() or ".." in relative.parts:
            continue
        if _is_excluded(relative.parts[:-1], exclude_dirs) or relative.name.startswith("."):
            continue
        if not glob_matches(pattern, relative.as_posix()):
            continue
        matches.append((root / relative).resolve())
    return matches


def collect_workspace_matches(
    roots: Sequence[Path],
    pattern: str,
    exclude_dirs: Sequence[str] = DEFAULT_EXCLUDE_DIRS,
    max_results: int = 0,
) -> list[Path]:
    """Blocking search for files matching ``pattern`` under each root.

    Roots are searched in order; within a root results are ordered by
    case-folded relative path so the first match is stable across runs.
    ``max_results <= 0`` means unlimited.
    """
    results: list[Path] = []
    for raw_root in roots:
        try:
            root = raw_root.resolve()
        except OSError:
            continue
        if not root.is_dir():
            continue
        found = _collect_matches_rg(root, pattern, exclude_dirs)
        if found is None:
            found = _collect_matches_walk(root, pattern, exclude_dirs)
        found.sort(key=lambda path: to_root_relative(path, root).casefold())
        for path in found:
            results.append(path)
            if max_results > 0 and len(results) >= max_results:
                return results
    return results


async def search_workspace(
    roots: Sequence[Path],
    pattern: str,
    exclude_dirs: Sequence[str] = DEFAULT_EXCLUDE_DIRS,
    max_results: int = 0,
) -> list[Path]:
    """Asynchronous wrapper that runs the blocking scan off the event loop."""
    logger.debug("workspace search %s under %d root(s)", pattern, len(roots))
    return await asyncio.to_thread(
        collect_workspace_matches,
        list(roots),
        pattern,
        tuple(exclude_dirs),
        max_results,
    )
