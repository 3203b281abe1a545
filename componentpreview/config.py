"""Persistent JSON config helpers.

Stores lookup conventions, debounce timing, and panel styling. All access is
defensive: malformed or missing config falls back to defaults key by key.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, replace
from pathlib import Path

from platformdirs import user_config_dir, user_log_dir

from .debounce import DEBOUNCE_SECONDS
from .highlight import DEFAULT_STYLE
from .locator import IMAGE_EXTENSIONS
from .preview_cache import PREVIEW_CACHE_MAX
from .probe import DEFAULT_EXCLUDE_DIRS
from .resolver import COMPONENT_DIRS, SOURCE_EXTENSIONS, SOURCE_ROOT_PREFIXES, ResolverOptions

APP_NAME = "componentpreview"
CONFIG_FILENAME = "config.json"
LOG_FILENAME = "componentpreview.log"
DEFAULT_CONFIG_PATH = Path(user_config_dir(APP_NAME, appauthor=False)) / CONFIG_FILENAME
DEFAULT_LOG_PATH = Path(user_log_dir(APP_NAME, appauthor=False)) / LOG_FILENAME
CONFIG_PATH = DEFAULT_CONFIG_PATH

WATCH_POLL_SECONDS = 1.0


@dataclass(frozen=True)
class Settings:
    """Effective runtime settings after merging config over defaults."""

    debounce_ms: int = int(DEBOUNCE_SECONDS * 1000)
    cache_max_entries: int = PREVIEW_CACHE_MAX
    image_extensions: tuple[str, ...] = IMAGE_EXTENSIONS
    source_extensions: tuple[str, ...] = SOURCE_EXTENSIONS
    component_dirs: tuple[str, ...] = COMPONENT_DIRS
    source_root_prefixes: tuple[str, ...] = SOURCE_ROOT_PREFIXES
    exclude_dirs: tuple[str, ...] = DEFAULT_EXCLUDE_DIRS
    watch_poll_seconds: float = WATCH_POLL_SECONDS
    style: str = DEFAULT_STYLE

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000.0

    def resolver_options(self) -> ResolverOptions:
        return ResolverOptions(
            source_extensions=self.source_extensions,
            source_root_prefixes=self.source_root_prefixes,
            component_dirs=self.component_dirs,
        )


def load_config(path: Path | None = None) -> dict[str, object]:
    """Load the persisted JSON config object.

    Returns an empty dict when the file is missing, unreadable, malformed, or
    does not decode to a top-level JSON object.
    """
    config_path = path if path is not None else CONFIG_PATH
    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except Exception:
        return {}
    return data if isinstance(data, dict) else {}


def save_config(data: dict[str, object], path: Path | None = None) -> bool:
    """Persist config data as pretty-printed JSON; return whether it was written."""
    config_path = path if path is not None else CONFIG_PATH
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        config_path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    except OSError:
        return False
    return True


def _coerce_positive_int(value: object) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        return None
    return value


def _coerce_positive_float(value: object) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        return None
    return float(value)


def _coerce_str_tuple(value: object, *, extensions: bool = False, allow_empty_item: bool = False) -> tuple[str, ...] | None:
    """Accept a non-empty list of strings; extensions gain a leading dot."""
    if not isinstance(value, list) or not value:
        return None
    items: list[str] = []
    for item in value:
        if not isinstance(item, str):
            return None
        stripped = item.strip()
        if not stripped and not allow_empty_item:
            return None
        if extensions and not stripped.startswith("."):
            stripped = "." + stripped
        items.append(stripped.lower() if extensions else stripped)
    return tuple(items)


def load_settings(path: Path | None = None) -> Settings:
    """Build ``Settings`` from config, ignoring invalid values per key."""
    data = load_config(path)
    defaults = Settings()
    overrides: dict[str, object] = {}

    debounce_ms = _coerce_positive_int(data.get("debounce_ms"))
    if debounce_ms is not None:
        overrides["debounce_ms"] = debounce_ms
    cache_max = _coerce_positive_int(data.get("cache_max_entries"))
    if cache_max is not None:
        overrides["cache_max_entries"] = cache_max
    poll_seconds = _coerce_positive_float(data.get("watch_poll_seconds"))
    if poll_seconds is not None:
        overrides["watch_poll_seconds"] = poll_seconds

    for key in ("image_extensions", "source_extensions"):
        parsed = _coerce_str_tuple(data.get(key), extensions=True)
        if parsed is not None:
            overrides[key] = parsed
    for key in ("component_dirs", "exclude_dirs"):
        parsed = _coerce_str_tuple(data.get(key))
        if parsed is not None:
            overrides[key] = parsed
    # "" stands for the workspace root itself.
    prefixes = _coerce_str_tuple(data.get("source_root_prefixes"), allow_empty_item=True)
    if prefixes is not None:
        overrides["source_root_prefixes"] = prefixes

    style = data.get("style")
    if isinstance(style, str) and style.strip():
        overrides["style"] = style.strip()

    return replace(defaults, **overrides)


def save_settings(settings: Settings, path: Path | None = None) -> bool:
    """Write ``settings`` as a config file (tuples serialized as lists)."""
    data = {key: list(value) if isinstance(value, tuple) else value for key, value in asdict(settings).items()}
    return save_config(data, path)
