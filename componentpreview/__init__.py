"""Public package surface for componentpreview.

Exports ``main`` for programmatic CLI invocation.
The resolution pipeline lives in ``names``, ``resolver``, ``locator``, and
``orchestrator``; ``session`` wires them to watchers and timers.
"""

from __future__ import annotations


def main(*args, **kwargs):
    """Lazily import CLI entrypoint to keep package imports lightweight."""
    from .cli import main as _main

    return _main(*args, **kwargs)

__all__ = ["main"]
