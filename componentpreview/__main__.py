"""Module entrypoint for ``python -m componentpreview``.

All argument parsing and session setup happen in ``componentpreview.cli``.
"""

from .cli import main


if __name__ == "__main__":
    main()
