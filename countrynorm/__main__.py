"""Module entrypoint for running countrynorm as ``python -m countrynorm``."""

from __future__ import annotations

from countrynorm.cli import main


if __name__ == "__main__":
    main()
