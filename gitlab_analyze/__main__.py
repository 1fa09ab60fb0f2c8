#!/usr/bin/env python3
"""Module entrypoint for `gitlab_analyze`.

Usage:
  - `python3 -m gitlab_analyze analyze -p 123 -s 2024-01-01 -e 2024-01-31`
  - `python3 -m gitlab_analyze list`
"""

from __future__ import annotations

from .cli import main


if __name__ == "__main__":
    raise SystemExit(main())
