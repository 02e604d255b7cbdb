#!/usr/bin/env python3
"""Convenience runner so `python main.py` starts the overlay."""

from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from jajanin.main import run  # noqa: E402


if __name__ == "__main__":
    run()
