"""Serverless entrypoint exposing the review API as a module-level ``app``."""

from __future__ import annotations

import sys
from pathlib import Path

# Make ``memory_bank`` importable when the platform runs this file directly.
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.append(str(ROOT_DIR))

from memory_bank.main import app  # noqa: E402,F401
