"""Shared utility functions used across tgdialog modules.

Provides:
  - tgdialog_dir(): resolve config directory from TGDIALOG_DIR env var.
"""

import os
from pathlib import Path

TGDIALOG_DIR_ENV = "TGDIALOG_DIR"


def tgdialog_dir() -> Path:
    """Resolve config directory from TGDIALOG_DIR env var or default ~/.tgdialog."""
    raw = os.environ.get(TGDIALOG_DIR_ENV, "")
    return Path(raw) if raw else Path.home() / ".tgdialog"
