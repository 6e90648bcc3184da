"""Root conftest — isolates the config directory for every test.

Config writes into $TGDIALOG_DIR, so point it at a throwaway directory
before any test constructs one.
"""

import os
import tempfile

# Force-set (not setdefault) to prevent real env vars from leaking into tests
os.environ["TGDIALOG_DIR"] = tempfile.mkdtemp(prefix="tgdialog-test-")
os.environ.pop("TELEGRAM_BOT_TOKEN", None)
