"""tgdialog - sequential conversations on top of the Telegram update feed.

Package entry point. Exports the version string only; the dialog engine
lives in dialog.py and the bot bootstrap in main.py.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("tgdialog")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"
