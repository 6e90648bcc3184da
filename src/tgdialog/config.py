"""Application configuration — reads env vars (with .env support).

Loads TELEGRAM_BOT_TOKEN and the dialog engine tunables from environment
variables. .env loading priority: local .env (cwd) > $TGDIALOG_DIR/.env
(default ~/.tgdialog). Instantiated explicitly by main.run_bot() and handed
to feed.create_application(); nothing reads configuration at import time.

Key class: Config.
"""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

from .downloads import MAX_PRIORITY, MIN_PRIORITY
from .registry import WaiterPolicy
from .utils import tgdialog_dir

logger = logging.getLogger(__name__)


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "")
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name, "")
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e


class Config:
    """Application configuration loaded from environment variables."""

    def __init__(self) -> None:
        self.config_dir = tgdialog_dir()
        self.config_dir.mkdir(parents=True, exist_ok=True)

        # Load .env: local (cwd) takes priority over config_dir
        # load_dotenv default override=False means first-loaded wins
        local_env = Path(".env")
        global_env = self.config_dir / ".env"
        if local_env.is_file():
            load_dotenv(local_env)
            logger.debug("Loaded env from %s", local_env.resolve())
        if global_env.is_file():
            load_dotenv(global_env)
            logger.debug("Loaded env from %s", global_env)

        self.telegram_bot_token: str = os.getenv("TELEGRAM_BOT_TOKEN") or ""
        if not self.telegram_bot_token:
            raise ValueError("TELEGRAM_BOT_TOKEN environment variable is required")

        download_dir = os.getenv("TGDIALOG_DOWNLOAD_DIR", "")
        self.download_dir = (
            Path(download_dir) if download_dir else self.config_dir / "downloads"
        )

        self.download_workers = _int_env("TGDIALOG_DOWNLOAD_WORKERS", 2)
        if self.download_workers < 1:
            raise ValueError("TGDIALOG_DOWNLOAD_WORKERS must be positive")

        self.download_priority = _int_env("TGDIALOG_DOWNLOAD_PRIORITY", MIN_PRIORITY)
        if not MIN_PRIORITY <= self.download_priority <= MAX_PRIORITY:
            raise ValueError(
                f"TGDIALOG_DOWNLOAD_PRIORITY must be in {MIN_PRIORITY}..{MAX_PRIORITY}"
            )

        # 0 disables the cap / timeout
        self.answer_max_attempts = _int_env("TGDIALOG_ANSWER_ATTEMPTS", 0)
        if self.answer_max_attempts < 0:
            raise ValueError("TGDIALOG_ANSWER_ATTEMPTS must be non-negative")
        self.wait_timeout = _float_env("TGDIALOG_WAIT_TIMEOUT", 0.0)
        if self.wait_timeout < 0:
            raise ValueError("TGDIALOG_WAIT_TIMEOUT must be non-negative")

        policy = os.getenv("TGDIALOG_WAITER_POLICY", WaiterPolicy.REPLACE.value)
        try:
            self.waiter_policy = WaiterPolicy(policy.strip().lower())
        except ValueError as e:
            choices = ", ".join(p.value for p in WaiterPolicy)
            raise ValueError(
                f"TGDIALOG_WAITER_POLICY must be one of {choices}, got {policy!r}"
            ) from e

        logger.debug(
            "Config initialized: dir=%s, token=%s..., downloads=%s (workers=%d), "
            "policy=%s",
            self.config_dir,
            self.telegram_bot_token[:8],
            self.download_dir,
            self.download_workers,
            self.waiter_policy.value,
        )

    @property
    def effective_wait_timeout(self) -> float | None:
        return self.wait_timeout or None

    @property
    def effective_answer_attempts(self) -> int | None:
        return self.answer_max_attempts or None
