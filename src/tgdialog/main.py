"""Application entry point — Click CLI dispatcher and bot bootstrap.

The ``main()`` function invokes the Click command group defined in cli.py.
``run_bot()`` contains the actual bot startup logic, called by the ``run``
command after CLI flags have been applied to the environment.
"""

import logging
import os
import sys

import colorlog


class _ShortNameFilter(logging.Filter):
    """Strip the 'tgdialog.' prefix, cap at 20 chars."""

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if name.startswith("tgdialog."):
            name = name[len("tgdialog.") :]
        record.short_name = name[:20]  # type: ignore[attr-defined]
        return True


def setup_logging(log_level: str) -> None:
    """Configure colored, compact logging for interactive CLI use."""
    numeric_level = getattr(logging, log_level, None)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    handler = colorlog.StreamHandler()
    handler.setFormatter(
        colorlog.ColoredFormatter(
            "%(log_color)s%(asctime)s %(levelname)-8s %(short_name)-20s %(message)s",
            datefmt="%H:%M:%S",
            log_colors={
                "DEBUG": "cyan",
                "INFO": "green",
                "WARNING": "yellow",
                "ERROR": "red",
                "CRITICAL": "bold_red",
            },
        )
    )
    handler.addFilter(_ShortNameFilter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.WARNING)

    logging.getLogger("tgdialog").setLevel(numeric_level)
    for name in ("httpx", "httpcore", "telegram.ext"):
        logging.getLogger(name).setLevel(logging.WARNING)


def run_bot() -> None:
    """Start the bot. Called by the ``run`` Click command after env is set."""
    log_level = os.environ.get("TGDIALOG_LOG_LEVEL", "INFO").upper()
    setup_logging(log_level)

    from .config import Config

    try:
        config = Config()
    except ValueError as e:
        from .utils import tgdialog_dir

        env_path = tgdialog_dir() / ".env"
        print(f"Error: {e}\n")
        print(f"Create {env_path} with the following content:\n")
        print("  TELEGRAM_BOT_TOKEN=your_bot_token_here")
        print()
        print("Get your bot token from @BotFather on Telegram.")
        sys.exit(1)

    logger = logging.getLogger(__name__)
    logger.info("Downloads go to %s", config.download_dir)
    logger.info("Waiter policy: %s", config.waiter_policy.value)

    from telegram import Update

    from .demo import register_demo
    from .feed import create_application, get_dialog

    logger.info("Starting Telegram bot...")
    application = create_application(config)
    register_demo(get_dialog(application))
    application.run_polling(allowed_updates=Update.ALL_TYPES)


def main() -> None:
    """Main entry point — dispatches via Click CLI group."""
    from .cli import cli

    cli()


if __name__ == "__main__":
    main()
