"""Click-based CLI for tgdialog.

Defines the top-level command group and the ``run`` subcommand with the
dialog-engine flags. Precedence: CLI flag > env var > .env > default.
``apply_args_to_env()`` sets os.environ for explicitly provided flags so
Config reads the overridden values.
"""

import os
from pathlib import Path

import click

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")
_WAITER_POLICIES = ("replace", "reject", "queue")


def _validate_positive_int(
    _ctx: click.Context, _param: click.Parameter, value: int | None
) -> int | None:
    if value is not None and value <= 0:
        raise click.BadParameter("must be positive")
    return value


def _validate_non_negative(
    _ctx: click.Context, _param: click.Parameter, value: float | None
) -> float | None:
    if value is not None and value < 0:
        raise click.BadParameter("must be non-negative")
    return value


class _DefaultToRun(click.Group):
    """Click group that runs the ``run`` command when invoked without a subcommand."""

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        # If the first arg is not a known command and not --help/--version,
        # prepend "run" so flags like -v go to the run command.
        if args and args[0] not in self.commands and not args[0].startswith("--"):
            args = ["run", *args]
        return super().parse_args(ctx, args)


@click.group(
    cls=_DefaultToRun,
    invoke_without_command=True,
    help="Telegram bot running sequential dialogs over the update feed.",
)
@click.version_option(package_name="tgdialog", prog_name="tgdialog")
@click.pass_context
def cli(ctx: click.Context) -> None:
    if ctx.invoked_subcommand is None:
        ctx.invoke(run_cmd)


# --- run command -----------------------------------------------------------

# Mapping: click option name → environment variable name
_FLAG_TO_ENV: list[tuple[str, str]] = [
    ("config_dir", "TGDIALOG_DIR"),
    ("download_dir", "TGDIALOG_DOWNLOAD_DIR"),
    ("download_workers", "TGDIALOG_DOWNLOAD_WORKERS"),
    ("download_priority", "TGDIALOG_DOWNLOAD_PRIORITY"),
    ("answer_attempts", "TGDIALOG_ANSWER_ATTEMPTS"),
    ("wait_timeout", "TGDIALOG_WAIT_TIMEOUT"),
    ("waiter_policy", "TGDIALOG_WAITER_POLICY"),
]


def apply_args_to_env(**kwargs: object) -> None:
    """Set environment variables from explicitly provided CLI flags.

    Call BEFORE Config instantiation to ensure CLI flags take precedence.
    Only sets env vars for flags that were explicitly provided (not None).
    """
    verbose = kwargs.get("verbose", False)
    log_level = kwargs.get("log_level")

    if verbose:
        os.environ["TGDIALOG_LOG_LEVEL"] = "DEBUG"
    elif log_level is not None:
        os.environ["TGDIALOG_LOG_LEVEL"] = str(log_level).upper()

    for attr, env_var in _FLAG_TO_ENV:
        value = kwargs.get(attr)
        if value is None:
            continue
        if isinstance(value, Path):
            os.environ[env_var] = str(value.expanduser().resolve())
        else:
            os.environ[env_var] = str(value)


@cli.command("run")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.option(
    "--log-level",
    type=click.Choice(_LOG_LEVELS, case_sensitive=False),
    default=None,
    help="Logging level.",
)
@click.option(
    "--config-dir",
    type=click.Path(path_type=Path),
    default=None,
    envvar="TGDIALOG_DIR",
    help="Config directory (default: ~/.tgdialog).",
)
@click.option(
    "--download-dir",
    type=click.Path(path_type=Path),
    default=None,
    envvar="TGDIALOG_DOWNLOAD_DIR",
    help="Download directory (default: <config-dir>/downloads).",
)
@click.option(
    "--download-workers",
    type=int,
    default=None,
    callback=_validate_positive_int,
    envvar="TGDIALOG_DOWNLOAD_WORKERS",
    help="Concurrent downloads (default: 2).",
)
@click.option(
    "--download-priority",
    type=click.IntRange(1, 32),
    default=None,
    envvar="TGDIALOG_DOWNLOAD_PRIORITY",
    help="Download priority, 1-32, higher first (default: 1).",
)
@click.option(
    "--answer-attempts",
    type=int,
    default=None,
    callback=_validate_non_negative,
    envvar="TGDIALOG_ANSWER_ATTEMPTS",
    help="Re-prompts before giving up on a keyboard answer (default: 0=unbounded).",
)
@click.option(
    "--wait-timeout",
    type=float,
    default=None,
    callback=_validate_non_negative,
    envvar="TGDIALOG_WAIT_TIMEOUT",
    help="Seconds to wait for a reply (default: 0=forever).",
)
@click.option(
    "--waiter-policy",
    type=click.Choice(_WAITER_POLICIES, case_sensitive=False),
    default=None,
    envvar="TGDIALOG_WAITER_POLICY",
    help="Second waiter on a busy chat: replace, reject or queue (default: replace).",
)
def run_cmd(**kwargs: object) -> None:
    """Start the bot with optional overrides."""
    apply_args_to_env(**kwargs)

    from .main import run_bot

    run_bot()
