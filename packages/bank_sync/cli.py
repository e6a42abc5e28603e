# ruff: noqa: I001
"""CLI for the ``bank_sync`` package.

This module exposes callable command handlers (``cmd_save``,
``cmd_verify_config``) returning process exit codes, and a Typer-based
console interface around them. Environment variables (notably
``BANK_SYNC_CONFIG``) are loaded from a local ``.env`` using
``python-dotenv`` before delegating to command logic. Business logic lives in
``bank_sync.orchestrator`` and related modules.
"""

from __future__ import annotations

import asyncio
import json
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from pydantic import ValidationError
from typer.models import OptionInfo

from .config import BankSyncConfig, load_config
from .errors import ConfigError
from .logging_setup import configure_logging, get_logger
from .models import RawAccountResult
from .normalize import parse_results
from .notifier import LogNotifier, Notifier, TelegramNotifier
from .orchestrator import RunReport, save_results
from .registry import build_registry

logger = get_logger("bank_sync.cli")


# ---- Small module-level helpers used by CLI commands -------------------------


@asynccontextmanager
async def notifier_scope(config: BankSyncConfig) -> AsyncIterator[Notifier]:
    """Yield the configured notifier, falling back to logging only."""

    telegram = config.notifications.telegram
    if telegram is None:
        yield LogNotifier()
        return
    async with TelegramNotifier(telegram.api_key, telegram.chat_id) as notifier:
        yield notifier


def _read_results(path: Path) -> list[RawAccountResult]:
    with path.open(encoding="utf-8") as f:
        return parse_results(json.load(f))


def _summary_lines(report: RunReport) -> list[str]:
    if not report.outcomes:
        return [f"status\t{report.status.value}"]
    lines = []
    for o in report.outcomes:
        if o.ok and o.stats is not None:
            s = o.stats
            lines.append(
                f"{o.name}\tok\tadded={s.added}\texisting={s.existing}"
                f"\tpending={s.pending}\tskipped={s.other_skipped}"
            )
        else:
            lines.append(f"{o.name}\tfailed\t{o.error}")
    return lines


async def _run_save(config: BankSyncConfig, results: list[RawAccountResult]) -> RunReport:
    async with notifier_scope(config) as notifier:
        registry = build_registry(config, notifier=notifier)
        return await save_results(
            results, registry, notifier, tz=config.options.scraping.timezone
        )


def cmd_save(results_path: str) -> int:
    """Save scrape results from a JSON file to every configured backend.

    Returns ``0`` once the fan-out has been attempted, even if individual
    backends failed (their failures are reported through the notifier and in
    the summary). Returns ``1`` for configuration or input errors.
    """

    try:
        config = load_config()
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        results = _read_results(Path(results_path))
    except FileNotFoundError:
        print(f"Error: File not found: {results_path}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error: Cannot read {results_path}: {e}", file=sys.stderr)
        return 1
    except UnicodeDecodeError as e:
        print(f"Error: {results_path} is not UTF-8 text: {e}", file=sys.stderr)
        return 1
    except json.JSONDecodeError as e:
        print(f"Error: Failed to parse JSON: {e}", file=sys.stderr)
        return 1
    except ValidationError as e:
        print(f"Error: Invalid scrape results:\n{e}", file=sys.stderr)
        return 1

    report = asyncio.run(_run_save(config, results))
    for line in _summary_lines(report):
        print(line)
    return 0


def cmd_verify_config() -> int:
    """Validate configuration and print the active backends, one per line."""

    try:
        config = load_config()
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    registry = build_registry(config)
    if not registry:
        print("No storages configured")
    for name in registry.names:
        print(name)
    return 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Normalize bank scrape results and save them to every configured storage. "
        "Loads BANK_SYNC_CONFIG from a local .env before running."
    ),
)

# Module-level option object to satisfy ruff B008 (no calls in parameter
# defaults).
RESULTS_PATH_OPTION: OptionInfo = typer.Option(
    ...,  # required
    "--results",
    help="Path to a JSON file with the scraper's results (a list of account results)",
    dir_okay=False,
    file_okay=True,
    exists=False,  # allow non-existent here; the handler reports nice errors
)


@app.command("save")
def save_cmd(results_path: Annotated[Path, RESULTS_PATH_OPTION]) -> None:
    """Normalize results and fan them out to the configured storages."""

    raise typer.Exit(cmd_save(str(results_path)))


@app.command("verify-config")
def verify_config_cmd() -> None:
    """Validate configuration and list active storages."""

    raise typer.Exit(cmd_verify_config())


@app.callback()
def _root(
    log_level: str | None = typer.Option(
        None, help="Log level (falls back to BANK_SYNC_LOG_LEVEL, then INFO)."
    ),
) -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and configures logging once.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging(log_level)


if __name__ == "__main__":  # pragma: no cover
    # Running as a module: `python -m bank_sync.cli`
    app()
