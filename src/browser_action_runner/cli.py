"""Command line interface for browser-action-runner."""

from __future__ import annotations

import asyncio
import logging
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_version
from pathlib import Path
from typing import Annotated, Any, Optional

import typer

from .config import load_config
from .factory import (
    build_dispatcher,
    build_event_sink,
    build_planner,
    build_popup_suppressor,
    build_recovery,
    build_session_store,
)
from .orchestrator.recovery import FailureRecoveryHandler
from .orchestrator.runner import Orchestrator, RunOutcome

LOGGER = logging.getLogger(__name__)

app = typer.Typer(help="Browser Action Runner entry point")

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@app.callback()
def main(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
    log_file: Annotated[
        Optional[Path],
        typer.Option("--log-file", help="Also write logs to this file."),
    ] = None,
) -> None:
    """Configure logging before executing any command."""

    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format=_LOG_FORMAT)
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        logging.getLogger().addHandler(handler)


@app.command()
def version() -> None:
    """Print the package version."""

    try:
        typer.echo(get_version("browser-action-runner"))
    except PackageNotFoundError:  # pragma: no cover - when running from source tree
        typer.echo("0.0.0")


@app.command()
def run(
    config_path: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Path to YAML configuration."),
    ] = None,
    env_file: Annotated[
        Optional[Path],
        typer.Option(
            "--env-file",
            help="Path to an .env file with default configuration values.",
        ),
    ] = None,
    task: Annotated[
        Optional[str],
        typer.Option("--task", help="Override task description."),
    ] = None,
    headless: Annotated[
        Optional[bool],
        typer.Option("--headless/--headed", help="Run the browser in headless mode (or headed)."),
    ] = None,
    channel: Annotated[
        Optional[str],
        typer.Option("--channel", help="Browser channel, e.g. chrome or msedge."),
    ] = None,
    max_steps: Annotated[
        Optional[int],
        typer.Option("--max-steps", help="Maximum number of planner steps."),
    ] = None,
    events: Annotated[
        Optional[str],
        typer.Option("--events", help="Event channel: console, logging or none."),
    ] = None,
) -> None:
    """Run a scripted browser automation task."""

    overrides: dict[str, Any] = {}
    if task:
        overrides["task"] = {"description": task}
    if headless is not None or channel is not None:
        overrides.setdefault("browser", {})
        if headless is not None:
            overrides["browser"]["headless"] = headless
        if channel is not None:
            overrides["browser"]["channel"] = channel
    if max_steps is not None:
        overrides["max_steps"] = max_steps
    if events is not None:
        overrides["events"] = {"channel": events}

    config = load_config(config_path, env_file=env_file, **overrides)
    typer.echo(f"Loaded configuration for task: {config.task.description}")

    sink = build_event_sink(config.events)
    popups = build_popup_suppressor(config.popups)
    store = build_session_store(config, sink, popups)
    dispatcher = build_dispatcher(config, store, sink, popups)
    recovery = build_recovery(config, store, sink)
    planner = build_planner(config.planner)

    orchestrator = Orchestrator(
        config=config,
        planner=planner,
        dispatcher=dispatcher,
        recovery=recovery,
        events=sink,
    )
    try:
        outcome = asyncio.run(_run_with_cleanup(orchestrator, recovery))
    except (KeyboardInterrupt, asyncio.CancelledError):
        typer.echo("Process interrupted, browser closed.")
        raise typer.Exit(code=130)
    except Exception as exc:
        typer.echo(f"Run failed: {exc}")
        raise typer.Exit(code=1) from exc
    if not outcome.success:
        typer.echo(f"Task failed: {outcome.summary}")
        raise typer.Exit(code=1)
    typer.echo(f"Task finished ({outcome.outcome.value}): {outcome.summary}")


async def _run_with_cleanup(
    orchestrator: Orchestrator,
    recovery: FailureRecoveryHandler,
) -> RunOutcome:
    try:
        return await orchestrator.run()
    except asyncio.CancelledError:
        LOGGER.info("Process interrupted, cleaning up resources...")
        await recovery.force_close()
        raise
    except Exception as exc:
        LOGGER.error("Run aborted, closing browser: %s", exc)
        await recovery.force_close()
        raise


if __name__ == "__main__":
    app()
