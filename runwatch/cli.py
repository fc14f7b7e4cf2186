"""Command-line entry point for watching a repository's workflow runs.

Usage:
    runwatch octo/reef "$GITHUB_TOKEN"
    RUNWATCH_GITHUB_TOKEN=... runwatch octo/reef --state-file ~/.runwatch_state

Environment variables:
    RUNWATCH_GITHUB_TOKEN           - Token used when none is passed positionally
    RUNWATCH_STATE_FILE             - Checkpoint file (default: .runwatch_state)
    RUNWATCH_POLL_INTERVAL_SECONDS  - Delay between polls (default: 10)
    RUNWATCH_ERROR_BACKOFF_SECONDS  - Delay after a failed poll (default: 5)
    RUNWATCH_RUN_WINDOW             - Most recent runs inspected per poll (default: 10)
    RUNWATCH_HTTP_TIMEOUT_SECONDS   - Per-request timeout (default: 10)
    RUNWATCH_LOG_LEVEL              - Log level (default: INFO)
"""

from __future__ import annotations

import asyncio
import dataclasses
import signal
import sys
import typing as typ
from pathlib import Path  # noqa: TC003

from cyclopts import App, Parameter

from runwatch.github import (
    GitHubActionsClient,
    GitHubActionsConfig,
    parse_repository_slug,
)
from runwatch.logging import (
    configure_logging,
    get_logger,
    log_exception,
    log_warning,
)
from runwatch.monitor import (
    FileCheckpointStore,
    MonitorConfig,
    MonitorConfigError,
    ReconciliationLoop,
)
from runwatch.presenter import TerminalSink

if typ.TYPE_CHECKING:
    import collections.abc as cabc

VERSION = "0.1.0"

logger = get_logger(__name__)

app = App(
    name="runwatch",
    help="Stream GitHub Actions run, job, and step transitions as they happen.",
    version=VERSION,
)

_STOP_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def _install_signal_handlers(
    cancel: asyncio.Event, on_stop: cabc.Callable[[], None]
) -> list[signal.Signals]:
    """Route SIGINT/SIGTERM to ``cancel``; return the signals registered."""
    loop = asyncio.get_running_loop()

    def _request_stop() -> None:
        if cancel.is_set():
            return
        on_stop()
        cancel.set()

    installed: list[signal.Signals] = []
    for sig in _STOP_SIGNALS:
        try:
            loop.add_signal_handler(sig, _request_stop)
        except NotImplementedError:
            # Event loops without POSIX signal support fall back to
            # KeyboardInterrupt, which still unwinds through the final persist.
            continue
        installed.append(sig)
    return installed


def _remove_signal_handlers(installed: list[signal.Signals]) -> None:
    loop = asyncio.get_running_loop()
    for sig in installed:
        loop.remove_signal_handler(sig)


async def _watch(
    repository: str,
    github_config: GitHubActionsConfig,
    monitor_config: MonitorConfig,
    sink: TerminalSink,
) -> int:
    """Run the reconciliation loop until a stop signal arrives."""
    async with GitHubActionsClient(github_config) as client:
        loop = ReconciliationLoop(
            repository,
            client,
            sink,
            FileCheckpointStore(monitor_config.state_path),
            config=monitor_config,
        )
        sink.print_banner(repository, loop.initialise_watermark())

        cancel = asyncio.Event()
        installed = _install_signal_handlers(cancel, sink.print_stopping)
        try:
            await loop.run(cancel)
        except Exception as exc:
            log_exception(
                logger, f"Monitor for {repository} stopped unexpectedly", exc
            )
            raise
        finally:
            _remove_signal_handlers(installed)

    sink.print_farewell()
    return 0


@app.default
def watch(
    repository: str,
    token: typ.Annotated[str, Parameter(env_var="RUNWATCH_GITHUB_TOKEN")],
    *,
    state_file: typ.Annotated[
        Path | None, Parameter(env_var="RUNWATCH_STATE_FILE")
    ] = None,
    log_level: typ.Annotated[str, Parameter(env_var="RUNWATCH_LOG_LEVEL")] = "INFO",
    no_color: bool = False,
) -> int:
    """Watch a repository's workflow runs and print each transition once.

    Args:
        repository: Repository to monitor, as owner/name.
        token: GitHub token with read access to Actions.
        state_file: Checkpoint file holding the last processed instant.
        log_level: Log level for diagnostics written to stderr.
        no_color: Disable ANSI colours in the event table.

    Returns:
        Exit code (0 after a graceful stop, 1 for invalid configuration).

    """
    try:
        parse_repository_slug(repository)
        github_config = GitHubActionsConfig.from_env(token=token)
        monitor_config = MonitorConfig.from_env()
    except (MonitorConfigError, ValueError) as exc:
        print(f"runwatch: {exc}", file=sys.stderr)
        return 1
    if state_file is not None:
        monitor_config = dataclasses.replace(monitor_config, state_path=state_file)

    normalized_level, invalid_level = configure_logging(log_level)
    if invalid_level:
        log_warning(
            logger,
            "Invalid log level %r, falling back to %s",
            log_level,
            normalized_level,
        )

    sink = TerminalSink(color=not no_color)
    return asyncio.run(
        _watch(repository.strip(), github_config, monitor_config, sink)
    )


def main(argv: list[str] | None = None) -> int:
    """Entry point for the ``runwatch`` console script."""
    return app(argv)


if __name__ == "__main__":
    sys.exit(main())
