"""femtologging helpers shared by the monitor, client, and CLI.

Messages are formatted eagerly with percent-style interpolation and handed to
femtologging as finished strings, so every record the monitor emits is a
single pre-rendered line.

Example:
>>> from runwatch.logging import get_logger, log_info
>>> logger = get_logger(__name__)
>>> log_info(logger, "Watching %s", "octo/reef")

"""

from __future__ import annotations

import enum
import typing as typ

from femtologging import basicConfig, get_logger


class LogLevel(enum.StrEnum):
    """Log levels accepted by ``RUNWATCH_LOG_LEVEL``."""

    TRACE = "TRACE"
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


DEFAULT_LOG_LEVEL = LogLevel.INFO


def normalize_log_level(level: str | None) -> tuple[str, bool]:
    """Normalize a raw log level and flag values that had to be replaced.

    Parameters
    ----------
    level : str | None
        Raw level, usually read from the environment or a CLI option.

    Returns
    -------
    tuple[str, bool]
        The level to configure and ``True`` when ``level`` was missing or
        unrecognised and the default was substituted.

    """
    normalized = (level or "").strip().upper()
    if normalized in LogLevel.__members__:
        return (normalized, False)
    return (DEFAULT_LOG_LEVEL.value, True)


def configure_logging(level: str | None, *, force: bool = False) -> tuple[str, bool]:
    """Configure femtologging at ``level`` and return the normalized level."""
    normalized, invalid = normalize_log_level(level)
    basicConfig(level=normalized, force=force)
    return (normalized, invalid)


def _format_message(template: str, *args: object) -> str:
    return template % args if args else template


class _SupportsLog(typ.Protocol):
    """The subset of the femtologging logger API the helpers rely on."""

    def log(
        self,
        level: str,
        message: str,
        /,
        *,
        exc_info: object | None = None,
        stack_info: bool = False,
    ) -> str | None: ...


def _emit(
    logger: _SupportsLog,
    level: LogLevel,
    template: str,
    args: tuple[object, ...],
    exc_info: object | None,
) -> None:
    logger.log(
        level.value,
        _format_message(template, *args),
        exc_info=exc_info,
        stack_info=False,
    )


def log_info(
    logger: _SupportsLog,
    template: str,
    *args: object,
    exc_info: object | None = None,
) -> None:
    """Log an INFO message with percent-style formatting.

    Parameters
    ----------
    logger : _SupportsLog
        Logger that receives the rendered message.
    template : str
        Message template using percent-style placeholders.
    *args : object
        Values interpolated into ``template``.
    exc_info : object | None, optional
        Exception information attached to the record.

    """
    _emit(logger, LogLevel.INFO, template, args, exc_info)


def log_warning(
    logger: _SupportsLog,
    template: str,
    *args: object,
    exc_info: object | None = None,
) -> None:
    """Log a WARNING message with percent-style formatting."""
    _emit(logger, LogLevel.WARNING, template, args, exc_info)


def log_exception(logger: _SupportsLog, message: str, exc: BaseException) -> None:
    """Log ``message`` at ERROR with ``exc`` attached as exc_info."""
    logger.log(LogLevel.ERROR.value, message, exc_info=exc, stack_info=False)


__all__ = [
    "DEFAULT_LOG_LEVEL",
    "LogLevel",
    "configure_logging",
    "get_logger",
    "log_exception",
    "log_info",
    "log_warning",
    "normalize_log_level",
]
