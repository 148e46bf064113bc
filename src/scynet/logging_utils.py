"""Logging configuration and condition reporting helpers.

Failures and recoverable conditions are logged with their ``condition`` name
(and, for recoverable ones, the pipeline ``stage``) attached to the log record
as extra fields, so handlers can filter on them.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
import logging
from typing import Any, TypeVar

from scynet.errors import ScynetError

DEFAULT_LOGGER_NAME = "scynet"
DEFAULT_LOG_LEVEL = logging.INFO
DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
# Third-party loggers that are chatty at INFO while composing configs.
DEFAULT_QUIET_LOGGERS = ("hydra",)

_T = TypeVar("_T")


def configure_logging(
    level: int = DEFAULT_LOG_LEVEL,
    *,
    logger_name: str = DEFAULT_LOGGER_NAME,
    fmt: str = DEFAULT_LOG_FORMAT,
    quiet_loggers: Iterable[str] = DEFAULT_QUIET_LOGGERS,
    force: bool = False,
) -> logging.Logger:
    """Configure the root handler and return the ``scynet`` logger.

    Loggers in ``quiet_loggers`` are held at WARNING unless ``level`` is DEBUG.
    """
    logging.basicConfig(level=level, format=fmt, force=force)
    logger = logging.getLogger(logger_name)
    logger.setLevel(level)
    quiet_level = level if level <= logging.DEBUG else max(level, logging.WARNING)
    for name in quiet_loggers:
        logging.getLogger(name).setLevel(quiet_level)
    return logger


def get_user_message(exc: BaseException) -> str:
    if isinstance(exc, ScynetError):
        return exc.user_message
    return f"Unexpected error: {exc}"


def condition_of(exc: BaseException) -> str:
    if isinstance(exc, ScynetError):
        return exc.condition
    return "unexpected"


def log_exception(
    logger: logging.Logger,
    exc: BaseException,
    *,
    show_traceback: bool = False,
) -> str:
    """Log a fatal failure with its condition name and return the user message."""
    user_message = get_user_message(exc)
    condition = condition_of(exc)
    logger.error(user_message, extra={"condition": condition, "stage": ""})
    if isinstance(exc, ScynetError) and exc.context:
        logger.debug("Failure context (%s): %s", condition, exc.log_message())
    if show_traceback:
        logger.error("Detailed traceback:", exc_info=exc)
    else:
        logger.debug("Detailed traceback:", exc_info=exc)
    return user_message


def log_condition(
    logger: logging.Logger,
    exc: ScynetError,
    *,
    stage: str,
) -> str:
    """Log a recoverable condition at WARNING and return its user message."""
    fields = {"condition": exc.condition, "stage": stage}
    logger.warning("[%s] %s: %s", stage, exc.condition, exc.user_message, extra=fields)
    logger.debug("Condition details: %s", exc.log_message(), exc_info=exc, extra=fields)
    return exc.user_message


def run_with_error_handling(
    func: Callable[..., _T],
    *args: Any,
    logger: logging.Logger,
    show_traceback: bool = False,
    **kwargs: Any,
) -> _T:
    try:
        return func(*args, **kwargs)
    except Exception as exc:
        log_exception(logger, exc, show_traceback=show_traceback)
        raise


__all__ = [
    "DEFAULT_LOGGER_NAME",
    "DEFAULT_LOG_LEVEL",
    "DEFAULT_LOG_FORMAT",
    "DEFAULT_QUIET_LOGGERS",
    "condition_of",
    "configure_logging",
    "get_user_message",
    "log_condition",
    "log_exception",
    "run_with_error_handling",
]
