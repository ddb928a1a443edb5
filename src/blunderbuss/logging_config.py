"""
Centralized logging configuration for Blunderbuss.

Everything logs under the ``blunderbuss`` namespace. The TUI owns the
terminal, so while it runs logs only go to a file; CLI commands log
warnings to the console through Rich.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from rich.logging import RichHandler

DEFAULT_LOG_DIR = Path.home() / ".cache" / "blunderbuss"

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

ROOT_LOGGER_NAME = "blunderbuss"


def get_logger(name: str) -> logging.Logger:
    """Get a logger in the blunderbuss namespace."""
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[Path] = None,
    console: bool = True,
    rich_console: bool = False,
) -> None:
    """Configure the blunderbuss logger.

    Existing handlers are removed first, so calling this twice does not
    duplicate output.

    Args:
        level: Logging level for the blunderbuss logger
        log_file: Optional file to append log records to
        console: Whether to log to stderr
        rich_console: Use Rich's handler for console output
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level)
    logger.handlers.clear()
    logger.propagate = False

    if console:
        if rich_console:
            handler: logging.Handler = RichHandler(
                show_path=False, rich_tracebacks=True, markup=False
            )
            handler.setFormatter(logging.Formatter("%(message)s"))
        else:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT))
        logger.addHandler(handler)

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT))
        logger.addHandler(file_handler)


def setup_tui_logging(debug: bool = False, log_file: Optional[Path] = None) -> logging.Logger:
    """Configure file-only logging for the TUI."""
    if log_file is None:
        log_file = DEFAULT_LOG_DIR / "blunderbuss.log"
    setup_logging(
        level=logging.DEBUG if debug else logging.INFO,
        log_file=log_file,
        console=False,
    )
    return get_logger("tui")


def setup_cli_logging(debug: bool = False) -> logging.Logger:
    """Configure console logging for one-shot CLI commands."""
    setup_logging(
        level=logging.DEBUG if debug else logging.WARNING,
        console=True,
        rich_console=True,
    )
    return get_logger("cli")


class StructuredLogger:
    """Logger wrapper that appends ``key=value`` context to every message."""

    def __init__(self, logger: logging.Logger, context: Optional[Dict[str, Any]] = None):
        self._logger = logger
        self._context = dict(context or {})

    def with_context(self, **kwargs: Any) -> "StructuredLogger":
        """Return a new logger carrying extra context."""
        return StructuredLogger(self._logger, {**self._context, **kwargs})

    def _format_message(self, msg: str, kwargs: Dict[str, Any]) -> str:
        all_context = {**self._context, **kwargs}
        if not all_context:
            return msg
        context_str = " ".join(f"{k}={v}" for k, v in all_context.items())
        return f"{msg} [{context_str}]"

    def debug(self, msg: str, **kwargs: Any) -> None:
        self._logger.debug(self._format_message(msg, kwargs))

    def info(self, msg: str, **kwargs: Any) -> None:
        self._logger.info(self._format_message(msg, kwargs))

    def warning(self, msg: str, **kwargs: Any) -> None:
        self._logger.warning(self._format_message(msg, kwargs))

    def error(self, msg: str, **kwargs: Any) -> None:
        self._logger.error(self._format_message(msg, kwargs))

    def exception(self, msg: str, **kwargs: Any) -> None:
        self._logger.exception(self._format_message(msg, kwargs))


def get_structured_logger(name: str) -> StructuredLogger:
    return StructuredLogger(get_logger(name))
