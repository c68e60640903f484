"""structlog setup shared by the CLI, the backends and the search UI."""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import structlog
from structlog.types import FilteringBoundLogger, Processor

from zap.core.config import zap_home

_CONFIGURED = False


def drop_none_values(logger: Any, method_name: str, event_dict: dict) -> dict:
    """structlog processor: omit keys whose value is None.

    Backends pass optional fields such as ``version`` or ``error`` straight
    through; leaving them out keeps the JSON lines short.
    """
    return {k: v for k, v in event_dict.items() if v is not None}


def _renderers(enable_console: bool) -> list[Processor]:
    if enable_console:
        return [structlog.processors.ExceptionRenderer(), structlog.dev.ConsoleRenderer(colors=True)]
    return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]


def configure_logging(
    level: str = "INFO", log_file: Path | None = None, enable_console: bool = False
) -> None:
    """Send zap's events to ``$ZAP_HOME/logs/zap.log``, and to stderr with --verbose.

    Only the first call takes effect, so the level chosen by the CLI callback
    sticks for the rest of the process.

    Args:
        level: Minimum level name, e.g. "DEBUG".
        log_file: Where to write JSON lines; defaults under ZAP_HOME.
        enable_console: Also render events on stderr while a command runs.
    """
    global _CONFIGURED
    if _CONFIGURED:
        return

    numeric_level = getattr(logging, level.upper(), logging.INFO)
    log_file = log_file or zap_home() / "logs" / "zap.log"
    log_file.parent.mkdir(parents=True, exist_ok=True)

    file_handler = RotatingFileHandler(log_file, maxBytes=2_000_000, backupCount=2)
    file_handler.setLevel(numeric_level)
    logging.root.addHandler(file_handler)

    if enable_console:
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setLevel(numeric_level)
        stderr_handler.setFormatter(logging.Formatter("%(message)s"))
        logging.root.addHandler(stderr_handler)

    structlog.configure(
        processors=[
            drop_none_values,
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            *_renderers(enable_console),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.root.setLevel(numeric_level)

    _CONFIGURED = True


def get_logger(name: str = "zap") -> FilteringBoundLogger:
    """Logger for one zap module.

    Events are snake_case names with keyword context, for example
    ``log.info("search_complete", backend="apt", query="vim", count=12)``.
    Keys used across modules: ``backend`` (a BackendId value), ``package``,
    ``command`` (the rendered command line), ``returncode`` and
    ``duration_ms``.
    """
    return structlog.get_logger(name)
