"""Structured logging singleton.

Reads os.environ directly: the logger must exist before Settings is parsed,
so a bad config.toml or an unreachable store still gets logged.

neonize reports through stdlib ``logging``; its records go through the same
structlog renderer as ours, at ``NEONIZE_LOG_LEVEL`` (default WARNING).
"""

from __future__ import annotations

import logging
import os
import sys

import structlog

_NEONIZE_LOGGERS = ("neonize", "whatsmeow")


def _level_from_env(var: str, default: str) -> int:
    name = os.environ.get(var, default).upper()
    return getattr(logging, name, logging.getLevelName(default))


def _setup_logging() -> structlog.stdlib.BoundLogger:
    level = _level_from_env("LOG_LEVEL", "INFO")

    shared = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
            ],
        )
    )
    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level)

    neonize_level = _level_from_env("NEONIZE_LOG_LEVEL", "WARNING")
    for name in _NEONIZE_LOGGERS:
        logging.getLogger(name).setLevel(max(level, neonize_level))

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared,
            structlog.dev.set_exc_info,
            structlog.processors.StackInfoRenderer(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    return structlog.get_logger("memberwatch")


logger = _setup_logging()


def _log_fatal(
    exc_type: type[BaseException],
    exc_value: BaseException,
    exc_tb: object,
) -> None:
    # Ctrl-C before the loop installs its signal handlers: plain traceback.
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc_value, exc_tb)  # type: ignore[arg-type]
        return
    logger.critical("Fatal error, exiting", exc_info=(exc_type, exc_value, exc_tb))
    sys.exit(1)


sys.excepthook = _log_fatal
