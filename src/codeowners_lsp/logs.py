"""structlog configuration for the server process.

stdout carries the protocol stream, so console output always goes to stderr.
An optional log file receives the same records.
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Mapping

import structlog

_LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


def resolve_level(level: str) -> int:
    return _LEVEL_MAP.get(level.strip().upper(), logging.INFO)


def configure_logging(*, level: str = "INFO", log_file: Path | None = None) -> None:
    default_level = resolve_level(level)
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", key="timestamp"),
    ]
    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(default_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(default_level)
    # pygls logs every protocol payload at info level.
    logging.getLogger("pygls").setLevel(max(default_level, logging.WARNING))

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=structlog.dev.ConsoleRenderer(
                colors=sys.stderr.isatty(),
                pad_event_to=0,
            ),
            foreign_pre_chain=shared_processors,
        )
    )
    root_logger.addHandler(console)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processor=structlog.processors.JSONRenderer(),
                foreign_pre_chain=shared_processors,
            )
        )
        root_logger.addHandler(file_handler)


LOG_LEVEL_ENV = "CODEOWNERS_LSP_LOG_LEVEL"
LOG_FILE_ENV = "CODEOWNERS_LSP_LOG_FILE"


def configure_from_env(environ: Mapping[str, str] | None = None) -> None:
    env = os.environ if environ is None else environ
    log_file = env.get(LOG_FILE_ENV, "").strip()
    configure_logging(
        level=env.get(LOG_LEVEL_ENV, "INFO"),
        log_file=Path(log_file) if log_file else None,
    )
