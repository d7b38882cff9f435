from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import pytest
import structlog

from codeowners_lsp.logs import (
    LOG_FILE_ENV,
    LOG_LEVEL_ENV,
    configure_from_env,
    configure_logging,
    resolve_level,
)


@pytest.fixture
def reset_logging():
    yield
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        handler.close()
    root_logger.handlers.clear()
    logging.getLogger("pygls").setLevel(logging.NOTSET)
    structlog.reset_defaults()


def _read_events(path: Path) -> list[dict[str, object]]:
    for handler in logging.getLogger().handlers:
        handler.flush()
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]


@pytest.mark.parametrize(
    "name, expected",
    [
        ("debug", logging.DEBUG),
        ("INFO", logging.INFO),
        ("warn", logging.WARNING),
        (" error ", logging.ERROR),
        ("verbose", logging.INFO),
    ],
)
def test_resolve_level(name: str, expected: int) -> None:
    assert resolve_level(name) == expected


def test_file_sink_receives_json_events(tmp_path: Path, reset_logging) -> None:
    log_file = tmp_path / "logs" / "codeowners-lsp.log"
    configure_logging(level="DEBUG", log_file=log_file)
    structlog.get_logger("codeowners_lsp.test").info("manifest.loaded", path="/repo/CODEOWNERS")
    events = _read_events(log_file)
    assert events[-1]["event"] == "manifest.loaded"
    assert events[-1]["path"] == "/repo/CODEOWNERS"
    assert events[-1]["level"] == "info"


def test_level_filters_events(tmp_path: Path, reset_logging) -> None:
    log_file = tmp_path / "server.log"
    configure_logging(level="WARNING", log_file=log_file)
    logger = structlog.get_logger("codeowners_lsp.test")
    logger.info("hover")
    logger.warning("manifest.load_failed", error="denied")
    events = _read_events(log_file)
    assert [event["event"] for event in events] == ["manifest.load_failed"]


def test_configure_from_env(tmp_path: Path, reset_logging) -> None:
    log_file = tmp_path / "env.log"
    configure_from_env({LOG_LEVEL_ENV: "debug", LOG_FILE_ENV: str(log_file)})
    assert logging.getLogger().level == logging.DEBUG
    structlog.get_logger("codeowners_lsp.test").debug("settings.ignored")
    assert _read_events(log_file)[-1]["event"] == "settings.ignored"


def test_console_handler_targets_stderr(reset_logging) -> None:
    configure_logging(level="INFO")
    handlers = logging.getLogger().handlers
    assert len(handlers) == 1
    assert isinstance(handlers[0], logging.StreamHandler)
    assert handlers[0].stream is sys.stderr


def test_pygls_payload_logging_is_quiet_by_default(tmp_path: Path, reset_logging) -> None:
    log_file = tmp_path / "server.log"
    configure_logging(level="INFO", log_file=log_file)
    logging.getLogger("pygls.protocol.json_rpc").info("Sending data: {}")
    logging.getLogger("pygls.protocol.json_rpc").warning("Ignoring notification")
    structlog.get_logger("codeowners_lsp.test").info("server.start")
    events = [event["event"] for event in _read_events(log_file)]
    assert events == ["Ignoring notification", "server.start"]
