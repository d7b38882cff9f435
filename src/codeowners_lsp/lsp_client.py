"""Minimal stdio client that drives the server as a subprocess.

Used by the ``query`` CLI command and the smoke-test script to exercise the
real protocol path: initialize, run ``showOwner``, capture the resulting
``window/showMessage`` notification, then shut the server down.
"""

from __future__ import annotations

import json
import select
import subprocess
import sys
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, TypeAlias

from codeowners_lsp.backend import SHOW_OWNER_COMMAND

JSONObject: TypeAlias = dict[str, object]

SHOW_MESSAGE = "window/showMessage"
DEFAULT_TIMEOUT_SECONDS = 10.0


class LspClientError(RuntimeError):
    pass


@dataclass(frozen=True)
class ShowOwnerResult:
    message: str | None
    notifications: list[JSONObject] = field(default_factory=list)


def _wait_readable(stream, deadline: float) -> None:
    fileno = getattr(stream, "fileno", None)
    if fileno is None:
        if time.monotonic() >= deadline:
            raise LspClientError("LSP response timed out")
        return
    try:
        fd = fileno()
    except (OSError, ValueError):
        # In-memory streams have no descriptor to poll.
        if time.monotonic() >= deadline:
            raise LspClientError("LSP response timed out")
        return
    timeout = max(0.0, deadline - time.monotonic())
    ready, _, _ = select.select([fd], [], [], timeout)
    if not ready:
        raise LspClientError("LSP response timed out")


def _read_exact(stream, length: int, deadline: float) -> bytes:
    body = bytearray()
    while len(body) < length:
        _wait_readable(stream, deadline)
        chunk = stream.read(length - len(body))
        if not chunk:
            raise LspClientError("LSP stream closed")
        body.extend(chunk)
    return bytes(body)


def _parse_headers(head: bytes) -> dict[str, str]:
    headers: dict[str, str] = {}
    for line in head.split(b"\r\n"):
        name, sep, value = line.partition(b":")
        if sep:
            key = name.strip().decode("ascii", errors="replace").lower()
            headers[key] = value.strip().decode("ascii", errors="replace")
    return headers


def _content_length(headers: dict[str, str]) -> int:
    try:
        length = int(headers.get("content-length", "0"))
    except ValueError:
        length = 0
    if length <= 0:
        raise LspClientError("Invalid LSP Content-Length")
    return length


def _read_rpc(stream, deadline: float) -> JSONObject:
    header = b""
    while b"\r\n\r\n" not in header:
        _wait_readable(stream, deadline)
        chunk = stream.read(1)
        if not chunk:
            raise LspClientError("LSP stream closed")
        header += chunk
    head, _, rest = header.partition(b"\r\n\r\n")
    length = _content_length(_parse_headers(head))
    body = rest[:length]
    if len(body) < length:
        body += _read_exact(stream, length - len(body), deadline)
    message = json.loads(body.decode("utf-8"))
    if not isinstance(message, dict):
        raise LspClientError("Invalid LSP message payload")
    return message


def _write_rpc(stream, message: JSONObject) -> None:
    payload = json.dumps(message).encode("utf-8")
    header = f"Content-Length: {len(payload)}\r\n\r\n".encode("utf-8")
    stream.write(header + payload)
    stream.flush()


def _read_response(
    stream,
    request_id: int,
    deadline: float,
    *,
    notification_callback: Callable[[JSONObject], None] | None = None,
) -> JSONObject:
    while True:
        message = _read_rpc(stream, deadline)
        if "id" not in message:
            if notification_callback is not None:
                notification_callback(message)
            continue
        if message.get("id") == request_id and "method" not in message:
            if message.get("error"):
                raise LspClientError(f"LSP error: {message['error']}")
            return message


def _show_message_text(notifications: list[JSONObject]) -> str | None:
    for notification in notifications:
        if notification.get("method") != SHOW_MESSAGE:
            continue
        params = notification.get("params")
        if isinstance(params, dict) and isinstance(params.get("message"), str):
            return params["message"]
    return None


def run_show_owner(
    target: Path,
    *,
    root: Path | None = None,
    manifest_path: str | None = None,
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    process_factory: Callable[..., subprocess.Popen] = subprocess.Popen,
) -> ShowOwnerResult:
    if timeout_seconds <= 0:
        raise LspClientError(f"Invalid timeout: {timeout_seconds}")
    deadline = time.monotonic() + timeout_seconds
    root_path = (root or Path.cwd()).resolve()
    target_path = target if target.is_absolute() else root_path / target
    options: JSONObject = {}
    if manifest_path is not None:
        options["path"] = manifest_path

    proc = process_factory(
        [sys.executable, "-m", "codeowners_lsp.server"],
        stdin=subprocess.PIPE,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        bufsize=0,
    )
    if proc.stdin is None or proc.stdout is None:
        raise LspClientError("LSP server pipes are unavailable")

    notifications: list[JSONObject] = []
    _write_rpc(
        proc.stdin,
        {
            "jsonrpc": "2.0",
            "id": 1,
            "method": "initialize",
            "params": {
                "processId": None,
                "rootUri": root_path.as_uri(),
                "capabilities": {},
                "initializationOptions": options,
            },
        },
    )
    _read_response(proc.stdout, 1, deadline, notification_callback=notifications.append)
    _write_rpc(proc.stdin, {"jsonrpc": "2.0", "method": "initialized", "params": {}})
    _write_rpc(
        proc.stdin,
        {
            "jsonrpc": "2.0",
            "id": 2,
            "method": "workspace/executeCommand",
            "params": {
                "command": SHOW_OWNER_COMMAND,
                "arguments": [target_path.as_uri()],
            },
        },
    )
    _read_response(proc.stdout, 2, deadline, notification_callback=notifications.append)
    _write_rpc(proc.stdin, {"jsonrpc": "2.0", "id": 3, "method": "shutdown"})
    _read_response(proc.stdout, 3, deadline, notification_callback=notifications.append)
    _write_rpc(proc.stdin, {"jsonrpc": "2.0", "method": "exit"})
    remaining = max(1.0, deadline - time.monotonic())
    try:
        _, err = proc.communicate(timeout=remaining)
    except subprocess.TimeoutExpired:
        proc.kill()
        _, err = proc.communicate(timeout=1.0)
    if proc.returncode not in (0, None):
        detail = (err or b"").decode("utf-8", errors="replace").strip()
        raise LspClientError(f"LSP server failed (exit {proc.returncode}): {detail}")
    return ShowOwnerResult(
        message=_show_message_text(notifications),
        notifications=notifications,
    )
