"""Transport-independent request handling for the ownership server.

:class:`OwnershipBackend` holds the session state and implements every
protocol operation as a plain method returning lsprotocol values, so the pygls
wiring in :mod:`codeowners_lsp.server` stays a thin adapter and the behaviour
can be exercised without a running server.
"""

from __future__ import annotations

import enum
import os
import re
import threading
from pathlib import Path, PurePosixPath
from typing import Sequence
from urllib.parse import unquote, urlparse

import structlog
from lsprotocol.types import (
    Hover,
    InlayHint,
    MarkupContent,
    MarkupKind,
    MessageType,
    Position,
    ShowMessageParams,
)

from codeowners_lsp.reload import NOT_FOUND, ReloadOutcome, Reloader
from codeowners_lsp.resolver import CodeownersResolver, OwnershipResolver
from codeowners_lsp.settings import decode_settings
from codeowners_lsp.state import SessionSnapshot, SessionState

logger = structlog.get_logger(__name__)

SHOW_OWNER_COMMAND = "showOwner"

HOVER_PREFIX = "**CODEOWNERS:** "
INLAY_PREFIX = "Owned by: "
INLAY_TOOLTIP = "File ownership from CODEOWNERS"
OWNERS_MESSAGE_PREFIX = "Owners: "
NO_MATCH_MESSAGE = "No CODEOWNERS rule matches this file"

_WINDOWS_DRIVE_RE = re.compile(r"^/[A-Za-z]:")


class Phase(enum.Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    SHUTTING_DOWN = "shutting_down"
    TERMINATED = "terminated"


def normalize_path(path: str | Path) -> Path:
    """Collapse ``.`` and ``..`` segments lexically, without touching the disk."""
    return Path(os.path.normpath(path))


def uri_to_path(uri: str) -> Path | None:
    """Return the local filesystem path of a ``file:`` URI, else ``None``.

    Dot segments are resolved, so ``file:///repo/../etc`` names ``/etc``.
    """
    parsed = urlparse(uri)
    if parsed.scheme != "file":
        return None
    raw = unquote(parsed.path)
    if not raw:
        return None
    if _WINDOWS_DRIVE_RE.match(raw):
        raw = raw[1:]
    return normalize_path(raw)


def relative_to_root(path: Path, root: Path | None) -> str | None:
    if root is None:
        return None
    try:
        relative = normalize_path(path).relative_to(normalize_path(root))
    except ValueError:
        return None
    if not relative.parts:
        return None
    return PurePosixPath(*relative.parts).as_posix()


def format_owners(owners: Sequence[str]) -> str:
    return ", ".join(owners)


class OwnershipBackend:
    def __init__(self, resolver: OwnershipResolver | None = None) -> None:
        self.state = SessionState()
        self.reloader = Reloader(self.state, resolver or CodeownersResolver())
        self._phase = Phase.UNINITIALIZED
        self._phase_lock = threading.Lock()

    @property
    def phase(self) -> Phase:
        with self._phase_lock:
            return self._phase

    def _transition(self, expected: Phase, target: Phase) -> bool:
        with self._phase_lock:
            if self._phase is not expected:
                return False
            self._phase = target
            return True

    # Lifecycle

    def initialize(
        self,
        root_uri: str | None,
        options: object = None,
        *,
        workspace_folders: Sequence[str] = (),
        root_path: str | None = None,
    ) -> ReloadOutcome:
        """Capture the workspace root and settings, then load the manifest.

        Never fails: a missing root or manifest leaves the session without
        ownership data. The root comes from the first of ``root_uri``, the
        first workspace folder, or the deprecated ``root_path`` that is set.
        """
        if not self._transition(Phase.UNINITIALIZED, Phase.INITIALIZED):
            logger.warning("initialize.repeated", phase=self.phase.value)
            return NOT_FOUND
        root = _initial_root(root_uri, workspace_folders, root_path)
        if root is None:
            logger.info("initialize.no_root", root_uri=root_uri)
        else:
            self.state.set_root(root)
            logger.info("initialize.root", root=str(root))
        outcome = self.reloader.reload(decode_settings(options))
        logger.info("initialize.reload", outcome=outcome.describe())
        return outcome

    def shutdown(self) -> None:
        self._transition(Phase.INITIALIZED, Phase.SHUTTING_DOWN)
        logger.info("shutdown")

    def exit(self) -> None:
        with self._phase_lock:
            self._phase = Phase.TERMINATED

    # Lookups

    def owners_for(self, uri: str) -> tuple[str, ...] | None:
        if self.phase is not Phase.INITIALIZED:
            return None
        snapshot = self.state.snapshot()
        return _lookup(snapshot, uri)

    def hover(self, uri: str) -> Hover | None:
        owners = self.owners_for(uri)
        logger.debug("hover", uri=uri, owners=owners)
        if owners is None:
            return None
        return Hover(
            contents=MarkupContent(
                kind=MarkupKind.Markdown,
                value=HOVER_PREFIX + format_owners(owners),
            )
        )

    def inlay_hints(self, uri: str) -> list[InlayHint] | None:
        owners = self.owners_for(uri)
        logger.debug("inlay_hint", uri=uri, owners=owners)
        if owners is None:
            return None
        return [
            InlayHint(
                position=Position(line=0, character=0),
                label=INLAY_PREFIX + format_owners(owners),
                tooltip=INLAY_TOOLTIP,
                padding_left=False,
                padding_right=True,
            )
        ]

    def execute_command(
        self, command: str, arguments: Sequence[object] | None
    ) -> ShowMessageParams | None:
        """Return the message to show for ``command``, if any.

        Unknown commands and malformed arguments produce nothing.
        """
        logger.debug("execute_command", command=command)
        if command != SHOW_OWNER_COMMAND:
            return None
        if not arguments:
            return None
        target = arguments[0]
        if not isinstance(target, str) or not urlparse(target).scheme:
            return None
        owners = self.owners_for(target)
        if owners is None:
            return ShowMessageParams(type=MessageType.Info, message=NO_MATCH_MESSAGE)
        return ShowMessageParams(
            type=MessageType.Info,
            message=OWNERS_MESSAGE_PREFIX + format_owners(owners),
        )

    # Reload triggers

    def did_change_watched_files(self) -> ReloadOutcome | None:
        if self.phase is not Phase.INITIALIZED:
            return None
        outcome = self.reloader.reload()
        logger.info("watched_files.reload", outcome=outcome.describe())
        return outcome

    def did_change_configuration(self, raw: object) -> ReloadOutcome | None:
        if self.phase is not Phase.INITIALIZED:
            return None
        outcome = self.reloader.reload(decode_settings(raw))
        logger.info("configuration.reload", outcome=outcome.describe())
        return outcome


def _initial_root(
    root_uri: str | None,
    workspace_folders: Sequence[str],
    root_path: str | None,
) -> Path | None:
    for uri in (root_uri, *workspace_folders):
        if uri:
            path = uri_to_path(uri)
            if path is not None:
                return path
            return None
    if root_path:
        return normalize_path(root_path)
    return None


def _lookup(snapshot: SessionSnapshot, uri: str) -> tuple[str, ...] | None:
    if snapshot.index is None:
        return None
    path = uri_to_path(uri)
    if path is None:
        return None
    relative = relative_to_root(path, snapshot.root)
    if relative is None:
        return None
    return snapshot.index.owners_of(relative)
