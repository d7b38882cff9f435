from __future__ import annotations

from typing import Callable

import structlog
from lsprotocol.types import (
    EXIT,
    INITIALIZE,
    INITIALIZED,
    SHUTDOWN,
    TEXT_DOCUMENT_HOVER,
    TEXT_DOCUMENT_INLAY_HINT,
    WORKSPACE_DID_CHANGE_CONFIGURATION,
    WORKSPACE_DID_CHANGE_WATCHED_FILES,
    DidChangeConfigurationParams,
    DidChangeWatchedFilesParams,
    Hover,
    HoverParams,
    InitializeParams,
    InlayHint,
    InlayHintParams,
    LogMessageParams,
    MessageType,
    TextDocumentSyncKind,
)
from pygls.lsp.server import LanguageServer
from pygls.protocol import LanguageServerProtocol, lsp_method

from codeowners_lsp import __version__
from codeowners_lsp.backend import SHOW_OWNER_COMMAND, OwnershipBackend
from codeowners_lsp.logs import configure_from_env
from codeowners_lsp.reload import ReloadOutcome
from codeowners_lsp.resolver import OwnershipResolver

SERVER_NAME = "codeowners-lsp"

logger = structlog.get_logger(__name__)


class CodeownersProtocol(LanguageServerProtocol):
    """Advertises no text document synchronization at all.

    pygls advertises its built-in ``didOpen`` and ``didClose`` handlers as
    sync options; ownership depends on file identity only, so the document
    text is never wanted.
    """

    @lsp_method(INITIALIZE)
    def lsp_initialize(self, params: InitializeParams):
        result = yield from super().lsp_initialize(params)
        result.capabilities.text_document_sync = TextDocumentSyncKind.None_
        return result


class CodeownersLanguageServer(LanguageServer):
    def __init__(
        self,
        name: str,
        version: str,
        *,
        resolver: OwnershipResolver | None = None,
        **kwargs,
    ) -> None:
        kwargs.setdefault("protocol_cls", CodeownersProtocol)
        kwargs.setdefault("text_document_sync_kind", TextDocumentSyncKind.None_)
        super().__init__(name, version, **kwargs)
        self.backend = OwnershipBackend(resolver)


server = CodeownersLanguageServer(SERVER_NAME, __version__)


def _client_log(ls: CodeownersLanguageServer, message: str) -> None:
    ls.window_log_message(
        LogMessageParams(type=MessageType.Log, message=f"{SERVER_NAME}: {message}")
    )


def _report_reload(ls: CodeownersLanguageServer, outcome: ReloadOutcome | None) -> None:
    if outcome is not None:
        _client_log(ls, outcome.describe())


@server.feature(INITIALIZE)
def initialize(ls: CodeownersLanguageServer, params: InitializeParams) -> None:
    folders = [folder.uri for folder in params.workspace_folders or []]
    outcome = ls.backend.initialize(
        params.root_uri,
        params.initialization_options,
        workspace_folders=folders,
        root_path=params.root_path,
    )
    _report_reload(ls, outcome)


@server.feature(INITIALIZED)
def initialized(ls: CodeownersLanguageServer, params) -> None:
    _client_log(ls, "initialized")


@server.feature(SHUTDOWN)
def shutdown(ls: CodeownersLanguageServer, params=None) -> None:
    ls.backend.shutdown()


@server.feature(EXIT)
def exit_(ls: CodeownersLanguageServer, params=None) -> None:
    ls.backend.exit()


@server.feature(TEXT_DOCUMENT_HOVER)
def hover(ls: CodeownersLanguageServer, params: HoverParams) -> Hover | None:
    return ls.backend.hover(params.text_document.uri)


@server.feature(TEXT_DOCUMENT_INLAY_HINT)
def inlay_hint(
    ls: CodeownersLanguageServer, params: InlayHintParams
) -> list[InlayHint] | None:
    return ls.backend.inlay_hints(params.text_document.uri)


@server.command(SHOW_OWNER_COMMAND)
def show_owner(ls: CodeownersLanguageServer, *arguments) -> None:
    message = ls.backend.execute_command(SHOW_OWNER_COMMAND, list(arguments))
    if message is not None:
        ls.window_show_message(message)
    return None


@server.feature(WORKSPACE_DID_CHANGE_WATCHED_FILES)
@server.thread()
def did_change_watched_files(
    ls: CodeownersLanguageServer, params: DidChangeWatchedFilesParams
) -> None:
    _report_reload(ls, ls.backend.did_change_watched_files())


@server.feature(WORKSPACE_DID_CHANGE_CONFIGURATION)
@server.thread()
def did_change_configuration(
    ls: CodeownersLanguageServer, params: DidChangeConfigurationParams
) -> None:
    _report_reload(ls, ls.backend.did_change_configuration(params.settings))


def start(
    start_fn: Callable[[], None] | None = None,
    *,
    tcp: bool = False,
    host: str = "127.0.0.1",
    port: int = 2087,
) -> None:
    """Serve over stdio, or TCP when ``tcp`` is set."""
    if start_fn is not None:
        start_fn()
        return
    if tcp:
        logger.info("server.start", transport="tcp", host=host, port=port)
        server.start_tcp(host, port)
        return
    logger.info("server.start", transport="stdio")
    server.start_io()


if __name__ == "__main__":  # pragma: no cover
    configure_from_env()  # pragma: no cover
    start()  # pragma: no cover
