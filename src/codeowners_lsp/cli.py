from __future__ import annotations

from pathlib import Path
from typing import Callable, List, Optional

import typer

from codeowners_lsp import __version__
from codeowners_lsp.backend import format_owners, relative_to_root
from codeowners_lsp.logs import LOG_FILE_ENV, LOG_LEVEL_ENV, configure_logging
from codeowners_lsp.lsp_client import (
    DEFAULT_TIMEOUT_SECONDS,
    LspClientError,
    ShowOwnerResult,
    run_show_owner,
)
from codeowners_lsp.reload import Reloader
from codeowners_lsp.resolver import CodeownersResolver, OwnershipResolver
from codeowners_lsp.settings import Settings
from codeowners_lsp.state import SessionState

app = typer.Typer(add_completion=False)

NO_OWNERS = "(no owners)"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"codeowners-lsp {__version__}")
        raise typer.Exit()


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    log_level: str = typer.Option("INFO", "--log-level", envvar=LOG_LEVEL_ENV),
    log_file: Optional[Path] = typer.Option(None, "--log-file", envvar=LOG_FILE_ENV),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True
    ),
) -> None:
    """CODEOWNERS language server. Serves LSP over stdio when run without a command."""
    configure_logging(level=log_level, log_file=log_file)
    if ctx.invoked_subcommand is None:
        _serve(tcp=False, host="127.0.0.1", port=2087)


@app.command()
def serve(
    tcp: bool = typer.Option(False, "--tcp", help="Listen on TCP instead of stdio."),
    host: str = typer.Option("127.0.0.1", "--host"),
    port: int = typer.Option(2087, "--port"),
) -> None:
    """Start the language server."""
    _serve(tcp=tcp, host=host, port=port)


def _serve(*, tcp: bool, host: str, port: int) -> None:
    from codeowners_lsp import server

    server.start(tcp=tcp, host=host, port=port)


@app.command()
def owners(
    paths: List[Path] = typer.Argument(..., help="Files to look up."),
    root: Path = typer.Option(Path("."), "--root", help="Workspace root."),
    manifest: Optional[str] = typer.Option(
        None, "--manifest", help="CODEOWNERS path relative to the root."
    ),
) -> None:
    """Print the owners of each path without starting a server."""
    _run_owners(paths=paths, root=root, manifest=manifest)


def _run_owners(
    *,
    paths: List[Path],
    root: Path,
    manifest: Optional[str],
    resolver: OwnershipResolver | None = None,
) -> None:
    root_path = root.resolve()
    state = SessionState()
    state.set_root(root_path)
    outcome = Reloader(state, resolver or CodeownersResolver()).reload(
        Settings(path=manifest)
    )
    index = state.snapshot().index
    if not outcome.loaded or index is None:
        typer.echo(outcome.describe(), err=True)
        raise typer.Exit(code=1)
    for path in paths:
        relative = relative_to_root(path.resolve(), root_path)
        found = index.owners_of(relative) if relative is not None else None
        label = relative if relative is not None else str(path)
        typer.echo(f"{label}: {format_owners(found) if found else NO_OWNERS}")


@app.command()
def query(
    path: Path = typer.Argument(..., help="File to ask the server about."),
    root: Path = typer.Option(Path("."), "--root", help="Workspace root."),
    manifest: Optional[str] = typer.Option(None, "--manifest"),
    timeout: float = typer.Option(DEFAULT_TIMEOUT_SECONDS, "--timeout", min=0.1),
) -> None:
    """Ask a freshly spawned server for the owners of PATH via showOwner."""
    _run_query(path=path, root=root, manifest=manifest, timeout=timeout)


def _run_query(
    *,
    path: Path,
    root: Path,
    manifest: Optional[str],
    timeout: float,
    runner: Callable[..., ShowOwnerResult] = run_show_owner,
) -> None:
    try:
        result = runner(
            path.resolve(),
            root=root,
            manifest_path=manifest,
            timeout_seconds=timeout,
        )
    except LspClientError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=2) from exc
    if result.message is None:
        typer.echo("server sent no message", err=True)
        raise typer.Exit(code=1)
    typer.echo(result.message)


def run() -> None:
    app()
