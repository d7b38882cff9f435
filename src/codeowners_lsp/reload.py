"""Manifest selection and index reload.

An explicitly configured manifest path always wins over discovery, and a
configured path that does not exist does not fall back to discovery: lookups
then report no owners until the configuration is fixed.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from pathlib import Path

import structlog

from codeowners_lsp.resolver import OwnershipIndex, OwnershipResolver
from codeowners_lsp.settings import Settings
from codeowners_lsp.state import SessionState

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ReloadOutcome:
    manifest_path: Path | None = None
    error: str | None = None

    @property
    def loaded(self) -> bool:
        return self.manifest_path is not None

    def describe(self) -> str:
        if self.manifest_path is not None:
            return f"loaded CODEOWNERS from {self.manifest_path}"
        if self.error is not None:
            return f"failed to load CODEOWNERS: {self.error}"
        return "no CODEOWNERS file found"


NOT_FOUND = ReloadOutcome()


def select_manifest(
    root: Path, settings: Settings, resolver: OwnershipResolver
) -> Path | None:
    if settings.manifest_path is not None:
        configured = root / settings.manifest_path
        if configured.exists():
            return configured
        logger.info("manifest.configured_missing", path=str(configured))
        return None
    return resolver.locate(root)


class Reloader:
    def __init__(self, state: SessionState, resolver: OwnershipResolver) -> None:
        self._state = state
        self._resolver = resolver
        # Serializes reloads against each other only; readers never take it.
        self._reload_lock = threading.Lock()

    def reload(self, settings: Settings | None = None) -> ReloadOutcome:
        """Rebuild the index from disk and publish it.

        When ``settings`` is given it is installed together with the new
        index, otherwise the current settings are reused.
        """
        with self._reload_lock:
            current = self._state.snapshot()
            effective = settings if settings is not None else current.settings
            if current.root is None:
                if settings is not None:
                    self._state.set_settings(settings)
                return NOT_FOUND
            index: OwnershipIndex | None = None
            error: str | None = None
            path: Path | None = None
            try:
                path = select_manifest(current.root, effective, self._resolver)
                if path is not None:
                    index = self._resolver.load(path)
            except (OSError, UnicodeDecodeError, ValueError) as exc:
                logger.warning(
                    "manifest.load_failed",
                    path=str(path) if path is not None else None,
                    error=str(exc),
                )
                index = None
                error = str(exc)
            if index is None:
                self._state.install(effective, None, None)
                return ReloadOutcome(error=error)
            self._state.install(effective, index, path)
            logger.info("manifest.loaded", path=str(path))
            return ReloadOutcome(manifest_path=path)
