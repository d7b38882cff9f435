"""Session state shared by every request handler.

The whole session is one immutable :class:`SessionSnapshot`. Writers build a
replacement off to the side and publish it with a single reference swap under
``_lock``; readers take the current snapshot under the same lock and then work
on it without holding anything. The lock is never held across file-system
access.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from pathlib import Path

from codeowners_lsp.resolver import OwnershipIndex
from codeowners_lsp.settings import DEFAULT_SETTINGS, Settings


@dataclass(frozen=True)
class SessionSnapshot:
    root: Path | None = None
    settings: Settings = DEFAULT_SETTINGS
    index: OwnershipIndex | None = None
    manifest_path: Path | None = None

    @property
    def loaded(self) -> bool:
        return self.index is not None


class SessionState:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._snapshot = SessionSnapshot()

    def snapshot(self) -> SessionSnapshot:
        with self._lock:
            return self._snapshot

    def set_root(self, root: Path) -> bool:
        """Assign the workspace root once; later calls are ignored."""
        with self._lock:
            if self._snapshot.root is not None:
                return False
            self._snapshot = replace(self._snapshot, root=root)
            return True

    def set_settings(self, settings: Settings) -> None:
        with self._lock:
            self._snapshot = replace(self._snapshot, settings=settings)

    def install(
        self,
        settings: Settings,
        index: OwnershipIndex | None,
        manifest_path: Path | None,
    ) -> SessionSnapshot:
        if (index is None) != (manifest_path is None):
            raise ValueError("index and manifest path must be installed together")
        with self._lock:
            self._snapshot = replace(
                self._snapshot,
                settings=settings,
                index=index,
                manifest_path=manifest_path,
            )
            return self._snapshot
