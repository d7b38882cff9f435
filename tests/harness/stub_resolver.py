from __future__ import annotations

import threading
from pathlib import Path


class StubIndex:
    def __init__(self, owners: dict[str, tuple[str, ...]]) -> None:
        self.owners = dict(owners)

    def owners_of(self, relative_path: str) -> tuple[str, ...] | None:
        return self.owners.get(relative_path)


class StubResolver:
    """Resolver double with fixed data and call accounting."""

    def __init__(
        self,
        *,
        located: Path | None = None,
        indexes: dict[Path, StubIndex] | None = None,
    ) -> None:
        self.located = located
        self.indexes = dict(indexes or {})
        self.locate_calls: list[Path] = []
        self.load_calls: list[Path] = []
        self.load_error: Exception | None = None
        # When set, load() blocks until the gate opens.
        self.gate: threading.Event | None = None
        self.load_started = threading.Event()

    def locate(self, root: Path) -> Path | None:
        self.locate_calls.append(root)
        return self.located

    def load(self, path: Path) -> StubIndex:
        self.load_calls.append(path)
        self.load_started.set()
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if self.load_error is not None:
            raise self.load_error
        return self.indexes.get(path, StubIndex({}))
