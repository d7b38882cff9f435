"""Ownership manifest discovery and lookup.

The backend only ever talks to a resolver through :class:`OwnershipResolver`
and the :class:`OwnershipIndex` it produces, so tests can substitute a stub
that returns fixed data. :class:`CodeownersResolver` is the production
implementation; pattern semantics are those of the ``codeowners`` library.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from codeowners import CodeOwners

MANIFEST_NAME = "CODEOWNERS"

# Probed in order; first existing candidate wins.
MANIFEST_CANDIDATES: tuple[Path, ...] = (
    Path(MANIFEST_NAME),
    Path(".github") / MANIFEST_NAME,
    Path("docs") / MANIFEST_NAME,
)


class OwnershipIndex(Protocol):
    def owners_of(self, relative_path: str) -> tuple[str, ...] | None: ...


class OwnershipResolver(Protocol):
    def locate(self, root: Path) -> Path | None: ...

    def load(self, path: Path) -> OwnershipIndex: ...


class CodeownersIndex:
    """Frozen view over one parsed manifest."""

    __slots__ = ("_owners",)

    def __init__(self, owners: CodeOwners) -> None:
        self._owners = owners

    @classmethod
    def from_text(cls, text: str) -> CodeownersIndex:
        return cls(CodeOwners(text))

    def owners_of(self, relative_path: str) -> tuple[str, ...] | None:
        matches = self._owners.of(relative_path)
        names: list[str] = []
        for _kind, owner in matches:
            if owner not in names:
                names.append(owner)
        if not names:
            return None
        return tuple(names)


def locate(root: Path) -> Path | None:
    for candidate in MANIFEST_CANDIDATES:
        path = root / candidate
        if path.exists():
            return path
    return None


def load(path: Path) -> CodeownersIndex:
    return CodeownersIndex.from_text(path.read_text(encoding="utf-8"))


class CodeownersResolver:
    def locate(self, root: Path) -> Path | None:
        return locate(root)

    def load(self, path: Path) -> OwnershipIndex:
        return load(path)
