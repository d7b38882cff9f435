from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
for entry in (ROOT, ROOT / "src"):
    if str(entry) not in sys.path:
        sys.path.insert(0, str(entry))


import pytest

from tests.harness.stub_resolver import StubResolver


@pytest.fixture
def repo(tmp_path: Path) -> Path:
    root = tmp_path / "repo"
    (root / "src").mkdir(parents=True)
    (root / "docs").mkdir()
    (root / "src" / "lib.rs").write_text("fn main() {}\n", encoding="utf-8")
    (root / "docs" / "readme.md").write_text("# readme\n", encoding="utf-8")
    return root


@pytest.fixture
def write_manifest():
    def _write(root: Path, text: str, relative: str = "CODEOWNERS") -> Path:
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def stub_resolver() -> StubResolver:
    return StubResolver()
