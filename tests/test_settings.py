from __future__ import annotations

import pytest
from pydantic import ValidationError

from codeowners_lsp.settings import DEFAULT_SETTINGS, Settings, decode_settings


def test_decode_reads_path_option() -> None:
    settings = decode_settings({"path": ".github/OWNERS"})
    assert settings.manifest_path == ".github/OWNERS"


def test_decode_ignores_unknown_fields() -> None:
    settings = decode_settings({"path": "OWNERS.custom", "theme": "dark", "nested": {"a": 1}})
    assert settings == Settings(path="OWNERS.custom")


@pytest.mark.parametrize(
    "payload",
    [
        None,
        {},
        [],
        "CODEOWNERS",
        42,
        {"path": None},
        {"path": 42},
        {"path": ["CODEOWNERS"]},
        {"path": "   "},
        {"manifestPath": "CODEOWNERS"},
        {"manifest_path": "CODEOWNERS"},
    ],
)
def test_decode_degrades_to_defaults(payload: object) -> None:
    settings = decode_settings(payload)
    assert settings == DEFAULT_SETTINGS
    assert settings.manifest_path is None


def test_settings_are_frozen() -> None:
    settings = Settings(path="CODEOWNERS")
    with pytest.raises(ValidationError):
        settings.manifest_path = "other"  # type: ignore[misc]
