"""Editor settings decoding.

Settings arrive untyped from two places: ``initializationOptions`` on the
``initialize`` request and the ``settings`` payload of
``workspace/didChangeConfiguration``. Both go through :func:`decode_settings`,
which never raises.
"""

from __future__ import annotations

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = structlog.get_logger(__name__)


class Settings(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    # Custom manifest location, relative to the workspace root.
    manifest_path: str | None = Field(default=None, alias="path")

    @field_validator("manifest_path", mode="before")
    @classmethod
    def _blank_is_absent(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value


DEFAULT_SETTINGS = Settings()


def decode_settings(raw: object) -> Settings:
    if raw is None:
        return DEFAULT_SETTINGS
    if not isinstance(raw, dict):
        logger.debug("settings.ignored", payload_type=type(raw).__name__)
        return DEFAULT_SETTINGS
    try:
        return Settings.model_validate(raw)
    except ValidationError as exc:
        logger.debug("settings.invalid", errors=exc.error_count())
        return DEFAULT_SETTINGS
