"""System setting DTOs (Pydantic v2, immutable)."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator


class UpsertSettingDTO(BaseModel):
    """Input for ``PUT /api/v1/settings/{key}/``."""

    model_config = ConfigDict(frozen=True)

    key: str
    value: Any = None
    description: Optional[str] = None

    @field_validator("key")
    @classmethod
    def key_must_be_slug(cls, v: str) -> str:
        v = v.strip()
        if not v or not v.replace("_", "").isalnum():
            raise ValueError("Key must contain only letters, digits and underscores.")
        return v.lower()
