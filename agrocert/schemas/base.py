"""
Base Schema Classes for Pydantic Models

This module provides base classes that handle common patterns like ORM reads
and forward-compatible inputs, ensuring consistency across all schemas.

RULE: All response schemas that read from ORM models MUST inherit from BaseResponseSchema.
"""
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationInfo, field_validator


class BaseResponseSchema(BaseModel):
    """
    Base class for all response schemas that read from ORM models.

    Features:
    - Enables from_attributes for ORM compatibility
    - UUIDs and dates serialize to strings in JSON mode

    Usage:
        class ParcelaResponse(BaseResponseSchema):
            id_parcela: UUID
            numero_parcela: int
    """
    model_config = ConfigDict(
        from_attributes=True,
        # Allow population by field name or alias
        populate_by_name=True,
    )


class BaseCreateSchema(BaseModel):
    """
    Base class for create/input schemas.

    These schemas accept string UUIDs from the frontend and convert to UUID objects.
    Enumerated fields stay plain strings: membership is checked by the
    business-rule validators so every violation is reported together.

    Text is trimmed on the way in. A blank value for a field that defaults
    to None becomes None, so nothing padded or empty reaches the database.
    """
    model_config = ConfigDict(
        # Allow extra fields to be ignored (forward compatibility)
        extra='ignore',
    )

    @field_validator("*", mode="before")
    @classmethod
    def clean_text(cls, v: Any, info: ValidationInfo) -> Any:
        if not isinstance(v, str):
            return v
        v = v.strip()
        if not v and cls.model_fields[info.field_name].default is None:
            return None
        return v
