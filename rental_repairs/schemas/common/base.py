"""
Base schema classes with common configuration.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

__all__ = ["BaseSchema", "FrozenSchema"]


class BaseSchema(BaseModel):
    """
    Base schema with common Pydantic configuration.
    """

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        # Keep enums as Enum instances to retain full type information.
        use_enum_values=False,
        arbitrary_types_allowed=True,
        str_strip_whitespace=True,
        validate_assignment=True,
    )


class FrozenSchema(BaseSchema):
    """Immutable snapshot passed between engine components."""

    model_config = ConfigDict(frozen=True, validate_assignment=False)
