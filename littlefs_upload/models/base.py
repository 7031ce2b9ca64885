"""Base model for all littlefs-upload Pydantic models.

This module provides a base model class that enforces consistent serialization
behavior across all littlefs-upload models.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict


class LittleFSBaseModel(BaseModel):
    """Base model class for all littlefs-upload Pydantic models.

    Host metadata carries many fields this tool never reads, so unknown
    fields are ignored rather than rejected.
    """

    model_config = ConfigDict(
        extra="ignore",
        str_strip_whitespace=True,
        validate_assignment=True,
        populate_by_name=True,
    )

    def to_dict(self) -> dict[str, Any]:
        """Convert model to dictionary with consistent serialization parameters.

        Returns:
            Dictionary representation using JSON-compatible serialization
        """
        return self.model_dump(by_alias=True, exclude_unset=True, mode="json")

    def to_dict_full(self) -> dict[str, Any]:
        """Convert model to dictionary including all fields (even unset ones)."""
        return self.model_dump(by_alias=True, exclude_unset=False, mode="json")
