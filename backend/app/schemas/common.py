"""
Common Schemas Module
=====================

Shared base model and error payloads.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """
    Base schema exchanging camelCase JSON.

    Fields are declared in snake_case and accepted under either name.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class UserBrief(CamelModel):
    """Brief user reference for nested responses."""

    id: str
    name: str
    email: Optional[str] = None


class PlaceBrief(CamelModel):
    """Brief building or department reference."""

    id: str
    name: str


class ErrorResponse(BaseModel):
    """Error body produced by the exception handlers."""

    message: str = Field(
        ...,
        description="Human readable error message"
    )
    details: Dict[str, Any] = Field(
        default_factory=dict,
        description="Additional error context"
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "message": "assignedToId is required",
                "details": {"field": "assignedToId"}
            }
        }
    )
