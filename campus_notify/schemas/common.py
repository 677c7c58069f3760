"""
Shared schema plumbing.
Wire JSON is camelCase for the mobile client; snake_case is accepted on input too.
"""
from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class ApiResponse(BaseModel, Generic[T]):
    """
    Standard response envelope used by every endpoint:
    {"success": bool, "message": str | null, "data": T | null}
    """

    success: bool = True
    message: str | None = None
    data: T | None = None

    @classmethod
    def ok(cls, message: str, data: T | None = None) -> "ApiResponse[T]":
        return cls(success=True, message=message, data=data)
