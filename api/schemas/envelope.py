from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field


T = TypeVar("T")


class Envelope(BaseModel, Generic[T]):
    success: bool = Field(True, description="Whether the request succeeded")
    data: T = Field(description="The response payload")


class ErrorEnvelope(BaseModel):
    success: bool = Field(False, description="Whether the request succeeded")
    error: str = Field(description="Human readable error message")
    code: str = Field(description="Machine readable error code")


def ok(data: Any) -> dict[str, Any]:
    return {"success": True, "data": data}


def error(message: str, code: str) -> dict[str, Any]:
    return {"success": False, "error": message, "code": code}
