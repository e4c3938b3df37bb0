"""Response envelope shared by every route."""

from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class APIError(BaseModel):
    code: str
    message: str


class APIResponse(BaseModel, Generic[T]):
    """`{"success": ..., "data": ..., "error": ...}`; exactly one of data/error is set."""

    success: bool
    data: T | None = None
    error: APIError | None = None

    @classmethod
    def fail(cls, code: str, message: str) -> "APIResponse[None]":
        return cls(success=False, error=APIError(code=code, message=message))
