from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class ResponseModel(BaseModel, Generic[T]):
    data: Optional[T] = Field(description="Response data", default=None)
    message: Optional[str] = Field(description="Response message", examples=["Success"])
    status: str = Field(default="ok", description="Response status")
    error_code: Optional[str] = Field(default=None, description="Machine-readable error code")

    @classmethod
    def success(
        cls, data: Optional[T] = None, message: str = "Success"
    ) -> "ResponseModel[T]":
        """Create a successful response."""
        return cls(data=data, message=message, status="ok")

    @classmethod
    def error(
        cls, message: str, error_code: Optional[str] = None, data: Optional[T] = None
    ) -> "ResponseModel[T]":
        """Create an error response."""
        return cls(data=data, message=message, status="error", error_code=error_code)
