"""Shared DTOs for the conversation analytics API."""
from typing import Generic, List, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class BaseDTO(BaseModel):
    """Base DTO with common configuration."""

    model_config = ConfigDict(from_attributes=True)


class PaginatedResult(BaseModel, Generic[T]):
    """A page of items plus the total size of the filtered set."""
    items: List[T] = Field(default_factory=list, description="Items on this page")
    total: int = Field(description="Total number of items matching the filter")
