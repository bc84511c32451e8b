"""Models for the Geo feature."""
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

LOCATION_SEPARATOR = "|"


class GeoLocation(BaseModel):
    """Resolved location of an IP address."""

    model_config = ConfigDict(frozen=True)

    country: str = Field(default="", description="Country name")
    province: str = Field(default="", description="Province, state or region")
    city: str = Field(default="", description="City name")

    def to_cache_value(self) -> str:
        """Serialize as ``country|province|city``."""
        return LOCATION_SEPARATOR.join((self.country, self.province, self.city))

    @classmethod
    def from_cache_value(cls, value: Optional[str]) -> Optional["GeoLocation"]:
        """Parse a cached ``country|province|city`` string; None if malformed."""
        if not value:
            return None
        parts = value.split(LOCATION_SEPARATOR)
        if len(parts) != 3:
            return None
        country, province, city = parts
        return cls(country=country, province=province, city=city)
