"""IP address to location resolution backed by the IP database resource."""
from typing import Any, Dict, Optional

import structlog
from structlog.typing import FilteringBoundLogger

from api.features.geo.exceptions import (
    GeoLookupError,
    InvalidIPAddressError,
    IPAddressNotFoundError,
)
from api.features.geo.models import GeoLocation
from infra.resources import IPDatabaseResource

FALLBACK_LANGUAGE = "en"


def _localized_name(node: Optional[Dict[str, Any]], language: str) -> str:
    if not node:
        return ""
    names = node.get("names") or {}
    return names.get(language) or names.get(FALLBACK_LANGUAGE) or ""


class GeoResolver:
    """Resolve IP addresses to ``GeoLocation`` records.

    Lookup failures are raised as ``GeoLookupError`` subclasses so callers
    can tell them apart from infrastructure errors and degrade gracefully.
    """

    def __init__(
        self,
        ip_database: IPDatabaseResource,
        language: str = FALLBACK_LANGUAGE,
        logger: Optional[FilteringBoundLogger] = None,
    ):
        self.ip_database = ip_database
        self.language = language
        self.logger = (logger or structlog.get_logger()).bind(module="geo.resolver")

    def resolve(self, ip: Optional[str]) -> GeoLocation:
        """Resolve ``ip`` or raise ``InvalidIPAddressError``/``IPAddressNotFoundError``."""
        if not ip or not ip.strip():
            raise InvalidIPAddressError(ip or "")
        try:
            record = self.ip_database.lookup(ip)
        except ValueError:
            raise InvalidIPAddressError(ip)
        except GeoLookupError:
            raise
        except Exception as e:
            # Corrupt database file or reader closed underneath us
            self.logger.error("geo.lookup_backend_failed", ip=ip, error=str(e))
            raise GeoLookupError(ip, f"IP database lookup failed: {e}")

        if not record:
            raise IPAddressNotFoundError(ip)

        subdivisions = record.get("subdivisions") or [{}]
        location = GeoLocation(
            country=_localized_name(record.get("country"), self.language),
            province=_localized_name(subdivisions[0], self.language),
            city=_localized_name(record.get("city"), self.language),
        )
        if not location.country:
            raise IPAddressNotFoundError(ip)
        return location
