"""Exceptions for the Geo feature."""
from typing import Any, Dict, Optional

from api.shared.exceptions import AppException, StorageError


class GeoException(AppException):
    """Base exception for geo operations."""
    pass


class GeoLookupError(GeoException):
    """Raised when an IP address cannot be resolved to a location."""
    
    def __init__(self, ip: str, message: str, error_code: str = "GEO_LOOKUP_ERROR"):
        self.ip = ip
        super().__init__(message, error_code, {"ip": ip})


class InvalidIPAddressError(GeoLookupError):
    """Raised when the input is not a valid IPv4/IPv6 address."""
    
    def __init__(self, ip: str):
        super().__init__(ip, f"Invalid IP address '{ip}'", "GEO_INVALID_IP")


class IPAddressNotFoundError(GeoLookupError):
    """Raised when no range in the IP database covers the address."""
    
    def __init__(self, ip: str):
        super().__init__(ip, f"No location found for IP address '{ip}'", "GEO_NOT_FOUND")


class GeoCacheError(StorageError):
    """Raised when the geo cache cannot be read or written."""
    
    def __init__(self, kb_id: str, message: str, details: Optional[Dict[str, Any]] = None):
        error_details = {"kb_id": kb_id}
        if details:
            error_details.update(details)
        super().__init__(f"Geo cache error for knowledge base '{kb_id}': {message}", error_details)
