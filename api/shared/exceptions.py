"""Shared exceptions for the conversation analytics API."""
from typing import Any, Dict, Optional


class AppException(Exception):
    """Base exception for the conversation analytics API."""
    
    def __init__(
        self,
        message: str,
        error_code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class StorageError(AppException):
    """Raised when cache or storage operations fail."""
    
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "STORAGE_ERROR", details)
