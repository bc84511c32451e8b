"""Exceptions for the Conversation feature."""
from enum import Enum

from api.shared.exceptions import AppException


class NonceStatus(str, Enum):
    """Outcome of a nonce check-and-consume."""

    OK = "ok"
    INVALID = "invalid"
    ALREADY_USED = "already_used"
    NOT_FOUND = "not_found"


class ConversationException(AppException):
    """Base exception for conversation operations."""
    pass


class ConversationNotFoundError(ConversationException):
    """Raised when a conversation is not found."""
    
    def __init__(self, conversation_id: str):
        message = f"Conversation with ID '{conversation_id}' not found"
        super().__init__(message, "CONVERSATION_NOT_FOUND", {"conversation_id": conversation_id})


class NonceRejectedError(ConversationException):
    """Raised when a nonce fails validation; the request must be rejected, not retried."""
    
    def __init__(self, conversation_id: str, status: NonceStatus):
        self.conversation_id = conversation_id
        self.status = status
        message = f"Nonce rejected for conversation '{conversation_id}': {status.value}"
        super().__init__(
            message,
            f"NONCE_{status.name}",
            {"conversation_id": conversation_id, "status": status.value},
        )
