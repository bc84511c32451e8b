"""DTOs for the Conversation feature."""
from typing import List, Optional

from pydantic import Field

from api.features.conversation.entities.conversation import MessageRole
from api.features.conversation.models import (
    ConversationModel,
    ConversationMessageModel,
    ConversationReferenceModel,
)
from api.shared.dtos import BaseDTO


class IssueNonceRequest(BaseDTO):
    """Request a nonce for a new or continuing conversation."""

    conversation_id: Optional[str] = Field(
        default=None, description="Existing conversation; omitted for a new one"
    )


class NonceResponse(BaseDTO):
    """Issued nonce."""

    conversation_id: str = Field(description="Conversation identifier")
    nonce: str = Field(description="Single-use nonce")


class CreateConversationRequest(BaseDTO):
    """Request to create a conversation."""

    conversation_id: str = Field(description="Conversation identifier the nonce was issued for")
    nonce: str = Field(description="Single-use nonce")
    kb_id: str = Field(description="Knowledge base identifier")
    app_id: str = Field(description="Application identifier")
    subject: Optional[str] = Field(default=None, description="Conversation subject")


class ValidateNonceRequest(BaseDTO):
    """Consume a nonce for a continue request."""

    nonce: str = Field(description="Single-use nonce")


class AppendMessageRequest(BaseDTO):
    """Append a message to a conversation."""

    kb_id: str = Field(description="Knowledge base identifier")
    app_id: str = Field(description="Application identifier")
    role: MessageRole = Field(description="Message role: user or assistant")
    content: str = Field(default="", description="Message content")


class MessageResponse(BaseDTO):
    """A persisted message and the references extracted from it."""

    message: ConversationMessageModel
    references: List[ConversationReferenceModel] = Field(default_factory=list)


class ConversationListResponse(BaseDTO):
    """List conversations response."""

    items: List[ConversationModel] = Field(description="Conversations on this page")
    total: int = Field(description="Total conversations matching the filter")
    page: int = Field(description="Current page number")
    per_page: int = Field(description="Page size")
