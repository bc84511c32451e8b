"""Models for the Conversation feature."""
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from api.features.conversation.entities.conversation import (
    Conversation as ConversationEntity,
    ConversationMessage as ConversationMessageEntity,
    ConversationReference as ConversationReferenceEntity,
    MessageRole,
)
from api.features.geo.models import GeoLocation
from api.shared.entities.base import new_id


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ConversationCreateModel(BaseModel):
    """Model for creating a new conversation."""

    id: str = Field(description="Conversation identifier the nonce was issued for")
    nonce: str = Field(description="Single-use nonce")
    kb_id: str = Field(description="Knowledge base identifier")
    app_id: str = Field(description="Application identifier")
    subject: Optional[str] = Field(default=None, description="Conversation subject (first question)")
    remote_ip: Optional[str] = Field(default=None, description="Requester IP address")

    def to_entity(self) -> ConversationEntity:
        """Convert to database entity."""
        return ConversationEntity(
            id=self.id,
            nonce=self.nonce,
            kb_id=self.kb_id,
            app_id=self.app_id,
            subject=self.subject,
            remote_ip=self.remote_ip,
        )


class ConversationModel(BaseModel):
    """Domain model for Conversation, enriched with its resolved location."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(description="Conversation identifier")
    kb_id: str = Field(description="Knowledge base identifier")
    app_id: str = Field(description="Application identifier")
    subject: Optional[str] = Field(default=None, description="Conversation subject")
    remote_ip: Optional[str] = Field(default=None, description="Requester IP address")
    ip_address: Optional[GeoLocation] = Field(default=None, description="Resolved location, best effort")
    created_at: Optional[datetime] = Field(default=None, description="Creation timestamp")

    @classmethod
    def from_entity(cls, entity: ConversationEntity) -> "ConversationModel":
        """Create model from database entity."""
        return cls(
            id=entity.id,
            kb_id=entity.kb_id,
            app_id=entity.app_id,
            subject=entity.subject,
            remote_ip=entity.remote_ip,
            created_at=entity.created_at,
        )


class ConversationMessageCreateModel(BaseModel):
    """Model for appending a message to a conversation."""

    id: str = Field(default_factory=new_id, description="Message identifier")
    conversation_id: str = Field(description="Parent conversation identifier")
    app_id: str = Field(description="Application identifier")
    role: MessageRole = Field(description="Message role: user or assistant")
    content: str = Field(default="", description="Message content")
    created_at: datetime = Field(default_factory=_utcnow, description="Message timestamp")

    def to_entity(self) -> ConversationMessageEntity:
        """Convert to database entity."""
        return ConversationMessageEntity(
            id=self.id,
            conversation_id=self.conversation_id,
            app_id=self.app_id,
            role=self.role,
            content=self.content,
            created_at=self.created_at,
        )


class ConversationMessageModel(BaseModel):
    """Domain model for ConversationMessage."""

    id: str
    conversation_id: str
    app_id: str
    role: MessageRole
    content: str
    created_at: Optional[datetime] = None

    @classmethod
    def from_entity(cls, entity: ConversationMessageEntity) -> "ConversationMessageModel":
        return cls(
            id=entity.id,
            conversation_id=entity.conversation_id,
            app_id=entity.app_id,
            role=entity.role,
            content=entity.content,
            created_at=entity.created_at,
        )


class ConversationReferenceModel(BaseModel):
    """A citation (ordinal, name, URL) belonging to a conversation."""

    model_config = ConfigDict(frozen=True)

    conversation_id: str
    app_id: str
    position: int = Field(default=0, ge=0, description="Index of the line within the reference block")
    ordinal: str = Field(description="Citation number as written in the answer")
    name: str
    url: str
    message_id: Optional[str] = None
    id: Optional[str] = None

    @classmethod
    def from_entity(cls, entity: ConversationReferenceEntity) -> "ConversationReferenceModel":
        return cls(
            id=entity.id,
            conversation_id=entity.conversation_id,
            message_id=entity.message_id,
            app_id=entity.app_id,
            position=entity.position,
            ordinal=entity.ordinal,
            name=entity.name,
            url=entity.url,
        )

    def to_entity(self, message_id: str, created_at: Optional[datetime] = None) -> ConversationReferenceEntity:
        """Convert to database entity owned by ``message_id``."""
        return ConversationReferenceEntity(
            conversation_id=self.conversation_id,
            message_id=message_id,
            app_id=self.app_id,
            position=self.position,
            ordinal=self.ordinal,
            name=self.name,
            url=self.url,
            created_at=created_at or _utcnow(),
        )


class ConversationListFilter(BaseModel):
    """Filter and page selection for listing conversations."""

    kb_id: str = Field(description="Knowledge base identifier")
    app_id: Optional[str] = Field(default=None, description="Filter by application")
    subject: Optional[str] = Field(default=None, description="Case-insensitive subject substring")
    remote_ip: Optional[str] = Field(default=None, description="Filter by requester IP")
    page: int = Field(default=1, ge=1, description="1-based page number")
    per_page: int = Field(default=20, ge=1, le=100, description="Page size")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page


class ConversationDetailModel(ConversationModel):
    """Conversation with its full message list and references."""

    messages: List[ConversationMessageModel] = Field(default_factory=list)
    references: List[ConversationReferenceModel] = Field(default_factory=list)


class CreatedMessageModel(BaseModel):
    """A persisted message together with the references derived from it."""

    message: ConversationMessageModel
    references: List[ConversationReferenceModel] = Field(default_factory=list)
