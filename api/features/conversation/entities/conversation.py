"""Conversation entities: conversations, messages, citation references and nonces."""
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from api.shared.entities.base import BaseEntity


class MessageRole(str, Enum):
    """Direction of a conversation turn."""

    USER = "user"
    ASSISTANT = "assistant"


class Conversation(BaseEntity):
    """A conversation opened against a knowledge base."""

    __tablename__ = "conversation"

    nonce: Mapped[str] = mapped_column(String(128), nullable=False)
    kb_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    app_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    subject: Mapped[Optional[str]] = mapped_column(String(500))
    remote_ip: Mapped[Optional[str]] = mapped_column(String(64))


class ConversationMessage(BaseEntity):
    """A single turn of a conversation."""

    __tablename__ = "conversation_message"

    conversation_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("conversation.id", ondelete="CASCADE"), nullable=False
    )
    app_id: Mapped[str] = mapped_column(String(64), nullable=False)
    role: Mapped[MessageRole] = mapped_column(
        SQLEnum(
            MessageRole,
            native_enum=False,
            length=16,
            values_callable=lambda roles: [r.value for r in roles],
        ),
        nullable=False,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")

    __table_args__ = (
        Index("ix_conversation_message_conversation_id_created_at", "conversation_id", "created_at"),
    )


class ConversationReference(BaseEntity):
    """A citation extracted from the trailing reference block of a message."""

    __tablename__ = "conversation_reference"

    conversation_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("conversation.id", ondelete="CASCADE"), nullable=False
    )
    message_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("conversation_message.id", ondelete="CASCADE"), nullable=False
    )
    app_id: Mapped[str] = mapped_column(String(64), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    ordinal: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    url: Mapped[str] = mapped_column(Text, nullable=False, default="")

    __table_args__ = (
        Index("ix_conversation_reference_conversation_id", "conversation_id"),
    )


class ConversationNonce(BaseEntity):
    """Single-use token authorizing one create/continue request."""

    __tablename__ = "conversation_nonce"

    conversation_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    nonce: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    used_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
