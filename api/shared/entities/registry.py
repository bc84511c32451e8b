"""Entity registry to ensure SQLAlchemy loads all table metadata.

Import all entity modules here so Alembic autogenerate can discover them.
"""
# Import base first to expose BaseEntity.metadata
from api.shared.entities.base import BaseEntity  # noqa: F401

# Feature: Conversation
from api.features.conversation.entities.conversation import (  # noqa: F401
    Conversation,
    ConversationMessage,
    ConversationNonce,
    ConversationReference,
)

# Feature: Stats
from api.features.stats.entities.stat import StatPage  # noqa: F401
