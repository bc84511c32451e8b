"""Repository for conversation persistence operations."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import func, select, update

from api.features.conversation.entities.conversation import (
    Conversation,
    ConversationMessage,
    ConversationNonce,
    ConversationReference,
)
from api.features.conversation.exceptions import NonceStatus
from api.features.conversation.models import ConversationListFilter
from api.shared.base import BaseRepository


class ConversationRepository(BaseRepository[Conversation]):
    """Conversations, their messages, references and nonces."""

    model = Conversation

    async def create_conversation(self, conversation: Conversation) -> Conversation:
        entity = await self.create(conversation)
        await self.session.commit()
        return entity

    async def create_conversation_message(
        self,
        message: ConversationMessage,
        references: Sequence[ConversationReference],
    ) -> ConversationMessage:
        """Persist a message and the references derived from it in one commit."""
        self.session.add(message)
        if references:
            self.session.add_all(list(references))
        await self.session.commit()
        return message

    def _apply_filter(self, stmt, request: ConversationListFilter):
        stmt = stmt.where(Conversation.kb_id == request.kb_id)
        if request.app_id:
            stmt = stmt.where(Conversation.app_id == request.app_id)
        if request.remote_ip:
            stmt = stmt.where(Conversation.remote_ip == request.remote_ip)
        if request.subject:
            stmt = stmt.where(Conversation.subject.ilike(f"%{request.subject}%"))
        return stmt

    async def get_conversation_list(
        self, request: ConversationListFilter
    ) -> Tuple[List[Conversation], int]:
        """Return one page of conversations and the size of the filtered set."""
        count_stmt = self._apply_filter(select(func.count(Conversation.id)), request)
        stmt = (
            self._apply_filter(select(Conversation), request)
            .order_by(Conversation.created_at.desc(), Conversation.id.desc())
            .offset(request.offset)
            .limit(request.per_page)
        )

        result = await self.session.execute(stmt)
        count_result = await self.session.execute(count_stmt)
        total = count_result.scalar() or 0
        return list(result.scalars().all()), int(total)

    async def get_conversation_detail(self, conversation_id: str) -> Optional[Conversation]:
        return await self.get_by_id(conversation_id)

    async def get_conversation_messages_by_id(
        self, conversation_id: str
    ) -> List[ConversationMessage]:
        stmt = (
            select(ConversationMessage)
            .where(ConversationMessage.conversation_id == conversation_id)
            .order_by(ConversationMessage.created_at.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_conversation_references(
        self, conversation_id: str
    ) -> List[ConversationReference]:
        stmt = (
            select(ConversationReference)
            .where(ConversationReference.conversation_id == conversation_id)
            .order_by(
                ConversationReference.created_at.asc(),
                ConversationReference.position.asc(),
            )
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def create_nonce(self, conversation_id: str, nonce: str) -> ConversationNonce:
        entity = ConversationNonce(conversation_id=conversation_id, nonce=nonce)
        self.session.add(entity)
        await self.session.commit()
        return entity

    async def validate_and_consume_nonce(self, conversation_id: str, nonce: str) -> NonceStatus:
        """Atomically mark the nonce used; classify the failure when nothing was updated."""
        stmt = (
            update(ConversationNonce)
            .where(
                ConversationNonce.conversation_id == conversation_id,
                ConversationNonce.nonce == nonce,
                ConversationNonce.used_at.is_(None),
            )
            .values(used_at=datetime.now(timezone.utc))
            .returning(ConversationNonce.id)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        consumed = result.scalar_one_or_none()
        await self.session.commit()
        if consumed is not None:
            return NonceStatus.OK

        matching = await self.session.execute(
            select(ConversationNonce.id).where(
                ConversationNonce.conversation_id == conversation_id,
                ConversationNonce.nonce == nonce,
            )
        )
        if matching.scalar_one_or_none() is not None:
            return NonceStatus.ALREADY_USED

        issued = await self.session.execute(
            select(func.count(ConversationNonce.id)).where(
                ConversationNonce.conversation_id == conversation_id
            )
        )
        if (issued.scalar() or 0) > 0:
            return NonceStatus.INVALID
        return NonceStatus.NOT_FOUND
