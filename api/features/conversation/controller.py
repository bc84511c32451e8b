"""Controller for the Conversation feature."""
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from api.features.conversation.dtos import (
    AppendMessageRequest,
    ConversationListResponse,
    CreateConversationRequest,
    MessageResponse,
    NonceResponse,
)
from api.features.conversation.exceptions import (
    ConversationNotFoundError,
    NonceRejectedError,
)
from api.features.conversation.models import (
    ConversationCreateModel,
    ConversationDetailModel,
    ConversationListFilter,
    ConversationMessageCreateModel,
    ConversationModel,
)
from api.features.conversation.service import ConversationService
from api.features.geo.models import GeoLocation


def _nonce_http_error(e: NonceRejectedError) -> HTTPException:
    return HTTPException(
        status_code=403,
        detail={"error_code": e.error_code, "message": e.message},
    )


class ConversationController:
    """Controller mapping conversation operations onto HTTP semantics."""

    def __init__(self, conversation_service: ConversationService):
        self.conversation_service = conversation_service

    async def issue_nonce(
        self, *, conversation_id: Optional[str], db_session: AsyncSession
    ) -> NonceResponse:
        conv_id, nonce = await self.conversation_service.issue_nonce(
            conversation_id, db_session=db_session
        )
        return NonceResponse(conversation_id=conv_id, nonce=nonce)

    async def validate_nonce(
        self, *, conversation_id: str, nonce: str, db_session: AsyncSession
    ) -> None:
        try:
            await self.conversation_service.validate_nonce(
                conversation_id, nonce, db_session=db_session
            )
        except NonceRejectedError as e:
            raise _nonce_http_error(e)

    async def create_conversation(
        self,
        *,
        request: CreateConversationRequest,
        remote_ip: Optional[str],
        db_session: AsyncSession,
    ) -> ConversationModel:
        create_model = ConversationCreateModel(
            id=request.conversation_id,
            nonce=request.nonce,
            kb_id=request.kb_id,
            app_id=request.app_id,
            subject=request.subject,
            remote_ip=remote_ip,
        )
        try:
            return await self.conversation_service.create_conversation(
                create_model, db_session=db_session
            )
        except NonceRejectedError as e:
            raise _nonce_http_error(e)

    async def append_message(
        self,
        *,
        conversation_id: str,
        request: AppendMessageRequest,
        db_session: AsyncSession,
    ) -> MessageResponse:
        message = ConversationMessageCreateModel(
            conversation_id=conversation_id,
            app_id=request.app_id,
            role=request.role,
            content=request.content,
        )
        created = await self.conversation_service.create_message(
            request.kb_id, message, db_session=db_session
        )
        return MessageResponse(message=created.message, references=created.references)

    async def list_conversations(
        self, *, request: ConversationListFilter, db_session: AsyncSession
    ) -> ConversationListResponse:
        result = await self.conversation_service.list_conversations(
            request, db_session=db_session
        )
        return ConversationListResponse(
            items=result.items,
            total=result.total,
            page=request.page,
            per_page=request.per_page,
        )

    async def get_conversation_detail(
        self, *, conversation_id: str, db_session: AsyncSession
    ) -> ConversationDetailModel:
        try:
            return await self.conversation_service.get_conversation_detail(
                conversation_id, db_session=db_session
            )
        except ConversationNotFoundError as e:
            raise HTTPException(status_code=404, detail=e.message)

    async def get_cached_location(self, *, kb_id: str) -> Optional[GeoLocation]:
        return await self.conversation_service.get_cached_location(kb_id)
