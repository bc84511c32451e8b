"""Conversation service: nonce-gated creation, reference extraction and geo enrichment.

Geo enrichment is advisory. IP lookup and cache failures are logged and the
affected record simply carries no location; they never fail the request.
"""
from typing import Callable, Dict, Optional, Tuple

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from structlog.typing import FilteringBoundLogger

from api.features.conversation.exceptions import ConversationNotFoundError
from api.features.conversation.models import (
    ConversationCreateModel,
    ConversationDetailModel,
    ConversationListFilter,
    ConversationMessageCreateModel,
    ConversationMessageModel,
    ConversationModel,
    ConversationReferenceModel,
    CreatedMessageModel,
)
from api.features.conversation.nonce import NonceValidator
from api.features.conversation.references import extract_references
from api.features.conversation.repository import ConversationRepository
from api.features.geo.cache import GeoCache
from api.features.geo.exceptions import GeoCacheError, GeoLookupError
from api.features.geo.models import GeoLocation
from api.features.geo.resolver import GeoResolver
from api.shared.dtos import PaginatedResult


class ConversationService:
    """Orchestrates conversation persistence and best-effort enrichment."""

    def __init__(
        self,
        geo_resolver: GeoResolver,
        geo_cache: GeoCache,
        logger: Optional[FilteringBoundLogger] = None,
        repository_factory: Callable[[AsyncSession], ConversationRepository] = ConversationRepository,
    ):
        self.geo_resolver = geo_resolver
        self.geo_cache = geo_cache
        self.logger = (logger or structlog.get_logger()).bind(module="usecase.conversation")
        self.repository_factory = repository_factory

    def _nonce_validator(self, repository: ConversationRepository) -> NonceValidator:
        return NonceValidator(repository, logger=self.logger)

    async def issue_nonce(
        self, conversation_id: Optional[str] = None, *, db_session: AsyncSession
    ) -> Tuple[str, str]:
        """Issue a nonce for a new (or continuing) conversation."""
        repository = self.repository_factory(db_session)
        return await self._nonce_validator(repository).issue(conversation_id)

    async def validate_nonce(
        self, conversation_id: str, nonce: str, *, db_session: AsyncSession
    ) -> None:
        """Consume a nonce for a continue request; raises NonceRejectedError."""
        repository = self.repository_factory(db_session)
        await self._nonce_validator(repository).ensure_valid(conversation_id, nonce)

    async def create_conversation(
        self, create_model: ConversationCreateModel, *, db_session: AsyncSession
    ) -> ConversationModel:
        """Validate the nonce, persist the conversation, then cache its location."""
        repository = self.repository_factory(db_session)
        await self._nonce_validator(repository).ensure_valid(
            create_model.id, create_model.nonce
        )

        entity = await repository.create_conversation(create_model.to_entity())
        conversation = ConversationModel.from_entity(entity)
        self.logger.info(
            "conversation.created",
            conversation_id=conversation.id,
            kb_id=conversation.kb_id,
        )

        remote_ip = conversation.remote_ip
        try:
            location = self.geo_resolver.resolve(remote_ip)
        except GeoLookupError as e:
            self.logger.warning(
                "conversation.geo_lookup_failed",
                ip=remote_ip,
                conversation_id=conversation.id,
                error=e.message,
            )
            return conversation

        conversation.ip_address = location
        try:
            await self.geo_cache.set(conversation.kb_id, location.to_cache_value())
        except GeoCacheError as e:
            self.logger.warning(
                "conversation.geo_cache_set_failed",
                ip=remote_ip,
                conversation_id=conversation.id,
                error=e.message,
            )
        return conversation

    async def create_message(
        self,
        kb_id: str,
        message: ConversationMessageCreateModel,
        *,
        db_session: AsyncSession,
    ) -> CreatedMessageModel:
        """Persist a message together with the references found in its content."""
        references = extract_references(
            message.conversation_id,
            message.app_id,
            message.content,
            message_id=message.id,
        )
        repository = self.repository_factory(db_session)
        entity = await repository.create_conversation_message(
            message.to_entity(),
            [ref.to_entity(message.id, created_at=message.created_at) for ref in references],
        )
        self.logger.info(
            "conversation.message_created",
            kb_id=kb_id,
            conversation_id=message.conversation_id,
            message_id=message.id,
            references=len(references),
        )
        return CreatedMessageModel(
            message=ConversationMessageModel.from_entity(entity),
            references=references,
        )

    async def list_conversations(
        self, request: ConversationListFilter, *, db_session: AsyncSession
    ) -> PaginatedResult[ConversationModel]:
        """List a page of conversations with per-row locations.

        Rows sharing an IP trigger a single lookup per call, failed lookups
        included.
        """
        repository = self.repository_factory(db_session)
        entities, total = await repository.get_conversation_list(request)

        locations: Dict[str, Optional[GeoLocation]] = {}
        items = []
        for entity in entities:
            conversation = ConversationModel.from_entity(entity)
            ip = conversation.remote_ip or ""
            if ip not in locations:
                locations[ip] = self._lookup_location(ip)
            conversation.ip_address = locations[ip]
            items.append(conversation)

        return PaginatedResult[ConversationModel](items=items, total=total)

    async def get_conversation_detail(
        self, conversation_id: str, *, db_session: AsyncSession
    ) -> ConversationDetailModel:
        """Conversation with location, messages and references.

        The location is optional; failures reading messages or references
        propagate.
        """
        repository = self.repository_factory(db_session)
        entity = await repository.get_conversation_detail(conversation_id)
        if entity is None:
            raise ConversationNotFoundError(conversation_id)

        detail = ConversationDetailModel(**ConversationModel.from_entity(entity).model_dump())
        detail.ip_address = self._lookup_location(detail.remote_ip or "")

        messages = await repository.get_conversation_messages_by_id(conversation_id)
        detail.messages = [ConversationMessageModel.from_entity(m) for m in messages]

        references = await repository.get_conversation_references(conversation_id)
        detail.references = [ConversationReferenceModel.from_entity(r) for r in references]
        return detail

    async def get_cached_location(self, kb_id: str) -> Optional[GeoLocation]:
        """Most recently observed location for a knowledge base, if cached."""
        try:
            value = await self.geo_cache.get(kb_id)
        except GeoCacheError as e:
            self.logger.warning("conversation.geo_cache_get_failed", kb_id=kb_id, error=e.message)
            return None
        return GeoLocation.from_cache_value(value)

    def _lookup_location(self, ip: str) -> Optional[GeoLocation]:
        try:
            return self.geo_resolver.resolve(ip)
        except GeoLookupError as e:
            self.logger.error("conversation.geo_lookup_failed", ip=ip, error=e.message)
            return None
