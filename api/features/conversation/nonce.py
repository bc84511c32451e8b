"""Single-use nonces guarding conversation create/continue requests."""
import secrets
from typing import Optional, Tuple

import structlog
from structlog.typing import FilteringBoundLogger

from api.features.conversation.exceptions import NonceRejectedError, NonceStatus
from api.features.conversation.repository import ConversationRepository
from api.shared.entities.base import new_id

NONCE_BYTES = 24


class NonceValidator:
    """Issue nonces and check-and-consume them against the conversation store."""

    def __init__(
        self,
        repository: ConversationRepository,
        logger: Optional[FilteringBoundLogger] = None,
    ):
        self.repository = repository
        self.logger = (logger or structlog.get_logger()).bind(module="conversation.nonce")

    async def issue(self, conversation_id: Optional[str] = None) -> Tuple[str, str]:
        """Store a fresh nonce; returns ``(conversation_id, nonce)``."""
        conversation_id = conversation_id or new_id()
        nonce = secrets.token_urlsafe(NONCE_BYTES)
        await self.repository.create_nonce(conversation_id, nonce)
        self.logger.info("nonce.issued", conversation_id=conversation_id)
        return conversation_id, nonce

    async def validate(self, conversation_id: str, nonce: Optional[str]) -> NonceStatus:
        """Consume ``nonce`` for ``conversation_id``; any later call reports ALREADY_USED."""
        if not conversation_id or not nonce:
            return NonceStatus.INVALID
        return await self.repository.validate_and_consume_nonce(conversation_id, nonce)

    async def ensure_valid(self, conversation_id: str, nonce: Optional[str]) -> None:
        """Like ``validate`` but raises ``NonceRejectedError`` unless the nonce was accepted."""
        status = await self.validate(conversation_id, nonce)
        if status is not NonceStatus.OK:
            self.logger.warning(
                "nonce.rejected", conversation_id=conversation_id, status=status.value
            )
            raise NonceRejectedError(conversation_id, status)
