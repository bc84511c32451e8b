"""
Tests for nonce issuing and validation.
"""

import pytest

from api.features.conversation.exceptions import NonceRejectedError, NonceStatus
from api.features.conversation.nonce import NonceValidator
from api.features.conversation.repository import ConversationRepository


@pytest.fixture
def validator(db_session, logger) -> NonceValidator:
    return NonceValidator(ConversationRepository(db_session), logger=logger)


class TestNonceValidator:
    """Tests for the single-use nonce lifecycle."""

    async def test_issue_for_new_conversation(self, validator):
        conversation_id, nonce = await validator.issue()

        assert len(conversation_id) == 36
        assert len(nonce) >= 32

    async def test_issue_for_existing_conversation(self, validator):
        conversation_id, _ = await validator.issue("c-1")

        assert conversation_id == "c-1"

    async def test_issued_nonces_are_distinct(self, validator):
        _, first = await validator.issue("c-1")
        _, second = await validator.issue("c-1")

        assert first != second

    async def test_each_nonce_is_single_use(self, validator):
        conversation_id, first = await validator.issue()
        _, second = await validator.issue(conversation_id)

        assert await validator.validate(conversation_id, first) is NonceStatus.OK
        assert await validator.validate(conversation_id, second) is NonceStatus.OK
        assert await validator.validate(conversation_id, first) is NonceStatus.ALREADY_USED

    @pytest.mark.parametrize("conversation_id,nonce", [("", "n"), ("c-1", ""), ("c-1", None)])
    async def test_missing_input_is_invalid(self, validator, conversation_id, nonce):
        assert await validator.validate(conversation_id, nonce) is NonceStatus.INVALID

    async def test_ensure_valid_raises_with_status(self, validator, logger):
        conversation_id, nonce = await validator.issue()
        await validator.ensure_valid(conversation_id, nonce)

        with pytest.raises(NonceRejectedError) as exc_info:
            await validator.ensure_valid(conversation_id, nonce)

        assert exc_info.value.status is NonceStatus.ALREADY_USED
        assert exc_info.value.error_code == "NONCE_ALREADY_USED"
        logger.warning.assert_called_once()
