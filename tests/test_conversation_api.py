"""
Tests for the conversation HTTP routes with a mocked service.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from api.features.conversation.controller import ConversationController
from api.features.conversation.exceptions import (
    ConversationNotFoundError,
    NonceRejectedError,
    NonceStatus,
)
from api.features.conversation.models import ConversationModel
from api.features.geo.models import GeoLocation
from api.shared.db import get_db_session
from api.shared.dtos import PaginatedResult

PREFIX = "/api/v1/conversations"


@pytest.fixture
def conversation_service() -> MagicMock:
    service = MagicMock()
    service.issue_nonce = AsyncMock(return_value=("c-1", "nonce-1"))
    service.validate_nonce = AsyncMock(return_value=None)
    service.create_conversation = AsyncMock(
        return_value=ConversationModel(id="c-1", kb_id="kb-1", app_id="app-1")
    )
    service.list_conversations = AsyncMock()
    service.get_conversation_detail = AsyncMock()
    service.get_cached_location = AsyncMock(return_value=None)
    return service


@pytest.fixture
def client(conversation_service):
    from api.main import app

    app.dependency_overrides[get_db_session] = lambda: MagicMock()
    with app.container.controllers.conversation_controller.override(
        ConversationController(conversation_service)
    ):
        yield TestClient(app)
    app.dependency_overrides.clear()


class TestNonceRoutes:
    """Tests for nonce issue and validation."""

    def test_issue_nonce(self, client):
        response = client.post(f"{PREFIX}/nonce", json={})

        assert response.status_code == 200
        assert response.json()["data"] == {"conversation_id": "c-1", "nonce": "nonce-1"}

    def test_validate_nonce_rejected(self, client, conversation_service):
        conversation_service.validate_nonce.side_effect = NonceRejectedError(
            "c-1", NonceStatus.ALREADY_USED
        )

        response = client.post(f"{PREFIX}/c-1/nonce/validate", json={"nonce": "nonce-1"})

        assert response.status_code == 403
        assert response.json()["detail"]["error_code"] == "NONCE_ALREADY_USED"


class TestCreateConversationRoute:
    """Tests for conversation creation."""

    def _payload(self):
        return {"conversation_id": "c-1", "nonce": "nonce-1", "kb_id": "kb-1", "app_id": "app-1"}

    def test_uses_first_forwarded_address(self, client, conversation_service):
        response = client.post(
            f"{PREFIX}/",
            json=self._payload(),
            headers={"X-Forwarded-For": "203.0.113.5, 10.0.0.1"},
        )

        assert response.status_code == 200
        create_model = conversation_service.create_conversation.await_args.args[0]
        assert create_model.remote_ip == "203.0.113.5"
        assert create_model.nonce == "nonce-1"

    def test_invalid_nonce_is_forbidden(self, client, conversation_service):
        conversation_service.create_conversation.side_effect = NonceRejectedError(
            "c-1", NonceStatus.INVALID
        )

        response = client.post(f"{PREFIX}/", json=self._payload())

        assert response.status_code == 403
        assert response.json()["detail"]["error_code"] == "NONCE_INVALID"


class TestReadRoutes:
    """Tests for list, detail and cached-location reads."""

    def test_list(self, client, conversation_service):
        conversation_service.list_conversations.return_value = PaginatedResult[ConversationModel](
            items=[ConversationModel(id="c-1", kb_id="kb-1", app_id="app-1")], total=41
        )

        response = client.get(f"{PREFIX}/", params={"kb_id": "kb-1", "page": 3, "per_page": 10})

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["total"] == 41
        assert data["page"] == 3
        assert data["per_page"] == 10
        request = conversation_service.list_conversations.await_args.args[0]
        assert request.offset == 20

    def test_list_requires_kb_id(self, client):
        assert client.get(f"{PREFIX}/").status_code == 422

    def test_detail_not_found(self, client, conversation_service):
        conversation_service.get_conversation_detail.side_effect = ConversationNotFoundError("c-9")

        assert client.get(f"{PREFIX}/c-9").status_code == 404

    def test_cached_location(self, client, conversation_service):
        conversation_service.get_cached_location.return_value = GeoLocation(
            country="Germany", province="Bavaria", city="Munich"
        )

        response = client.get(f"{PREFIX}/geo/kb-1")

        assert response.status_code == 200
        assert response.json()["data"]["city"] == "Munich"

    def test_cached_location_miss(self, client):
        assert client.get(f"{PREFIX}/geo/kb-1").status_code == 404
