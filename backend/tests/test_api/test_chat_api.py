"""
Tests for the chat assistant endpoints
"""
from datetime import datetime
from unittest.mock import patch

import pytest

from loyalty_api.domain.chat import ChatMessage, ChatSession, ChatSettings
from loyalty_api.services.chat_assistant_service import ChatResult

SESSION = ChatSession(id=5, customer_id=42, title="How many points do I have?")


@pytest.fixture
def chat_settings():
    return ChatSettings()


@pytest.fixture
def exchange():
    created = datetime(2025, 10, 20, 12, 0)
    return (
        ChatMessage(id=1, session_id=5, message_type="user", content="How many points do I have?", created_at=created),
        ChatMessage(id=2, session_id=5, message_type="ai", content="You have 2,500 points.", created_at=created),
    )


def reply():
    return ChatResult(
        response="You have 2,500 points.",
        tools_used=["get_customer_points_balance"],
        model="claude-haiku-4-5",
        input_tokens=900,
        output_tokens=40,
    )


class TestSendMessage:

    @patch('loyalty_api.api.chat.ChatRepository')
    @patch('loyalty_api.api.chat.get_chat_service')
    @patch('loyalty_api.api.chat.get_settings_service')
    def test_first_message_opens_session(self, mock_settings, mock_chat_service, mock_repo_cls, client,
                                         chat_settings, exchange):
        # Arrange
        mock_settings.return_value.get_chat_settings.return_value = chat_settings
        mock_chat_service.return_value.generate_reply.return_value = reply()
        mock_repo = mock_repo_cls.return_value
        mock_repo.open_session_with_exchange.return_value = (SESSION, *exchange)

        # Act
        response = client.post("/api/chat/messages", json={"message": "How many points do I have?"})

        # Assert
        data = response.json()
        assert response.status_code == 200
        assert data["sessionId"] == 5
        assert data["aiMessage"]["content"] == "You have 2,500 points."
        mock_repo.create_session.assert_not_called()
        mock_repo.save_exchange.assert_not_called()
        kwargs = mock_chat_service.return_value.generate_reply.call_args.kwargs
        assert kwargs["customer_id"] == 42
        assert kwargs["history"] == []
        saved = mock_repo.open_session_with_exchange.call_args[0]
        assert saved[:3] == (42, "How many points do I have?", "How many points do I have?")
        assert saved[5]["toolsUsed"] == ["get_customer_points_balance"]

    @patch('loyalty_api.api.chat.ChatRepository')
    @patch('loyalty_api.api.chat.get_chat_service')
    @patch('loyalty_api.api.chat.get_settings_service')
    def test_existing_session_passes_history(self, mock_settings, mock_chat_service, mock_repo_cls, client,
                                             chat_settings, exchange):
        mock_settings.return_value.get_chat_settings.return_value = chat_settings
        mock_chat_service.return_value.generate_reply.return_value = reply()
        mock_repo = mock_repo_cls.return_value
        mock_repo.find_session.return_value = SESSION
        mock_repo.find_recent_messages.return_value = list(exchange)
        mock_repo.save_exchange.return_value = exchange

        response = client.post("/api/chat/messages", json={"sessionId": 5, "message": "And next tier?"})

        assert response.status_code == 200
        mock_repo.find_session.assert_called_once_with(5, 42)
        mock_repo.open_session_with_exchange.assert_not_called()
        mock_repo.create_session.assert_not_called()
        history = mock_chat_service.return_value.generate_reply.call_args.kwargs["history"]
        assert [turn["role"] for turn in history] == ["user", "assistant"]

    @patch('loyalty_api.api.chat.ChatRepository')
    @patch('loyalty_api.api.chat.get_chat_service')
    @patch('loyalty_api.api.chat.get_settings_service')
    def test_unknown_session(self, mock_settings, mock_chat_service, mock_repo_cls, client, chat_settings):
        mock_settings.return_value.get_chat_settings.return_value = chat_settings
        mock_repo_cls.return_value.find_session.return_value = None

        response = client.post("/api/chat/messages", json={"sessionId": 99, "message": "hi"})

        assert response.status_code == 404
        mock_chat_service.return_value.generate_reply.assert_not_called()

    @patch('loyalty_api.api.chat.get_settings_service')
    def test_chat_disabled(self, mock_settings, client):
        mock_settings.return_value.get_chat_settings.return_value = ChatSettings(chat_enabled=False)

        response = client.post("/api/chat/messages", json={"message": "hi"})

        assert response.status_code == 403

    @patch('loyalty_api.api.chat.get_settings_service')
    def test_empty_message(self, mock_settings, client, chat_settings):
        mock_settings.return_value.get_chat_settings.return_value = chat_settings

        response = client.post("/api/chat/messages", json={"message": "   "})

        assert response.status_code == 400
        assert response.json() == {"error": "Message or attachments required"}

    @patch('loyalty_api.api.chat.get_settings_service')
    def test_oversized_attachment(self, mock_settings, client):
        mock_settings.return_value.get_chat_settings.return_value = ChatSettings(max_file_size=100)

        response = client.post("/api/chat/messages", json={
            "message": "see receipt",
            "attachments": [{"name": "receipt.pdf", "type": "application/pdf", "size": 5000}],
        })

        assert response.status_code == 400

    @patch('loyalty_api.api.chat.ChatRepository')
    @patch('loyalty_api.api.chat.get_chat_service')
    @patch('loyalty_api.api.chat.get_settings_service')
    def test_missing_api_key(self, mock_settings, mock_chat_service, mock_repo_cls, client, chat_settings):
        mock_settings.return_value.get_chat_settings.return_value = chat_settings
        mock_chat_service.side_effect = ValueError("ANTHROPIC_API_KEY not found in environment")

        response = client.post("/api/chat/messages", json={"message": "hi"})

        assert response.status_code == 500
        assert "not configured" in response.json()["error"]
        mock_repo_cls.return_value.save_exchange.assert_not_called()
        mock_repo_cls.return_value.open_session_with_exchange.assert_not_called()


class TestSessions:

    @patch('loyalty_api.api.chat.ChatRepository')
    def test_delete_other_customers_session(self, mock_repo_cls, client):
        mock_repo_cls.return_value.deactivate_session.return_value = False

        response = client.delete("/api/chat/sessions/5")

        assert response.status_code == 404
        mock_repo_cls.return_value.deactivate_session.assert_called_once_with(5, 42)

    @patch('loyalty_api.api.chat.ChatRepository')
    def test_list_sessions(self, mock_repo_cls, client):
        mock_repo_cls.return_value.find_sessions.return_value = [SESSION]

        data = client.get("/api/chat/sessions").json()

        assert data["sessions"][0]["id"] == 5


class TestChatSettings:

    @patch('loyalty_api.api.chat.get_settings_service')
    def test_get_is_public(self, mock_settings, anonymous_client, chat_settings):
        mock_settings.return_value.get_chat_settings.return_value = chat_settings

        data = anonymous_client.get("/api/chat/settings").json()

        assert data["settings"]["maxFileSize"] == 10485760

    def test_update_requires_admin(self, client):
        response = client.put("/api/chat/settings", json={"chatEnabled": False})
        assert response.status_code == 403

    @patch('loyalty_api.api.chat.get_settings_service')
    def test_admin_update(self, mock_settings, admin_client, chat_settings):
        mock_settings.return_value.update_chat_settings.return_value = []
        mock_settings.return_value.get_chat_settings.return_value = chat_settings

        response = admin_client.put("/api/chat/settings", json={"chatEnabled": False, "maxFileSize": 2048})

        assert response.json()["success"] is True
        assert response.json()["settings"]["maxFileSize"] == 10485760
        mock_settings.return_value.update_chat_settings.assert_called_once_with(
            {"chat_enabled": False, "max_file_size": 2048}, "admin@example.com"
        )

    def test_empty_update(self, admin_client):
        response = admin_client.put("/api/chat/settings", json={})
        assert response.status_code == 400
