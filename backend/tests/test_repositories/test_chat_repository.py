"""
Unit tests for ChatRepository
"""
from datetime import datetime
from unittest.mock import MagicMock, patch

import pytest

from loyalty_api.repositories.chat_repository import ChatRepository

CREATED = datetime(2025, 10, 20, 12, 0)


def message_row(message_id, message_type, content):
    return {
        'id': message_id,
        'session_id': 5,
        'message_type': message_type,
        'content': content,
        'attachments': [],
        'metadata': {},
        'created_at': CREATED,
    }


class TestOpenSessionWithExchange:

    @patch('loyalty_api.core.database.get_db_connection_dict')
    def test_session_and_messages_share_one_commit(self, mock_get_conn):
        # Arrange
        mock_conn = MagicMock()
        mock_cursor = MagicMock()
        mock_get_conn.return_value = mock_conn
        mock_conn.cursor.return_value = mock_cursor
        mock_cursor.fetchone.side_effect = [
            {'id': 5, 'customer_id': 42, 'title': 'Opening hours', 'is_active': True,
             'created_at': CREATED, 'updated_at': CREATED},
            message_row(1, 'user', 'Opening hours?'),
            message_row(2, 'ai', 'We open at 9.'),
        ]

        # Act
        session, user_message, ai_message = ChatRepository().open_session_with_exchange(
            42, 'Opening hours', 'Opening hours?', [], 'We open at 9.', {'model': 'claude-haiku-4-5'}
        )

        # Assert
        assert session.id == 5
        assert user_message.session_id == 5
        assert ai_message.message_type == 'ai'
        statements = [c[0][0] for c in mock_cursor.execute.call_args_list]
        assert 'INSERT INTO chat_sessions' in statements[0]
        assert all('INSERT INTO chat_messages' in sql for sql in statements[1:])
        assert mock_get_conn.call_count == 1
        mock_conn.commit.assert_called_once()

    @patch('loyalty_api.core.database.get_db_connection_dict')
    def test_failed_message_insert_rolls_back_session(self, mock_get_conn):
        # Arrange
        mock_conn = MagicMock()
        mock_cursor = MagicMock()
        mock_get_conn.return_value = mock_conn
        mock_conn.cursor.return_value = mock_cursor
        mock_cursor.fetchone.return_value = {
            'id': 5, 'customer_id': 42, 'title': 'Opening hours', 'is_active': True,
            'created_at': CREATED, 'updated_at': CREATED,
        }
        mock_cursor.execute.side_effect = [None, RuntimeError("insert failed")]

        # Act & Assert
        with pytest.raises(RuntimeError):
            ChatRepository().open_session_with_exchange(
                42, 'Opening hours', 'Opening hours?', [], 'We open at 9.'
            )

        mock_conn.rollback.assert_called_once()
        mock_conn.commit.assert_not_called()
        mock_conn.close.assert_called_once()
