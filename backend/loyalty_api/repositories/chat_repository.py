"""
Chat Repository - Data Access Layer for chat sessions and messages

A user/assistant exchange is written in one transaction with the session
it belongs to, whether that session is touched or newly opened.
"""
from typing import List, Optional, Tuple

from psycopg2.extras import Json

from loyalty_api.core.database import get_db_connection_dict, transaction
from loyalty_api.domain.chat import (
    DEFAULT_SESSION_TITLE,
    ChatAttachment,
    ChatMessage,
    ChatSession,
    title_from_message,
)


class ChatRepository:
    """Repository for chat sessions owned by customers"""

    @staticmethod
    def _map_row_to_session(row: dict) -> ChatSession:
        return ChatSession(
            id=row['id'],
            customer_id=row['customer_id'],
            title=row.get('title') or DEFAULT_SESSION_TITLE,
            is_active=row.get('is_active', True),
            message_count=row.get('message_count') or 0,
            last_message=row.get('last_message'),
            created_at=row.get('created_at'),
            updated_at=row.get('updated_at'),
        )

    @staticmethod
    def _map_row_to_message(row: dict) -> ChatMessage:
        return ChatMessage(
            id=row['id'],
            session_id=row['session_id'],
            message_type=row['message_type'],
            content=row.get('content') or '',
            attachments=[ChatAttachment.model_validate(a) for a in (row.get('attachments') or [])],
            metadata=row.get('metadata') or {},
            created_at=row.get('created_at'),
        )

    def find_sessions(self, customer_id: int, limit: int = 20) -> List[ChatSession]:
        """Active sessions, most recently updated first, with count and last-message preview."""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT
                    cs.id, cs.customer_id, cs.title, cs.is_active, cs.created_at, cs.updated_at,
                    (SELECT COUNT(*) FROM chat_messages cm WHERE cm.session_id = cs.id) AS message_count,
                    (SELECT cm.content FROM chat_messages cm
                     WHERE cm.session_id = cs.id
                     ORDER BY cm.created_at DESC, cm.id DESC
                     LIMIT 1) AS last_message
                FROM chat_sessions cs
                WHERE cs.customer_id = %s AND cs.is_active = true
                ORDER BY cs.updated_at DESC
                LIMIT %s
            """, (customer_id, limit))
            return [self._map_row_to_session(row) for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()

    def create_session(self, customer_id: int, title: str = DEFAULT_SESSION_TITLE) -> ChatSession:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                INSERT INTO chat_sessions (customer_id, title, is_active, created_at, updated_at)
                VALUES (%s, %s, true, NOW(), NOW())
                RETURNING id, customer_id, title, is_active, created_at, updated_at
            """, (customer_id, title or DEFAULT_SESSION_TITLE))
            row = cursor.fetchone()
            conn.commit()
            return self._map_row_to_session(row)

        finally:
            cursor.close()
            conn.close()

    def find_session(self, session_id: int, customer_id: int, with_messages: bool = False) -> Optional[ChatSession]:
        """An active session owned by the customer, optionally with its messages in order."""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT id, customer_id, title, is_active, created_at, updated_at
                FROM chat_sessions
                WHERE id = %s AND customer_id = %s AND is_active = true
            """, (session_id, customer_id))
            row = cursor.fetchone()
            if not row:
                return None
            session = self._map_row_to_session(row)

            if with_messages:
                cursor.execute("""
                    SELECT id, session_id, message_type, content, attachments, metadata, created_at
                    FROM chat_messages
                    WHERE session_id = %s
                    ORDER BY created_at ASC, id ASC
                """, (session_id,))
                session.messages = [self._map_row_to_message(m) for m in cursor.fetchall()]
                session.message_count = len(session.messages)

            return session

        finally:
            cursor.close()
            conn.close()

    def deactivate_session(self, session_id: int, customer_id: int) -> bool:
        """Soft delete; False when the session is unknown or not owned."""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                UPDATE chat_sessions SET is_active = false, updated_at = NOW()
                WHERE id = %s AND customer_id = %s AND is_active = true
            """, (session_id, customer_id))
            updated = cursor.rowcount > 0
            conn.commit()
            return updated

        finally:
            cursor.close()
            conn.close()

    def find_recent_messages(self, session_id: int, limit: int = 50) -> List[ChatMessage]:
        """The last `limit` messages, returned oldest first."""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT id, session_id, message_type, content, attachments, metadata, created_at
                FROM (
                    SELECT * FROM chat_messages
                    WHERE session_id = %s
                    ORDER BY created_at DESC, id DESC
                    LIMIT %s
                ) recent
                ORDER BY created_at ASC, id ASC
            """, (session_id, limit))
            return [self._map_row_to_message(row) for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()

    def save_exchange(
        self,
        session_id: int,
        user_content: str,
        attachments: List[ChatAttachment],
        ai_content: str,
        ai_metadata: Optional[dict] = None,
    ) -> Tuple[ChatMessage, ChatMessage]:
        """
        Persist a user message and the assistant's reply atomically

        The session's updated_at is touched, and a session still carrying
        the default title is renamed from the user's message.
        """
        with transaction() as cursor:
            user_message, ai_message = self._insert_exchange(
                cursor, session_id, user_content, attachments, ai_content, ai_metadata
            )
            cursor.execute("""
                UPDATE chat_sessions
                SET updated_at = NOW(),
                    title = CASE WHEN title = %s THEN %s ELSE title END
                WHERE id = %s
            """, (DEFAULT_SESSION_TITLE, title_from_message(user_content), session_id))

        return user_message, ai_message

    def open_session_with_exchange(
        self,
        customer_id: int,
        title: str,
        user_content: str,
        attachments: List[ChatAttachment],
        ai_content: str,
        ai_metadata: Optional[dict] = None,
    ) -> Tuple[ChatSession, ChatMessage, ChatMessage]:
        """Create a session together with its first exchange; neither exists without the other."""
        with transaction() as cursor:
            cursor.execute("""
                INSERT INTO chat_sessions (customer_id, title, is_active, created_at, updated_at)
                VALUES (%s, %s, true, NOW(), NOW())
                RETURNING id, customer_id, title, is_active, created_at, updated_at
            """, (customer_id, title or DEFAULT_SESSION_TITLE))
            session = self._map_row_to_session(cursor.fetchone())

            user_message, ai_message = self._insert_exchange(
                cursor, session.id, user_content, attachments, ai_content, ai_metadata
            )

        return session, user_message, ai_message

    def _insert_exchange(
        self,
        cursor,
        session_id: int,
        user_content: str,
        attachments: List[ChatAttachment],
        ai_content: str,
        ai_metadata: Optional[dict],
    ) -> Tuple[ChatMessage, ChatMessage]:
        cursor.execute("""
            INSERT INTO chat_messages (session_id, message_type, content, attachments, metadata, created_at)
            VALUES (%s, 'user', %s, %s, %s, NOW())
            RETURNING id, session_id, message_type, content, attachments, metadata, created_at
        """, (session_id, user_content, Json([a.model_dump() for a in attachments]), Json({})))
        user_message = self._map_row_to_message(cursor.fetchone())

        # clock_timestamp() keeps the reply strictly after the user message
        cursor.execute("""
            INSERT INTO chat_messages (session_id, message_type, content, attachments, metadata, created_at)
            VALUES (%s, 'ai', %s, %s, %s, clock_timestamp())
            RETURNING id, session_id, message_type, content, attachments, metadata, created_at
        """, (session_id, ai_content, Json([]), Json(ai_metadata or {})))
        ai_message = self._map_row_to_message(cursor.fetchone())

        return user_message, ai_message
