"""
Chat Domain Models

Sessions, messages and the typed view of the chat_* system settings that
drive the assistant widget.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field

from loyalty_api.domain.base import APIModel

DEFAULT_SESSION_TITLE = "New Chat"
SESSION_TITLE_LENGTH = 50


def title_from_message(message: str) -> str:
    """First 50 characters of the opening message, or the default title."""
    text = " ".join((message or "").split())
    if not text:
        return DEFAULT_SESSION_TITLE
    if len(text) > SESSION_TITLE_LENGTH:
        return text[:SESSION_TITLE_LENGTH].rstrip() + "..."
    return text


class ChatAttachment(APIModel):
    name: str
    type: str
    size: int = 0
    url: Optional[str] = None


class ChatMessage(APIModel):
    id: int
    session_id: int
    message_type: str
    content: str
    attachments: List[ChatAttachment] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None


class ChatSession(APIModel):
    id: int
    customer_id: int
    title: str = DEFAULT_SESSION_TITLE
    is_active: bool = True
    message_count: int = 0
    last_message: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    messages: List[ChatMessage] = Field(default_factory=list)


# chat setting key -> ChatSettings field
CHAT_SETTING_KEYS = {
    "chat_enabled": "chat_enabled",
    "chat_api_url": "chat_api_url",
    "chat_floating_button": "chat_floating_button",
    "chat_max_file_size": "max_file_size",
    "chat_allowed_file_types": "allowed_file_types",
    "chat_typing_indicator_delay": "typing_indicator_delay",
    "chat_message_retry_attempts": "message_retry_attempts",
    "chat_session_timeout": "session_timeout",
}


class ChatSettings(APIModel):
    chat_enabled: bool = True
    chat_api_url: str = ""
    chat_floating_button: bool = True
    max_file_size: int = 10485760
    allowed_file_types: List[str] = Field(
        default_factory=lambda: ["image/jpeg", "image/png", "image/gif", "application/pdf", "text/plain"]
    )
    typing_indicator_delay: int = 1000
    message_retry_attempts: int = 3
    session_timeout: int = 3600000


def validate_attachments(attachments: List[ChatAttachment], chat_settings: ChatSettings) -> None:
    """Raise ValueError for the first attachment that is too large or of a disallowed type."""
    allowed = {t.strip().lower() for t in chat_settings.allowed_file_types if t.strip()}
    for attachment in attachments:
        if attachment.size > chat_settings.max_file_size:
            raise ValueError(f"File {attachment.name} exceeds the maximum size")
        if allowed and attachment.type.lower() not in allowed:
            raise ValueError(f"File type {attachment.type} is not allowed")
