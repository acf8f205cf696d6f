"""
API endpoints for the customer chat assistant

Endpoints:
- /api/chat/sessions - List, create, read and close chat sessions
- POST /api/chat/messages - Send a message and get the assistant's reply
- /api/chat/settings - Widget configuration
- GET /api/chat/health - Assistant configuration status
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field

from loyalty_api.api.dependencies import get_current_customer
from loyalty_api.core.auth import TokenUser, require_admin
from loyalty_api.core.config import settings
from loyalty_api.domain.chat import (
    DEFAULT_SESSION_TITLE,
    ChatAttachment,
    title_from_message,
    validate_attachments,
)
from loyalty_api.domain.customer import Customer
from loyalty_api.repositories.chat_repository import ChatRepository
from loyalty_api.services.chat_assistant_service import get_chat_service, history_from_messages
from loyalty_api.services.settings_service import get_settings_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/chat", tags=["Chat"])

HISTORY_FETCH_LIMIT = 50


# ============================================================================
# REQUEST MODELS
# ============================================================================

class SessionCreate(BaseModel):
    title: str = Field(DEFAULT_SESSION_TITLE, max_length=100)


class MessageCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: Optional[int] = Field(None, alias="sessionId")
    message: str = Field("", max_length=4000)
    attachments: List[ChatAttachment] = Field(default_factory=list)


class ChatSettingsUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    chat_enabled: Optional[bool] = Field(None, alias="chatEnabled")
    chat_api_url: Optional[str] = Field(None, alias="chatApiUrl")
    chat_floating_button: Optional[bool] = Field(None, alias="chatFloatingButton")
    max_file_size: Optional[int] = Field(None, alias="maxFileSize", gt=0)
    allowed_file_types: Optional[List[str]] = Field(None, alias="allowedFileTypes")
    typing_indicator_delay: Optional[int] = Field(None, alias="typingIndicatorDelay", ge=0)
    message_retry_attempts: Optional[int] = Field(None, alias="messageRetryAttempts", ge=0)
    session_timeout: Optional[int] = Field(None, alias="sessionTimeout", gt=0)


# ============================================================================
# SESSIONS
# ============================================================================

@router.get("/sessions")
async def get_sessions(
    limit: int = Query(20, ge=1, le=100),
    customer: Customer = Depends(get_current_customer),
):
    try:
        sessions = ChatRepository().find_sessions(customer.id, limit)
        return {"sessions": [s.to_dict() for s in sessions]}

    except Exception as e:
        logger.error(f"Error fetching chat sessions: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch chat sessions")


@router.post("/sessions")
async def create_session(body: SessionCreate, customer: Customer = Depends(get_current_customer)):
    try:
        session = ChatRepository().create_session(customer.id, body.title.strip() or DEFAULT_SESSION_TITLE)
        return {"success": True, "sessionId": session.id, "session": session.to_dict()}

    except Exception as e:
        logger.error(f"Error creating chat session: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to create chat session")


@router.get("/sessions/{session_id}")
async def get_session(session_id: int, customer: Customer = Depends(get_current_customer)):
    try:
        session = ChatRepository().find_session(session_id, customer.id, with_messages=True)
        if session is None:
            raise HTTPException(status_code=404, detail="Chat session not found")

        return {"session": session.to_dict()}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching chat session {session_id}: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch chat session")


@router.delete("/sessions/{session_id}")
async def delete_session(session_id: int, customer: Customer = Depends(get_current_customer)):
    try:
        if not ChatRepository().deactivate_session(session_id, customer.id):
            raise HTTPException(status_code=404, detail="Chat session not found")

        return {"success": True}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error deleting chat session {session_id}: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to delete chat session")


# ============================================================================
# MESSAGES
# ============================================================================

@router.post("/messages")
async def send_message(body: MessageCreate, customer: Customer = Depends(get_current_customer)):
    """
    Send a message to the assistant.

    The reply is generated before anything is written; the user message,
    the reply and the session touch are then stored in one transaction.
    Without a sessionId a new session is opened, titled from the message.
    """
    chat_settings = get_settings_service().get_chat_settings()
    if not chat_settings.chat_enabled:
        raise HTTPException(status_code=403, detail="Chat is disabled")

    text = body.message.strip()
    if not text and not body.attachments:
        raise HTTPException(status_code=400, detail="Message or attachments required")

    try:
        validate_attachments(body.attachments, chat_settings)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    repo = ChatRepository()
    try:
        session = None
        history = []
        if body.session_id is not None:
            session = repo.find_session(body.session_id, customer.id)
            if session is None:
                raise HTTPException(status_code=404, detail="Chat session not found")
            history = history_from_messages(repo.find_recent_messages(session.id, HISTORY_FETCH_LIMIT))

        prompt = text or "Attached files: " + ", ".join(a.name for a in body.attachments)
        logger.info(f"Chat message from customer {customer.id}: {prompt[:50]}...")

        result = get_chat_service().generate_reply(
            message=prompt,
            customer_id=customer.id,
            history=history,
            customer_name=customer.name or None,
        )

        if session is None:
            session, user_message, ai_message = repo.open_session_with_exchange(
                customer.id, title_from_message(prompt), text, body.attachments, result.response, result.metadata
            )
        else:
            user_message, ai_message = repo.save_exchange(
                session.id, text, body.attachments, result.response, result.metadata
            )

        return {
            "success": True,
            "sessionId": session.id,
            "userMessage": user_message.to_dict(),
            "aiMessage": ai_message.to_dict(),
        }

    except HTTPException:
        raise
    except ValueError as e:
        # API key not configured
        logger.error(f"Configuration error: {str(e)}")
        raise HTTPException(
            status_code=500,
            detail="Chat service not configured. Please contact administrator."
        )
    except Exception as e:
        logger.error(f"Chat error: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to process message")


# ============================================================================
# SETTINGS AND HEALTH
# ============================================================================

@router.get("/settings")
async def get_chat_settings():
    return {"settings": get_settings_service().get_chat_settings().to_dict()}


@router.put("/settings")
async def update_chat_settings(body: ChatSettingsUpdate, user: TokenUser = Depends(require_admin)):
    """Write only the settings present in the body"""
    updates = body.model_dump(exclude_none=True)
    if not updates:
        raise HTTPException(status_code=400, detail="No settings provided")

    service = get_settings_service()
    failed = service.update_chat_settings(updates, user.email)
    if failed:
        raise HTTPException(status_code=500, detail=f"Failed to save settings: {', '.join(failed)}")

    logger.info(f"Chat settings updated by {user.email}: {sorted(updates)}")
    return {"success": True, "settings": service.get_chat_settings().to_dict()}


@router.get("/health")
async def chat_health():
    """
    Health check for the chat assistant.

    Returns configuration status; never calls the model.
    """
    api_key_configured = bool(settings.ANTHROPIC_API_KEY)
    return {
        "status": "healthy" if api_key_configured else "not_configured",
        "apiKeyConfigured": api_key_configured,
        "model": settings.CLAUDE_MODEL,
        "chatEnabled": get_settings_service().get_chat_settings().chat_enabled,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
