"""
AI chat endpoints:
- POST /api/chat — send a message, get the assistant reply (conversation created on first message)
- GET /api/chat/conversations — caller's conversations, newest first
- GET /api/chat/conversations/{id} — one conversation with all messages (404 if not the caller's)
- GET /api/chat/models — models whose provider has a credential
- GET /api/chat/usage — assistant usage for the current month
"""
import asyncio
import logging
from datetime import datetime
from functools import lru_cache

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.auth import get_current_user_id
from app.config import Settings, get_settings
from app.database import get_db
from app.repositories.chat_repository import ChatRepository
from app.schemas.chat import (
    ChatRequest,
    ChatResponse,
    ChatUsage,
    ConversationDetail,
    ConversationSummary,
    MessageOut,
    UsageSummaryResponse,
)
from app.services.chat_router import ChatRouter, ProviderCredentials
from app.services.chat_service import ChatService
from app.services.errors import (
    ConversationNotFoundError,
    ProviderError,
    ProviderTimeoutError,
    ProviderUnconfiguredError,
    UnknownModelError,
    UserNotFoundError,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/chat", tags=["chat"])


# ---------- Dependencies ----------


@lru_cache
def get_chat_router() -> ChatRouter:
    """One router per process, adapters only for providers with a credential."""
    settings = get_settings()
    return ChatRouter.from_credentials(
        ProviderCredentials.from_settings(settings),
        timeout=settings.provider_timeout_seconds,
    )


def get_chat_service(
    chat_router: ChatRouter = Depends(get_chat_router),
    settings: Settings = Depends(get_settings),
) -> ChatService:
    return ChatService(chat_router, repository=ChatRepository(), settings=settings)


# ---------- Chat ----------


@router.post("", response_model=ChatResponse)
async def send_chat_message(
    body: ChatRequest,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    chat_service: ChatService = Depends(get_chat_service),
):
    """Send a message and get the AI response. The user message is stored even if the AI call fails."""
    if not body.message or not body.message.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Message is required")

    try:
        turn = await chat_service.send_message(
            db,
            user_id,
            body.message,
            conversation_id=body.conversation_id,
            model=body.model,
        )
    except ConversationNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversation not found")
    except UserNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    except UnknownModelError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Unknown model: {e.model_id}")
    except ProviderUnconfiguredError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Model not available: {e.model_id}",
        )
    except ProviderTimeoutError as e:
        logger.error("AI chat timed out for user %s: %s", user_id, e)
        raise HTTPException(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            detail="AI response timed out",
        ) from e
    except ProviderError as e:
        logger.exception("AI chat failed for user %s", user_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get AI response",
        ) from e
    except SQLAlchemyError as e:
        await asyncio.get_event_loop().run_in_executor(None, db.rollback)
        logger.exception("Chat storage failed for user %s", user_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get AI response",
        ) from e

    return ChatResponse(
        message=turn.message,
        conversation_id=turn.conversation_id,
        model=turn.model,
        usage=ChatUsage(**turn.usage),
    )


# ---------- History ----------


@router.get("/conversations", response_model=list[ConversationSummary])
def list_conversations(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    settings: Settings = Depends(get_settings),
):
    """List the caller's conversations, most recently updated first."""
    try:
        rows = ChatRepository.list_conversations(db, user_id, settings.chat_conversation_list_limit)
    except SQLAlchemyError as e:
        logger.exception("Error fetching conversations")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch conversations",
        ) from e
    return [ConversationSummary.model_validate(c) for c in rows]


@router.get("/conversations/{conversation_id}", response_model=ConversationDetail)
def get_conversation(
    conversation_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Conversation with all messages, oldest-first. Someone else's conversation is a plain 404."""
    try:
        found = ChatRepository.get_full_conversation(db, conversation_id, user_id)
    except SQLAlchemyError as e:
        logger.exception("Error fetching conversation")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch conversation",
        ) from e
    if found is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversation not found")
    conv, messages = found
    return ConversationDetail(
        id=conv.id,
        user_id=conv.user_id,
        title=conv.title,
        created_at=conv.created_at,
        updated_at=conv.updated_at,
        messages=[MessageOut.model_validate(m) for m in messages],
    )


# ---------- Models / usage ----------


@router.get("/models", response_model=list[str])
def list_models(chat_service: ChatService = Depends(get_chat_service)):
    """Model ids usable right now; models of providers without a credential are omitted."""
    return chat_service.available_models()


@router.get("/usage", response_model=UsageSummaryResponse)
def usage_this_month(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    period_start = datetime.utcnow().replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    summary = ChatRepository.get_usage_summary(db, user_id, period_start)
    return UsageSummaryResponse(period_start=period_start, **summary)
