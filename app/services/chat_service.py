"""
Chat orchestration for one request:
ResolveConversation -> LoadHistory -> PersistUserMessage -> Dispatch
-> PersistAssistantMessage -> Respond.

- History is loaded before the user message is stored, so the new message appears
  exactly once (last) in the list sent to the provider.
- The user message is committed before dispatch and is never rolled back: a failed
  AI call leaves the user turn in history.
- A supplied conversation id must belong to the caller; otherwise ConversationNotFoundError.
DB work and the blocking provider call run in the default executor.
"""
import asyncio
import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from app.config import Settings, get_settings
from app.models.message import MessageRole
from app.repositories.chat_repository import ChatRepository
from app.services.chat_router import ChatResult, ChatRouter
from app.services.errors import ConversationNotFoundError, UserNotFoundError

logger = logging.getLogger(__name__)


@dataclass
class ChatTurn:
    message: str
    conversation_id: str
    model: str
    usage: dict


class ChatService:
    def __init__(
        self,
        router: ChatRouter,
        repository: ChatRepository | None = None,
        settings: Settings | None = None,
    ):
        self._router = router
        self._repo = repository or ChatRepository()
        self._settings = settings or get_settings()

    def _resolve_conversation(self, db: Session, user_id: str, message: str, conversation_id: str | None) -> str:
        if conversation_id:
            conv = self._repo.get_conversation(db, conversation_id, user_id)
            if conv is None:
                raise ConversationNotFoundError(conversation_id)
            return conv.id
        if self._repo.get_user(db, user_id) is None:
            raise UserNotFoundError(user_id)
        conv = self._repo.create_conversation(
            db, user_id, message,
            title_max_length=self._settings.chat_title_max_length,
        )
        logger.info("Created conversation %s for user %s", conv.id, user_id)
        return conv.id

    def _load_history(self, db: Session, conversation_id: str) -> list[dict]:
        rows = self._repo.get_history(db, conversation_id, self._settings.chat_history_max_messages)
        return [{"role": r.role, "content": r.content} for r in rows]

    async def send_message(
        self,
        db: Session,
        user_id: str,
        message: str,
        *,
        conversation_id: str | None = None,
        model: str | None = None,
    ) -> ChatTurn:
        model_id = model or self._settings.chat_default_model
        loop = asyncio.get_event_loop()

        def _prepare():
            conv_id = self._resolve_conversation(db, user_id, message, conversation_id)
            history = self._load_history(db, conv_id)
            self._repo.append_message(db, conv_id, MessageRole.USER, message)
            return conv_id, history

        conv_id, history = await loop.run_in_executor(None, _prepare)
        messages = history + [{"role": MessageRole.USER.value, "content": message}]

        result: ChatResult = await loop.run_in_executor(
            None,
            lambda: self._router.chat(model_id, messages, self._settings.chat_system_prompt),
        )

        await loop.run_in_executor(
            None,
            lambda: self._repo.append_message(
                db,
                conv_id,
                MessageRole.ASSISTANT,
                result.content,
                model=result.model,
                tokens_used=result.total_tokens,
                cost=result.cost,
            ),
        )
        return ChatTurn(
            message=result.content,
            conversation_id=conv_id,
            model=result.model,
            usage=result.usage(),
        )

    def available_models(self) -> list[str]:
        return self._router.available_models()
