"""
Conversation store: conversations and append-only messages. DB is the source of truth.
Ownership: every conversation read filters by both conversation id and user_id, so a
conversation owned by someone else is indistinguishable from a missing one.
"""
from datetime import datetime

from sqlalchemy import desc, func
from sqlalchemy.orm import Session

from app.models.conversation import Conversation
from app.models.message import Message, MessageRole
from app.models.user import User

TITLE_MAX_LENGTH = 50


def get_user(db: Session, user_id: str) -> User | None:
    return db.query(User).filter(User.id == user_id).first()


def create_conversation(
    db: Session,
    user_id: str,
    seed_title: str,
    *,
    title_max_length: int = TITLE_MAX_LENGTH,
) -> Conversation:
    """Create a conversation titled with the first `title_max_length` chars of seed_title."""
    conv = Conversation(user_id=user_id, title=seed_title[:title_max_length])
    db.add(conv)
    db.commit()
    db.refresh(conv)
    return conv


def get_conversation(db: Session, conversation_id: str, user_id: str) -> Conversation | None:
    return (
        db.query(Conversation)
        .filter(Conversation.id == conversation_id, Conversation.user_id == user_id)
        .first()
    )


def list_conversations(db: Session, user_id: str, limit: int = 50) -> list[Conversation]:
    """Caller's conversations, most recently updated first."""
    return (
        db.query(Conversation)
        .filter(Conversation.user_id == user_id)
        .order_by(desc(Conversation.updated_at))
        .limit(limit)
        .all()
    )


def append_message(
    db: Session,
    conversation_id: str,
    role: MessageRole | str,
    content: str,
    *,
    model: str | None = None,
    tokens_used: int = 0,
    cost: float = 0.0,
) -> Message:
    """Persist one message and bump the conversation's updated_at. Commits."""
    now = datetime.utcnow()
    msg = Message(
        conversation_id=conversation_id,
        role=MessageRole(role).value,
        content=content,
        model=model,
        tokens_used=tokens_used,
        cost=cost,
        created_at=now,
    )
    db.add(msg)
    conv = db.get(Conversation, conversation_id)
    if conv is not None:
        conv.updated_at = now
    db.commit()
    db.refresh(msg)
    return msg


def get_history(db: Session, conversation_id: str, limit: int = 20) -> list[Message]:
    """
    Most recent `limit` messages of a conversation, oldest-first.
    This is the payload replayed to the model provider, hence the bound.
    """
    rows = (
        db.query(Message)
        .filter(Message.conversation_id == conversation_id)
        .order_by(desc(Message.created_at))
        .limit(limit)
        .all()
    )
    return list(reversed(rows))


def get_full_conversation(
    db: Session, conversation_id: str, user_id: str
) -> tuple[Conversation, list[Message]] | None:
    conv = get_conversation(db, conversation_id, user_id)
    if conv is None:
        return None
    messages = (
        db.query(Message)
        .filter(Message.conversation_id == conv.id)
        .order_by(Message.created_at)
        .all()
    )
    return conv, messages


def get_usage_summary(db: Session, user_id: str, since: datetime) -> dict:
    """Assistant message count, tokens and cost for the user's conversations since `since`."""
    messages, tokens, cost = (
        db.query(
            func.count(Message.id),
            func.coalesce(func.sum(Message.tokens_used), 0),
            func.coalesce(func.sum(Message.cost), 0.0),
        )
        .join(Conversation, Message.conversation_id == Conversation.id)
        .filter(
            Conversation.user_id == user_id,
            Message.role == MessageRole.ASSISTANT.value,
            Message.created_at >= since,
        )
        .one()
    )
    return {"messages": int(messages), "tokens": int(tokens), "cost": float(cost)}


class ChatRepository:
    """Thin wrapper for dependency injection; delegates to module functions."""

    @staticmethod
    def get_user(db: Session, user_id: str) -> User | None:
        return get_user(db, user_id)

    @staticmethod
    def create_conversation(
        db: Session, user_id: str, seed_title: str, *, title_max_length: int = TITLE_MAX_LENGTH
    ) -> Conversation:
        return create_conversation(db, user_id, seed_title, title_max_length=title_max_length)

    @staticmethod
    def get_conversation(db: Session, conversation_id: str, user_id: str) -> Conversation | None:
        return get_conversation(db, conversation_id, user_id)

    @staticmethod
    def list_conversations(db: Session, user_id: str, limit: int = 50) -> list[Conversation]:
        return list_conversations(db, user_id, limit)

    @staticmethod
    def append_message(
        db: Session,
        conversation_id: str,
        role: MessageRole | str,
        content: str,
        *,
        model: str | None = None,
        tokens_used: int = 0,
        cost: float = 0.0,
    ) -> Message:
        return append_message(
            db, conversation_id, role, content,
            model=model,
            tokens_used=tokens_used,
            cost=cost,
        )

    @staticmethod
    def get_history(db: Session, conversation_id: str, limit: int = 20) -> list[Message]:
        return get_history(db, conversation_id, limit)

    @staticmethod
    def get_full_conversation(
        db: Session, conversation_id: str, user_id: str
    ) -> tuple[Conversation, list[Message]] | None:
        return get_full_conversation(db, conversation_id, user_id)

    @staticmethod
    def get_usage_summary(db: Session, user_id: str, since: datetime) -> dict:
        return get_usage_summary(db, user_id, since)
