"""Tests for repositories/chat_repository.py — ownership, ordering, bounds."""
from datetime import datetime, timedelta

import pytest
from sqlalchemy.exc import IntegrityError

from app.models.message import Message
from app.repositories import chat_repository as repo


class TestConversations:
    def test_title_truncated_to_fifty_chars(self, db, user):
        text = "x" * 80
        conv = repo.create_conversation(db, user.id, text)
        assert conv.title == "x" * 50
        assert conv.user_id == user.id
        assert len(conv.id) == 36

    def test_short_title_kept_whole(self, db, user):
        conv = repo.create_conversation(db, user.id, "Hello there")
        assert conv.title == "Hello there"

    def test_get_conversation_requires_owner(self, db, user, other_user):
        conv = repo.create_conversation(db, user.id, "mine")
        assert repo.get_conversation(db, conv.id, user.id).id == conv.id
        assert repo.get_conversation(db, conv.id, other_user.id) is None
        assert repo.get_conversation(db, "missing", user.id) is None

    def test_list_newest_updated_first_and_scoped(self, db, user, other_user):
        first = repo.create_conversation(db, user.id, "first")
        second = repo.create_conversation(db, user.id, "second")
        repo.create_conversation(db, other_user.id, "not yours")
        repo.append_message(db, first.id, "user", "bump")

        rows = repo.list_conversations(db, user.id)
        assert [c.id for c in rows] == [first.id, second.id]

    def test_list_is_bounded(self, db, user):
        for i in range(5):
            repo.create_conversation(db, user.id, f"c{i}")
        assert len(repo.list_conversations(db, user.id, limit=3)) == 3

    def test_conversation_requires_existing_user(self, db):
        with pytest.raises(IntegrityError):
            repo.create_conversation(db, "ghost", "hello")
        db.rollback()


class TestMessages:
    def test_append_sets_defaults(self, db, user):
        conv = repo.create_conversation(db, user.id, "hi")
        msg = repo.append_message(db, conv.id, "user", "hi")
        assert msg.role == "user"
        assert msg.model is None
        assert msg.tokens_used == 0
        assert msg.cost == 0

    def test_append_assistant_records_usage(self, db, user):
        conv = repo.create_conversation(db, user.id, "hi")
        msg = repo.append_message(db, conv.id, "assistant", "yo", model="gpt-4o", tokens_used=42, cost=0.01)
        assert (msg.model, msg.tokens_used, msg.cost) == ("gpt-4o", 42, 0.01)

    def test_invalid_role_rejected(self, db, user):
        conv = repo.create_conversation(db, user.id, "hi")
        with pytest.raises(ValueError):
            repo.append_message(db, conv.id, "system", "nope")

    def test_append_bumps_updated_at(self, db, user):
        conv = repo.create_conversation(db, user.id, "hi")
        before = conv.updated_at
        repo.append_message(db, conv.id, "user", "again")
        db.refresh(conv)
        assert conv.updated_at >= before

    def test_message_requires_existing_conversation(self, db, user):
        with pytest.raises(IntegrityError):
            repo.append_message(db, "no-such-conversation", "user", "orphan")
        db.rollback()

    def test_full_conversation_round_trip(self, db, user):
        conv = repo.create_conversation(db, user.id, "round trip")
        contents = [f"m{i}" for i in range(7)]
        for i, text in enumerate(contents):
            repo.append_message(db, conv.id, "user" if i % 2 == 0 else "assistant", text)

        found = repo.get_full_conversation(db, conv.id, user.id)
        assert found is not None
        got_conv, messages = found
        assert got_conv.id == conv.id
        assert [m.content for m in messages] == contents

    def test_full_conversation_hidden_from_other_user(self, db, user, other_user):
        conv = repo.create_conversation(db, user.id, "private")
        repo.append_message(db, conv.id, "user", "secret")
        assert repo.get_full_conversation(db, conv.id, other_user.id) is None


class TestHistory:
    def test_history_is_latest_window_oldest_first(self, db, user):
        conv = repo.create_conversation(db, user.id, "long")
        base = datetime(2026, 1, 1)
        for i in range(25):
            db.add(Message(conversation_id=conv.id, role="user", content=f"m{i}", created_at=base + timedelta(seconds=i)))
        db.commit()

        history = repo.get_history(db, conv.id, limit=20)
        assert [m.content for m in history] == [f"m{i}" for i in range(5, 25)]

    def test_history_scoped_to_conversation(self, db, user):
        a = repo.create_conversation(db, user.id, "a")
        b = repo.create_conversation(db, user.id, "b")
        repo.append_message(db, a.id, "user", "in a")
        repo.append_message(db, b.id, "user", "in b")
        assert [m.content for m in repo.get_history(db, a.id)] == ["in a"]

    def test_empty_history(self, db, user):
        conv = repo.create_conversation(db, user.id, "new")
        assert repo.get_history(db, conv.id) == []


class TestUsageSummary:
    def test_sums_assistant_messages_since(self, db, user, other_user):
        conv = repo.create_conversation(db, user.id, "usage")
        repo.append_message(db, conv.id, "user", "q")
        repo.append_message(db, conv.id, "assistant", "a1", model="gpt-4o", tokens_used=100, cost=0.5)
        repo.append_message(db, conv.id, "assistant", "a2", model="gpt-4o", tokens_used=50, cost=0.25)
        theirs = repo.create_conversation(db, other_user.id, "theirs")
        repo.append_message(db, theirs.id, "assistant", "x", tokens_used=999, cost=9.0)

        summary = repo.get_usage_summary(db, user.id, datetime(2000, 1, 1))
        assert summary == {"messages": 2, "tokens": 150, "cost": pytest.approx(0.75)}

    def test_empty_summary(self, db, user):
        assert repo.get_usage_summary(db, user.id, datetime(2000, 1, 1)) == {
            "messages": 0, "tokens": 0, "cost": 0.0,
        }
