"""
Tests for the streaming chat gateway and its persistence.
"""
import asyncio
import logging
import uuid

import pytest
from fastapi import status
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from guruchat.config import settings
from guruchat.deps import get_chat_model
from guruchat.models import Chat, ChatMessage, MessageRole
from guruchat.services import chat_service
from guruchat.services.chat_service import ChatGateway, ChatOutcome, append_turns, last_user_turn
from guruchat.validation import Turn

from conftest import DEFAULT_REPLY, FakeStreamingChatModel


def _messages(*pairs):
    return [{"role": role, "content": content} for role, content in pairs]


def _stored(db_session):
    db_session.expire_all()
    return [
        (m.role.value, m.content)
        for m in db_session.query(ChatMessage).order_by(ChatMessage.chat_id, ChatMessage.position)
    ]


@pytest.mark.unit
class TestChatGateway:

    def _drain(self, gateway, turns, outcome):
        async def collect():
            return [piece async for piece in gateway.stream_reply("Be brief.", turns, outcome)]
        return asyncio.run(collect())

    def test_stream_completes(self):
        model = FakeStreamingChatModel(reply="one two three")
        outcome = ChatOutcome(user_id=uuid.uuid4(), guru_id=None, user_turn="hi")
        pieces = self._drain(ChatGateway(model), [Turn(MessageRole.USER, "hi")], outcome)

        assert pieces == ["one ", "two ", "three"]
        assert outcome.completed is True
        assert outcome.text == "one two three"

        sent = model.calls[0]
        assert isinstance(sent[0], SystemMessage)
        assert sent[0].content == "Be brief."
        assert isinstance(sent[1], HumanMessage)

    def test_stream_failure_marks_incomplete(self):
        model = FakeStreamingChatModel(reply="one two three", fail_after=1)
        outcome = ChatOutcome(user_id=uuid.uuid4(), guru_id=None, user_turn="hi")
        pieces = self._drain(ChatGateway(model), [Turn(MessageRole.USER, "hi")], outcome)

        assert pieces == ["one "]
        assert outcome.completed is False

    def test_history_roles_are_mapped(self):
        model = FakeStreamingChatModel(reply="ok")
        turns = [
            Turn(MessageRole.USER, "first"),
            Turn(MessageRole.ASSISTANT, "answer"),
            Turn(MessageRole.USER, "second"),
        ]
        outcome = ChatOutcome(user_id=uuid.uuid4(), guru_id=None, user_turn="second")
        self._drain(ChatGateway(model), turns, outcome)

        sent = model.calls[0]
        assert [type(m) for m in sent] == [SystemMessage, HumanMessage, AIMessage, HumanMessage]
        assert [m.content for m in sent[1:]] == ["first", "answer", "second"]

    def test_last_user_turn(self):
        assert last_user_turn([Turn(MessageRole.USER, "a"), Turn(MessageRole.USER, "b")]) == "b"
        assert last_user_turn([Turn(MessageRole.USER, "a"), Turn(MessageRole.ASSISTANT, "b")]) is None
        assert last_user_turn([]) is None


@pytest.mark.unit
class TestAppendTurns:

    def test_creates_then_appends_in_order(self, db_session, user, guru):
        append_turns(db_session, user.id, guru.id, [(MessageRole.USER, "Hello"), (MessageRole.ASSISTANT, "Hi")])
        chat = append_turns(db_session, user.id, guru.id, [(MessageRole.USER, "Again"), (MessageRole.ASSISTANT, "Yes")])

        assert db_session.query(Chat).count() == 1
        assert [m.position for m in chat.messages] == [0, 1, 2, 3]
        assert [m.content for m in chat.messages] == ["Hello", "Hi", "Again", "Yes"]

    def test_separate_conversation_per_guru(self, db_session, user, guru, second_guru):
        append_turns(db_session, user.id, guru.id, [(MessageRole.USER, "a")])
        append_turns(db_session, user.id, second_guru.id, [(MessageRole.USER, "b")])
        assert db_session.query(Chat).count() == 2


@pytest.mark.integration
class TestChatEndpoint:

    def test_requires_session_and_never_calls_provider(self, client, fake_model, guru):
        response = client.post(
            "/api/chat",
            json={"messages": _messages(("user", "Hello")), "guruId": str(guru.id)},
        )
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert fake_model.calls == []

    @pytest.mark.parametrize("body", [
        {},
        {"messages": []},
        {"messages": "Hello"},
        {"messages": [{"role": "robot", "content": "Hello"}]},
        {"messages": [{"role": "user", "content": ""}]},
    ])
    def test_invalid_messages(self, auth_client, fake_model, body):
        response = auth_client.post("/api/chat", json=body)
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error_code"] == "VALIDATION_ERROR"
        assert fake_model.calls == []

    def test_streams_reply_and_persists_exchange(self, auth_client, db_session, fake_model, guru):
        response = auth_client.post(
            "/api/chat",
            json={"messages": _messages(("user", "Hello")), "guruId": str(guru.id)},
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.headers["content-type"].startswith("text/plain")
        assert response.text == DEFAULT_REPLY

        system = fake_model.calls[0][0]
        assert system.content == "You are Simon Sinek. Start with why."

        assert _stored(db_session) == [("user", "Hello"), ("assistant", DEFAULT_REPLY)]

        history = auth_client.get("/api/chats", params={"guruId": str(guru.id)})
        assert history.status_code == status.HTTP_200_OK
        messages = history.json()["data"]["messages"]
        assert messages == [
            {"role": "user", "content": "Hello"},
            {"role": "assistant", "content": DEFAULT_REPLY},
        ]

    def test_follow_up_appends_to_same_conversation(self, auth_client, db_session, guru):
        first = _messages(("user", "Hello"))
        auth_client.post("/api/chat", json={"messages": first, "guruId": str(guru.id)})
        follow_up = first + _messages(("assistant", DEFAULT_REPLY), ("user", "Tell me more"))
        auth_client.post("/api/chat", json={"messages": follow_up, "guruId": str(guru.id)})

        assert db_session.query(Chat).count() == 1
        assert _stored(db_session) == [
            ("user", "Hello"),
            ("assistant", DEFAULT_REPLY),
            ("user", "Tell me more"),
            ("assistant", DEFAULT_REPLY),
        ]

    def test_unknown_guru_uses_default_prompt_and_saves_nothing(self, auth_client, db_session, fake_model, guru):
        response = auth_client.post(
            "/api/chat",
            json={"messages": _messages(("user", "Hello")), "guruId": str(uuid.uuid4())},
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.text == DEFAULT_REPLY
        assert fake_model.calls[0][0].content == settings.DEFAULT_SYSTEM_PROMPT
        assert db_session.query(Chat).count() == 0

    def test_malformed_guru_id_uses_default_prompt(self, auth_client, fake_model):
        response = auth_client.post(
            "/api/chat",
            json={"messages": _messages(("user", "Hello")), "guruId": "not-a-uuid"},
        )
        assert response.status_code == status.HTTP_200_OK
        assert fake_model.calls[0][0].content == settings.DEFAULT_SYSTEM_PROMPT

    def test_non_string_guru_id_uses_default_prompt(self, auth_client, db_session, fake_model, guru):
        response = auth_client.post(
            "/api/chat",
            json={"messages": _messages(("user", "Hello")), "guruId": 12345},
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.text == DEFAULT_REPLY
        assert fake_model.calls[0][0].content == settings.DEFAULT_SYSTEM_PROMPT
        assert db_session.query(Chat).count() == 0

    def test_failed_save_still_delivers_reply(self, auth_client, db_session, guru, monkeypatch, caplog):
        def broken_append(*args, **kwargs):
            raise RuntimeError("database went away")

        monkeypatch.setattr(chat_service, "append_turns", broken_append)
        with caplog.at_level(logging.ERROR, logger="guruchat.services.chat_service"):
            response = auth_client.post(
                "/api/chat",
                json={"messages": _messages(("user", "Hello")), "guruId": str(guru.id)},
            )

        assert response.status_code == status.HTTP_200_OK
        assert response.text == DEFAULT_REPLY
        assert db_session.query(Chat).count() == 0
        assert any(
            record.levelno == logging.ERROR and record.getMessage() == "Failed to save chat history"
            for record in caplog.records
        )

    def test_last_turn_not_from_user_is_not_saved(self, auth_client, db_session, guru):
        response = auth_client.post(
            "/api/chat",
            json={
                "messages": _messages(("user", "Hello"), ("assistant", "Hi")),
                "guruId": str(guru.id),
            },
        )
        assert response.status_code == status.HTTP_200_OK
        assert db_session.query(Chat).count() == 0

    def test_provider_failure_truncates_stream_and_saves_nothing(self, auth_client, db_session, fake_model, guru):
        fake_model.fail_after = 2
        response = auth_client.post(
            "/api/chat",
            json={"messages": _messages(("user", "Hello")), "guruId": str(guru.id)},
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.text == "Hello there, "
        assert db_session.query(Chat).count() == 0

    def test_missing_provider_key(self, auth_client, fake_model, monkeypatch):
        from guruchat.main import app

        del app.dependency_overrides[get_chat_model]
        monkeypatch.setattr(settings, "OPENAI_API_KEY", None)
        response = auth_client.post("/api/chat", json={"messages": _messages(("user", "Hello"))})
        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json()["error_code"] == "SERVER_CONFIGURATION_ERROR"
        assert fake_model.calls == []
