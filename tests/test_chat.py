"""
Tests for chat history storage and the streaming chat session
"""

import json

import pytest

from paychat.chat.models import ChatMessage
from paychat.chat.session import (
    ERROR_REPLY,
    GREETING,
    ChatRequestFailed,
    ChatSession,
    generate_chat_title,
)
from paychat.chat.store import FileChatStore, InMemoryChatStore
from paychat.payments.client import wrap_with_payment
from paychat.payments.encoding import decode_payment_header
from paychat.payments.errors import PaymentAmountExceeded

from tests.fakes import RecordingSigner, ScriptedTransport, respond
from tests.factories import ChatFactory, PaymentRequirementsFactory, offer_body


URL = "https://api.example.com/v1/chat/completions"
PAYER = "0x857b06519E91e3A54538791bDbb0E22373e36b66"


def completion_stream(*tokens: str) -> bytes:
    lines = [
        "data: " + json.dumps({"choices": [{"delta": {"content": token}}]})
        for token in tokens
    ]
    return ("\n\n".join(lines) + "\n\ndata: [DONE]\n\n").encode("utf-8")


def make_session(transport: ScriptedTransport, store=None, max_payment_amount=100000):
    http_client = transport.client()
    fetch = wrap_with_payment(http_client, PAYER, RecordingSigner(), max_payment_amount)
    return ChatSession(fetch=fetch, store=store or InMemoryChatStore(), completions_url=URL)


async def drain(session: ChatSession, text: str) -> list:
    return [token async for token in session.send(text)]


class TestChatTitle:
    """Test title generation"""

    def test_short_message(self):
        messages = [ChatMessage(role="assistant", content=GREETING), ChatMessage(role="user", content="Hi there")]
        assert generate_chat_title(messages) == "Hi there"

    def test_long_message_is_truncated(self):
        content = "x" * 31
        assert generate_chat_title([ChatMessage(role="user", content=content)]) == "x" * 30 + "..."

    def test_exactly_thirty_characters(self):
        content = "y" * 30
        assert generate_chat_title([ChatMessage(role="user", content=content)]) == content

    def test_no_user_message(self):
        assert generate_chat_title([ChatMessage(role="assistant", content=GREETING)]) == "New Chat"


class TestInMemoryChatStore:
    """Test the ephemeral store"""

    @pytest.mark.asyncio
    async def test_list_recent_orders_by_timestamp(self):
        store = InMemoryChatStore()
        old = ChatFactory(timestamp=1000)
        new = ChatFactory(timestamp=2000)
        await store.put(old)
        await store.put(new)

        chats = await store.list_recent()

        assert [c.id for c in chats] == [new.id, old.id]

    @pytest.mark.asyncio
    async def test_put_replaces_and_delete_ignores_missing(self):
        store = InMemoryChatStore()
        chat = ChatFactory()
        await store.put(chat)
        await store.put(chat.model_copy(update={"title": "Renamed"}))

        assert (await store.get(chat.id)).title == "Renamed"

        await store.delete(chat.id)
        await store.delete("never-existed")
        assert await store.get(chat.id) is None


class TestFileChatStore:
    """Test the directory-backed store"""

    @pytest.mark.asyncio
    async def test_round_trip(self, tmp_path):
        store = FileChatStore(tmp_path)
        chat = ChatFactory(title="Saved", messages=[ChatMessage(role="user", content="hello")])

        await store.put(chat)

        assert (tmp_path / f"{chat.id}.json").exists()
        assert await store.get(chat.id) == chat

    @pytest.mark.asyncio
    async def test_list_recent_orders_by_timestamp(self, tmp_path):
        store = FileChatStore(tmp_path)
        chats = [ChatFactory(timestamp=ts) for ts in (3000, 1000, 2000)]
        for chat in chats:
            await store.put(chat)

        listed = await store.list_recent()

        assert [c.timestamp for c in listed] == [3000, 2000, 1000]

    @pytest.mark.asyncio
    async def test_delete(self, tmp_path):
        store = FileChatStore(tmp_path)
        chat = ChatFactory()
        await store.put(chat)

        await store.delete(chat.id)
        await store.delete(chat.id)

        assert await store.get(chat.id) is None
        assert await store.list_recent() == []

    @pytest.mark.asyncio
    async def test_unreadable_file_is_skipped(self, tmp_path):
        store = FileChatStore(tmp_path)
        await store.put(ChatFactory())
        (tmp_path / "broken.json").write_text("{not json", encoding="utf-8")

        assert len(await store.list_recent()) == 1

    @pytest.mark.asyncio
    async def test_rejects_path_like_ids(self, tmp_path):
        store = FileChatStore(tmp_path)
        with pytest.raises(ValueError):
            await store.get("../etc/passwd")
        with pytest.raises(ValueError):
            await store.get("chat_1\n")

    def test_creates_directory(self, tmp_path):
        directory = tmp_path / "nested" / "chats"
        FileChatStore(directory)
        assert directory.is_dir()


class TestChatSession:
    """Test one user turn end to end"""

    @pytest.mark.asyncio
    async def test_streams_and_saves(self):
        store = InMemoryChatStore()
        transport = ScriptedTransport(respond(200, content=completion_stream("Hel", "lo!")))
        session = make_session(transport, store)

        tokens = await drain(session, "  Say hello  ")

        assert tokens == ["Hel", "lo!"]
        assert [m.content for m in session.messages] == [GREETING, "Say hello", "Hello!"]

        saved = await store.get(session.chat_id)
        assert saved.title == "Say hello"
        assert saved.messages == session.messages
        assert session.is_streaming is False

    @pytest.mark.asyncio
    async def test_request_body(self):
        transport = ScriptedTransport(respond(200, content=completion_stream("ok")))
        session = make_session(transport)
        session.model = "llama3.2"

        await drain(session, "ping")

        request = transport.requests[0]
        body = json.loads(request.content)
        assert request.method == "POST"
        assert request.headers["Content-Type"] == "application/json"
        assert body["model"] == "llama3.2"
        assert body["stream"] is True
        assert body["messages"] == [
            {"role": "assistant", "content": GREETING},
            {"role": "user", "content": "ping"},
        ]

    @pytest.mark.asyncio
    async def test_paid_turn(self):
        requirements = PaymentRequirementsFactory(max_amount_required="5000")
        transport = ScriptedTransport(
            respond(402, json=offer_body(requirements)),
            respond(200, content=completion_stream("paid", " reply")),
        )
        session = make_session(transport)

        tokens = await drain(session, "hello")

        assert tokens == ["paid", " reply"]
        signed = decode_payment_header(transport.requests[1].headers["X-PAYMENT"])
        assert signed.payload.authorization.value == "5000"
        assert transport.requests[1].content == transport.requests[0].content

    @pytest.mark.asyncio
    async def test_http_error_leaves_apology(self):
        store = InMemoryChatStore()
        transport = ScriptedTransport(respond(503, text="unavailable"))
        session = make_session(transport, store)

        with pytest.raises(ChatRequestFailed) as exc_info:
            await drain(session, "hello")

        assert exc_info.value.status_code == 503
        assert session.messages[-1].content == ERROR_REPLY
        assert session.messages[-2].content == "hello"
        assert await store.list_recent() == []
        assert session.is_streaming is False

    @pytest.mark.asyncio
    async def test_payment_error_leaves_apology(self):
        requirements = PaymentRequirementsFactory(max_amount_required="999999")
        transport = ScriptedTransport(respond(402, json=offer_body(requirements)))
        session = make_session(transport)

        with pytest.raises(PaymentAmountExceeded):
            await drain(session, "hello")

        assert session.messages[-1].content == ERROR_REPLY

    @pytest.mark.asyncio
    async def test_empty_reply_is_not_saved(self):
        store = InMemoryChatStore()
        transport = ScriptedTransport(respond(200, content=b"data: [DONE]\n\n"))
        session = make_session(transport, store)

        assert await drain(session, "hello") == []
        assert await store.list_recent() == []

    @pytest.mark.asyncio
    async def test_blank_input_is_ignored(self):
        transport = ScriptedTransport()
        session = make_session(transport)

        assert await drain(session, "   ") == []
        assert transport.requests == []
        assert [m.content for m in session.messages] == [GREETING]

    @pytest.mark.asyncio
    async def test_open_and_delete_chats(self):
        store = InMemoryChatStore()
        saved = ChatFactory(messages=[ChatMessage(role="user", content="earlier")])
        await store.put(saved)
        session = make_session(ScriptedTransport(), store)

        await session.open_chat(saved.id)
        assert session.chat_id == saved.id
        assert session.messages[0].content == "earlier"

        await session.delete_chat(saved.id)
        assert session.chat_id != saved.id
        assert [m.content for m in session.messages] == [GREETING]
        assert await session.history() == []

    @pytest.mark.asyncio
    async def test_open_missing_chat(self):
        session = make_session(ScriptedTransport())
        with pytest.raises(KeyError):
            await session.open_chat("missing")

    def test_new_chat_resets(self):
        session = make_session(ScriptedTransport())
        old_id = session.chat_id
        session.messages.append(ChatMessage(role="user", content="hi"))

        session.new_chat()

        assert session.chat_id != old_id
        assert [m.content for m in session.messages] == [GREETING]
