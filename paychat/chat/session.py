"""
Chat session over a pay-capable completions endpoint
Sends the conversation, streams the reply token by token, and auto-saves
the chat once a reply has arrived.
"""

import uuid
from typing import AsyncIterator, List

import structlog

from paychat.chat.models import Chat, ChatMessage, now_ms
from paychat.chat.store import ChatStore
from paychat.payments.client import FetchWithPayment, RequestInit
from paychat.streaming.decoder import iter_tokens

logger = structlog.get_logger()

GREETING = "Hello! I'm your AI assistant. How can I help you today?"
ERROR_REPLY = "Sorry, I encountered an error. Please try again."
TITLE_MAX_LENGTH = 30


class ChatRequestFailed(Exception):
    """Completions endpoint answered with a non-2xx status"""

    def __init__(self, status_code: int):
        super().__init__(f"HTTP error! status: {status_code}")
        self.status_code = status_code


def generate_chat_title(messages: List[ChatMessage]) -> str:
    """First user message, truncated; "New Chat" if there is none"""
    for message in messages:
        if message.role == "user":
            title = message.content[:TITLE_MAX_LENGTH]
            if len(message.content) > TITLE_MAX_LENGTH:
                title += "..."
            return title
    return "New Chat"


def _greeting() -> List[ChatMessage]:
    return [ChatMessage(role="assistant", content=GREETING)]


class ChatSession:
    """
    Holds the current conversation and drives one request per user turn.

    A failed turn leaves the apology reply in `messages` and re-raises, so
    callers can log the detail and show a generic message.
    """

    def __init__(
        self,
        fetch: FetchWithPayment,
        store: ChatStore,
        completions_url: str,
        model: str = "llama3.2",
    ):
        self.fetch = fetch
        self.store = store
        self.completions_url = completions_url
        self.model = model
        self.chat_id = uuid.uuid4().hex
        self.messages: List[ChatMessage] = _greeting()
        self.is_streaming = False

    def new_chat(self) -> None:
        """Start an empty conversation with a fresh id"""
        self.chat_id = uuid.uuid4().hex
        self.messages = _greeting()
        logger.info("chat_started", chat_id=self.chat_id)

    async def open_chat(self, chat_id: str) -> Chat:
        """Make a saved chat current"""
        chat = await self.store.get(chat_id)
        if chat is None:
            raise KeyError(chat_id)
        self.chat_id = chat.id
        self.messages = list(chat.messages)
        return chat

    async def delete_chat(self, chat_id: str) -> None:
        """Delete a saved chat; deleting the current one starts a new chat"""
        await self.store.delete(chat_id)
        if chat_id == self.chat_id:
            self.new_chat()

    async def history(self) -> List[Chat]:
        """Saved chats, most recent first"""
        return await self.store.list_recent()

    async def send(self, text: str) -> AsyncIterator[str]:
        """
        Send a user message and yield the assistant reply as it streams.

        Empty input, or input while a reply is still streaming, is ignored.
        """
        text = text.strip()
        if not text or self.is_streaming:
            return

        new_messages = self.messages + [ChatMessage(role="user", content=text)]
        self.messages = new_messages
        self.is_streaming = True

        payload = {
            "model": self.model,
            "messages": [m.model_dump() for m in new_messages],
            "stream": True,
        }

        try:
            response = await self.fetch(
                self.completions_url,
                RequestInit(
                    method="POST",
                    headers={"Content-Type": "application/json"},
                    json_body=payload,
                ),
            )

            assistant_message = ""
            try:
                if not response.is_success:
                    raise ChatRequestFailed(response.status_code)

                async for token in iter_tokens(response):
                    assistant_message += token
                    yield token
            finally:
                await response.aclose()

            if assistant_message:
                self.messages = new_messages + [
                    ChatMessage(role="assistant", content=assistant_message)
                ]
                await self.store.put(
                    Chat(
                        id=self.chat_id,
                        title=generate_chat_title(self.messages),
                        messages=self.messages,
                        timestamp=now_ms(),
                    )
                )
                logger.info("chat_saved", chat_id=self.chat_id, messages=len(self.messages))

        except Exception as e:
            logger.error("chat_turn_failed", chat_id=self.chat_id, error=str(e))
            self.messages = new_messages + [ChatMessage(role="assistant", content=ERROR_REPLY)]
            raise

        finally:
            self.is_streaming = False
