"""
Chat session and history for paychat
"""

from paychat.chat.models import Chat, ChatMessage
from paychat.chat.store import ChatStore, FileChatStore, InMemoryChatStore
from paychat.chat.session import (
    ChatSession,
    ChatRequestFailed,
    generate_chat_title,
    GREETING,
    ERROR_REPLY,
)

__all__ = [
    "Chat",
    "ChatMessage",
    "ChatStore",
    "FileChatStore",
    "InMemoryChatStore",
    "ChatSession",
    "ChatRequestFailed",
    "generate_chat_title",
    "GREETING",
    "ERROR_REPLY",
]
