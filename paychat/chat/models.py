"""
Chat data models
"""

import time
import uuid
from typing import List, Literal
from pydantic import BaseModel, Field


def now_ms() -> int:
    """Current time in epoch milliseconds"""
    return int(time.time() * 1000)


class ChatMessage(BaseModel):
    """Single turn in a conversation"""
    role: Literal["user", "assistant", "system"]
    content: str


class Chat(BaseModel):
    """Saved conversation"""
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    title: str = "New Chat"
    messages: List[ChatMessage] = Field(default_factory=list)
    timestamp: int = Field(default_factory=now_ms, description="Last save, epoch ms")
