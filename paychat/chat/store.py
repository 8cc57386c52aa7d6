"""
Chat history persistence
Key-value store of chats keyed by id, listed by recency
"""

import re
from pathlib import Path
from typing import Dict, List, Optional, Protocol

import structlog
from pydantic import ValidationError

from paychat.chat.models import Chat

logger = structlog.get_logger()

_CHAT_ID_PATTERN = re.compile(r"[A-Za-z0-9_-]+")


class ChatStore(Protocol):
    """Storage operations the chat session depends on"""

    async def put(self, chat: Chat) -> None:
        ...

    async def get(self, chat_id: str) -> Optional[Chat]:
        ...

    async def list_recent(self) -> List[Chat]:
        ...

    async def delete(self, chat_id: str) -> None:
        ...


class InMemoryChatStore:
    """Process-local store, used for ephemeral sessions and tests"""

    def __init__(self):
        self.chats: Dict[str, Chat] = {}

    async def put(self, chat: Chat) -> None:
        self.chats[chat.id] = chat.model_copy(deep=True)

    async def get(self, chat_id: str) -> Optional[Chat]:
        chat = self.chats.get(chat_id)
        return chat.model_copy(deep=True) if chat else None

    async def list_recent(self) -> List[Chat]:
        return sorted(
            (c.model_copy(deep=True) for c in self.chats.values()),
            key=lambda c: c.timestamp,
            reverse=True,
        )

    async def delete(self, chat_id: str) -> None:
        self.chats.pop(chat_id, None)


class FileChatStore:
    """
    Directory-backed store: one `<id>.json` file per chat.

    Unreadable files are logged and left out of listings rather than
    breaking the whole history. File I/O is synchronous and blocks the
    event loop for the duration of each read or write.
    """

    def __init__(self, directory: Path):
        self.directory = Path(directory).expanduser()
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, chat_id: str) -> Path:
        if not _CHAT_ID_PATTERN.fullmatch(chat_id):
            raise ValueError(f"Invalid chat id: {chat_id!r}")
        return self.directory / f"{chat_id}.json"

    async def put(self, chat: Chat) -> None:
        path = self._path(chat.id)
        tmp_path = path.with_suffix(".json.tmp")
        tmp_path.write_text(chat.model_dump_json(indent=2), encoding="utf-8")
        tmp_path.replace(path)
        logger.debug("chat_saved", chat_id=chat.id, messages=len(chat.messages))

    async def get(self, chat_id: str) -> Optional[Chat]:
        path = self._path(chat_id)
        if not path.exists():
            return None
        return Chat.model_validate_json(path.read_text(encoding="utf-8"))

    async def list_recent(self) -> List[Chat]:
        chats = []
        for path in self.directory.glob("*.json"):
            try:
                chats.append(Chat.model_validate_json(path.read_text(encoding="utf-8")))
            except (OSError, ValidationError) as e:
                logger.warning("chat_file_unreadable", path=str(path), error=str(e))
        chats.sort(key=lambda c: c.timestamp, reverse=True)
        return chats

    async def delete(self, chat_id: str) -> None:
        self._path(chat_id).unlink(missing_ok=True)
        logger.debug("chat_deleted", chat_id=chat_id)
