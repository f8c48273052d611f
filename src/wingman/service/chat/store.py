"""In-memory chat storage with change notifications."""

import logging
from datetime import datetime, timezone
from typing import Any

from wingman.service.chat.models import Chat, Message, Model
from wingman.service.events import EventEmitter

logger = logging.getLogger(__name__)

CHAT_UPDATED = "chat_updated"
CHAT_DELETED = "chat_deleted"


class ChatStore:
    """Holds chats by id and emits `chat_updated` / `chat_deleted` events."""

    def __init__(self, events: EventEmitter | None = None) -> None:
        self.events = events or EventEmitter()
        self._chats: dict[str, Chat] = {}

    def create_chat(self, model: Model | None = None) -> Chat:
        chat = Chat(model=model)
        self._chats[chat.id] = chat
        self.events.emit(CHAT_UPDATED, chat)
        return chat

    def get_chat(self, chat_id: str) -> Chat | None:
        return self._chats.get(chat_id)

    def list_chats(self) -> list[Chat]:
        return sorted(self._chats.values(), key=lambda c: c.updated, reverse=True)

    def update_chat(self, chat_id: str, **updates: Any) -> Chat | None:
        """Apply title, model or messages updates; returns None for unknown ids."""
        chat = self._chats.get(chat_id)
        if chat is None:
            return None

        for key in ("title", "model", "messages"):
            if key in updates:
                value = updates[key]
                setattr(chat, key, list(value) if key == "messages" else value)
        chat.updated = datetime.now(timezone.utc)
        self.events.emit(CHAT_UPDATED, chat)
        return chat

    def set_messages(self, chat_id: str, messages: list[Message]) -> Chat | None:
        return self.update_chat(chat_id, messages=messages)

    def delete_chat(self, chat_id: str) -> bool:
        if self._chats.pop(chat_id, None) is None:
            return False
        self.events.emit(CHAT_DELETED, chat_id)
        return True
