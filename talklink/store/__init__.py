"""Datastore boundary and its SQLite adapter."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

from .sqlite_store import SQLiteChatStore

if TYPE_CHECKING:
    from pathlib import Path

    from talklink.models import Chatbot, KnowledgeEntry, Message, Session


class ChatStore(Protocol):
    """Operations the response engine needs from the relational datastore.

    Implementations must be read-after-write consistent within one process
    and raise ``PersistenceError`` on write failures.
    """

    def get_chatbot(self, chatbot_id: str) -> Chatbot | None: ...

    def get_session(self, session_id: str) -> Session | None: ...

    def insert_message(self, message: Message) -> Message: ...

    def list_messages(self, session_id: str) -> list[Message]: ...

    def load_entries_for_tenant(self, chatbot_id: str) -> list[KnowledgeEntry]: ...

    def insert_entry(self, entry: KnowledgeEntry) -> KnowledgeEntry: ...

    def log_event(
        self,
        chatbot_id: str,
        event_type: str,
        *,
        session_id: str | None = None,
        event_data: dict[str, Any] | None = None,
    ) -> None: ...


def get_chat_store(
    backend: str = "sqlite",
    *,
    db_path: Path | None = None,
) -> SQLiteChatStore:
    """Return a configured chat store instance.

    Raises:
        ValueError: If an unsupported backend is requested.
    """
    if backend.lower() == "sqlite":
        return SQLiteChatStore(db_path=db_path)

    msg = f"Unsupported chat store backend: {backend}"
    raise ValueError(msg)


__all__ = ["ChatStore", "SQLiteChatStore", "get_chat_store"]
