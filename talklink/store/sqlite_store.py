"""SQLite implementation of the chat datastore."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from talklink.config import config
from talklink.errors import InputError, PersistenceError
from talklink.models import (
    Chatbot,
    KnowledgeEntry,
    Message,
    Session,
    new_id,
    utc_now,
)
from talklink.store.base import VALID_RESPONSE_SOURCES, VALID_ROLES, BaseSQLiteStore

logger = config.get_logger(__name__)

CHATBOT_COLUMNS = (
    "id, name, owner_id, system_prompt, description, is_active, settings, "
    "created_at, updated_at"
)
SESSION_COLUMNS = (
    "id, chatbot_id, user_identity, user_name, user_email, is_active, "
    "created_at, updated_at"
)
MESSAGE_COLUMNS = (
    "id, session_id, role, content, response_source, metadata, created_at"
)
ENTRY_COLUMNS = (
    "id, chatbot_id, question, answer, keywords, category, subcategory, "
    "source_document_id, metadata, created_at"
)
UPDATABLE_CHATBOT_FIELDS = frozenset({
    "name",
    "description",
    "system_prompt",
    "is_active",
    "settings",
})


class SQLiteChatStore(BaseSQLiteStore):
    """Chatbots, sessions, transcripts and knowledge entries stored in SQLite."""

    backend = "sqlite"

    def __init__(self, db_path: Path | None = None) -> None:
        """Open (and create if needed) the chat database.

        Args:
            db_path: Path to the SQLite database file. If None, uses
                config.CHAT_DB_PATH.
        """
        super().__init__(db_path if db_path is not None else config.CHAT_DB_PATH)

    # Chatbots

    def create_chatbot(
        self,
        name: str,
        owner_id: str,
        *,
        system_prompt: str | None = None,
        description: str | None = None,
        settings: dict[str, Any] | None = None,
    ) -> Chatbot:
        """Insert a new tenant.

        Returns:
            The stored Chatbot.
        """
        chatbot = Chatbot(
            id=new_id(),
            name=name,
            owner_id=owner_id,
            system_prompt=system_prompt,
            description=description,
            settings=settings or {},
        )
        with self._connect("create_chatbot") as cursor:
            cursor.execute(
                f"INSERT INTO chatbots ({CHATBOT_COLUMNS}) "  # noqa: S608
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    chatbot.id,
                    chatbot.name,
                    chatbot.owner_id,
                    chatbot.system_prompt,
                    chatbot.description,
                    int(chatbot.is_active),
                    self._dump(chatbot.settings),
                    chatbot.created_at,
                    chatbot.updated_at,
                ),
            )
        logger.info("Created chatbot %s (%s)", chatbot.id, chatbot.name)
        return chatbot

    def get_chatbot(self, chatbot_id: str) -> Chatbot | None:
        """Fetch a tenant by id.

        Returns:
            Chatbot if found; otherwise None.
        """
        with self._connect("get_chatbot") as cursor:
            cursor.execute(
                f"SELECT {CHATBOT_COLUMNS} FROM chatbots WHERE id = ?",  # noqa: S608
                (chatbot_id,),
            )
            row = cursor.fetchone()
        return self._chatbot_from_row(row) if row else None

    def list_chatbots(self, owner_id: str) -> list[Chatbot]:
        """List an owner's chatbots, newest first.

        Returns:
            Chatbots owned by ``owner_id``.
        """
        with self._connect("list_chatbots") as cursor:
            cursor.execute(
                f"SELECT {CHATBOT_COLUMNS} FROM chatbots "  # noqa: S608
                "WHERE owner_id = ? ORDER BY created_at DESC",
                (owner_id,),
            )
            rows = cursor.fetchall()
        return [self._chatbot_from_row(row) for row in rows]

    def update_chatbot(self, chatbot_id: str, **fields: Any) -> Chatbot:  # noqa: ANN401
        """Update mutable tenant fields.

        Raises:
            InputError: If an unknown field is given or the chatbot does not exist.

        Returns:
            The updated Chatbot.
        """
        unknown = set(fields) - UPDATABLE_CHATBOT_FIELDS
        if unknown:
            msg = f"Cannot update chatbot fields: {', '.join(sorted(unknown))}"
            raise InputError(msg)

        values: dict[str, Any] = dict(fields)
        if "settings" in values:
            values["settings"] = self._dump(values["settings"])
        if "is_active" in values:
            values["is_active"] = int(bool(values["is_active"]))
        values["updated_at"] = utc_now()

        assignments = ", ".join(f"{column} = ?" for column in values)
        with self._connect("update_chatbot") as cursor:
            cursor.execute(
                f"UPDATE chatbots SET {assignments} WHERE id = ?",  # noqa: S608
                (*values.values(), chatbot_id),
            )
            updated = cursor.rowcount

        if not updated:
            msg = f"Chatbot not found: {chatbot_id}"
            raise InputError(msg)

        chatbot = self.get_chatbot(chatbot_id)
        if chatbot is None:
            msg = f"Chatbot disappeared during update: {chatbot_id}"
            raise PersistenceError(msg)
        return chatbot

    # Sessions

    def create_session(
        self,
        chatbot_id: str,
        *,
        user_identity: str | None = None,
        user_name: str | None = None,
        user_email: str | None = None,
    ) -> Session:
        """Start a conversation for a chatbot widget instance.

        Returns:
            The stored Session.
        """
        session = Session(
            id=new_id(),
            chatbot_id=chatbot_id,
            user_identity=user_identity,
            user_name=user_name,
            user_email=user_email,
        )
        with self._connect("create_session") as cursor:
            cursor.execute(
                f"INSERT INTO chat_sessions ({SESSION_COLUMNS}) "  # noqa: S608
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    session.id,
                    session.chatbot_id,
                    session.user_identity,
                    session.user_name,
                    session.user_email,
                    int(session.is_active),
                    session.created_at,
                    session.updated_at,
                ),
            )
        return session

    def get_session(self, session_id: str) -> Session | None:
        """Fetch a session by id.

        Returns:
            Session if found; otherwise None.
        """
        with self._connect("get_session") as cursor:
            cursor.execute(
                f"SELECT {SESSION_COLUMNS} FROM chat_sessions WHERE id = ?",  # noqa: S608
                (session_id,),
            )
            row = cursor.fetchone()
        return self._session_from_row(row) if row else None

    def end_session(self, session_id: str) -> None:
        """Mark a session inactive.

        Raises:
            InputError: If the session does not exist.
        """
        with self._connect("end_session") as cursor:
            cursor.execute(
                "UPDATE chat_sessions SET is_active = 0, updated_at = ? WHERE id = ?",
                (utc_now(), session_id),
            )
            updated = cursor.rowcount
        if not updated:
            msg = f"Session not found: {session_id}"
            raise InputError(msg)

    def list_sessions(self, chatbot_id: str) -> list[Session]:
        """List a chatbot's sessions, newest first.

        Returns:
            Sessions belonging to ``chatbot_id``.
        """
        with self._connect("list_sessions") as cursor:
            cursor.execute(
                f"SELECT {SESSION_COLUMNS} FROM chat_sessions "  # noqa: S608
                "WHERE chatbot_id = ? ORDER BY created_at DESC",
                (chatbot_id,),
            )
            rows = cursor.fetchall()
        return [self._session_from_row(row) for row in rows]

    # Messages

    def insert_message(self, message: Message) -> Message:
        """Append a turn to its session transcript.

        Raises:
            InputError: If the role or response source is not recognized.

        Returns:
            The stored Message.
        """
        if message.role not in VALID_ROLES:
            msg = f"Invalid message role: {message.role}"
            raise InputError(msg)
        if (
            message.response_source is not None
            and message.response_source not in VALID_RESPONSE_SOURCES
        ):
            msg = f"Invalid response source: {message.response_source}"
            raise InputError(msg)

        with self._connect("insert_message") as cursor:
            cursor.execute(
                f"INSERT INTO messages ({MESSAGE_COLUMNS}) "  # noqa: S608
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    message.id,
                    message.session_id,
                    message.role,
                    message.content,
                    message.response_source,
                    self._dump(message.metadata),
                    message.created_at,
                ),
            )
        return message

    def list_messages(self, session_id: str) -> list[Message]:
        """Return a session transcript in canonical order.

        Returns:
            Messages ordered by ``created_at`` then insertion order.
        """
        with self._connect("list_messages") as cursor:
            cursor.execute(
                f"SELECT {MESSAGE_COLUMNS} FROM messages "  # noqa: S608
                "WHERE session_id = ? ORDER BY created_at, seq",
                (session_id,),
            )
            rows = cursor.fetchall()
        return [self._message_from_row(row) for row in rows]

    # Knowledge entries

    def load_entries_for_tenant(self, chatbot_id: str) -> list[KnowledgeEntry]:
        """Load every knowledge entry of a tenant, newest first.

        Returns:
            KnowledgeEntry list scoped to ``chatbot_id``.
        """
        with self._connect("load_entries_for_tenant") as cursor:
            cursor.execute(
                f"SELECT {ENTRY_COLUMNS} FROM knowledge_entries "  # noqa: S608
                "WHERE chatbot_id = ? ORDER BY created_at DESC, seq DESC",
                (chatbot_id,),
            )
            rows = cursor.fetchall()
        return [self._entry_from_row(row) for row in rows]

    def insert_entry(self, entry: KnowledgeEntry) -> KnowledgeEntry:
        """Persist a knowledge entry.

        Returns:
            The stored KnowledgeEntry.
        """
        with self._connect("insert_entry") as cursor:
            cursor.execute(
                f"INSERT INTO knowledge_entries ({ENTRY_COLUMNS}) "  # noqa: S608
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    entry.id,
                    entry.chatbot_id,
                    entry.question,
                    entry.answer,
                    self._dump(sorted(entry.keywords)),
                    entry.category,
                    entry.subcategory,
                    entry.source_document_id,
                    self._dump(entry.metadata),
                    entry.created_at,
                ),
            )
        return entry

    # Analytics

    def log_event(
        self,
        chatbot_id: str,
        event_type: str,
        *,
        session_id: str | None = None,
        event_data: dict[str, Any] | None = None,
    ) -> None:
        """Record an analytics event for a chatbot."""
        with self._connect("log_event") as cursor:
            cursor.execute(
                "INSERT INTO analytics "
                "(chatbot_id, session_id, event_type, event_data, created_at) "
                "VALUES (?, ?, ?, ?, ?)",
                (
                    chatbot_id,
                    session_id,
                    event_type,
                    self._dump(event_data),
                    utc_now(),
                ),
            )

    def count_events(self, chatbot_id: str, event_type: str | None = None) -> int:
        """Count analytics events recorded for a chatbot.

        Returns:
            Number of matching events.
        """
        query = "SELECT COUNT(*) FROM analytics WHERE chatbot_id = ?"
        params: tuple[str, ...] = (chatbot_id,)
        if event_type is not None:
            query += " AND event_type = ?"
            params = (chatbot_id, event_type)
        with self._connect("count_events") as cursor:
            cursor.execute(query, params)
            (count,) = cursor.fetchone()
        return int(count)
