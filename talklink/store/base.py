"""Shared schema management and row helpers for the SQLite chat store."""

from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

from talklink.config import config
from talklink.errors import PersistenceError
from talklink.models import Chatbot, KnowledgeEntry, Message, Session

if TYPE_CHECKING:
    from collections.abc import Iterator

VALID_ROLES = ("user", "assistant", "system")
VALID_RESPONSE_SOURCES = ("knowledge_base", "generative", "hybrid")

logger = config.get_logger(__name__)


class BaseSQLiteStore:
    """Schema management and row conversion for stores backed by SQLite."""

    def __init__(self, db_path: Path) -> None:
        """Initialize the database file and ensure the schema exists.

        Raises:
            PersistenceError: If the schema cannot be created.
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(exist_ok=True, parents=True)
        self._schema_upgraded = False
        try:
            self._create_tables()
        except sqlite3.Error as exc:
            logger.exception("Unable to initialize chat store at %s", self.db_path)
            msg = f"Unable to initialize chat store at {self.db_path}"
            raise PersistenceError(msg) from exc

    @contextmanager
    def _connect(self, operation: str) -> Iterator[sqlite3.Cursor]:
        """Yield a cursor inside a committed transaction.

        Raises:
            PersistenceError: If any SQLite error occurs during the operation.
        """
        conn = sqlite3.connect(str(self.db_path))
        try:
            conn.execute("PRAGMA foreign_keys = ON")
            with conn:
                yield conn.cursor()
        except sqlite3.Error as exc:
            logger.exception("Chat store operation failed: %s", operation)
            msg = f"Chat store operation failed: {operation}"
            raise PersistenceError(msg) from exc
        finally:
            conn.close()

    def _create_tables(self) -> None:
        """Create tenant, session, message, knowledge and analytics tables."""
        with sqlite3.connect(str(self.db_path)) as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS chatbots (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    owner_id TEXT NOT NULL,
                    system_prompt TEXT,
                    description TEXT,
                    is_active INTEGER NOT NULL DEFAULT 1,
                    settings TEXT NOT NULL DEFAULT '{}',
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS chat_sessions (
                    id TEXT PRIMARY KEY,
                    chatbot_id TEXT NOT NULL,
                    user_identity TEXT,
                    user_name TEXT,
                    user_email TEXT,
                    is_active INTEGER NOT NULL DEFAULT 1,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    FOREIGN KEY (chatbot_id) REFERENCES chatbots (id)
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS messages (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    id TEXT NOT NULL UNIQUE,
                    session_id TEXT NOT NULL,
                    role TEXT NOT NULL CHECK(role IN ('user','assistant','system')),
                    content TEXT NOT NULL,
                    response_source TEXT CHECK(
                        response_source IS NULL
                        OR response_source IN ('knowledge_base','generative','hybrid')
                    ),
                    metadata TEXT NOT NULL DEFAULT '{}',
                    created_at TEXT NOT NULL,
                    FOREIGN KEY (session_id) REFERENCES chat_sessions (id)
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS knowledge_entries (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    id TEXT NOT NULL UNIQUE,
                    chatbot_id TEXT,
                    question TEXT NOT NULL,
                    answer TEXT NOT NULL,
                    keywords TEXT NOT NULL DEFAULT '[]',
                    category TEXT,
                    subcategory TEXT,
                    source_document_id TEXT,
                    metadata TEXT NOT NULL DEFAULT '{}',
                    created_at TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS analytics (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    chatbot_id TEXT NOT NULL,
                    session_id TEXT,
                    event_type TEXT NOT NULL,
                    event_data TEXT NOT NULL DEFAULT '{}',
                    created_at TEXT NOT NULL
                )
            """)

            added_columns = self._ensure_entry_columns(cursor)
            self._create_indexes(cursor)
            conn.commit()

            if added_columns:
                logger.warning(
                    "Updated chat store schema with columns: %s",
                    ", ".join(sorted(added_columns)),
                )
            self._schema_upgraded = bool(added_columns)

    @staticmethod
    def _ensure_entry_columns(cursor: sqlite3.Cursor) -> set[str]:
        """Add categorization columns missing from older databases.

        Returns:
            Set of column names that were added during migration.
        """
        cursor.execute("PRAGMA table_info(knowledge_entries)")
        existing_columns = {row[1] for row in cursor.fetchall()}
        added_columns: set[str] = set()

        for column_name in ("category", "subcategory"):
            if column_name not in existing_columns:
                cursor.execute(
                    f"ALTER TABLE knowledge_entries ADD COLUMN {column_name} TEXT"
                )
                added_columns.add(column_name)

        return added_columns

    @staticmethod
    def _create_indexes(cursor: sqlite3.Cursor) -> None:
        """Ensure indexes exist for the tenant-scoped lookups."""
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_chatbots_owner ON chatbots(owner_id)"
        )
        cursor.execute(
            (
                "CREATE INDEX IF NOT EXISTS idx_sessions_chatbot "
                "ON chat_sessions(chatbot_id, created_at DESC)"
            ),
        )
        cursor.execute(
            (
                "CREATE INDEX IF NOT EXISTS idx_messages_session "
                "ON messages(session_id, created_at, seq)"
            ),
        )
        cursor.execute(
            (
                "CREATE INDEX IF NOT EXISTS idx_entries_chatbot_created_at "
                "ON knowledge_entries(chatbot_id, created_at DESC)"
            ),
        )
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_analytics_chatbot ON analytics(chatbot_id)"
        )

    @staticmethod
    def _dump(value: Any) -> str:  # noqa: ANN401
        return json.dumps(value if value is not None else {}, sort_keys=True)

    @staticmethod
    def _load_json(raw: str | None, default: Any) -> Any:  # noqa: ANN401
        """Decode a JSON column, tolerating empty or corrupt values.

        Returns:
            Decoded value, or ``default`` when the column cannot be decoded.
        """
        if not raw:
            return default
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Ignoring malformed JSON column value: %r", raw[:80])
            return default

    def _chatbot_from_row(self, row: tuple) -> Chatbot:
        (
            chatbot_id,
            name,
            owner_id,
            system_prompt,
            description,
            is_active,
            settings,
            created_at,
            updated_at,
        ) = row
        return Chatbot(
            id=chatbot_id,
            name=name,
            owner_id=owner_id,
            system_prompt=system_prompt,
            description=description,
            is_active=bool(is_active),
            settings=self._load_json(settings, {}),
            created_at=created_at,
            updated_at=updated_at,
        )

    @staticmethod
    def _session_from_row(row: tuple) -> Session:
        (
            session_id,
            chatbot_id,
            user_identity,
            user_name,
            user_email,
            is_active,
            created_at,
            updated_at,
        ) = row
        return Session(
            id=session_id,
            chatbot_id=chatbot_id,
            user_identity=user_identity,
            user_name=user_name,
            user_email=user_email,
            is_active=bool(is_active),
            created_at=created_at,
            updated_at=updated_at,
        )

    def _message_from_row(self, row: tuple) -> Message:
        (
            message_id,
            session_id,
            role,
            content,
            response_source,
            metadata,
            created_at,
        ) = row
        return Message(
            id=message_id,
            session_id=session_id,
            role=role,
            content=content,
            response_source=response_source,
            metadata=self._load_json(metadata, {}),
            created_at=created_at,
        )

    def _entry_from_row(self, row: tuple) -> KnowledgeEntry:
        """Build a KnowledgeEntry from a ``knowledge_entries`` row.

        Returns:
            KnowledgeEntry with lower-cased, deduplicated keywords.
        """
        (
            entry_id,
            chatbot_id,
            question,
            answer,
            keywords,
            category,
            subcategory,
            source_document_id,
            metadata,
            created_at,
        ) = row
        raw_keywords = self._load_json(keywords, [])
        return KnowledgeEntry(
            id=entry_id,
            chatbot_id=chatbot_id,
            question=question,
            answer=answer,
            keywords=frozenset(
                str(keyword).strip().lower()
                for keyword in raw_keywords
                if str(keyword).strip()
            ),
            category=category,
            subcategory=subcategory,
            source_document_id=source_document_id,
            metadata=self._load_json(metadata, {}),
            created_at=created_at,
        )
