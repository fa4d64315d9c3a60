"""Caller-facing chatbot service wiring store, indexes, provider and orchestrator."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .config import config
from .errors import InputError
from .ingestion import KnowledgeIngestor
from .keywords import derive_entry_keywords
from .knowledge import KnowledgeIndex, KnowledgeIndexRegistry
from .models import KnowledgeEntry, new_id
from .orchestrator import ResponseOrchestrator
from .providers import get_provider
from .ranker import RetrievalRanker
from .store import SQLiteChatStore, get_chat_store

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

    from .models import Chatbot, Message, ResolvedAnswer, Session
    from .providers import BaseProvider

logger = config.get_logger(__name__)


class ChatbotService:
    """Main entry point used by the UI layer."""

    def __init__(
        self,
        store: SQLiteChatStore | None = None,
        provider: BaseProvider | None = None,
        ranker: RetrievalRanker | None = None,
        *,
        db_path: Path | None = None,
        provider_name: str | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            store: Datastore. If None, a SQLite store at ``db_path`` (or
                config.CHAT_DB_PATH) is opened.
            provider: Generative backend. If None, built from ``provider_name``
                (or config.DEFAULT_PROVIDER).
            ranker: Retrieval ranker. If None, built from config.
            db_path: Database location used when ``store`` is None.
            provider_name: Provider used when ``provider`` is None.
        """
        self.store = store if store is not None else get_chat_store(db_path=db_path)
        self.provider = (
            provider if provider is not None else get_provider(provider_name)
        )
        self.indexes = KnowledgeIndexRegistry(self.store)
        self.ingestor = KnowledgeIngestor()
        self.orchestrator = ResponseOrchestrator(
            self.store, self.provider, self.indexes, ranker
        )
        logger.info("Chatbot service ready with provider %s", self.provider.name)

    def create_chatbot(
        self,
        name: str,
        owner_id: str,
        *,
        system_prompt: str | None = None,
        description: str | None = None,
        settings: dict[str, Any] | None = None,
    ) -> Chatbot:
        """Register a new tenant.

        Raises:
            InputError: If name or owner is empty.

        Returns:
            The stored Chatbot.
        """
        if not name or not name.strip() or not owner_id:
            msg = "Chatbot name and owner are required"
            raise InputError(msg)
        return self.store.create_chatbot(
            name.strip(),
            owner_id,
            system_prompt=system_prompt,
            description=description,
            settings=settings,
        )

    def start_session(
        self,
        chatbot_id: str,
        *,
        user_identity: str | None = None,
        user_name: str | None = None,
        user_email: str | None = None,
    ) -> Session:
        """Open a conversation for a chat widget instance.

        Raises:
            InputError: If the chatbot does not exist.

        Returns:
            The stored Session.
        """
        if not chatbot_id or self.store.get_chatbot(chatbot_id) is None:
            msg = f"Chatbot not found: {chatbot_id}"
            raise InputError(msg)
        return self.store.create_session(
            chatbot_id,
            user_identity=user_identity,
            user_name=user_name,
            user_email=user_email,
        )

    def end_session(self, session_id: str) -> None:
        """Close a conversation."""
        self.store.end_session(session_id)

    def add_knowledge_entry(  # noqa: PLR0913
        self,
        chatbot_id: str,
        question: str,
        answer: str,
        *,
        keywords: Iterable[str] | None = None,
        category: str | None = None,
        subcategory: str | None = None,
        source_document_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> KnowledgeEntry:
        """Store a curated question/answer pair and make it searchable.

        Raises:
            InputError: If the chatbot is unknown or question/answer are empty.

        Returns:
            The stored KnowledgeEntry.
        """
        if not question or not question.strip() or not answer or not answer.strip():
            msg = "Knowledge entries need a question and an answer"
            raise InputError(msg)
        if self.store.get_chatbot(chatbot_id) is None:
            msg = f"Chatbot not found: {chatbot_id}"
            raise InputError(msg)

        index = self.indexes.get(chatbot_id)
        entry = KnowledgeEntry(
            id=new_id(),
            chatbot_id=chatbot_id,
            question=question.strip(),
            answer=answer.strip(),
            keywords=derive_entry_keywords(question, answer, keywords),
            category=category,
            subcategory=subcategory,
            source_document_id=source_document_id,
            metadata=metadata or {},
        )
        stored = self.store.insert_entry(entry)
        index.insert(stored)
        return stored

    def import_text(self, chatbot_id: str, text: str, source: str = "text") -> int:
        """Seed knowledge from free text, one entry per sentence.

        Raises:
            InputError: If the chatbot does not exist.

        Returns:
            Number of entries created.
        """
        if self.store.get_chatbot(chatbot_id) is None:
            msg = f"Chatbot not found: {chatbot_id}"
            raise InputError(msg)

        index = self.indexes.get(chatbot_id)
        entries = self.ingestor.entries_from_text(chatbot_id, text, source=source)
        for entry in entries:
            index.insert(self.store.insert_entry(entry))
        return len(entries)

    def import_file(self, chatbot_id: str, file_path: Path) -> int:
        """Seed knowledge from a UTF-8 text file.

        Returns:
            Number of entries created.
        """
        text = self.ingestor.load_txt(file_path)
        return self.import_text(chatbot_id, text, source=file_path.name)

    def reload_knowledge(self, chatbot_id: str) -> KnowledgeIndex:
        """Reload a tenant's knowledge after external edits.

        Returns:
            The refreshed index.
        """
        return self.indexes.reload(chatbot_id)

    def transcript(self, session_id: str) -> list[Message]:
        """Messages of a session in canonical order."""  # noqa: DOC201
        return self.store.list_messages(session_id)

    def resolve(self, chatbot_id: str, session_id: str, text: str) -> ResolvedAnswer:
        """Answer a user message; see ``ResponseOrchestrator.resolve``."""  # noqa: DOC201
        return self.orchestrator.resolve(chatbot_id, session_id, text)

    def close(self) -> None:
        """Release the provider's HTTP resources."""
        self.provider.close()
