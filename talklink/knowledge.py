"""Per-tenant in-memory knowledge index."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

from .config import config
from .errors import InputError

if TYPE_CHECKING:
    from .models import KnowledgeEntry
    from .store import ChatStore

logger = config.get_logger(__name__)


class KnowledgeIndex:
    """Snapshot of one tenant's knowledge entries.

    The entry sequence is an immutable tuple that is replaced wholesale on
    every load or insert, so concurrent readers see either the old or the new
    list and never a partial one.
    """

    def __init__(self, chatbot_id: str, store: ChatStore) -> None:
        """Initialize an empty index for a tenant.

        Args:
            chatbot_id: The tenant whose entries this index holds.
            store: Datastore the entries are loaded from.

        Raises:
            InputError: If ``chatbot_id`` is empty.
        """
        if not chatbot_id:
            msg = "chatbot_id is required for a knowledge index"
            raise InputError(msg)
        self.chatbot_id = chatbot_id
        self.store = store
        self._entries: tuple[KnowledgeEntry, ...] = ()
        self._write_lock = threading.Lock()

    def load(self) -> None:
        """Replace the entries with the tenant's current entries, newest first.

        The read and the swap happen under the write lock, so an ``insert``
        cannot land in between and be dropped by the swap.
        """
        with self._write_lock:
            rows = self.store.load_entries_for_tenant(self.chatbot_id)
            entries = tuple(
                sorted(
                    (entry for entry in rows if entry.chatbot_id == self.chatbot_id),
                    key=lambda entry: entry.created_at,
                    reverse=True,
                )
            )
            self._entries = entries

        skipped = len(rows) - len(entries)
        if skipped:
            logger.warning(
                "Skipped %d knowledge rows without tenant %s", skipped, self.chatbot_id
            )
        logger.info(
            "Loaded %d knowledge entries for chatbot %s", len(entries), self.chatbot_id
        )

    def insert(self, entry: KnowledgeEntry) -> None:
        """Append an entry that was already written to the datastore.

        An entry whose id is already indexed is ignored.

        Raises:
            InputError: If the entry belongs to another tenant.
        """
        if entry.chatbot_id != self.chatbot_id:
            msg = (
                f"Entry {entry.id} belongs to chatbot {entry.chatbot_id}, "
                f"not {self.chatbot_id}"
            )
            raise InputError(msg)
        with self._write_lock:
            if any(existing.id == entry.id for existing in self._entries):
                return
            self._entries = (*self._entries, entry)

    def all(self) -> tuple[KnowledgeEntry, ...]:
        """Current entries in index order."""  # noqa: DOC201
        return self._entries

    def __len__(self) -> int:
        return len(self._entries)


class KnowledgeIndexRegistry:
    """Lazily loaded knowledge indexes, one per tenant."""

    def __init__(self, store: ChatStore) -> None:
        self.store = store
        self._indexes: dict[str, KnowledgeIndex] = {}
        self._lock = threading.Lock()

    def get(self, chatbot_id: str) -> KnowledgeIndex:
        """Return the tenant's index, loading it on first use.

        Returns:
            The KnowledgeIndex for ``chatbot_id``.
        """
        index = self._indexes.get(chatbot_id)
        if index is not None:
            return index

        with self._lock:
            index = self._indexes.get(chatbot_id)
            if index is None:
                index = KnowledgeIndex(chatbot_id, self.store)
                index.load()
                self._indexes[chatbot_id] = index
        return index

    def reload(self, chatbot_id: str) -> KnowledgeIndex:
        """Reload a tenant's index from the datastore.

        Returns:
            The refreshed KnowledgeIndex.
        """
        index = self.get(chatbot_id)
        index.load()
        return index

    def evict(self, chatbot_id: str) -> None:
        """Forget a tenant's cached index."""
        with self._lock:
            self._indexes.pop(chatbot_id, None)
