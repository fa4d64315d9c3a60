"""Data models for the response engine."""

from __future__ import annotations

import datetime
import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal

if TYPE_CHECKING:
    from .errors import ProviderError

Role = Literal["user", "assistant", "system"]
ResponseSource = Literal["knowledge_base", "generative", "hybrid"]


def utc_now() -> str:
    """Current UTC time as an ISO-8601 string with microseconds."""  # noqa: DOC201
    return datetime.datetime.now(tz=datetime.UTC).isoformat(timespec="microseconds")


def new_id() -> str:
    """Fresh identifier for a stored record."""  # noqa: DOC201
    return str(uuid.uuid4())


@dataclass(frozen=True)
class Chatbot:
    """A tenant: one customer's bot configuration."""

    id: str
    name: str
    owner_id: str
    system_prompt: str | None = None
    description: str | None = None
    is_active: bool = True
    settings: dict[str, Any] = field(default_factory=dict)
    created_at: str = field(default_factory=utc_now)
    updated_at: str = field(default_factory=utc_now)

    @property
    def has_persona(self) -> bool:
        """Whether the tenant has finished onboarding with a system prompt."""
        return bool(self.system_prompt and self.system_prompt.strip())


@dataclass(frozen=True)
class KnowledgeEntry:
    """A curated question/answer pair owned by one tenant.

    Keywords are derived once at creation and never recomputed per query.
    """

    id: str
    chatbot_id: str | None
    question: str
    answer: str
    keywords: frozenset[str] = frozenset()
    category: str | None = None
    subcategory: str | None = None
    source_document_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: str = field(default_factory=utc_now)


@dataclass(frozen=True)
class Session:
    """One conversation between an end user and a chatbot widget."""

    id: str
    chatbot_id: str
    user_identity: str | None = None
    user_name: str | None = None
    user_email: str | None = None
    is_active: bool = True
    created_at: str = field(default_factory=utc_now)
    updated_at: str = field(default_factory=utc_now)


@dataclass(frozen=True)
class Message:
    """A single append-only turn in a session transcript."""

    id: str
    session_id: str
    role: Role
    content: str
    response_source: ResponseSource | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: str = field(default_factory=utc_now)


@dataclass(frozen=True)
class RetrievalResult:
    """Outcome of ranking a query against a knowledge index."""

    matched_entry: KnowledgeEntry | None
    score: float
    accepted: bool


@dataclass(frozen=True)
class ProviderResponse:
    """Normalized result of a generative provider call.

    A failed response still carries user-presentable ``content``; ``error``
    holds the recoverable ``ProviderError`` it was converted from.
    """

    content: str
    succeeded: bool
    provider_name: str
    error: ProviderError | None = None

    @classmethod
    def failure(cls, error: ProviderError) -> ProviderResponse:
        """Build a failed response from a provider error."""  # noqa: DOC201
        return cls(
            content=error.diagnostic,
            succeeded=False,
            provider_name=error.provider_name,
            error=error,
        )


@dataclass(frozen=True)
class ResolvedAnswer:
    """The reply returned to the chat UI for one user message."""

    content: str
    source: ResponseSource
    is_from_ai: bool
    score: float = 0.0
    provider_name: str | None = None
    entry_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Caller-facing representation used by the UI layer.

        Returns:
            Mapping with ``content``, ``source`` and ``isFromAI`` plus provenance.
        """
        return {
            "content": self.content,
            "source": self.source,
            "isFromAI": self.is_from_ai,
            "score": self.score,
            "provider": self.provider_name,
            "entryId": self.entry_id,
        }
