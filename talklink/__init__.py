"""TalkLink - response resolution engine for knowledge-base chatbots."""

from .errors import InputError, PersistenceError, ProviderError, TalkLinkError
from .ingestion import KnowledgeIngestor
from .keywords import extract_keywords
from .knowledge import KnowledgeIndex, KnowledgeIndexRegistry
from .models import (
    Chatbot,
    KnowledgeEntry,
    Message,
    ProviderResponse,
    ResolvedAnswer,
    RetrievalResult,
    Session,
)
from .orchestrator import ResponseOrchestrator
from .providers import get_provider
from .ranker import RetrievalRanker
from .service import ChatbotService
from .similarity import keyword_overlap, text_similarity
from .store import SQLiteChatStore, get_chat_store

__all__ = [
    "Chatbot",
    "ChatbotService",
    "InputError",
    "KnowledgeEntry",
    "KnowledgeIndex",
    "KnowledgeIndexRegistry",
    "KnowledgeIngestor",
    "Message",
    "PersistenceError",
    "ProviderError",
    "ProviderResponse",
    "ResolvedAnswer",
    "ResponseOrchestrator",
    "RetrievalRanker",
    "RetrievalResult",
    "SQLiteChatStore",
    "Session",
    "TalkLinkError",
    "extract_keywords",
    "get_chat_store",
    "get_provider",
    "keyword_overlap",
    "text_similarity",
]
