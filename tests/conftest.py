"""Test configuration and fixtures for TalkLink tests.

This module provides reusable test fixtures organized by functionality:
- Constants and test data
- Stub providers and mocked HTTP backends
- Datastore fixtures
- Knowledge fixtures
- Service and orchestrator fixtures
"""

import json
from collections.abc import Callable

import httpx
import pytest

from talklink import (
    ChatbotService,
    KnowledgeEntry,
    KnowledgeIndex,
    KnowledgeIndexRegistry,
    ProviderError,
    ResponseOrchestrator,
    SQLiteChatStore,
)
from talklink.keywords import derive_entry_keywords
from talklink.models import new_id
from talklink.providers import BaseProvider, GeminiProvider, OpenAIProvider


class TestConstants:
    """Centralized test constants shared across the test suite."""

    TEST_API_KEY = "test-key"
    TEST_OPENAI_MODEL = "gpt-4o-mini"
    TEST_GEMINI_MODEL = "gemini-1.5-flash"
    OPENAI_TEST_URL = "https://api.test.local/v1"

    OWNER_ID = "user_123"
    PERSONA = "You are Bob."
    GENERATED_ANSWER = "Generated answer from the model."

    HOURS_QUESTION = "What are your hours?"
    HOURS_ANSWER = "9 to 5"
    HOURS_KEYWORDS = ("hours", "open", "schedule")


class StubProvider(BaseProvider):
    """Provider returning scripted answers and recording every call.

    Pass ``error`` to simulate a recoverable backend failure, or ``exception``
    to simulate an unexpected crash inside the provider.
    """

    name = "stub"

    def __init__(
        self,
        content: str = TestConstants.GENERATED_ANSWER,
        *,
        error: ProviderError | None = None,
        exception: Exception | None = None,
    ) -> None:
        super().__init__(TestConstants.TEST_API_KEY, "stub-model")
        self.content = content
        self.error = error
        self.exception = exception
        self.calls: list[list[dict[str, str]]] = []

    def _complete(self, messages):
        self.calls.append(messages)
        if self.exception is not None:
            raise self.exception
        if self.error is not None:
            raise self.error
        return self.content


def chat_completion_payload(content: str | None) -> dict:
    """Build an OpenAI chat-completion JSON body."""
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "created": 1700000000,
        "model": TestConstants.TEST_OPENAI_MODEL,
        "choices": [
            {
                "index": 0,
                "finish_reason": "stop",
                "message": {"role": "assistant", "content": content},
            }
        ],
    }


def gemini_payload(text: str) -> dict:
    """Build a Gemini generateContent JSON body."""
    return {
        "candidates": [
            {"content": {"role": "model", "parts": [{"text": text}]}},
        ]
    }


class RecordingTransport(httpx.MockTransport):
    """MockTransport that remembers the requests it served."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.requests: list[httpx.Request] = []

        def _handler(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(_handler)

    def last_json(self) -> dict:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def constants():
    """Expose shared constants to test modules."""
    return TestConstants


@pytest.fixture
def stub_provider_factory():
    """Factory for scripted providers."""
    return StubProvider


@pytest.fixture
def stub_provider():
    """Provider that succeeds with ``TestConstants.GENERATED_ANSWER``."""
    return StubProvider()


@pytest.fixture
def completion_payload():
    """Builder for OpenAI chat-completion bodies."""
    return chat_completion_payload


@pytest.fixture
def gemini_response_payload():
    """Builder for Gemini generateContent bodies."""
    return gemini_payload


@pytest.fixture
def openai_provider_factory():
    """Factory for OpenAI-compatible providers served by a local transport."""

    def _create_provider(handler, provider_cls=OpenAIProvider, **settings):
        transport = RecordingTransport(handler)
        if provider_cls is OpenAIProvider:
            settings.setdefault("base_url", TestConstants.OPENAI_TEST_URL)
        provider = provider_cls(
            TestConstants.TEST_API_KEY,
            TestConstants.TEST_OPENAI_MODEL,
            http_client=httpx.Client(transport=transport),
            **settings,
        )
        return provider, transport

    return _create_provider


@pytest.fixture
def gemini_provider_factory():
    """Factory for Gemini providers whose HTTP traffic is served locally."""

    def _create_provider(handler, **settings):
        transport = RecordingTransport(handler)
        provider = GeminiProvider(
            TestConstants.TEST_API_KEY,
            TestConstants.TEST_GEMINI_MODEL,
            http_client=httpx.Client(transport=transport),
            **settings,
        )
        return provider, transport

    return _create_provider


@pytest.fixture
def temp_chat_store(tmp_path) -> SQLiteChatStore:
    """Create a temporary SQLite chat store for testing."""
    return SQLiteChatStore(tmp_path / "test_chat.db")


@pytest.fixture
def chatbot_factory(temp_chat_store):
    """Factory creating chatbots in the temporary store."""

    def _create_chatbot(
        name: str = "Support Bot",
        system_prompt: str | None = TestConstants.PERSONA,
    ):
        return temp_chat_store.create_chatbot(
            name, TestConstants.OWNER_ID, system_prompt=system_prompt
        )

    return _create_chatbot


@pytest.fixture
def chatbot(chatbot_factory):
    """Chatbot with a persona configured."""
    return chatbot_factory()


@pytest.fixture
def session(temp_chat_store, chatbot):
    """Open session for the default chatbot."""
    return temp_chat_store.create_session(chatbot.id, user_identity="visitor")


@pytest.fixture
def entry_factory():
    """Factory for KnowledgeEntry objects with derived keywords."""

    def _create_entry(
        chatbot_id: str | None,
        question: str,
        answer: str,
        keywords=None,
        created_at: str | None = None,
    ) -> KnowledgeEntry:
        extra = {"created_at": created_at} if created_at else {}
        return KnowledgeEntry(
            id=new_id(),
            chatbot_id=chatbot_id,
            question=question,
            answer=answer,
            keywords=derive_entry_keywords(question, answer, keywords),
            **extra,
        )

    return _create_entry


@pytest.fixture
def hours_entry(entry_factory, chatbot):
    """The opening-hours entry used in retrieval scenarios."""
    return entry_factory(
        chatbot.id,
        TestConstants.HOURS_QUESTION,
        TestConstants.HOURS_ANSWER,
        keywords=TestConstants.HOURS_KEYWORDS,
    )


@pytest.fixture
def index_factory(temp_chat_store):
    """Factory building a loaded KnowledgeIndex from a list of entries."""

    def _create_index(chatbot_id: str, entries=()) -> KnowledgeIndex:
        for entry in entries:
            temp_chat_store.insert_entry(entry)
        index = KnowledgeIndex(chatbot_id, temp_chat_store)
        index.load()
        return index

    return _create_index


@pytest.fixture
def orchestrator_factory(temp_chat_store):
    """Factory for orchestrators bound to the temporary store."""

    def _create_orchestrator(provider=None, **kwargs) -> ResponseOrchestrator:
        return ResponseOrchestrator(
            temp_chat_store,
            provider or StubProvider(),
            KnowledgeIndexRegistry(temp_chat_store),
            **kwargs,
        )

    return _create_orchestrator


@pytest.fixture
def service_factory(temp_chat_store):
    """Factory for ChatbotService instances using the temporary store."""

    def _create_service(provider=None, **kwargs) -> ChatbotService:
        return ChatbotService(
            store=temp_chat_store, provider=provider or StubProvider(), **kwargs
        )

    return _create_service

