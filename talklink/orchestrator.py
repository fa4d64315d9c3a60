"""Response resolution: knowledge lookup with generative fallback."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .config import config
from .errors import InputError, PersistenceError
from .models import Message, ResolvedAnswer, new_id
from .ranker import RetrievalRanker

if TYPE_CHECKING:
    from .knowledge import KnowledgeIndex, KnowledgeIndexRegistry
    from .models import Chatbot, RetrievalResult
    from .providers import BaseProvider
    from .providers.base import ChatMessage
    from .store import ChatStore

logger = config.get_logger(__name__)

NO_PERSONA_REPLY = (
    "I'm sorry, I don't have enough information to answer that right now."
)
FRIENDLY_FALLBACK_REPLY = "I'm here to help! What would you like to know more about?"


class ResponseOrchestrator:
    """Answers one user message per call and records both turns.

    Per request: the user turn is persisted, the tenant's knowledge index is
    ranked, and on no accepted match the provider is asked. Exactly one
    assistant turn is persisted after the user turn on every path that gets
    past input validation and the user-turn write.
    """

    def __init__(
        self,
        store: ChatStore,
        provider: BaseProvider,
        indexes: KnowledgeIndexRegistry,
        ranker: RetrievalRanker | None = None,
        *,
        forward_history: bool | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            store: Datastore for chatbots, sessions and messages.
            provider: Generative backend used when retrieval finds nothing.
            indexes: Per-tenant knowledge indexes.
            ranker: Retrieval ranker. Defaults to one built from config.
            forward_history: Whether prior session turns are sent to the
                provider. Defaults to config.FORWARD_CONVERSATION_HISTORY.
        """
        self.store = store
        self.provider = provider
        self.indexes = indexes
        self.ranker = ranker or RetrievalRanker()
        self.forward_history = (
            forward_history
            if forward_history is not None
            else config.FORWARD_CONVERSATION_HISTORY
        )

    def resolve(self, chatbot_id: str, session_id: str, text: str) -> ResolvedAnswer:
        """Produce the reply to one user message.

        Args:
            chatbot_id: Tenant the message is addressed to.
            session_id: Conversation the message belongs to.
            text: The user's message.

        Returns:
            ResolvedAnswer carrying content, source and provenance.

        Raises:
            InputError: If identifiers or text are invalid. Nothing is persisted.
            PersistenceError: If the knowledge index cannot be loaded or a turn
                cannot be written. Nothing is persisted when the load fails.
        """
        message_text = text.strip() if isinstance(text, str) else ""
        if not chatbot_id or not session_id:
            msg = "chatbot_id and session_id are required"
            raise InputError(msg)
        if not message_text:
            msg = "Message text must not be empty"
            raise InputError(msg)

        chatbot = self._require_chatbot(chatbot_id)
        self._require_session(session_id, chatbot_id)
        history = self._history(session_id) if self.forward_history else []
        index = self.indexes.get(chatbot_id) if chatbot.has_persona else None

        self.store.insert_message(
            Message(
                id=new_id(),
                session_id=session_id,
                role="user",
                content=message_text,
            )
        )
        logger.info(
            "Resolving message for chatbot %s session %s", chatbot_id, session_id
        )

        if not chatbot.has_persona:
            logger.info("Chatbot %s has no system prompt; using fallback", chatbot_id)
            answer = ResolvedAnswer(
                content=NO_PERSONA_REPLY, source="generative", is_from_ai=False
            )
        else:
            try:
                answer = self._answer(chatbot, index, message_text, history)
            except Exception:  # noqa: BLE001
                logger.exception("Unexpected error while resolving a response")
                answer = ResolvedAnswer(
                    content=FRIENDLY_FALLBACK_REPLY,
                    source="generative",
                    is_from_ai=False,
                )

        self.store.insert_message(
            Message(
                id=new_id(),
                session_id=session_id,
                role="assistant",
                content=answer.content,
                response_source=answer.source,
                metadata={
                    "score": answer.score,
                    "provider": answer.provider_name,
                    "entry_id": answer.entry_id,
                    "is_from_ai": answer.is_from_ai,
                },
            )
        )
        self._record_event(chatbot_id, session_id, answer)
        return answer

    def _answer(
        self,
        chatbot: Chatbot,
        index: KnowledgeIndex,
        text: str,
        history: list[ChatMessage],
    ) -> ResolvedAnswer:
        retrieval: RetrievalResult = self.ranker.rank(text, index)

        if retrieval.accepted and retrieval.matched_entry is not None:
            logger.info("Answered from knowledge entry %s", retrieval.matched_entry.id)
            return ResolvedAnswer(
                content=retrieval.matched_entry.answer,
                source="knowledge_base",
                is_from_ai=False,
                score=retrieval.score,
                entry_id=retrieval.matched_entry.id,
            )

        logger.info("No knowledge match; asking provider %s", self.provider.name)
        response = self.provider.generate(chatbot.system_prompt or "", history, text)
        if not response.succeeded:
            logger.warning(
                "Provider %s failed; replying with diagnostic", response.provider_name
            )
        return ResolvedAnswer(
            content=response.content,
            source="generative",
            is_from_ai=True,
            score=retrieval.score,
            provider_name=response.provider_name,
        )

    def _require_chatbot(self, chatbot_id: str) -> Chatbot:
        chatbot = self.store.get_chatbot(chatbot_id)
        if chatbot is None:
            msg = f"Chatbot not found: {chatbot_id}"
            raise InputError(msg)
        if not chatbot.is_active:
            msg = f"Chatbot is not active: {chatbot_id}"
            raise InputError(msg)
        return chatbot

    def _require_session(self, session_id: str, chatbot_id: str) -> None:
        session = self.store.get_session(session_id)
        if session is None or session.chatbot_id != chatbot_id:
            msg = f"Session {session_id} does not belong to chatbot {chatbot_id}"
            raise InputError(msg)
        if not session.is_active:
            msg = f"Session has ended: {session_id}"
            raise InputError(msg)

    def _history(self, session_id: str) -> list[ChatMessage]:
        return [
            {"role": message.role, "content": message.content}
            for message in self.store.list_messages(session_id)
            if message.role in {"user", "assistant"}
        ]

    def _record_event(
        self,
        chatbot_id: str,
        session_id: str,
        answer: ResolvedAnswer,
    ) -> None:
        try:
            self.store.log_event(
                chatbot_id,
                "message_resolved",
                session_id=session_id,
                event_data={
                    "source": answer.source,
                    "is_from_ai": answer.is_from_ai,
                    "score": answer.score,
                    "provider": answer.provider_name,
                },
            )
        except PersistenceError:
            # both turns are already stored; analytics are best effort
            logger.warning("Could not record analytics for session %s", session_id)
