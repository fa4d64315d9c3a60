"""Common behaviour shared by every generative provider."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from talklink.config import config
from talklink.errors import ProviderError
from talklink.models import ProviderResponse

if TYPE_CHECKING:
    from collections.abc import Sequence

ChatMessage = dict[str, str]

BASE_SYSTEM_INSTRUCTION = (
    "You are a helpful AI assistant. Provide concise, helpful responses. "
    "Keep your answers under 150 words and maintain a friendly, professional tone. "
    "When given specific information, use it to enhance your responses while "
    "keeping a natural, conversational tone."
)

CONNECTION_DIAGNOSTIC = (
    "I'm having trouble connecting to my AI service right now. "
    "Please try again later."
)
MALFORMED_DIAGNOSTIC = (
    "Sorry, I could not generate a response due to an unexpected server reply."
)
STATUS_DIAGNOSTIC = "Sorry, the AI service returned an error: {detail}"

logger = config.get_logger(__name__)


class BaseProvider:
    """A generative backend reachable over HTTP.

    Subclasses implement ``_complete``, which either returns the generated
    text or raises ``ProviderError``. ``generate`` turns that into a
    ``ProviderResponse`` and never raises for backend failures.
    """

    name = "base"

    def __init__(  # noqa: PLR0913
        self,
        api_key: str,
        model: str,
        *,
        temperature: float | None = None,
        max_tokens: int | None = None,
        top_p: float | None = None,
        timeout: float | None = None,
        history_window: int | None = None,
    ) -> None:
        """Initialize shared generation settings.

        Args:
            api_key: Credential for the vendor API.
            model: Model identifier sent with each request.
            temperature: Sampling temperature. Defaults to config.CHAT_TEMPERATURE.
            max_tokens: Response length cap. Defaults to config.CHAT_MAX_TOKENS.
            top_p: Nucleus sampling. Defaults to config.CHAT_TOP_P.
            timeout: Network timeout in seconds. Defaults to
                config.PROVIDER_TIMEOUT_SECONDS.
            history_window: Number of trailing turns forwarded. Defaults to
                config.PROVIDER_HISTORY_WINDOW.
        """
        self.api_key = api_key
        self.model = model
        self.temperature = (
            temperature if temperature is not None else config.CHAT_TEMPERATURE
        )
        self.max_tokens = (
            max_tokens if max_tokens is not None else config.CHAT_MAX_TOKENS
        )
        self.top_p = top_p if top_p is not None else config.CHAT_TOP_P
        self.timeout = (
            timeout if timeout is not None else config.PROVIDER_TIMEOUT_SECONDS
        )
        self.history_window = (
            history_window
            if history_window is not None
            else config.PROVIDER_HISTORY_WINDOW
        )

    def build_messages(
        self,
        system_prompt: str,
        conversation_history: Sequence[ChatMessage],
        user_message: str,
    ) -> list[ChatMessage]:
        """Assemble the chat messages for one request.

        Returns:
            System message (fixed instruction plus tenant persona), the last
            ``history_window`` turns, then the user message.
        """
        system_content = BASE_SYSTEM_INSTRUCTION
        if system_prompt and system_prompt.strip():
            system_content = f"{BASE_SYSTEM_INSTRUCTION}\n\n{system_prompt.strip()}"

        window = (
            list(conversation_history)[-self.history_window :]
            if self.history_window > 0
            else []
        )
        history = [
            {"role": turn["role"], "content": turn["content"]}
            for turn in window
            if turn.get("role") in {"user", "assistant"} and turn.get("content")
        ]
        return [
            {"role": "system", "content": system_content},
            *history,
            {"role": "user", "content": user_message},
        ]

    def generate(
        self,
        system_prompt: str,
        conversation_history: Sequence[ChatMessage],
        user_message: str,
    ) -> ProviderResponse:
        """Generate an answer, converting backend failures into a failed response.

        Returns:
            ProviderResponse; ``succeeded`` is False when the backend failed and
            ``content`` then holds a diagnostic that is safe to show.
        """
        messages = self.build_messages(
            system_prompt, conversation_history, user_message
        )
        try:
            content = self._complete(messages)
        except ProviderError as exc:
            logger.warning("Provider %s failed: %s", self.name, exc)
            return ProviderResponse.failure(exc)

        logger.info("Provider %s produced %d characters", self.name, len(content))
        return ProviderResponse(
            content=content, succeeded=True, provider_name=self.name
        )

    def close(self) -> None:  # noqa: PLR6301
        """Release transport resources held by the provider."""

    def _complete(self, messages: list[ChatMessage]) -> str:
        """Send messages to the backend and return the generated text.

        Raises:
            NotImplementedError: Always; subclasses provide the transport.
        """
        raise NotImplementedError

    def _error(
        self,
        message: str,
        diagnostic: str,
        status_code: int | None = None,
    ) -> ProviderError:
        return ProviderError(
            message,
            provider_name=self.name,
            diagnostic=diagnostic,
            status_code=status_code,
        )

    def _malformed(self, payload: Any) -> ProviderError:  # noqa: ANN401
        preview = repr(payload)[:200]
        return self._error(
            f"{self.name} returned a malformed payload: {preview}",
            MALFORMED_DIAGNOSTIC,
        )
