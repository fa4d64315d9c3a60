"""Providers speaking the OpenAI chat-completions protocol."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar

import openai
from openai import OpenAI

from talklink.config import config

from .base import (
    CONNECTION_DIAGNOSTIC,
    STATUS_DIAGNOSTIC,
    BaseProvider,
    ChatMessage,
)

if TYPE_CHECKING:
    import httpx

logger = config.get_logger(__name__)


class OpenAICompatibleProvider(BaseProvider):
    """Chat completions through the ``openai`` SDK against any compatible vendor."""

    name = "openai"
    base_url: str | None = None
    extra_params: ClassVar[dict[str, Any]] = {}

    def __init__(
        self,
        api_key: str,
        model: str,
        *,
        base_url: str | None = None,
        default_headers: dict[str, str] | None = None,
        http_client: httpx.Client | None = None,
        **settings: Any,  # noqa: ANN401
    ) -> None:
        """Initialize the provider and its SDK client.

        Args:
            api_key: Bearer token for the vendor.
            model: Model identifier.
            base_url: Vendor endpoint; defaults to the class endpoint.
            default_headers: Extra headers sent with every request.
            http_client: Pre-configured HTTP client, mainly for tests.
            **settings: Generation settings forwarded to ``BaseProvider``.
        """
        super().__init__(api_key, model, **settings)
        headers = {**config.get_api_headers(), **(default_headers or {})}
        self.client = OpenAI(
            api_key=api_key,
            base_url=base_url or self.base_url,
            default_headers=headers or None,
            timeout=self.timeout,
            max_retries=0,
            http_client=http_client,
        )

    def _request_params(self, messages: list[ChatMessage]) -> dict[str, Any]:
        return {
            "model": self.model,
            "messages": messages,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "top_p": self.top_p,
            **self.extra_params,
        }

    def _complete(self, messages: list[ChatMessage]) -> str:
        """Call the chat-completions endpoint.

        Raises:
            ProviderError: On timeout, connection failure, non-success status or
                a payload without choices or content.

        Returns:
            The first choice's message content.
        """
        try:
            response = self.client.chat.completions.create(
                **self._request_params(messages)
            )
        except openai.APITimeoutError as exc:
            msg = f"{self.name} timed out after {self.timeout}s"
            raise self._error(msg, CONNECTION_DIAGNOSTIC) from exc
        except openai.APIConnectionError as exc:
            msg = f"{self.name} connection failed: {exc}"
            raise self._error(msg, CONNECTION_DIAGNOSTIC) from exc
        except openai.APIStatusError as exc:
            msg = f"{self.name} API error: {exc.status_code} - {exc.message}"
            raise self._error(
                msg,
                STATUS_DIAGNOSTIC.format(detail=f"HTTP {exc.status_code}"),
                status_code=exc.status_code,
            ) from exc
        except openai.APIResponseValidationError as exc:
            raise self._malformed(exc.body) from exc
        except openai.OpenAIError as exc:
            msg = f"{self.name} request failed: {exc}"
            raise self._error(msg, CONNECTION_DIAGNOSTIC) from exc
        except ValueError as exc:
            # JSONDecodeError from a 2xx body that is not JSON
            raise self._malformed(str(exc)) from exc

        error = getattr(response, "error", None)
        if error:
            detail = error.get("message") if isinstance(error, dict) else str(error)
            msg = f"{self.name} returned an error envelope: {error!r}"
            raise self._error(
                msg, STATUS_DIAGNOSTIC.format(detail=detail or "Unknown error.")
            )

        choices = getattr(response, "choices", None)
        if not choices:
            raise self._malformed(response)
        message = getattr(choices[0], "message", None)
        content = getattr(message, "content", None)
        if not isinstance(content, str) or not content.strip():
            raise self._malformed(response)

        return self._postprocess(content.strip())

    def _postprocess(self, content: str) -> str:  # noqa: PLR6301
        return content

    def close(self) -> None:
        """Close the SDK client and its connection pool."""
        self.client.close()


class OpenAIProvider(OpenAICompatibleProvider):
    """OpenAI's hosted chat completions."""

    name = "openai"


class DeepSeekProvider(OpenAICompatibleProvider):
    """DeepSeek chat completions."""

    name = "deepseek"
    base_url = "https://api.deepseek.com/v1"
    extra_params: ClassVar[dict[str, Any]] = {
        "presence_penalty": 0.6,
        "frequency_penalty": 0.3,
    }

    def _postprocess(self, content: str) -> str:  # noqa: PLR6301
        # single newlines render as paragraph breaks in the chat widget
        return content.replace("\n", "\n\n")


class OpenRouterProvider(OpenAICompatibleProvider):
    """Models routed through OpenRouter."""

    name = "openrouter"
    base_url = "https://openrouter.ai/api/v1"

    def __init__(
        self,
        api_key: str,
        model: str,
        *,
        default_headers: dict[str, str] | None = None,
        **settings: Any,  # noqa: ANN401
    ) -> None:
        """Initialize with OpenRouter's attribution headers."""
        headers: dict[str, str] = {}
        if config.API_REFERER:
            headers["HTTP-Referer"] = config.API_REFERER
        if config.API_APP_TITLE:
            headers["X-Title"] = config.API_APP_TITLE
        headers.update(default_headers or {})
        super().__init__(api_key, model, default_headers=headers, **settings)
