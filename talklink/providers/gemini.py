"""Google Gemini provider over the Generative Language REST API."""

from __future__ import annotations

from typing import Any

import httpx

from talklink.config import config

from .base import (
    CONNECTION_DIAGNOSTIC,
    STATUS_DIAGNOSTIC,
    BaseProvider,
    ChatMessage,
)

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

logger = config.get_logger(__name__)


class GeminiProvider(BaseProvider):
    """Gemini ``generateContent`` calls.

    Gemini keeps the system instruction outside the conversation and names
    the assistant role ``model``, so OpenAI-style messages are translated
    before sending.
    """

    name = "gemini"

    def __init__(
        self,
        api_key: str,
        model: str,
        *,
        base_url: str = GEMINI_BASE_URL,
        http_client: httpx.Client | None = None,
        **settings: Any,  # noqa: ANN401
    ) -> None:
        """Initialize the provider.

        Args:
            api_key: Gemini API key.
            model: Model identifier, e.g. "gemini-1.5-flash".
            base_url: API root.
            http_client: Pre-configured client, mainly for tests.
            **settings: Generation settings forwarded to ``BaseProvider``.
        """
        super().__init__(api_key, model, **settings)
        self.base_url = base_url.rstrip("/")
        self.client = http_client or httpx.Client(
            timeout=self.timeout,
            headers=config.get_api_headers(),
        )

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    def build_payload(self, messages: list[ChatMessage]) -> dict[str, Any]:
        """Translate chat messages into a Gemini request body.

        Returns:
            JSON-serializable ``generateContent`` request.
        """
        system_parts = [
            {"text": message["content"]}
            for message in messages
            if message["role"] == "system"
        ]
        contents = [
            {
                "role": "user" if message["role"] == "user" else "model",
                "parts": [{"text": message["content"]}],
            }
            for message in messages
            if message["role"] != "system"
        ]
        payload: dict[str, Any] = {
            "contents": contents,
            "generationConfig": {
                "temperature": self.temperature,
                "topP": self.top_p,
                "maxOutputTokens": self.max_tokens,
            },
        }
        if system_parts:
            payload["systemInstruction"] = {"parts": system_parts}
        return payload

    def _complete(self, messages: list[ChatMessage]) -> str:
        """POST to ``generateContent`` and extract the candidate text.

        Raises:
            ProviderError: On timeout, transport failure, non-success status or
                a response without candidate text.

        Returns:
            Concatenated text parts of the first candidate.
        """
        try:
            response = self.client.post(
                self.endpoint,
                json=self.build_payload(messages),
                headers={"x-goog-api-key": self.api_key},
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as exc:
            msg = f"{self.name} timed out after {self.timeout}s"
            raise self._error(msg, CONNECTION_DIAGNOSTIC) from exc
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            msg = f"{self.name} API error: {status} - {exc.response.text[:200]}"
            raise self._error(
                msg,
                STATUS_DIAGNOSTIC.format(detail=f"HTTP {status}"),
                status_code=status,
            ) from exc
        except httpx.HTTPError as exc:
            msg = f"{self.name} request failed: {exc}"
            raise self._error(msg, CONNECTION_DIAGNOSTIC) from exc
        except ValueError as exc:
            raise self._malformed(response.text[:200]) from exc

        return self._extract_text(data)

    def _extract_text(self, data: Any) -> str:  # noqa: ANN401
        if not isinstance(data, dict):
            raise self._malformed(data)

        error = data.get("error")
        if error:
            detail = error.get("message") if isinstance(error, dict) else str(error)
            msg = f"{self.name} returned an error envelope: {error!r}"
            raise self._error(
                msg, STATUS_DIAGNOSTIC.format(detail=detail or "Unknown error.")
            )

        candidates = data.get("candidates") or []
        if not candidates or not isinstance(candidates[0], dict):
            raise self._malformed(data)
        content = candidates[0].get("content")
        parts = content.get("parts") if isinstance(content, dict) else None
        text = "".join(
            str(part.get("text", ""))
            for part in parts or []
            if isinstance(part, dict)
        ).strip()
        if not text:
            raise self._malformed(data)
        return text

    def close(self) -> None:
        """Release pooled HTTP connections."""
        self.client.close()
