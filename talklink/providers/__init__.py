"""Generative provider adapters and factory."""

from __future__ import annotations

from typing import Any, Literal

from talklink.config import SUPPORTED_PROVIDERS, config

from .base import BASE_SYSTEM_INSTRUCTION, BaseProvider
from .gemini import GeminiProvider
from .openai_compat import (
    DeepSeekProvider,
    OpenAICompatibleProvider,
    OpenAIProvider,
    OpenRouterProvider,
)

ProviderName = Literal["openai", "deepseek", "openrouter", "gemini"]

_DEFAULT_MODELS = {
    "openai": lambda: config.OPENAI_CHAT_MODEL,
    "deepseek": lambda: config.DEEPSEEK_CHAT_MODEL,
    "openrouter": lambda: config.OPENROUTER_CHAT_MODEL,
    "gemini": lambda: config.GEMINI_CHAT_MODEL,
}


def get_provider(
    name: ProviderName | str | None = None,
    *,
    api_key: str | None = None,
    model: str | None = None,
    **settings: Any,  # noqa: ANN401
) -> BaseProvider:
    """Return a configured provider instance.

    Args:
        name: Provider name. Defaults to config.DEFAULT_PROVIDER.
        api_key: Vendor key. Defaults to the ``<NAME>_API_KEY`` environment value.
        model: Model identifier. Defaults to the configured model for the vendor.
        **settings: Generation settings (temperature, max_tokens, top_p, timeout,
            history_window) forwarded to the provider.

    Returns:
        A provider implementing ``generate``.

    Raises:
        ValueError: If an unsupported provider is requested.
    """
    provider = (name or config.DEFAULT_PROVIDER).lower()
    if provider not in SUPPORTED_PROVIDERS:
        msg = f"Unsupported provider: {name}"
        raise ValueError(msg)

    api_key = api_key or config.get_provider_api_key(provider)
    model = model or _DEFAULT_MODELS[provider]()

    if provider == "openai":
        return OpenAIProvider(
            api_key, model, base_url=config.OPENAI_BASE_URL, **settings
        )
    if provider == "deepseek":
        return DeepSeekProvider(api_key, model, **settings)
    if provider == "openrouter":
        return OpenRouterProvider(api_key, model, **settings)
    return GeminiProvider(api_key, model, **settings)


__all__ = [
    "BASE_SYSTEM_INSTRUCTION",
    "BaseProvider",
    "DeepSeekProvider",
    "GeminiProvider",
    "OpenAICompatibleProvider",
    "OpenAIProvider",
    "OpenRouterProvider",
    "ProviderName",
    "get_provider",
]
