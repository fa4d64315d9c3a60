"""Error types raised by the response engine."""

from __future__ import annotations


class TalkLinkError(Exception):
    """Base class for all engine errors."""


class InputError(TalkLinkError, ValueError):
    """Empty or invalid identifiers or message text, rejected before side effects."""


class PersistenceError(TalkLinkError):
    """A datastore read or write failed.

    Fatal to the current request. Callers may retry the whole request.
    """

    retryable = True


class ProviderError(TalkLinkError):
    """A generative backend failed (HTTP error, timeout or malformed payload).

    Never escapes a provider: it is carried inside a failed ``ProviderResponse``
    so the caller can show ``diagnostic`` to the end user.
    """

    def __init__(
        self,
        message: str,
        *,
        provider_name: str,
        diagnostic: str,
        status_code: int | None = None,
    ) -> None:
        """Initialize the error.

        Args:
            message: Technical description for logs.
            provider_name: Name of the provider that failed.
            diagnostic: Human-readable text that is safe to show in a chat.
            status_code: HTTP status code, when the failure had one.
        """
        super().__init__(message)
        self.provider_name = provider_name
        self.diagnostic = diagnostic
        self.status_code = status_code
