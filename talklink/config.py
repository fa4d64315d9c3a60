"""Configuration management for the TalkLink response engine."""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

env_path = Path(__file__).parent.parent / ".env"

if env_path.exists():
    load_dotenv(env_path)

SUPPORTED_PROVIDERS = ("openai", "deepseek", "openrouter", "gemini")


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


class Config:
    """Application configuration loaded from environment variables."""

    # Provider Configuration
    DEFAULT_PROVIDER: str = os.getenv("DEFAULT_PROVIDER", "openai").lower()

    @classmethod
    def get_provider_api_key(cls, provider: str) -> str:
        """Get the API key for a generative provider from environment variables.

        Args:
            provider: Provider name, e.g. "openai" or "gemini".

        Returns:
            API key from environment or empty string if not set.
        """
        return os.getenv(f"{provider.upper()}_API_KEY", "")

    OPENAI_BASE_URL: str | None = os.getenv("OPENAI_BASE_URL")

    # Logging Configuration
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    OPENAI_LOG_LEVEL: str = os.getenv("OPENAI_LOG_LEVEL", "WARNING").upper()
    HTTPX_LOG_LEVEL: str = os.getenv("HTTPX_LOG_LEVEL", "WARNING").upper()

    # Application Settings
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")

    # Chat Model Configuration
    OPENAI_CHAT_MODEL: str = os.getenv("OPENAI_CHAT_MODEL", "gpt-4o-mini")
    DEEPSEEK_CHAT_MODEL: str = os.getenv("DEEPSEEK_CHAT_MODEL", "deepseek-chat")
    OPENROUTER_CHAT_MODEL: str = os.getenv(
        "OPENROUTER_CHAT_MODEL", "deepseek/deepseek-r1-0528:free"
    )
    GEMINI_CHAT_MODEL: str = os.getenv("GEMINI_CHAT_MODEL", "gemini-1.5-flash")
    CHAT_MAX_TOKENS: int = int(os.getenv("CHAT_MAX_TOKENS", "200"))
    CHAT_TEMPERATURE: float = float(os.getenv("CHAT_TEMPERATURE", "0.7"))
    CHAT_TOP_P: float = float(os.getenv("CHAT_TOP_P", "0.9"))

    # Provider Call Limits
    PROVIDER_TIMEOUT_SECONDS: float = float(
        os.getenv("PROVIDER_TIMEOUT_SECONDS", "8.0")
    )
    PROVIDER_HISTORY_WINDOW: int = int(os.getenv("PROVIDER_HISTORY_WINDOW", "6"))
    FORWARD_CONVERSATION_HISTORY: bool = _env_flag("FORWARD_CONVERSATION_HISTORY")

    # Retrieval Configuration
    RETRIEVAL_THRESHOLD: float = float(os.getenv("RETRIEVAL_THRESHOLD", "0.15"))
    RETRIEVAL_KEYWORD_WEIGHT: float = float(
        os.getenv("RETRIEVAL_KEYWORD_WEIGHT", "0.4")
    )
    RETRIEVAL_TEXT_WEIGHT: float = float(os.getenv("RETRIEVAL_TEXT_WEIGHT", "0.6"))

    # Datastore Configuration
    CHAT_DB_PATH: Path = Path(os.getenv("CHAT_DB_PATH", "data/talklink.db"))

    # API Header Configuration
    API_USER_AGENT: str = os.getenv("API_USER_AGENT", "TalkLink/1.0")
    API_APP_TITLE: str | None = os.getenv("API_APP_TITLE", "Talk Link Chatbots Hub")
    API_REFERER: str | None = os.getenv("API_REFERER")

    @classmethod
    def validate(cls, provider: str | None = None) -> None:
        """Validate required configuration values.

        Args:
            provider: Provider to validate. Defaults to DEFAULT_PROVIDER.

        Raises:
            ValueError: If the provider is unknown or has no API key set.
        """
        provider = (provider or cls.DEFAULT_PROVIDER).lower()
        if provider not in SUPPORTED_PROVIDERS:
            msg = (
                f"Unsupported provider '{provider}'. "
                f"Choose one of: {', '.join(SUPPORTED_PROVIDERS)}."
            )
            raise ValueError(msg)
        if not cls.get_provider_api_key(provider):
            env_name = f"{provider.upper()}_API_KEY"
            msg = f"{env_name} is required. Please set it in .env file or environment."
            raise ValueError(msg)

    @classmethod
    def is_development(cls) -> bool:
        """Check if running in development environment.

        Returns:
            True if environment is development.
        """
        return cls.ENVIRONMENT.lower() == "development"

    @classmethod
    def is_production(cls) -> bool:
        """Check if running in production environment.

        Returns:
            True if environment is production.
        """
        return cls.ENVIRONMENT.lower() == "production"

    @classmethod
    def setup_logging(cls) -> None:
        """Setup basic logging configuration.

        Configure logging once at application startup with:
        - Console output for all levels
        - Simple, readable format
        - Configurable level via environment variable
        """
        logging.basicConfig(
            level=getattr(logging, cls.LOG_LEVEL, logging.INFO),
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )

        # HTTP client libraries are noisy at INFO
        logging.getLogger("openai").setLevel(
            getattr(logging, cls.OPENAI_LOG_LEVEL, logging.WARNING)
        )
        logging.getLogger("httpx").setLevel(
            getattr(logging, cls.HTTPX_LOG_LEVEL, logging.WARNING)
        )

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        """Get a logger with the specified name.

        Args:
            name: Logger name (typically __name__)

        Returns:
            Logger instance
        """
        return logging.getLogger(name)

    @classmethod
    def get_api_headers(cls) -> dict[str, str]:
        """Build default headers for outbound API calls.

        Returns:
            Mapping of header names to values used on outbound HTTP requests.
        """
        headers: dict[str, str] = {}

        if cls.API_USER_AGENT:
            headers["User-Agent"] = cls.API_USER_AGENT

        return headers


config = Config()
