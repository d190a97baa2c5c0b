"""
Pulseflow Debug Agent Configuration Management

Centralized configuration using Pydantic Settings for type-safe environment variable management.
"""

import os
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # ========================================
    # Pulseflow Platform API
    # ========================================
    PULSEFLOW_API_URL: str = Field(
        default="https://pulseflow.co/api/automations",
        description="Automations endpoint (GET {url}/{id}?password={secret})",
    )
    PULSEFLOW_API_PASSWORD: Optional[str] = Field(
        default=None, description="Shared secret passed as ?password="
    )

    # ========================================
    # HTTP Client Configuration
    # ========================================
    REQUEST_TIMEOUT: int = Field(
        default=10, ge=1, le=60, description="HTTP request timeout (seconds)"
    )
    MAX_RETRIES: int = Field(default=3, ge=1, le=10, description="Maximum fetch attempts")
    RETRY_DELAY: float = Field(
        default=1.0, ge=0.0, le=60.0, description="Base delay for exponential backoff (seconds)"
    )

    # ========================================
    # Diagnosis / Report
    # ========================================
    EXECUTION_HISTORY_LIMIT: int = Field(
        default=10, ge=1, le=100, description="Executions considered per automation"
    )
    RECENT_EXECUTIONS_SHOWN: int = Field(
        default=5, ge=1, le=20, description="Executions listed in the report history"
    )
    INPUT_PREVIEW_CHARS: int = Field(
        default=500, ge=50, le=4000, description="Max characters of failing node input in report"
    )

    # ========================================
    # LLM Configuration
    # ========================================
    OPENAI_API_KEY: Optional[str] = Field(default=None, description="OpenAI API key")
    LLM_MODEL: str = Field(default="gpt-3.5-turbo", description="Chat completion model")
    LLM_MAX_TOKENS: int = Field(default=200, ge=16, le=4096, description="Max reply tokens")
    LLM_TEMPERATURE: float = Field(default=0.2, ge=0.0, le=2.0, description="Sampling temperature")
    DEBUGGING_GUIDE_PATH: str = Field(
        default="debugging-for-pulseflow.md",
        description="Markdown debugging guide injected into the system prompt",
    )
    DEBUGGING_GUIDE_CHARS: int = Field(
        default=3000, ge=0, le=20000, description="Characters of the guide sent to the LLM"
    )

    # ========================================
    # Telegram Bot
    # ========================================
    TELEGRAM_BOT_TOKEN: Optional[str] = Field(default=None, description="Telegram bot token")
    SESSION_TTL_SECONDS: int = Field(
        default=3600, ge=60, description="Idle seconds before a chat session is dropped"
    )
    MAX_HISTORY_TURNS: int = Field(
        default=10, ge=0, le=50, description="Conversation turns kept per session"
    )

    # ========================================
    # Server Configuration
    # ========================================
    API_HOST: str = Field(default="0.0.0.0", description="API server bind address")
    API_PORT: int = Field(default=3001, ge=1024, le=65535, description="API server port")

    # ========================================
    # Logging Configuration
    # ========================================
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    LOG_FILE_PATH: Optional[str] = Field(
        default="logs/pulseflow_debug.log", description="Log file path (empty disables file sink)"
    )

    LOG_ROTATION: str = Field(default="1 day", description="Log rotation interval")

    LOG_RETENTION: str = Field(default="30 days", description="Log retention period")

    LOG_FORMAT: str = Field(
        default="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        description="Log format string",
    )

    # ========================================
    # Development/Debug
    # ========================================
    DEBUG: bool = Field(default=False, description="Enable debug mode")

    TESTING: bool = Field(default=False, description="Enable testing mode")

    class Config:
        """Pydantic configuration"""

        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"  # Ignore extra environment variables

    @property
    def llm_enabled(self) -> bool:
        """True when an OpenAI key is configured"""
        return bool(self.OPENAI_API_KEY)

    def load_debugging_guide(self) -> str:
        """
        Read the debugging guide, truncated to DEBUGGING_GUIDE_CHARS.

        Returns an empty string when the file is missing.
        """
        path = self.DEBUGGING_GUIDE_PATH
        if not path or not os.path.exists(path):
            return ""
        with open(path, "r", encoding="utf-8") as f:
            return f.read()[: self.DEBUGGING_GUIDE_CHARS]


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached Settings instance.

    This function uses lru_cache to ensure Settings is only instantiated once.
    Subsequent calls will return the same instance.

    Returns:
        Settings: Cached settings instance

    Example:
        >>> from src.config import get_settings
        >>> settings = get_settings()
        >>> print(settings.PULSEFLOW_API_URL)
        https://pulseflow.co/api/automations
    """
    return Settings()


# Convenience function for direct import
def load_env_vars() -> None:
    """
    Explicitly load environment variables from .env file.

    This is useful for scripts that need to ensure .env is loaded.
    """
    from dotenv import load_dotenv

    env_file = os.path.join(os.path.dirname(__file__), "..", ".env")
    if os.path.exists(env_file):
        load_dotenv(env_file)
