"""
AppConfig: Immutable application configuration.

This module contains ONLY static configuration that doesn't change during a session.
All runtime state lives in the StageMachine, ProfileCollector and ConversationManager.

Design principles:
- Frozen dataclasses prevent accidental mutation
- Configuration loaded once at startup
- Environment variables (and a .env file) override config file values
- No global mutable state
"""

import json
import os
from dataclasses import dataclass, field
from typing import Any

from dotenv import load_dotenv

from logging_utils import get_logger
from user_profile import DEFAULT_QUESTIONS, Question

logger = get_logger(__name__)

ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
DEFAULT_CONFIG_PATH = os.path.join(ROOT_DIR, "inputs", "gymbuddy_config.json")

DEV_ORIGINS = ("http://localhost:4000", "http://localhost:8501")


@dataclass(frozen=True)
class ApiConfig:
    """Where the frontend finds the backend."""
    base_url: str = "http://localhost:3001/api"
    chat_endpoint: str = "/chat"
    health_endpoint: str = "/health"
    timeout: float = 60.0

    def url(self, endpoint: str) -> str:
        return f"{self.base_url.rstrip('/')}{endpoint}"

    @classmethod
    def from_env(cls, overrides: dict[str, Any] | None = None) -> "ApiConfig":
        overrides = overrides or {}
        return cls(
            base_url=os.environ.get("GYMBUDDY_API_URL", overrides.get("api_url", cls.base_url)),
            timeout=float(os.environ.get("GYMBUDDY_API_TIMEOUT", overrides.get("api_timeout", cls.timeout))),
        )


@dataclass(frozen=True)
class LLMConfig:
    """Immutable language-model configuration (backend side)."""
    api_key: str | None = None
    base_url: str | None = None
    model: str = "gpt-3.5-turbo"
    temperature: float = 0.7
    max_tokens: int = 500

    @property
    def api_key_configured(self) -> bool:
        return bool(self.api_key)

    @classmethod
    def from_env(cls) -> "LLMConfig":
        """Create LLMConfig from environment variables."""
        return cls(
            api_key=os.environ.get("OPENAI_API_KEY") or None,
            base_url=os.environ.get("OPENAI_BASE_URL") or None,
            model=os.environ.get("OPENAI_MODEL", cls.model),
            temperature=float(os.environ.get("OPENAI_TEMPERATURE", cls.temperature)),
            max_tokens=int(os.environ.get("OPENAI_MAX_TOKENS", cls.max_tokens)),
        )


@dataclass(frozen=True)
class ServerConfig:
    """Backend process settings."""
    host: str = "0.0.0.0"
    port: int = 3001
    environment: str = "development"
    frontend_url: str | None = None
    max_history_messages: int = 20
    llm_log_path: str | None = None

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def cors_origins(self) -> list[str]:
        """The deployed frontend in production, local dev servers otherwise."""
        if self.is_production:
            return [self.frontend_url] if self.frontend_url else []
        return list(DEV_ORIGINS)

    @classmethod
    def from_env(cls, overrides: dict[str, Any] | None = None) -> "ServerConfig":
        overrides = overrides or {}
        return cls(
            host=os.environ.get("HOST", overrides.get("host", cls.host)),
            port=int(os.environ.get("PORT", overrides.get("port", cls.port))),
            environment=os.environ.get("APP_ENV", overrides.get("environment", cls.environment)),
            frontend_url=os.environ.get("FRONTEND_URL", overrides.get("frontend_url")),
            max_history_messages=int(overrides.get("max_history_messages", cls.max_history_messages)),
            llm_log_path=os.environ.get("LLM_LOG_PATH") or overrides.get("llm_log_path"),
        )


@dataclass(frozen=True)
class AppConfig:
    """
    Complete immutable application configuration.

    This is the single source of truth for all static configuration.
    Create once at startup and pass to components that need it.
    """
    api: ApiConfig = field(default_factory=ApiConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    name: str = "AI Gym Buddy"
    version: str = "1.0.0"
    debug: bool = False
    questions: tuple[Question, ...] = DEFAULT_QUESTIONS


def load_config(config_path: str | None = None) -> AppConfig:
    """
    Load configuration from a JSON file and environment variables.

    Priority: Environment variables > Config file > Defaults

    Args:
        config_path: Path to JSON config file. If None, uses default location.

    Returns:
        Immutable AppConfig instance.
    """
    load_dotenv()

    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    config_data: dict[str, Any] = {}
    if os.path.exists(config_path):
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                config_data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Failed to load config from %s: %s", config_path, e)

    if not isinstance(config_data, dict):
        logger.warning("Failed to load config from %s: expected a JSON object", config_path)
        config_data = {}

    questions = DEFAULT_QUESTIONS
    if config_data.get("questions"):
        try:
            questions = tuple(Question.from_dict(q) for q in config_data["questions"])
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Ignoring invalid questions in %s: %s", config_path, e)

    debug = _env_flag("GYMBUDDY_DEBUG", bool(config_data.get("debug", False)))

    return AppConfig(
        api=ApiConfig.from_env(config_data),
        llm=LLMConfig.from_env(),
        server=ServerConfig.from_env(config_data),
        debug=debug,
        questions=questions,
    )


def _env_flag(key: str, default: bool) -> bool:
    """Read a true/false environment variable."""
    value = os.environ.get(key)
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")
