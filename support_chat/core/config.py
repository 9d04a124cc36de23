import os
from typing import List, Optional
import logging

from .exceptions import ConfigurationError


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


def _first_env(*names: str, default: str = "") -> str:
    for name in names:
        value = os.getenv(name)
        if value:
            return value
    return default


SUPPORTED_LLM_PROVIDERS = ("openai", "openrouter", "anthropic", "gemini")

_PROVIDER_KEY_ENV = {
    "openai": "OPENAI_API_KEY",
    "openrouter": "OPENROUTER_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "gemini": "GEMINI_API_KEY",
}

_PROVIDER_DEFAULT_MODEL = {
    "openai": "gpt-4o-mini",
    "openrouter": "openai/gpt-4o-mini",
    "anthropic": "claude-3-5-haiku-latest",
    "gemini": "gemini-2.5-flash",
}


class Settings:
    """
    Настройки приложения.

    Значения читаются из окружения при создании экземпляра, поэтому новый
    ``Settings()`` видит переменные, выставленные после импорта (на это
    опираются тесты).
    """

    def __init__(self):
        # === ОСНОВНЫЕ НАСТРОЙКИ ===
        self.APP_NAME: str = os.getenv("APP_NAME", "Support Chat API")
        self.APP_DESCRIPTION: str = "Customer support chat backend with LLM replies"
        self.APP_VERSION: str = "1.0.0"

        # === НАСТРОЙКИ СЕРВЕРА ===
        self.HOST: str = os.getenv("HOST", "0.0.0.0")
        self.PORT: int = int(os.getenv("PORT", "8000"))
        self.DEBUG: bool = _env_bool("DEBUG", "False")

        # === НАСТРОЙКИ БАЗЫ ДАННЫХ ===
        self.DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./support_chat.db")

        # === НАСТРОЙКИ CORS ===
        self.CORS_ORIGINS: List[str] = os.getenv("CORS_ORIGINS", "*").split(",")
        self.CORS_ALLOW_CREDENTIALS: bool = _env_bool("CORS_ALLOW_CREDENTIALS", "True")
        self.CORS_ALLOW_METHODS: List[str] = os.getenv("CORS_ALLOW_METHODS", "*").split(",")
        self.CORS_ALLOW_HEADERS: List[str] = os.getenv("CORS_ALLOW_HEADERS", "*").split(",")

        # === НАСТРОЙКИ БЕЗОПАСНОСТИ ===
        self.TRUSTED_HOSTS: List[str] = os.getenv("TRUSTED_HOSTS", "*").split(",")
        self.API_SECRET_KEY: Optional[str] = os.getenv("API_SECRET_KEY")

        # === НАСТРОЙКИ ЛОГИРОВАНИЯ ===
        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
        self.LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

        # === НАСТРОЙКИ LLM ===
        self.LLM_PROVIDER: str = os.getenv("LLM_PROVIDER", "openai").lower()
        self.LLM_API_KEY: str = _first_env(
            "LLM_API_KEY", _PROVIDER_KEY_ENV.get(self.LLM_PROVIDER, "OPENAI_API_KEY")
        )
        self.LLM_MODEL: str = os.getenv(
            "LLM_MODEL", _PROVIDER_DEFAULT_MODEL.get(self.LLM_PROVIDER, "gpt-4o-mini")
        )
        self.LLM_MAX_TOKENS: int = int(os.getenv("LLM_MAX_TOKENS", "500"))
        self.LLM_TEMPERATURE: float = float(os.getenv("LLM_TEMPERATURE", "0.7"))
        self.LLM_TIMEOUT: float = float(os.getenv("LLM_TIMEOUT", "30"))
        self.OPENAI_BASE_URL: Optional[str] = os.getenv("OPENAI_BASE_URL") or None
        self.OPENROUTER_REFERER: str = os.getenv("OPENROUTER_REFERER", "https://localhost")
        self.OPENROUTER_TITLE: str = os.getenv("OPENROUTER_TITLE", "Customer Support Agent")

        # === НАСТРОЙКИ ЧАТА ===
        self.MAX_MESSAGE_LENGTH: int = int(os.getenv("MAX_MESSAGE_LENGTH", "2000"))
        self.MAX_CONVERSATION_HISTORY: int = int(os.getenv("MAX_CONVERSATION_HISTORY", "10"))
        self.TOOLS_ENABLED: bool = _env_bool("TOOLS_ENABLED", "False")

        # === НАСТРОЙКИ ЛИМИТОВ ===
        self.RATE_LIMIT_CHAT_MAX: int = int(os.getenv("RATE_LIMIT_CHAT_MAX", "20"))
        self.RATE_LIMIT_CHAT_WINDOW: int = int(os.getenv("RATE_LIMIT_CHAT_WINDOW", "3600"))
        self.RATE_LIMIT_CONVERSATION_MAX: int = int(os.getenv("RATE_LIMIT_CONVERSATION_MAX", "5"))
        self.RATE_LIMIT_CONVERSATION_WINDOW: int = int(os.getenv("RATE_LIMIT_CONVERSATION_WINDOW", "3600"))
        self.RATE_LIMIT_GLOBAL_MAX: int = int(os.getenv("RATE_LIMIT_GLOBAL_MAX", "100"))
        self.RATE_LIMIT_GLOBAL_WINDOW: int = int(os.getenv("RATE_LIMIT_GLOBAL_WINDOW", "900"))
        self.RATE_LIMIT_CLEANUP_INTERVAL: int = int(os.getenv("RATE_LIMIT_CLEANUP_INTERVAL", "300"))
        # число reverse proxy перед приложением; 0 = адрес из сокета
        self.TRUSTED_PROXY_HOPS: int = int(os.getenv("TRUSTED_PROXY_HOPS", "0"))

        # === НАСТРОЙКИ КЭША ===
        self.KNOWLEDGE_CACHE_TTL: int = int(os.getenv("KNOWLEDGE_CACHE_TTL", "60"))
        self.KNOWLEDGE_SHARED_CACHE_TTL: int = int(os.getenv("KNOWLEDGE_SHARED_CACHE_TTL", "300"))
        self.REDIS_ENABLED: bool = _env_bool("REDIS_ENABLED", "False")
        self.REDIS_URL: Optional[str] = os.getenv("REDIS_URL")

        # === НАСТРОЙКИ КАНАЛОВ ===
        self.TELEGRAM_ENABLED: bool = _env_bool("TELEGRAM_ENABLED", "False")
        self.TELEGRAM_BOT_TOKEN: Optional[str] = os.getenv("TELEGRAM_BOT_TOKEN")
        self.TELEGRAM_WEBHOOK_SECRET: Optional[str] = os.getenv("TELEGRAM_WEBHOOK_SECRET")
        self.WHATSAPP_ENABLED: bool = _env_bool("WHATSAPP_ENABLED", "False")
        self.WHATSAPP_ACCESS_TOKEN: Optional[str] = os.getenv("WHATSAPP_ACCESS_TOKEN")
        self.WHATSAPP_PHONE_NUMBER_ID: Optional[str] = os.getenv("WHATSAPP_PHONE_NUMBER_ID")
        self.WHATSAPP_VERIFY_TOKEN: Optional[str] = os.getenv("WHATSAPP_VERIFY_TOKEN")

    def validate(self, skip_llm: bool = False) -> None:
        """
        Проверка обязательных настроек перед запуском.

        Raises:
            ConfigurationError: со всеми найденными проблемами, по одной на строку
        """
        errors = []

        if self.LLM_PROVIDER not in SUPPORTED_LLM_PROVIDERS:
            errors.append(
                f"LLM_PROVIDER must be one of {', '.join(SUPPORTED_LLM_PROVIDERS)} "
                f"(got '{self.LLM_PROVIDER}')"
            )

        if not skip_llm and not self.LLM_API_KEY:
            errors.append("LLM API key is required (set LLM_API_KEY or the provider-specific key)")

        if not self.DATABASE_URL:
            errors.append("DATABASE_URL is required")

        if self.REDIS_ENABLED and not self.REDIS_URL:
            errors.append("REDIS_URL is required when REDIS_ENABLED=true")

        if self.TRUSTED_PROXY_HOPS < 0:
            errors.append("TRUSTED_PROXY_HOPS must not be negative")

        if self.MAX_MESSAGE_LENGTH < 1:
            errors.append("MAX_MESSAGE_LENGTH must be positive")

        if errors:
            raise ConfigurationError("Configuration validation failed:\n" + "\n".join(errors))

    def setup_logging(self):
        """
        Настройка логирования приложения
        """
        logging.basicConfig(
            level=getattr(logging, self.LOG_LEVEL.upper(), logging.INFO),
            format=self.LOG_FORMAT
        )

        if self.DEBUG:
            logging.getLogger("uvicorn").setLevel(logging.DEBUG)
            logging.getLogger("uvicorn.access").setLevel(logging.DEBUG)

        # httpx пишет каждый запрос к провайдеру на уровне INFO
        logging.getLogger("httpx").setLevel(logging.WARNING)

    def get_cors_config(self) -> dict:
        """
        Получить конфигурацию CORS
        """
        return {
            "allow_origins": self.CORS_ORIGINS,
            "allow_credentials": self.CORS_ALLOW_CREDENTIALS,
            "allow_methods": self.CORS_ALLOW_METHODS,
            "allow_headers": self.CORS_ALLOW_HEADERS,
        }

    def get_trusted_hosts_config(self) -> dict:
        """
        Получить конфигурацию доверенных хостов
        """
        return {
            "allowed_hosts": self.TRUSTED_HOSTS
        }

    def get_app_config(self) -> dict:
        """
        Получить конфигурацию FastAPI приложения
        """
        return {
            "title": self.APP_NAME,
            "description": self.APP_DESCRIPTION,
            "version": self.APP_VERSION,
            "debug": self.DEBUG
        }
