"""
Кастомные исключения приложения.

Каждое исключение несёт стабильный ``code`` и HTTP статус, поэтому
обработчики в ``core.middleware`` отдают любое из них, не зная
конкретного класса.
"""

from typing import Any, Dict, Optional


class SupportChatError(Exception):
    """Базовое исключение приложения."""

    code: str = "INTERNAL_ERROR"
    status_code: int = 500

    def __init__(
        self,
        message: str,
        details: Optional[Any] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.code, "message": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationError(SupportChatError):
    """Некорректные входные данные."""

    code = "VALIDATION_ERROR"
    status_code = 400


class NotFoundError(SupportChatError):
    """Запрошенный ресурс не найден."""

    code = "NOT_FOUND"
    status_code = 404


class LLMUnavailableError(SupportChatError):
    """LLM провайдер недоступен или вернул ошибку."""

    code = "LLM_ERROR"
    status_code = 503


class RateLimitExceededError(SupportChatError):
    """Превышен лимит частоты запросов."""

    code = "RATE_LIMIT_ERROR"
    status_code = 429

    def __init__(
        self,
        message: str = "Too many requests. Please try again later.",
        retry_after: int = 0,
        headers: Optional[Dict[str, str]] = None,
    ):
        super().__init__(message, details={"retryAfter": retry_after})
        self.retry_after = retry_after
        self.headers = headers or {}


class ConfigurationError(SupportChatError):
    """Ошибка конфигурации."""

    code = "CONFIGURATION_ERROR"
    status_code = 500


class PersistenceError(SupportChatError):
    """Ошибка при работе с базой данных."""

    code = "DATABASE_ERROR"
    status_code = 500

    def __init__(self, message: str = "A database error occurred.", cause: Optional[Exception] = None):
        super().__init__(message)
        self.cause = cause


class UnauthorizedError(SupportChatError):
    """Отсутствует или неверный ключ доступа."""

    code = "UNAUTHORIZED"
    status_code = 401


class ChannelDeliveryError(SupportChatError):
    """Не удалось доставить ответ через внешний канал."""

    code = "CHANNEL_ERROR"
    status_code = 502
