from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
import logging
import time

from .config import Settings
from .exceptions import PersistenceError, RateLimitExceededError, SupportChatError

# Настройка логирования
logger = logging.getLogger(__name__)


def setup_middleware(app: FastAPI, settings: Settings):
    """
    Настройка middleware для приложения
    """

    @app.middleware("http")
    async def logging_middleware(request: Request, call_next):
        start_time = time.time()
        client_host = request.client.host if request.client else "unknown"
        logger.debug(f"Входящий запрос: {request.method} {request.url.path} от {client_host}")

        response = await call_next(request)

        process_time = time.time() - start_time

        # Разный уровень логирования в зависимости от статуса
        if response.status_code >= 500:
            logger.error(
                f"❌ {request.method} {request.url.path} from {client_host} | "
                f"Статус: {response.status_code} | Время: {process_time:.4f}s"
            )
        elif response.status_code >= 400:
            logger.warning(
                f"⚠️ {request.method} {request.url.path} from {client_host} | "
                f"Статус: {response.status_code} | Время: {process_time:.4f}s"
            )
        else:
            logger.info(
                f"✅ {request.method} {request.url.path} from {client_host} | "
                f"Статус: {response.status_code} | Время: {process_time:.4f}s"
            )

        return response

    app.add_middleware(
        CORSMiddleware,
        **settings.get_cors_config()
    )

    app.add_middleware(
        TrustedHostMiddleware,
        **settings.get_trusted_hosts_config()
    )


def _field_errors(exc: RequestValidationError) -> list:
    details = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part != "body"]
        details.append({"field": ".".join(location), "message": error.get("msg", "")})
    return details


def setup_exception_handlers(app: FastAPI):
    """
    Настройка глобальных обработчиков исключений
    """

    @app.exception_handler(RateLimitExceededError)
    async def rate_limit_exception_handler(request: Request, exc: RateLimitExceededError):
        logger.warning(f"⛔ Rate limit exceeded: {request.method} {request.url.path}, retry after {exc.retry_after}s")
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_dict(),
            headers=exc.headers,
        )

    @app.exception_handler(PersistenceError)
    async def persistence_exception_handler(request: Request, exc: PersistenceError):
        logger.error(f"❌ Database error on {request.url.path}: {exc.cause or exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.code, "message": "A database error occurred. Please try again later."},
        )

    @app.exception_handler(SupportChatError)
    async def app_exception_handler(request: Request, exc: SupportChatError):
        if exc.status_code >= 500:
            logger.error(f"❌ {exc.code} on {request.url.path}: {exc.message}")
        else:
            logger.info(f"{exc.code} on {request.url.path}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "error": "VALIDATION_ERROR",
                "message": "Invalid request",
                "details": _field_errors(exc),
            },
        )

    # Глобальный обработчик исключений
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Необработанная ошибка: {str(exc)}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "INTERNAL_ERROR", "message": "An unexpected error occurred."}
        )
