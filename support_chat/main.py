from contextlib import asynccontextmanager
from typing import Optional
import logging

from dotenv import load_dotenv
from fastapi import FastAPI

# Загружаем переменные окружения из .env (в Docker они уже установлены)
load_dotenv(override=False)

from .bootstrap import AppContext, build_context
from .core.config import Settings
from .core.middleware import setup_exception_handlers, setup_middleware
from .features.channels.routes import webhook_router
from .features.chat.routes import chat_router
from .features.knowledge.routes import knowledge_router
from .features.system.routes import system_router

logger = logging.getLogger(__name__)


def create_app(context: Optional[AppContext] = None, settings: Optional[Settings] = None) -> FastAPI:
    """
    Создание FastAPI приложения.

    Args:
        context: готовые сервисы (тесты); если не передан, собирается из настроек при старте
        settings: настройки, когда context не передан
    """
    settings = context.settings if context is not None else (settings or Settings())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "context", None) is None:
            settings.setup_logging()
            # ConfigurationError здесь прерывает запуск
            settings.validate()
            app.state.context = build_context(settings)

        await app.state.context.start()
        try:
            yield
        finally:
            await app.state.context.stop()

    app = FastAPI(**settings.get_app_config(), lifespan=lifespan)
    app.state.context = context

    # Настраиваем middleware
    setup_middleware(app, settings)

    # Настраиваем обработчики исключений
    setup_exception_handlers(app)

    # Подключаем роутеры
    app.include_router(system_router)
    app.include_router(chat_router)
    app.include_router(webhook_router)
    app.include_router(knowledge_router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    run_settings = Settings()
    uvicorn.run("support_chat.main:app", host=run_settings.HOST, port=run_settings.PORT, reload=run_settings.DEBUG)
