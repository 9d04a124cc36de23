"""
Системные маршруты для проверки здоровья и статуса приложения.
"""
import asyncio
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from ...core.database import check_connection
from ...core.dependencies import get_context

system_router = APIRouter(tags=["system"])


@system_router.get("/health")
async def health_check(context=Depends(get_context)):
    """
    Проверка здоровья приложения: БД, LLM провайдер и Redis.

    Состояние Redis выводится, но на общий статус не влияет.
    """
    db_error = await asyncio.to_thread(check_connection, context.session_factory)
    llm_healthy = await context.llm_service.health_check()

    if context.shared_store is None:
        cache_state = "disabled"
    else:
        cache_state = "up" if await context.shared_store.ping() else "down"

    healthy = db_error is None and llm_healthy
    return JSONResponse(
        status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "healthy" if healthy else "unhealthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "services": {
                "database": "up" if db_error is None else "down",
                "llm": "up" if llm_healthy else "down",
                "cache": cache_state,
            },
        },
    )


@system_router.get("/")
async def root(context=Depends(get_context)):
    """
    Корневой эндпоинт API.
    """
    return {
        "message": context.settings.APP_NAME,
        "status": "running",
        "version": context.settings.APP_VERSION,
    }
