import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, Optional, TypeVar

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

from .exceptions import PersistenceError

logger = logging.getLogger(__name__)

T = TypeVar("T")

Base = declarative_base()


def create_db_engine(database_url: str) -> Engine:
    """Создание движка базы данных по URL"""
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url or database_url in ("sqlite://", "sqlite:///"):
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, **kwargs)
    return create_engine(database_url, pool_pre_ping=True)


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)


def init_db(engine: Engine):
    """Инициализация базы данных - создание всех таблиц"""
    # Модели должны быть импортированы до create_all
    from ..features.conversation import models as _conversation_models  # noqa: F401
    from ..features.knowledge import models as _knowledge_models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info("✅ Database tables are ready")


def check_connection(session_factory: sessionmaker) -> Optional[str]:
    """
    Проверка подключения к базе данных.

    Returns:
        None, если ``SELECT 1`` прошёл, иначе текст ошибки
    """
    try:
        with session_factory() as db:
            db.execute(text("SELECT 1"))
        return None
    except SQLAlchemyError as e:
        logger.error(f"❌ Database health check failed: {e}")
        return str(e)


def utcnow() -> datetime:
    """Время по умолчанию для колонок моделей, с точностью до микросекунд"""
    return datetime.now(timezone.utc)


def new_uuid() -> str:
    return str(uuid.uuid4())


def run_in_session(session_factory: sessionmaker, operation: Callable[[Session], T]) -> T:
    """
    Выполнить ``operation`` в новой сессии.

    Raises:
        PersistenceError: любая ошибка SQLAlchemy, после rollback
    """
    with session_factory() as db:
        try:
            return operation(db)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"❌ Database operation failed: {e}")
            raise PersistenceError(cause=e) from e
