"""
Системные функции - здоровье приложения.

Этот модуль содержит:
- routes: маршруты для проверки здоровья системы (/health, /)
"""

from .routes import system_router

__all__ = ["system_router"]
