"""
Shared FastAPI dependencies.
"""
import logging
import secrets
from typing import Optional

from fastapi import Header, Request

from .exceptions import ConfigurationError, UnauthorizedError

logger = logging.getLogger(__name__)


def get_context(request: Request):
    """Application context built at startup (see ``support_chat.bootstrap``)."""
    return request.app.state.context


def verify_api_key(request: Request, x_api_key: Optional[str] = Header(None, alias="X-API-KEY")) -> None:
    """
    Verify API key from request headers.

    Args:
        x_api_key: API key from X-API-KEY header

    Raises:
        ConfigurationError: If API_SECRET_KEY is not configured on the server
        UnauthorizedError: If API key is invalid or missing
    """
    expected = get_context(request).settings.API_SECRET_KEY
    if not expected:
        logger.error("❌ API_SECRET_KEY not configured on server")
        raise ConfigurationError("API authentication not configured on server")

    if not x_api_key or not secrets.compare_digest(x_api_key, expected):
        logger.warning("⛔ Invalid API key attempt")
        raise UnauthorizedError("Invalid or missing API key", status_code=403)
