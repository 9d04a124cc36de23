"""
Translation of provider failures into support-safe ``LLMUnavailableError``.

Provider codes and raw messages are logged here and never reach the client.
"""

import logging
from typing import Optional

import anthropic
import httpx
import openai

from ...core.exceptions import LLMUnavailableError

logger = logging.getLogger(__name__)

QUOTA_EXCEEDED = "AI service quota exceeded. Please contact support or try again later."
CONFIGURATION_ERROR = "AI service configuration error. Please contact support."
BUSY = "AI service is temporarily busy. Please try again in a moment."
CONVERSATION_TOO_LONG = "Conversation is too long. Please start a new conversation."
MODEL_UNAVAILABLE = "AI model unavailable. Please contact support."
TEMPORARILY_UNAVAILABLE = "AI service is temporarily unavailable. Please try again later."
CANNOT_CONNECT = "Cannot connect to AI service. Please try again later."
TIMED_OUT = "AI service request timed out. Please try again."
GENERIC = "Unable to generate response at this time. Please try again."


def _by_status(status: Optional[int]) -> Optional[str]:
    if status in (401, 403):
        return CONFIGURATION_ERROR
    if status == 429:
        return BUSY
    if status == 404:
        return MODEL_UNAVAILABLE
    if status in (500, 502, 503, 504, 529):
        return TEMPORARILY_UNAVAILABLE
    return None


def map_openai_error(error: Exception) -> LLMUnavailableError:
    """OpenAI and OpenRouter share the OpenAI SDK error types."""
    code = getattr(error, "code", None)
    status = getattr(error, "status_code", None)
    logger.error(f"❌ OpenAI-compatible API error: type={type(error).__name__}, status={status}, code={code}, {error}")

    if isinstance(error, openai.APITimeoutError):
        message = TIMED_OUT
    elif isinstance(error, openai.APIConnectionError):
        message = CANNOT_CONNECT
    elif code == "insufficient_quota":
        message = QUOTA_EXCEEDED
    elif code == "invalid_api_key":
        message = CONFIGURATION_ERROR
    elif code == "rate_limit_exceeded":
        message = BUSY
    elif code == "context_length_exceeded":
        message = CONVERSATION_TOO_LONG
    elif code == "model_not_found":
        message = MODEL_UNAVAILABLE
    elif code == "service_unavailable":
        message = TEMPORARILY_UNAVAILABLE
    elif "timeout" in str(error).lower():
        message = TIMED_OUT
    else:
        message = _by_status(status) or GENERIC
    return LLMUnavailableError(message)


def map_anthropic_error(error: Exception) -> LLMUnavailableError:
    status = getattr(error, "status_code", None)
    logger.error(f"❌ Anthropic API error: type={type(error).__name__}, status={status}, {error}")

    if isinstance(error, anthropic.APITimeoutError):
        message = TIMED_OUT
    elif isinstance(error, anthropic.APIConnectionError):
        message = CANNOT_CONNECT
    elif isinstance(error, anthropic.BadRequestError) and "too long" in str(error).lower():
        message = CONVERSATION_TOO_LONG
    elif "credit balance" in str(error).lower():
        message = QUOTA_EXCEEDED
    else:
        message = _by_status(status) or GENERIC
    return LLMUnavailableError(message)


def map_http_error(error: Exception) -> LLMUnavailableError:
    """Errors raised by httpx when calling a REST provider directly (Gemini)."""
    if isinstance(error, httpx.TimeoutException):
        logger.error(f"❌ LLM HTTP timeout: {error}")
        return LLMUnavailableError(TIMED_OUT)
    if isinstance(error, httpx.TransportError):
        logger.error(f"❌ LLM HTTP connection error: {error}")
        return LLMUnavailableError(CANNOT_CONNECT)
    if isinstance(error, httpx.HTTPStatusError):
        status = error.response.status_code
        try:
            detail = error.response.json().get("error", {}).get("message", "")
        except ValueError:
            detail = error.response.text[:200]
        logger.error(f"❌ LLM HTTP error: {status} - {detail}")

        lowered = detail.lower()
        if "quota" in lowered:
            return LLMUnavailableError(QUOTA_EXCEEDED)
        if "api key" in lowered:
            return LLMUnavailableError(CONFIGURATION_ERROR)
        if "unavailable" in lowered:
            return LLMUnavailableError(TEMPORARILY_UNAVAILABLE)
        return LLMUnavailableError(_by_status(status) or GENERIC)

    logger.error(f"❌ LLM request failed: {error}")
    return LLMUnavailableError(GENERIC)
