"""
Tests for provider error translation.
"""

import anthropic
import httpx
import openai
import pytest

from support_chat.core.exceptions import LLMUnavailableError
from support_chat.features.llm import errors
from support_chat.features.llm.errors import map_anthropic_error, map_http_error, map_openai_error

REQUEST = httpx.Request("POST", "https://api.example.com/v1/chat")


def openai_status_error(cls, status, code=None, message="error"):
    body = {"code": code, "message": message} if code else None
    return cls(message, response=httpx.Response(status, request=REQUEST), body=body)


class TestOpenAIErrors:
    @pytest.mark.parametrize(
        "error, expected",
        [
            (openai_status_error(openai.RateLimitError, 429, "insufficient_quota"), errors.QUOTA_EXCEEDED),
            (openai_status_error(openai.AuthenticationError, 401, "invalid_api_key"), errors.CONFIGURATION_ERROR),
            (openai_status_error(openai.RateLimitError, 429, "rate_limit_exceeded"), errors.BUSY),
            (openai_status_error(openai.BadRequestError, 400, "context_length_exceeded"), errors.CONVERSATION_TOO_LONG),
            (openai_status_error(openai.NotFoundError, 404, "model_not_found"), errors.MODEL_UNAVAILABLE),
            (openai_status_error(openai.InternalServerError, 503, "service_unavailable"), errors.TEMPORARILY_UNAVAILABLE),
            (openai_status_error(openai.AuthenticationError, 401), errors.CONFIGURATION_ERROR),
            (openai_status_error(openai.InternalServerError, 502), errors.TEMPORARILY_UNAVAILABLE),
            (openai_status_error(openai.BadRequestError, 400), errors.GENERIC),
            (openai.APIConnectionError(request=REQUEST), errors.CANNOT_CONNECT),
            (openai.APITimeoutError(request=REQUEST), errors.TIMED_OUT),
        ],
    )
    def test_mapping(self, error, expected):
        mapped = map_openai_error(error)

        assert isinstance(mapped, LLMUnavailableError)
        assert mapped.message == expected
        assert mapped.status_code == 503

    def test_provider_details_are_not_exposed(self):
        error = openai_status_error(
            openai.AuthenticationError, 401, "invalid_api_key", message="Incorrect API key provided: sk-abc"
        )
        mapped = map_openai_error(error)

        assert "sk-abc" not in mapped.message
        assert "invalid_api_key" not in mapped.message


class TestAnthropicErrors:
    def test_connection_and_timeout(self):
        assert map_anthropic_error(anthropic.APIConnectionError(request=REQUEST)).message == errors.CANNOT_CONNECT
        assert map_anthropic_error(anthropic.APITimeoutError(request=REQUEST)).message == errors.TIMED_OUT

    def test_status_codes(self):
        auth = anthropic.AuthenticationError("bad key", response=httpx.Response(401, request=REQUEST), body=None)
        limited = anthropic.RateLimitError("slow down", response=httpx.Response(429, request=REQUEST), body=None)

        assert map_anthropic_error(auth).message == errors.CONFIGURATION_ERROR
        assert map_anthropic_error(limited).message == errors.BUSY

    def test_prompt_too_long(self):
        error = anthropic.BadRequestError(
            "prompt is too long: 250000 tokens", response=httpx.Response(400, request=REQUEST), body=None
        )
        assert map_anthropic_error(error).message == errors.CONVERSATION_TOO_LONG


class TestHttpErrors:
    def test_timeout_and_transport(self):
        assert map_http_error(httpx.ReadTimeout("slow", request=REQUEST)).message == errors.TIMED_OUT
        assert map_http_error(httpx.ConnectError("refused", request=REQUEST)).message == errors.CANNOT_CONNECT

    def test_status_with_detail(self):
        response = httpx.Response(
            429, request=REQUEST, json={"error": {"message": "Resource has been exhausted (e.g. check quota)."}}
        )
        error = httpx.HTTPStatusError("429", request=REQUEST, response=response)

        assert map_http_error(error).message == errors.QUOTA_EXCEEDED

    def test_status_without_detail(self):
        response = httpx.Response(403, request=REQUEST, text="forbidden")
        error = httpx.HTTPStatusError("403", request=REQUEST, response=response)

        assert map_http_error(error).message == errors.CONFIGURATION_ERROR

    def test_unknown_error(self):
        assert map_http_error(RuntimeError("boom")).message == errors.GENERIC
