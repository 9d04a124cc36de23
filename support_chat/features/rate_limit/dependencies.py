"""
FastAPI dependencies applying rate limit policies per client IP.
"""

import logging
from dataclasses import dataclass
from typing import Dict

from fastapi import Request, Response

from ...core.config import Settings
from ...core.exceptions import RateLimitExceededError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitPolicy:
    scope: str
    max_requests: int
    window_seconds: int
    message: str
    # only the chat policy reports its window on successful responses
    expose_headers: bool = False


def build_policies(settings: Settings) -> Dict[str, RateLimitPolicy]:
    chat_hours = max(1, settings.RATE_LIMIT_CHAT_WINDOW // 3600)
    conversation_hours = max(1, settings.RATE_LIMIT_CONVERSATION_WINDOW // 3600)
    return {
        "chat": RateLimitPolicy(
            scope="chat",
            max_requests=settings.RATE_LIMIT_CHAT_MAX,
            window_seconds=settings.RATE_LIMIT_CHAT_WINDOW,
            message=(
                f"Rate limit exceeded. You can send {settings.RATE_LIMIT_CHAT_MAX} messages per "
                f"{'hour' if chat_hours == 1 else f'{chat_hours} hours'}. "
                "Try again in {retry_after} seconds."
            ),
            expose_headers=True,
        ),
        "conversation": RateLimitPolicy(
            scope="conversation",
            max_requests=settings.RATE_LIMIT_CONVERSATION_MAX,
            window_seconds=settings.RATE_LIMIT_CONVERSATION_WINDOW,
            message=(
                f"Too many conversations created. Limit: {settings.RATE_LIMIT_CONVERSATION_MAX} per "
                f"{'hour' if conversation_hours == 1 else f'{conversation_hours} hours'}. "
                "Try again in {retry_after} seconds."
            ),
        ),
        "global": RateLimitPolicy(
            scope="global",
            max_requests=settings.RATE_LIMIT_GLOBAL_MAX,
            window_seconds=settings.RATE_LIMIT_GLOBAL_WINDOW,
            message="Too many requests. Please slow down and try again in {retry_after} seconds.",
        ),
    }


def get_client_ip(request: Request, trusted_hops: int = 0) -> str:
    """
    Client address used as the rate limit key.

    Each trusted proxy appends the address it received the request from to
    ``X-Forwarded-For``, so with ``trusted_hops`` proxies the client is the
    entry ``trusted_hops`` positions from the right. Entries further left are
    supplied by the caller and are ignored.
    """
    peer = request.client.host if request.client and request.client.host else "unknown"
    if trusted_hops <= 0:
        return peer

    forwarded = [hop.strip() for hop in request.headers.get("x-forwarded-for", "").split(",") if hop.strip()]
    if not forwarded:
        return peer
    return forwarded[max(len(forwarded) - trusted_hops, 0)]


async def enforce_rate_limit(request: Request, response: Response, scope: str):
    """
    Count the request against ``scope`` for the caller's IP.

    Raises:
        RateLimitExceededError: when the window is exhausted
    """
    context = request.app.state.context
    policy = context.rate_limit_policies[scope]
    identifier = f"{policy.scope}:{get_client_ip(request, context.settings.TRUSTED_PROXY_HOPS)}"

    result = await context.rate_limiter.consume(identifier, policy.max_requests, policy.window_seconds)
    if not result.allowed:
        logger.warning(f"⛔ Rate limit '{scope}' hit by {identifier}")
        raise RateLimitExceededError(
            policy.message.format(retry_after=result.retry_after),
            retry_after=result.retry_after,
            headers=result.headers(),
        )

    if policy.expose_headers:
        response.headers.update(result.headers())


async def global_rate_limit(request: Request, response: Response):
    await enforce_rate_limit(request, response, "global")


async def chat_rate_limit(request: Request, response: Response):
    await enforce_rate_limit(request, response, "chat")
