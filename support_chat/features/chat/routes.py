import logging

from fastapi import APIRouter, Depends, Request, Response

from ...core.dependencies import get_context
from ...core.exceptions import ValidationError
from ..rate_limit.dependencies import chat_rate_limit, enforce_rate_limit, global_rate_limit
from .schemas import (
    ConversationHistoryResponse,
    HistoryMessageResponse,
    SendMessageRequest,
    SendMessageResponse,
    is_uuid,
)

logger = logging.getLogger(__name__)

chat_router = APIRouter(
    prefix="/chat",
    tags=["Chat"],
    dependencies=[Depends(global_rate_limit)],
)


@chat_router.post(
    "/message",
    response_model=SendMessageResponse,
    dependencies=[Depends(chat_rate_limit)],
)
async def send_message(
    body: SendMessageRequest,
    request: Request,
    response: Response,
    context=Depends(get_context),
):
    """
    Send a customer message and get the AI reply.

    Omitting ``sessionId`` (or sending an unknown one) starts a new
    conversation; new conversations are rate limited separately.
    """
    if not body.session_id or not await context.conversation_service.conversation_exists(body.session_id):
        await enforce_rate_limit(request, response, "conversation")

    result = await context.chat_service.send_message(body.message, session_id=body.session_id)
    return SendMessageResponse(
        reply=result.reply,
        session_id=result.session_id,
        processing_time=result.processing_time_ms,
    )


@chat_router.get("/conversation/{conversation_id}", response_model=ConversationHistoryResponse)
async def get_conversation(conversation_id: str, context=Depends(get_context)):
    """Full message history of a conversation, oldest first."""
    if not is_uuid(conversation_id):
        raise ValidationError("Invalid conversation ID format")

    history = await context.chat_service.get_conversation_history(conversation_id)
    return ConversationHistoryResponse(
        session_id=history.session_id,
        messages=[HistoryMessageResponse.model_validate(m) for m in history.messages],
    )
