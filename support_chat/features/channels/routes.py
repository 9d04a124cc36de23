import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Query, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse

from ...core.dependencies import get_context
from ...core.exceptions import ValidationError
from .base import Channel, OutgoingMessage

logger = logging.getLogger(__name__)

webhook_router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


async def _read_payload(request: Request) -> dict:
    try:
        payload = await request.json()
    except ValueError:
        raise ValidationError("Webhook body must be JSON") from None
    if not isinstance(payload, dict):
        raise ValidationError("Webhook body must be a JSON object")
    return payload


async def _handle_incoming(context, channel: Channel, payload: dict, signature: Optional[str]) -> bool:
    """
    Verify, parse, answer and deliver one webhook notification.

    Returns:
        False when verification fails, True otherwise (including payloads
        that carry no text message)
    """
    if not channel.verify_webhook(payload, signature):
        logger.warning(f"⛔ {channel.name} webhook verification failed")
        return False

    incoming = channel.parse_incoming_message(payload)
    if incoming is None:
        logger.debug(f"No message to process from {channel.name} webhook")
        return True

    logger.info(f"📨 Received {channel.name} message from {incoming.channel_user_id}")
    session_id = await context.conversation_service.find_active_conversation_for_channel_user(
        channel.type, incoming.channel_user_id
    )
    result = await context.chat_service.send_message(
        incoming.text,
        session_id=session_id,
        channel=channel.type,
        channel_user_id=incoming.channel_user_id,
    )
    await channel.send_message(OutgoingMessage(text=result.reply, channel_user_id=incoming.channel_user_id))
    return True


@webhook_router.post("/telegram")
async def telegram_webhook(
    request: Request,
    secret_token: Optional[str] = Header(None, alias="X-Telegram-Bot-Api-Secret-Token"),
    context=Depends(get_context),
):
    channel = context.channels.get("telegram")
    payload = await _read_payload(request)
    if not await _handle_incoming(context, channel, payload, secret_token):
        return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content={"error": "Unauthorized"})
    return {"ok": True}


@webhook_router.post("/whatsapp")
async def whatsapp_webhook(
    request: Request,
    signature: Optional[str] = Header(None, alias="X-Hub-Signature-256"),
    context=Depends(get_context),
):
    channel = context.channels.get("whatsapp")
    payload = await _read_payload(request)
    if not await _handle_incoming(context, channel, payload, signature):
        return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content={"error": "Unauthorized"})
    return {"status": "ok"}


@webhook_router.get("/whatsapp")
async def whatsapp_verify(
    mode: Optional[str] = Query(None, alias="hub.mode"),
    token: Optional[str] = Query(None, alias="hub.verify_token"),
    challenge: Optional[str] = Query(None, alias="hub.challenge"),
    context=Depends(get_context),
):
    """Meta subscription handshake."""
    channel = context.channels.get("whatsapp")
    answer = channel.verify_subscription(mode, token, challenge)
    if answer is None:
        logger.warning("⛔ WhatsApp webhook verification failed")
        return PlainTextResponse("Forbidden", status_code=status.HTTP_403_FORBIDDEN)
    logger.info("✅ WhatsApp webhook verified")
    return PlainTextResponse(answer)
