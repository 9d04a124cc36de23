"""
Tests for the Telegram and WhatsApp webhooks.
"""

import json

import httpx
import pytest

from support_chat.features.channels.registry import ChannelRegistry
from support_chat.features.channels.telegram import TELEGRAM_API_URL, TelegramChannel
from support_chat.features.channels.web import WebChannel
from support_chat.features.channels.whatsapp import GRAPH_API_URL, WhatsAppChannel


class Outbox:
    """Captures outgoing platform API calls."""

    def __init__(self, status_code=200):
        self.status_code = status_code
        self.requests = []

    def __call__(self, request: httpx.Request):
        self.requests.append(json.loads(request.content))
        return httpx.Response(self.status_code, json={"ok": self.status_code == 200})


@pytest.fixture
def outbox():
    return Outbox()


@pytest.fixture
def channels(outbox):
    return ChannelRegistry([
        WebChannel(),
        TelegramChannel(
            "123:abc",
            webhook_secret="tg-secret",
            enabled=True,
            client=httpx.AsyncClient(base_url=TELEGRAM_API_URL, transport=httpx.MockTransport(outbox)),
        ),
        WhatsAppChannel(
            "wa-token",
            "10001",
            verify_token="verify-me",
            enabled=True,
            client=httpx.AsyncClient(base_url=GRAPH_API_URL, transport=httpx.MockTransport(outbox)),
        ),
    ])


@pytest.fixture
def webhook_client(make_client, channels):
    return make_client(channels=channels)


def telegram_update(text, chat_id=555):
    return {"update_id": 1, "message": {"message_id": 1, "chat": {"id": chat_id}, "text": text}}


TG_HEADERS = {"X-Telegram-Bot-Api-Secret-Token": "tg-secret"}


class TestTelegramWebhook:
    def test_reply_is_delivered(self, webhook_client, outbox, fake_llm):
        fake_llm.queue("Your order ships tomorrow.")

        response = webhook_client.post("/webhooks/telegram", json=telegram_update("Where is my order?"), headers=TG_HEADERS)

        assert response.status_code == 200
        assert response.json() == {"ok": True}
        assert outbox.requests == [{"chat_id": "555", "text": "Your order ships tomorrow."}]

    def test_same_user_continues_conversation(self, webhook_client, fake_llm):
        webhook_client.post("/webhooks/telegram", json=telegram_update("Hi"), headers=TG_HEADERS)
        webhook_client.post("/webhooks/telegram", json=telegram_update("Thanks"), headers=TG_HEADERS)

        llm_context, _ = fake_llm.calls[-1]
        assert [m.text for m in llm_context.messages] == ["Hi", "Happy to help!", "Thanks"]

    def test_wrong_secret(self, webhook_client, outbox, fake_llm):
        response = webhook_client.post(
            "/webhooks/telegram",
            json=telegram_update("Hi"),
            headers={"X-Telegram-Bot-Api-Secret-Token": "nope"},
        )

        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}
        assert fake_llm.calls == []
        assert outbox.requests == []

    def test_non_text_update_is_acknowledged(self, webhook_client, fake_llm):
        response = webhook_client.post("/webhooks/telegram", json={"update_id": 2}, headers=TG_HEADERS)

        assert response.status_code == 200
        assert fake_llm.calls == []

    def test_invalid_json(self, webhook_client):
        response = webhook_client.post(
            "/webhooks/telegram",
            content=b"not json",
            headers={**TG_HEADERS, "Content-Type": "application/json"},
        )
        assert response.status_code == 400

    def test_delivery_failure(self, make_client, fake_llm):
        failing = ChannelRegistry([TelegramChannel(
            "123:abc",
            enabled=True,
            client=httpx.AsyncClient(base_url=TELEGRAM_API_URL, transport=httpx.MockTransport(Outbox(500))),
        )])
        client = make_client(channels=failing)

        response = client.post("/webhooks/telegram", json=telegram_update("Hi"))

        assert response.status_code == 502
        assert response.json()["error"] == "CHANNEL_ERROR"

    def test_disabled_channel(self, client):
        response = client.post("/webhooks/telegram", json=telegram_update("Hi"))

        assert response.status_code == 404


class TestWhatsAppWebhook:
    def test_subscription_handshake(self, webhook_client):
        response = webhook_client.get(
            "/webhooks/whatsapp",
            params={"hub.mode": "subscribe", "hub.verify_token": "verify-me", "hub.challenge": "1158201444"},
        )

        assert response.status_code == 200
        assert response.text == "1158201444"

    def test_subscription_rejected(self, webhook_client):
        response = webhook_client.get(
            "/webhooks/whatsapp",
            params={"hub.mode": "subscribe", "hub.verify_token": "wrong", "hub.challenge": "1"},
        )

        assert response.status_code == 403
        assert response.text == "Forbidden"

    def test_reply_is_delivered(self, webhook_client, outbox, fake_llm):
        fake_llm.queue("We are open 9 to 6.")
        notification = {"entry": [{"changes": [{"value": {"messages": [
            {"from": "15551234567", "id": "wamid.1", "type": "text", "text": {"body": "Opening hours?"}},
        ]}}]}]}

        response = webhook_client.post("/webhooks/whatsapp", json=notification)

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}
        assert outbox.requests[0]["to"] == "15551234567"
        assert outbox.requests[0]["text"] == {"body": "We are open 9 to 6."}
