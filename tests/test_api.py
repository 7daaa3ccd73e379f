"""HTTP surface tests using FastAPI's TestClient against an injected conversation stack."""

import pytest
from fastapi.testclient import TestClient
from pydantic import SecretStr

from conftest import USER
from ibtisama_bot.config import get_settings
from ibtisama_bot.core import messages
from ibtisama_bot.main import create_app


def text_payload(text: str, message_id: str = "wamid.T1", sender: str = USER):
    return {
        "object": "whatsapp_business_account",
        "entry": [{
            "id": "1",
            "changes": [{
                "field": "messages",
                "value": {
                    "messaging_product": "whatsapp",
                    "messages": [{"from": sender, "id": message_id, "type": "text", "text": {"body": text}}],
                },
            }],
        }],
    }


class ExplodingRouter:
    def __init__(self, context):
        self.context = context

    async def handle(self, inbound):
        raise RuntimeError("router down")


@pytest.fixture
def app(router, transport, profile):
    return create_app(router=router, transport=transport, profile=profile)


@pytest.fixture
def client(app):
    return TestClient(app, raise_server_exceptions=False)


class TestWebhookVerification:

    def test_valid_token_echoes_challenge(self, client, monkeypatch):
        monkeypatch.setattr(get_settings(), "verify_token", SecretStr("s3cret"))
        resp = client.get("/webhook", params={"hub.mode": "subscribe", "hub.verify_token": "s3cret", "hub.challenge": "1158201444"})
        assert resp.status_code == 200
        assert resp.text == "1158201444"

    def test_wrong_token_forbidden(self, client, monkeypatch):
        monkeypatch.setattr(get_settings(), "verify_token", SecretStr("s3cret"))
        resp = client.get("/webhook", params={"hub.mode": "subscribe", "hub.verify_token": "guess", "hub.challenge": "1"})
        assert resp.status_code == 403

    def test_wrong_mode_forbidden(self, client, monkeypatch):
        monkeypatch.setattr(get_settings(), "verify_token", SecretStr("s3cret"))
        resp = client.get("/webhook", params={"hub.mode": "unsubscribe", "hub.verify_token": "s3cret"})
        assert resp.status_code == 403


class TestWebhookDelivery:

    def test_text_message_processed(self, client, transport):
        resp = client.post("/webhook", json=text_payload("بدي احجز"))
        assert resp.status_code == 200
        assert resp.json() == {"status": "processed"}
        assert transport.methods() == ["send_buttons"]

    def test_duplicate_delivery_rejected(self, client, transport):
        client.post("/webhook", json=text_payload("وين موقعكم", message_id="wamid.1"))
        resp = client.post("/webhook", json=text_payload("وين موقعكم", message_id="wamid.2"))
        assert resp.json() == {"status": "rejected"}
        assert transport.methods() == ["send_text", "send_location"]

    def test_invalid_json_acknowledged(self, client, transport):
        resp = client.post("/webhook", content=b"{broken", headers={"Content-Type": "application/json"})
        assert resp.status_code == 200
        assert resp.json() == {"status": "ignored"}
        assert transport.calls == []

    def test_status_callback_ignored(self, client):
        payload = text_payload("x")
        value = payload["entry"][0]["changes"][0]["value"]
        value.pop("messages")
        value["statuses"] = [{"id": "wamid.X", "status": "read"}]
        assert client.post("/webhook", json=payload).json() == {"status": "ignored"}

    def test_processing_error_still_acknowledged(self, context, transport):
        app = create_app(router=ExplodingRouter(context), transport=transport)
        resp = TestClient(app).post("/webhook", json=text_payload("hello"))
        assert resp.status_code == 200
        assert resp.json() == {"status": "error"}

    @pytest.mark.parametrize("value", ["oops", ["statuses"], 42])
    def test_non_object_change_value_acknowledged(self, client, transport, value):
        resp = client.post("/webhook", json={"entry": [{"changes": [{"value": value}]}]})
        assert resp.status_code == 200
        assert resp.json() == {"status": "ignored"}
        assert transport.calls == []

    def test_preflight(self, client):
        resp = client.options("/webhook")
        assert resp.status_code == 200
        assert resp.headers["Access-Control-Allow-Origin"] == "*"
        assert resp.headers["Access-Control-Allow-Methods"] == "POST, OPTIONS"
        assert resp.headers["Access-Control-Allow-Headers"] == "Content-Type"


class TestWebsiteNotifications:

    def test_candy_from_record(self, client, transport):
        body = {"type": "INSERT", "record": {"name": "Lina", "phone": "0791112223", "service": "تبييض"}}
        resp = client.post("/webhook-candy", json=body)
        assert resp.status_code == 200
        assert resp.json()["success"] is True
        method, (to, text) = transport.calls[0]
        assert method == "send_text"
        assert to == get_settings().candy_notify_phone
        assert text == messages.CANDY_NOTIFICATION.format(name="Lina", phone="0791112223", service="تبييض")

    def test_candy_missing_fields(self, client, transport):
        resp = client.post("/webhook-candy", json={"name": "Lina"})
        assert resp.status_code == 400
        assert "error" in resp.json()
        assert transport.calls == []

    def test_candy_transport_exception(self, client, transport):
        async def broken(to, body):
            raise RuntimeError("socket closed")

        transport.send_text = broken
        resp = client.post("/webhook-candy", json={"name": "Lina", "phone": "0791112223", "service": "فحص"})
        assert resp.status_code == 500

    def test_customer_notice_text_only(self, client, transport):
        resp = client.post("/api/send-whatsapp", json={"name": "Omar", "phone": "٠٧٩١٢٣٤٥٦٧", "service": "فحص عام"})
        assert resp.status_code == 200
        assert resp.json()["success"] is True
        method, (to, text) = transport.calls[0]
        assert (method, to) == ("send_text", "0791234567")
        assert "Omar" in text and "فحص عام" in text

    def test_customer_notice_with_image(self, client, transport):
        body = {"name": "Omar", "phone": "0791234567", "image": "https://cdn.example.com/offer.jpg"}
        client.post("/api/send-whatsapp", json=body)
        assert transport.methods() == ["send_image", "send_text"]
        assert transport.texts() == [messages.CUSTOMER_FOLLOW_UP]

    def test_customer_notice_image_failure_falls_back(self, client, transport):
        transport.failing.add("send_image")
        body = {"name": "Omar", "phone": "0791234567", "image": "https://cdn.example.com/offer.jpg"}
        resp = client.post("/api/send-whatsapp", json=body)
        assert resp.json()["success"] is True
        assert transport.methods() == ["send_image", "send_text"]
        assert transport.texts()[0].endswith(messages.CUSTOMER_FOLLOW_UP)

    def test_customer_notice_requires_phone(self, client):
        assert client.post("/api/send-whatsapp", json={"name": "Omar"}).status_code == 400


class TestAppSurface:

    def test_health(self, client):
        body = client.get("/health").json()
        assert body["status"] == "ok"
        assert "timestamp" in body

    def test_banner(self, client):
        assert client.get("/").json()["endpoints"]["whatsapp_webhook"] == "/webhook"

    def test_unknown_route(self, client):
        resp = client.get("/does-not-exist")
        assert resp.status_code == 404
        assert resp.json() == {"error": "Route not found", "path": "/does-not-exist"}

    def test_unhandled_error(self, app, client):
        async def boom():
            raise RuntimeError("unexpected")

        app.add_api_route("/boom", boom)
        resp = client.get("/boom")
        assert resp.status_code == 500
        assert resp.json() == {"error": "Internal server error"}

    def test_request_id_header(self, client):
        assert client.get("/health", headers={"X-Request-ID": "abc123"}).headers["X-Request-ID"] == "abc123"
        assert len(client.get("/health").headers["X-Request-ID"]) == 8
