"""Tests for WhatsApp Cloud API payload parsing."""

import pytest

from ibtisama_bot.api.whatsapp_parser import (
    MAX_TEXT_LENGTH,
    AudioMessage,
    InteractiveMessage,
    TextMessage,
    UnrecognizedMessage,
    WhatsAppPayloadParser,
    is_status_callback,
)


def envelope(message=None, statuses=None):
    value = {"messaging_product": "whatsapp", "metadata": {"phone_number_id": "123"}}
    if message is not None:
        value["messages"] = [message]
    if statuses is not None:
        value["statuses"] = statuses
    return {"object": "whatsapp_business_account", "entry": [{"id": "1", "changes": [{"field": "messages", "value": value}]}]}


@pytest.fixture
def parser():
    return WhatsAppPayloadParser()


class TestParse:

    def test_text(self, parser):
        raw = envelope({"from": "962791234567", "id": "wamid.A", "type": "text", "text": {"body": "  مرحبا  "}})
        message = parser.parse(raw)
        assert message == TextMessage(user_id="962791234567", message_id="wamid.A", text="مرحبا")

    def test_long_text_truncated(self, parser):
        raw = envelope({"from": "962791234567", "id": "wamid.A", "type": "text", "text": {"body": "x" * 5000}})
        assert len(parser.parse(raw).text) == MAX_TEXT_LENGTH

    def test_button_reply(self, parser):
        raw = envelope({
            "from": "962791234567",
            "id": "wamid.B",
            "type": "interactive",
            "interactive": {"type": "button_reply", "button_reply": {"id": "slot_6pm", "title": "6 PM"}},
        })
        message = parser.parse(raw)
        assert isinstance(message, InteractiveMessage)
        assert (message.reply_id, message.reply_title) == ("slot_6pm", "6 PM")

    def test_list_reply(self, parser):
        raw = envelope({
            "from": "962791234567",
            "id": "wamid.C",
            "type": "interactive",
            "interactive": {"type": "list_reply", "list_reply": {"id": "service_فحص عام", "title": "فحص عام"}},
        })
        assert parser.parse(raw).reply_id == "service_فحص عام"

    def test_audio(self, parser):
        raw = envelope({
            "from": "962791234567",
            "id": "wamid.D",
            "type": "audio",
            "audio": {"id": "media-9", "mime_type": "audio/ogg; codecs=opus", "voice": True},
        })
        assert parser.parse(raw) == AudioMessage(user_id="962791234567", message_id="wamid.D", media_id="media-9")

    def test_sender_digits_only(self, parser):
        raw = envelope({"from": "+962 79-123-4567", "id": "wamid.E", "type": "text", "text": {"body": "hi"}})
        assert parser.parse(raw).user_id == "962791234567"

    @pytest.mark.parametrize(
        "message",
        [
            {"from": "962791234567", "id": "wamid.F", "type": "sticker", "sticker": {"id": "s1"}},
            {"from": "962791234567", "id": "wamid.G", "type": "text", "text": {"body": "   "}},
        ],
    )
    def test_unrecognized(self, parser, message):
        assert isinstance(parser.parse(envelope(message)), UnrecognizedMessage)

    @pytest.mark.parametrize(
        "raw",
        [
            None,
            [],
            {},
            {"entry": []},
            {"entry": [{"changes": []}]},
            {"entry": "nope"},
            envelope({"id": "wamid.H", "type": "text"}),
        ],
    )
    def test_malformed_payloads(self, parser, raw):
        assert parser.parse(raw) is None


class TestStatusCallbacks:

    def test_status_only(self, parser):
        raw = envelope(statuses=[{"id": "wamid.X", "status": "delivered"}])
        assert is_status_callback(raw)
        assert parser.parse(raw) is None

    def test_message_is_not_status(self):
        raw = envelope({"from": "962791234567", "id": "wamid.A", "type": "text", "text": {"body": "hi"}})
        assert not is_status_callback(raw)
        assert not is_status_callback({"unexpected": True})
        assert not is_status_callback({"entry": [{"changes": [{"value": "oops"}]}]})
        assert not is_status_callback({"entry": [{"changes": [{"value": [{"statuses": []}]}]}]})
