"""
WhatsApp Cloud API Payload Parser
=================================
Validates webhook envelopes and turns the first message into one of:

- TextMessage
- InteractiveMessage (button_reply / list_reply)
- AudioMessage (voice notes)
- UnrecognizedMessage (anything else from a known sender)

Envelopes without a message (delivery/read status callbacks) parse to None.
"""

from typing import Any, Dict, List, Optional, Union
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..utils.phone_parser import mask_phone, normalize_digits


MAX_TEXT_LENGTH = 4000


class CloudText(BaseModel):
    body: str = ""


class CloudReply(BaseModel):
    id: str
    title: Optional[str] = None


class CloudInteractive(BaseModel):
    type: Optional[str] = None
    button_reply: Optional[CloudReply] = None
    list_reply: Optional[CloudReply] = None

    @property
    def reply(self) -> Optional[CloudReply]:
        return self.list_reply if self.type == "list_reply" else (self.button_reply or self.list_reply)


class CloudAudio(BaseModel):
    id: str
    mime_type: Optional[str] = None
    voice: Optional[bool] = None


class CloudMessage(BaseModel):
    """One entry of `entry[].changes[].value.messages[]`"""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    sender: str = Field(..., alias="from")
    id: str
    type: str
    timestamp: Optional[str] = None
    text: Optional[CloudText] = None
    interactive: Optional[CloudInteractive] = None
    audio: Optional[CloudAudio] = None

    @field_validator("sender")
    @classmethod
    def validate_sender(cls, v: str) -> str:
        cleaned = normalize_digits(v)
        if not cleaned:
            raise ValueError("Invalid sender phone number")
        return cleaned


class CloudValue(BaseModel):
    model_config = ConfigDict(extra="ignore")

    messages: List[CloudMessage] = Field(default_factory=list)
    statuses: List[Dict[str, Any]] = Field(default_factory=list)


class CloudChange(BaseModel):
    model_config = ConfigDict(extra="ignore")

    value: CloudValue = Field(default_factory=CloudValue)
    field: Optional[str] = None


class CloudEntry(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    changes: List[CloudChange] = Field(default_factory=list)


class CloudEnvelope(BaseModel):
    model_config = ConfigDict(extra="ignore")

    object: Optional[str] = None
    entry: List[CloudEntry] = Field(default_factory=list)


class InboundBase(BaseModel):
    user_id: str
    message_id: str


class TextMessage(InboundBase):
    text: str


class InteractiveMessage(InboundBase):
    reply_id: str
    reply_title: Optional[str] = None


class AudioMessage(InboundBase):
    media_id: str


class UnrecognizedMessage(InboundBase):
    message_type: str


InboundMessage = Union[TextMessage, InteractiveMessage, AudioMessage, UnrecognizedMessage]


class WhatsAppPayloadParser:
    """Parser for WhatsApp Cloud API webhook payloads"""

    def parse(self, raw_payload: Any) -> Optional[InboundMessage]:
        """
        Parse a webhook payload.

        Args:
            raw_payload: Decoded JSON body of POST /webhook

        Returns:
            The typed inbound message, or None when the envelope carries no
            usable message (status callbacks, malformed payloads)
        """
        if not isinstance(raw_payload, dict):
            logger.warning("⚠️ Webhook payload is not a JSON object")
            return None

        try:
            envelope = CloudEnvelope.model_validate(raw_payload)
        except ValidationError as exc:
            logger.warning(f"⚠️ Invalid webhook envelope: {exc.error_count()} errors")
            return None

        try:
            value = envelope.entry[0].changes[0].value
        except IndexError:
            logger.debug("Webhook envelope without entry/changes")
            return None

        if not value.messages:
            if value.statuses:
                logger.debug(f"📬 Status callback ({value.statuses[0].get('status', '?')}) ignored")
            return None

        message = value.messages[0]
        return self._to_inbound(message)

    def _to_inbound(self, message: CloudMessage) -> InboundMessage:
        base = {"user_id": message.sender, "message_id": message.id}
        logger.info(f"📨 Inbound {message.type} from {mask_phone(message.sender)}")

        if message.type == "text" and message.text and message.text.body.strip():
            return TextMessage(**base, text=message.text.body.strip()[:MAX_TEXT_LENGTH])

        if message.type == "interactive" and message.interactive and message.interactive.reply:
            reply = message.interactive.reply
            return InteractiveMessage(**base, reply_id=reply.id, reply_title=reply.title)

        if message.type == "audio" and message.audio:
            return AudioMessage(**base, media_id=message.audio.id)

        return UnrecognizedMessage(**base, message_type=message.type)


def is_status_callback(raw_payload: Any) -> bool:
    """True for envelopes that only report delivery/read statuses"""
    try:
        value = raw_payload["entry"][0]["changes"][0]["value"]
    except (KeyError, IndexError, TypeError):
        return False
    if not isinstance(value, dict):
        return False
    return bool(value.get("statuses")) and not value.get("messages")


# Global instance
_parser = None


def get_payload_parser() -> WhatsAppPayloadParser:
    global _parser
    if _parser is None:
        _parser = WhatsAppPayloadParser()
    return _parser
