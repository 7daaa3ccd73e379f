"""
Outbound Intent Models
======================
Values produced by the flow handlers describing the I/O to perform.
The dispatcher is the only component that turns them into network calls.
"""
from dataclasses import dataclass, field
from typing import Dict, Any, Optional
from enum import Enum

from .conversation import BookingDraft


class IntentKind(Enum):
    """What the dispatcher should do"""
    TEXT = "text"                    # send a fixed reply
    AI_REPLY = "ai_reply"            # ask the AI responder, relay the answer
    SLOT_OPTIONS = "slot_options"    # appointment buttons
    SERVICE_LIST = "service_list"    # interactive service list
    LOCATION = "location"
    OFFERS_TEASER = "offers_teaser"
    OFFERS_MEDIA = "offers_media"
    DOCTORS_MEDIA = "doctors_media"
    VALIDATE_NAME = "validate_name"  # query - answered with NameChecked
    SAVE_BOOKING = "save_booking"    # query - answered with BookingSaved
    CANCEL_BOOKING = "cancel_booking"  # query - answered with CancellationResolved


@dataclass(frozen=True)
class OutboundIntent:
    kind: IntentKind
    payload: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def text(cls, body: str, spoken: Optional[str] = None) -> "OutboundIntent":
        """`spoken` replaces `body` when the reply is rendered as a voice note"""
        return cls(IntentKind.TEXT, {"text": body, "spoken": spoken or body})

    @classmethod
    def ai_reply(cls, question: str) -> "OutboundIntent":
        return cls(IntentKind.AI_REPLY, {"question": question})

    @classmethod
    def slot_options(cls) -> "OutboundIntent":
        return cls(IntentKind.SLOT_OPTIONS)

    @classmethod
    def service_list(cls) -> "OutboundIntent":
        return cls(IntentKind.SERVICE_LIST)

    @classmethod
    def media(cls, kind: IntentKind, language: str) -> "OutboundIntent":
        return cls(kind, {"language": language})

    @classmethod
    def validate_name(cls, name: str) -> "OutboundIntent":
        return cls(IntentKind.VALIDATE_NAME, {"name": name})

    @classmethod
    def save_booking(cls, booking: BookingDraft) -> "OutboundIntent":
        return cls(IntentKind.SAVE_BOOKING, {"booking": booking})

    @classmethod
    def cancel_booking(cls, phone: str) -> "OutboundIntent":
        return cls(IntentKind.CANCEL_BOOKING, {"phone": phone})
