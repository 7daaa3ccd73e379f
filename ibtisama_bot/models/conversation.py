"""
Conversation State Models
=========================
Per-user session flags, the in-progress booking draft, and the derived flow
step the router dispatches on.
"""
from dataclasses import dataclass, field, asdict, replace
from typing import Optional, Dict, Any
from enum import Enum


class Intent(str, Enum):
    """Categories produced by the intent classifier"""
    GREETING = "greeting"
    LOCATION = "location"
    OFFERS = "offers"
    OFFERS_CONFIRMATION = "offers_confirmation"
    DOCTORS = "doctors"
    BOOKING_START = "booking_start"
    CANCEL_START = "cancel_start"
    RESET = "reset"
    QUESTION = "question"


class MessageType(str, Enum):
    TEXT = "text"
    AUDIO = "audio"
    INTERACTIVE = "interactive"


class Channel(str, Enum):
    """How replies are rendered back to the user"""
    TEXT = "text"
    VOICE = "voice"


class FlowStep(str, Enum):
    IDLE = "idle"
    BOOKING_SLOT = "booking_slot"
    BOOKING_NAME = "booking_name"
    BOOKING_PHONE = "booking_phone"
    BOOKING_SERVICE = "booking_service"
    CANCEL_PHONE = "cancel_phone"


@dataclass
class Session:
    """
    Conversational flags for one user.

    Holds nothing about the booking itself - that lives in BookingDraft.
    """
    waiting_for_cancel_phone: bool = False
    waiting_for_offers_confirmation: bool = False
    awaiting_slot: bool = False
    last_intent: Optional[Intent] = None
    last_message_type: Optional[MessageType] = None

    def cleared(self) -> "Session":
        """Copy with every waiting flag reset"""
        return replace(
            self,
            waiting_for_cancel_phone=False,
            waiting_for_offers_confirmation=False,
            awaiting_slot=False,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["last_intent"] = self.last_intent.value if self.last_intent else None
        data["last_message_type"] = self.last_message_type.value if self.last_message_type else None
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Session":
        last_intent = data.get("last_intent")
        last_type = data.get("last_message_type")
        return cls(
            waiting_for_cancel_phone=bool(data.get("waiting_for_cancel_phone", False)),
            waiting_for_offers_confirmation=bool(data.get("waiting_for_offers_confirmation", False)),
            awaiting_slot=bool(data.get("awaiting_slot", False)),
            last_intent=Intent(last_intent) if last_intent else None,
            last_message_type=MessageType(last_type) if last_type else None,
        )


BOOKING_FIELDS = ("appointment", "name", "phone", "service")


@dataclass(frozen=True)
class BookingDraft:
    """
    Partially-filled booking.

    Fields are filled strictly in the order appointment -> name -> phone ->
    service. Building a draft that skips a field raises ValueError, so a phone
    can never be observed without a name.
    """
    appointment: Optional[str] = None
    name: Optional[str] = None
    phone: Optional[str] = None
    service: Optional[str] = None

    def __post_init__(self):
        seen_gap = False
        for field_name in BOOKING_FIELDS:
            value = getattr(self, field_name)
            if value is None:
                seen_gap = True
            elif seen_gap:
                raise ValueError(f"Booking field '{field_name}' set before the fields preceding it")

    def with_name(self, name: str) -> "BookingDraft":
        return replace(self, name=name)

    def with_phone(self, phone: str) -> "BookingDraft":
        return replace(self, phone=phone)

    def with_service(self, service: str) -> "BookingDraft":
        return replace(self, service=service)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BookingDraft":
        return cls(**{name: data.get(name) for name in BOOKING_FIELDS})


@dataclass
class ConversationState:
    """Everything the transition function reads for one user"""
    session: Session = field(default_factory=Session)
    draft: Optional[BookingDraft] = None

    @property
    def step(self) -> FlowStep:
        if self.session.waiting_for_cancel_phone:
            return FlowStep.CANCEL_PHONE
        if self.draft is None:
            return FlowStep.BOOKING_SLOT if self.session.awaiting_slot else FlowStep.IDLE
        if self.draft.name is None:
            return FlowStep.BOOKING_NAME
        if self.draft.phone is None:
            return FlowStep.BOOKING_PHONE
        return FlowStep.BOOKING_SERVICE
