"""
Data Models Package
===================
"""
from .conversation import (
    BookingDraft,
    Channel,
    ConversationState,
    FlowStep,
    Intent,
    MessageType,
    Session,
)
from .booking import BookingRecord, ClinicProfile, STATUS_NEW, STATUS_CANCELED
from .outbound import IntentKind, OutboundIntent
from .events import (
    BookingButtonPressed,
    BookingSaved,
    CancellationOutcome,
    CancellationResolved,
    Event,
    NameChecked,
    ServiceSelected,
    SlotSelected,
    TextReceived,
    TranscriptMissing,
)

__all__ = [
    "BookingDraft",
    "Channel",
    "ConversationState",
    "FlowStep",
    "Intent",
    "MessageType",
    "Session",
    "BookingRecord",
    "ClinicProfile",
    "STATUS_NEW",
    "STATUS_CANCELED",
    "IntentKind",
    "OutboundIntent",
    "BookingButtonPressed",
    "BookingSaved",
    "CancellationOutcome",
    "CancellationResolved",
    "Event",
    "NameChecked",
    "ServiceSelected",
    "SlotSelected",
    "TextReceived",
    "TranscriptMissing",
]
