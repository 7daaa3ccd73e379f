"""
Conversation Events
===================
Inputs to the transition function: user input, and the answers to query
intents (name validation, booking save, cancellation lookup).
"""
from dataclasses import dataclass
from typing import Optional, Union
from enum import Enum

from .booking import BookingRecord
from .conversation import BookingDraft


@dataclass(frozen=True)
class TextReceived:
    text: str


@dataclass(frozen=True)
class SlotSelected:
    slot_id: str


@dataclass(frozen=True)
class ServiceSelected:
    service: str


@dataclass(frozen=True)
class BookingButtonPressed:
    button_id: str


@dataclass(frozen=True)
class TranscriptMissing:
    pass


@dataclass(frozen=True)
class NameChecked:
    name: str
    valid: bool


@dataclass(frozen=True)
class BookingSaved:
    booking: BookingDraft
    record: Optional[BookingRecord]


class CancellationOutcome(Enum):
    CANCELED = "canceled"
    NOT_FOUND = "not_found"
    ERROR = "error"


@dataclass(frozen=True)
class CancellationResolved:
    outcome: CancellationOutcome
    booking: Optional[BookingRecord] = None


Event = Union[
    TextReceived,
    SlotSelected,
    ServiceSelected,
    BookingButtonPressed,
    TranscriptMissing,
    NameChecked,
    BookingSaved,
    CancellationResolved,
]
