"""
Booking Models
==============
Persisted booking records and the clinic profile loaded at startup.
"""
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field


STATUS_NEW = "new"
STATUS_CANCELED = "Canceled"


class BookingRecord(BaseModel):
    """A booking row as stored in the `bookings` table"""
    id: Optional[Any] = None
    name: str
    phone: str
    service: str
    appointment: Optional[str] = None
    status: str = STATUS_NEW
    time: Optional[str] = None
    created_at: Optional[str] = None

    model_config = {"extra": "ignore"}


class ClinicProfile(BaseModel):
    """Clinic-wide settings (the `clinic_settings` row with clinic_id = default)"""
    clinic_name: str
    booking_times: List[str] = Field(default_factory=lambda: ["3 PM", "6 PM", "9 PM"])

    model_config = {"extra": "ignore"}

    @property
    def slot_times(self) -> List[str]:
        """Booking times offered as buttons (WhatsApp allows three)"""
        return self.booking_times[:3]

    @staticmethod
    def slot_id(time_label: str) -> str:
        return "slot_" + time_label.lower().replace(" ", "")

    def slot_lookup(self) -> Dict[str, str]:
        """Map of button id -> booking time label"""
        return {self.slot_id(label): label for label in self.slot_times}

    def quick_slots(self) -> Dict[str, str]:
        """Bare-number shortcuts ("3" -> "3 PM") derived from the booking times"""
        shortcuts = {}
        for label in self.slot_times:
            head = label.split()[0] if label.split() else ""
            if head.isdigit():
                shortcuts[head] = label
        return shortcuts
