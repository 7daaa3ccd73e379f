"""
Booking Persistence
===================
Bookings and clinic settings live in Supabase (`bookings` and `clinic_settings`
tables), reached through the supabase client. An in-memory
repository with the same interface backs tests and local runs without
Supabase.
"""
import asyncio
import itertools
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, List, Optional

import httpx
from loguru import logger
from pydantic import ValidationError
from supabase import Client, PostgrestAPIError, create_client

from ..config import get_settings
from ..models.booking import BookingRecord, ClinicProfile, STATUS_CANCELED, STATUS_NEW
from ..models.conversation import BookingDraft
from ..utils.phone_parser import mask_phone, normalize_digits


BOOKINGS_TABLE = "bookings"
CLINIC_SETTINGS_TABLE = "clinic_settings"

# The client surfaces PostgREST errors as APIError and transport errors from httpx
SUPABASE_ERRORS = (PostgrestAPIError, httpx.HTTPError)


class BookingRepositoryError(Exception):
    """A read or write against the booking store failed"""


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def default_clinic_profile() -> ClinicProfile:
    settings = get_settings()
    return ClinicProfile(clinic_name=settings.clinic_name, booking_times=list(settings.default_booking_times))


class BookingRepository(ABC):
    """Storage for completed bookings"""

    @abstractmethod
    async def insert_booking(self, booking: BookingDraft) -> Optional[BookingRecord]:
        """Persist a completed draft with status "new"; None when the write fails"""

    @abstractmethod
    async def find_latest_active_booking_by_phone(self, phone: str) -> Optional[BookingRecord]:
        """
        Most recent booking for `phone` that is not canceled.

        Raises:
            BookingRepositoryError: the lookup itself failed
        """

    @abstractmethod
    async def update_booking_status(self, booking_id: Any, status: str) -> bool:
        ...

    async def load_clinic_profile(self) -> ClinicProfile:
        return default_clinic_profile()

    async def close(self) -> None:
        return None


class InMemoryBookingRepository(BookingRepository):
    """Process-local booking table"""

    def __init__(self, profile: Optional[ClinicProfile] = None):
        self.bookings: List[BookingRecord] = []
        self.status_updates: List[tuple] = []
        self._ids = itertools.count(1)
        self._profile = profile

    async def insert_booking(self, booking: BookingDraft) -> Optional[BookingRecord]:
        now = _now_iso()
        record = BookingRecord(
            id=next(self._ids),
            name=booking.name,
            phone=normalize_digits(booking.phone),
            service=booking.service,
            appointment=booking.appointment,
            status=STATUS_NEW,
            time=now,
            created_at=now,
        )
        self.bookings.append(record)
        return record

    async def find_latest_active_booking_by_phone(self, phone: str) -> Optional[BookingRecord]:
        phone = normalize_digits(phone)
        # Insertion order doubles as creation order
        for record in reversed(self.bookings):
            if record.phone == phone and record.status != STATUS_CANCELED:
                return record
        return None

    async def update_booking_status(self, booking_id: Any, status: str) -> bool:
        for index, record in enumerate(self.bookings):
            if record.id == booking_id:
                self.bookings[index] = record.model_copy(update={"status": status})
                self.status_updates.append((booking_id, status))
                return True
        return False

    async def load_clinic_profile(self) -> ClinicProfile:
        return self._profile or default_clinic_profile()


class SupabaseBookingRepository(BookingRepository):
    """Supabase backed repository; the sync client runs in a worker thread"""

    def __init__(
        self,
        url: Optional[str] = None,
        service_role_key: Optional[str] = None,
        client: Optional[Client] = None,
    ):
        settings = get_settings()
        self.url = str(url or settings.supabase_url or "").rstrip("/")
        self.key = service_role_key or settings.SUPABASE_SERVICE_ROLE_KEY
        self._client = client

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = create_client(self.url, self.key)
            logger.info("✅ Supabase client initialized")
        return self._client

    async def insert_booking(self, booking: BookingDraft) -> Optional[BookingRecord]:
        payload = {
            "name": booking.name,
            "phone": normalize_digits(booking.phone),
            "service": booking.service,
            "appointment": booking.appointment,
            "status": STATUS_NEW,
            "time": _now_iso(),
        }
        logger.info(f"📥 Inserting booking for {mask_phone(payload['phone'])}: {booking.service} @ {booking.appointment}")
        try:
            response = await asyncio.to_thread(
                lambda: self.client.table(BOOKINGS_TABLE).insert(payload).execute()
            )
            record = BookingRecord.model_validate(response.data[0])
        except SUPABASE_ERRORS as exc:
            logger.error(f"❌ SUPABASE INSERT ERROR: {exc}")
            return None
        except (IndexError, TypeError, ValidationError) as exc:
            logger.error(f"❌ SUPABASE INSERT returned no usable row: {exc}")
            return None

        logger.info(f"✅ Booking {record.id} saved")
        return record

    async def find_latest_active_booking_by_phone(self, phone: str) -> Optional[BookingRecord]:
        phone = normalize_digits(phone)
        logger.info(f"🔍 Searching booking for phone {mask_phone(phone)}")
        try:
            response = await asyncio.to_thread(
                lambda: self.client.table(BOOKINGS_TABLE)
                .select("*")
                .eq("phone", phone)
                .neq("status", STATUS_CANCELED)
                .order("created_at", desc=True)
                .limit(1)
                .execute()
            )
            rows = response.data or []
            return BookingRecord.model_validate(rows[0]) if rows else None
        except SUPABASE_ERRORS as exc:
            raise BookingRepositoryError(f"find booking failed: {exc}") from exc
        except ValidationError as exc:
            raise BookingRepositoryError(f"find booking returned an invalid row: {exc}") from exc

    async def update_booking_status(self, booking_id: Any, status: str) -> bool:
        try:
            await asyncio.to_thread(
                lambda: self.client.table(BOOKINGS_TABLE).update({"status": status}).eq("id", booking_id).execute()
            )
        except SUPABASE_ERRORS as exc:
            logger.error(f"❌ UPDATE STATUS ERROR: {exc}")
            return False
        logger.info(f"🔄 Booking {booking_id} → {status}")
        return True

    async def load_clinic_profile(self) -> ClinicProfile:
        """Load the `clinic_settings` row for clinic_id = default, falling back to settings"""
        try:
            response = await asyncio.to_thread(
                lambda: self.client.table(CLINIC_SETTINGS_TABLE)
                .select("*")
                .eq("clinic_id", "default")
                .limit(1)
                .execute()
            )
            rows = response.data or []
        except SUPABASE_ERRORS as exc:
            logger.error(f"❌ Error loading clinic settings: {exc}")
            return default_clinic_profile()

        if not rows:
            logger.warning("⚠️ No clinic_settings row for clinic_id=default - using defaults")
            return default_clinic_profile()

        row = rows[0]
        fallback = default_clinic_profile()
        profile = ClinicProfile(
            clinic_name=row.get("clinic_name") or fallback.clinic_name,
            booking_times=row.get("booking_times") or fallback.booking_times,
        )
        logger.info(f"✅ Clinic settings loaded: {profile.clinic_name}")
        return profile


def build_booking_repository() -> BookingRepository:
    """Supabase when configured, otherwise the in-memory repository"""
    settings = get_settings()
    if settings.supabase_url and settings.SUPABASE_SERVICE_ROLE_KEY:
        return SupabaseBookingRepository()
    logger.warning("⚠️ Supabase not configured - bookings are kept in memory only")
    return InMemoryBookingRepository()
