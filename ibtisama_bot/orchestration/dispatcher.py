"""
Intent Dispatcher
=================
Performs the I/O described by OutboundIntent values.

Send intents go out through the WhatsApp transport (as voice notes on the
voice channel). Query intents call a collaborator and come back as events for
the transition function. A failing collaborator never aborts the conversation:
the failure is logged and the user gets an apology in the current channel.
"""

from typing import List, Optional, Sequence

from loguru import logger

from ..api.whatsapp_client import WhatsAppClient
from ..core import messages
from ..core.service_matcher import SERVICE_LIST_SECTIONS
from ..models.booking import ClinicProfile, STATUS_CANCELED
from ..models.conversation import Channel
from ..models.events import (
    BookingSaved,
    CancellationOutcome,
    CancellationResolved,
    Event,
    NameChecked,
)
from ..models.outbound import IntentKind, OutboundIntent
from ..services.ai_responder import AIResponder
from ..services.booking_repository import BookingRepository, BookingRepositoryError
from ..services.media_flows import MediaFlows
from ..services.voice_synthesizer import VoiceSynthesisError, VoiceSynthesizer
from ..utils.phone_parser import mask_phone


class IntentDispatcher:
    """Executes outbound intents for one user at a time"""

    def __init__(
        self,
        transport: WhatsAppClient,
        ai: AIResponder,
        repository: BookingRepository,
        media: MediaFlows,
        voice: Optional[VoiceSynthesizer] = None,
        profile: Optional[ClinicProfile] = None,
    ):
        self.transport = transport
        self.ai = ai
        self.repository = repository
        self.media = media
        self.voice = voice
        self.profile = profile

    async def execute(
        self,
        user_id: str,
        intents: Sequence[OutboundIntent],
        channel: Channel = Channel.TEXT,
    ) -> List[Event]:
        """
        Run intents in order.

        Returns:
            Events produced by query intents, in order
        """
        events: List[Event] = []
        for intent in intents:
            try:
                event = await self._execute_one(user_id, intent, channel)
            except Exception as exc:
                logger.exception(f"❌ Failed to execute {intent.kind.value} for {mask_phone(user_id)}: {exc}")
                await self._apologize(user_id, channel)
                continue
            if event is not None:
                events.append(event)
        return events

    async def _execute_one(self, user_id: str, intent: OutboundIntent, channel: Channel) -> Optional[Event]:
        kind, payload = intent.kind, intent.payload

        if kind == IntentKind.TEXT:
            await self.send_reply(user_id, payload["text"], channel, spoken=payload.get("spoken"))
        elif kind == IntentKind.AI_REPLY:
            answer = await self.ai.ask(payload["question"])
            await self.send_reply(user_id, answer, channel)
        elif kind == IntentKind.SLOT_OPTIONS:
            await self._send_slot_options(user_id, channel)
        elif kind == IntentKind.SERVICE_LIST:
            await self._send_service_list(user_id, channel)
        elif kind == IntentKind.LOCATION:
            await self.media.send_location(user_id, payload.get("language", "ar"))
        elif kind == IntentKind.OFFERS_TEASER:
            await self.media.send_offers_teaser(user_id, payload.get("language", "ar"))
        elif kind == IntentKind.OFFERS_MEDIA:
            await self.media.send_offers(user_id, payload.get("language", "ar"))
        elif kind == IntentKind.DOCTORS_MEDIA:
            await self.media.send_doctors(user_id, payload.get("language", "ar"))
        elif kind == IntentKind.VALIDATE_NAME:
            return await self._validate_name(payload["name"])
        elif kind == IntentKind.SAVE_BOOKING:
            return await self._save_booking(payload["booking"])
        elif kind == IntentKind.CANCEL_BOOKING:
            return await self._cancel_booking(payload["phone"])
        else:
            logger.warning(f"⚠️ No handler for intent kind {kind}")
        return None

    async def send_reply(self, user_id: str, text: str, channel: Channel, spoken: Optional[str] = None) -> None:
        """Send a reply as a voice note on the voice channel, falling back to text"""
        if channel == Channel.VOICE and self.voice is not None:
            try:
                audio = await self.voice.synthesize(spoken or text)
            except VoiceSynthesisError as exc:
                logger.warning(f"⚠️ Voice synthesis failed, replying with text: {exc}")
            else:
                if await self.transport.send_voice(user_id, audio):
                    return
                logger.warning("⚠️ Voice note not delivered, replying with text")
        await self.transport.send_text(user_id, text)

    async def _apologize(self, user_id: str, channel: Channel) -> None:
        text = messages.GENERIC_ERROR_VOICE if channel == Channel.VOICE else messages.GENERIC_APOLOGY
        try:
            await self.send_reply(user_id, text, channel)
        except Exception as exc:
            logger.error(f"❌ Could not deliver apology to {mask_phone(user_id)}: {exc}")

    async def _send_slot_options(self, user_id: str, channel: Channel) -> None:
        if channel == Channel.VOICE:
            await self.send_reply(user_id, messages.SLOT_PROMPT_VOICE, channel)
            return
        profile = self.profile
        buttons = [(profile.slot_id(label), label) for label in profile.slot_times]
        result = await self.transport.send_buttons(user_id, messages.SLOT_PROMPT, buttons)
        if not result:
            await self.transport.send_text(user_id, f"{messages.SLOT_PROMPT}\n" + "\n".join(profile.slot_times))

    async def _send_service_list(self, user_id: str, channel: Channel) -> None:
        if channel == Channel.VOICE:
            await self.send_reply(user_id, messages.SERVICE_LIST_VOICE, channel)
            return
        await self.transport.send_list(
            user_id,
            messages.SERVICE_LIST_HEADER,
            messages.SERVICE_LIST_BODY,
            messages.SERVICE_LIST_BUTTON,
            SERVICE_LIST_SECTIONS,
        )

    async def _validate_name(self, name: str) -> NameChecked:
        try:
            valid = await self.ai.validate_name(name)
        except Exception as exc:
            logger.warning(f"⚠️ Name validation error, accepting name: {exc}")
            valid = True
        return NameChecked(name=name, valid=valid)

    async def _save_booking(self, booking) -> BookingSaved:
        try:
            record = await self.repository.insert_booking(booking)
        except Exception as exc:
            logger.exception(f"❌ Booking insert raised: {exc}")
            record = None
        return BookingSaved(booking=booking, record=record)

    async def _cancel_booking(self, phone: str) -> CancellationResolved:
        try:
            booking = await self.repository.find_latest_active_booking_by_phone(phone)
            if booking is None:
                logger.info(f"🔍 No active booking for {mask_phone(phone)}")
                return CancellationResolved(CancellationOutcome.NOT_FOUND)
            if not await self.repository.update_booking_status(booking.id, STATUS_CANCELED):
                return CancellationResolved(CancellationOutcome.ERROR)
        except BookingRepositoryError as exc:
            logger.error(f"❌ Cancel error: {exc}")
            return CancellationResolved(CancellationOutcome.ERROR)

        logger.info(f"🟣 Booking {booking.id} canceled")
        return CancellationResolved(
            CancellationOutcome.CANCELED,
            booking.model_copy(update={"status": STATUS_CANCELED}),
        )
