"""
Media Flows
===========
Multi-message sequences: clinic location, offers teaser, offer images and
doctor images. The offers flow ends with a "start booking" button, the
doctors flow with a "book now" quick-booking button.
"""

import asyncio
from typing import List, Optional

from loguru import logger

from ..api.whatsapp_client import SendResult, WhatsAppClient
from ..config import get_settings
from ..core import messages


START_BOOKING_BUTTON_ID = "start_booking_flow"
QUICK_BOOKING_BUTTON_ID = "quick_booking"


def _lang(language: str) -> str:
    return "en" if language == "en" else "ar"


class MediaFlows:
    """Sends the clinic's media sequences through the WhatsApp transport"""

    def __init__(
        self,
        transport: WhatsAppClient,
        offer_images: Optional[List[str]] = None,
        doctor_images: Optional[List[str]] = None,
        delay_seconds: Optional[float] = None,
    ):
        self.settings = get_settings()
        self.transport = transport
        self.offer_images = list(self.settings.offer_images if offer_images is None else offer_images)
        self.doctor_images = list(self.settings.doctor_images if doctor_images is None else doctor_images)
        self.delay_seconds = self.settings.media_delay_seconds if delay_seconds is None else delay_seconds

    async def _pause(self) -> None:
        if self.delay_seconds > 0:
            await asyncio.sleep(self.delay_seconds)

    async def send_location(self, to: str, language: str = "ar") -> SendResult:
        lang = _lang(language)
        address = self.settings.clinic_address_en if lang == "en" else self.settings.clinic_address_ar
        text = messages.LOCATION_TEXT[lang].format(
            clinic=self.settings.clinic_name,
            address=address,
            maps_url=self.settings.clinic_maps_url,
        )
        result = await self.transport.send_text(to, text)
        await self._pause()
        pin = await self.transport.send_location(
            to,
            self.settings.clinic_latitude,
            self.settings.clinic_longitude,
            self.settings.clinic_name,
            address,
        )
        if not pin:
            logger.warning("⚠️ Location pin failed - text with map link already sent")
        return result

    async def send_offers_teaser(self, to: str, language: str = "ar") -> SendResult:
        return await self.transport.send_text(to, messages.OFFERS_TEASER[_lang(language)])

    async def send_offers(self, to: str, language: str = "ar") -> SendResult:
        logger.info(f"🎁 Sending offers flow ({len(self.offer_images)} images)")
        result = await self._image_flow(to, messages.OFFERS_INTRO[_lang(language)], self.offer_images)
        await self.send_booking_start_button(to, language)
        return result

    async def send_doctors(self, to: str, language: str = "ar") -> SendResult:
        logger.info(f"👨‍⚕️ Sending doctors flow ({len(self.doctor_images)} images)")
        result = await self._image_flow(to, messages.DOCTORS_INTRO[_lang(language)], self.doctor_images)
        await self.send_quick_booking_button(to, language)
        return result

    async def _image_flow(self, to: str, intro: str, images: List[str]) -> SendResult:
        result = await self.transport.send_text(to, intro)
        for image in images:
            await self._pause()
            sent = await self.transport.send_image(to, image)
            if not sent:
                logger.warning(f"⚠️ Image not delivered: {image}")
        await self._pause()
        return result

    async def send_booking_start_button(self, to: str, language: str = "ar") -> SendResult:
        lang = _lang(language)
        return await self._booking_button(
            to, lang, START_BOOKING_BUTTON_ID, messages.BOOKING_BUTTON_BODY[lang], messages.BOOKING_BUTTON_TITLE[lang]
        )

    async def send_quick_booking_button(self, to: str, language: str = "ar") -> SendResult:
        lang = _lang(language)
        return await self._booking_button(
            to, lang, QUICK_BOOKING_BUTTON_ID, messages.QUICK_BOOKING_BODY[lang], messages.QUICK_BOOKING_TITLE[lang]
        )

    async def _booking_button(self, to: str, lang: str, button_id: str, body: str, title: str) -> SendResult:
        result = await self.transport.send_buttons(to, body, [(button_id, title)])
        if not result:
            logger.warning("⚠️ Booking button failed - sending text fallback")
            result = await self.transport.send_text(to, messages.BOOKING_BUTTON_FALLBACK[lang])
        return result
