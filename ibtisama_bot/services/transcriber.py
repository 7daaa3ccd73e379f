"""
Voice Note Transcription
========================
Downloads a WhatsApp voice note and transcribes it with OpenAI audio
transcription.
"""

from typing import Optional

from openai import AsyncOpenAI, OpenAIError
from loguru import logger

from ..api.whatsapp_client import WhatsAppClient
from ..config import get_settings
from ..utils.phone_parser import mask_phone


class Transcriber:
    """Speech-to-text for inbound voice notes"""

    def __init__(
        self,
        whatsapp: WhatsAppClient,
        client: Optional[AsyncOpenAI] = None,
        model: Optional[str] = None,
    ):
        settings = get_settings()
        self.whatsapp = whatsapp
        self.model = model or settings.openai_transcribe_model
        if client is not None:
            self.client = client
        elif settings.OPENAI_API_KEY:
            self.client = AsyncOpenAI(api_key=settings.OPENAI_API_KEY, timeout=settings.openai_timeout_seconds)
        else:
            self.client = None
            logger.warning("⚠️ OPENAI_API_KEY not set - voice notes cannot be transcribed")

    async def transcribe(self, media_id: str, user_id: str) -> Optional[str]:
        """
        Transcribe one voice note.

        Args:
            media_id: WhatsApp media id of the audio
            user_id: Sender, for logging

        Returns:
            The transcript, or None when download or transcription fails
        """
        if self.client is None:
            return None

        audio = await self.whatsapp.download_media(media_id)
        if not audio:
            return None

        try:
            result = await self.client.audio.transcriptions.create(
                model=self.model,
                file=("voice.ogg", audio, "audio/ogg"),
            )
        except OpenAIError as exc:
            logger.error(f"❌ Transcription failed for {mask_phone(user_id)}: {exc}")
            return None

        transcript = (getattr(result, "text", "") or "").strip()
        logger.info(f"📝 Transcript from {mask_phone(user_id)}: {transcript[:80]!r}")
        return transcript or None
