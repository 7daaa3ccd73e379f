"""
WhatsApp Cloud API Client
=========================
Thin async wrapper over the Graph API `/messages` and `/media` endpoints.

Every send returns a SendResult instead of raising: a failed WhatsApp call is
logged here and the caller decides whether to fall back.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

import httpx
from loguru import logger

from ..config import get_settings
from ..utils.phone_parser import mask_phone


@dataclass
class SendResult:
    ok: bool
    data: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None

    def __bool__(self) -> bool:
        return self.ok

    @property
    def message_id(self) -> Optional[str]:
        messages = self.data.get("messages") or []
        return messages[0].get("id") if messages else None


class WhatsAppClient:
    """Client for the WhatsApp Cloud API (Graph API)"""

    def __init__(
        self,
        token: Optional[str] = None,
        phone_number_id: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.settings = get_settings()
        self.token = token or self.settings.WHATSAPP_TOKEN
        self.phone_number_id = phone_number_id or self.settings.phone_number_id
        self.base_url = (base_url or self.settings.GRAPH_BASE_URL).rstrip("/")
        self.timeout = timeout or self.settings.http_timeout_seconds
        self._client = http_client

        if not self.token or not self.phone_number_id:
            logger.warning("⚠️ WHATSAPP_TOKEN or PHONE_NUMBER_ID not configured - sends will fail")

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    @property
    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}

    @property
    def messages_url(self) -> str:
        return f"{self.base_url}/{self.phone_number_id}/messages"

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _post_message(self, to: str, payload: Dict[str, Any], label: str) -> SendResult:
        body = {"messaging_product": "whatsapp", "to": to, **payload}
        try:
            resp = await self.client.post(self.messages_url, json=body, headers=self._headers)
            resp.raise_for_status()
            data = resp.json()
            logger.info(f"✅ WhatsApp {label} sent to {mask_phone(to)}")
            return SendResult(True, data)
        except httpx.HTTPStatusError as exc:
            logger.error(f"❌ WhatsApp {label} failed ({exc.response.status_code}) for {mask_phone(to)}: {exc.response.text[:300]}")
            return SendResult(False, error=f"HTTP {exc.response.status_code}")
        except httpx.HTTPError as exc:
            logger.error(f"❌ WhatsApp {label} connection error for {mask_phone(to)}: {exc}")
            return SendResult(False, error=str(exc) or type(exc).__name__)
        except ValueError as exc:
            logger.error(f"❌ WhatsApp {label} returned invalid JSON: {exc}")
            return SendResult(False, error="invalid response")

    async def send_text(self, to: str, body: str) -> SendResult:
        logger.debug(f"📝 MESSAGE CONTENT: {body[:200]}{'...' if len(body) > 200 else ''}")
        return await self._post_message(to, {"type": "text", "text": {"body": body}}, "text")

    async def send_buttons(self, to: str, body: str, buttons: Sequence[Tuple[str, str]]) -> SendResult:
        """Send up to three reply buttons given as (id, title) pairs"""
        payload = {
            "type": "interactive",
            "interactive": {
                "type": "button",
                "body": {"text": body},
                "action": {
                    "buttons": [
                        {"type": "reply", "reply": {"id": button_id, "title": title}}
                        for button_id, title in buttons[:3]
                    ]
                },
            },
        }
        return await self._post_message(to, payload, "buttons")

    async def send_list(
        self,
        to: str,
        header: str,
        body: str,
        button: str,
        sections: Sequence[Tuple[str, List[Tuple[str, str]]]],
    ) -> SendResult:
        """Send an interactive list; sections are (title, [(row id, row title)])"""
        payload = {
            "type": "interactive",
            "interactive": {
                "type": "list",
                "header": {"type": "text", "text": header},
                "body": {"text": body},
                "action": {
                    "button": button,
                    "sections": [
                        {"title": title, "rows": [{"id": row_id, "title": row_title} for row_id, row_title in rows]}
                        for title, rows in sections
                    ],
                },
            },
        }
        return await self._post_message(to, payload, "list")

    async def send_image(self, to: str, link: str, caption: Optional[str] = None) -> SendResult:
        image: Dict[str, Any] = {"link": link}
        if caption:
            image["caption"] = caption
        return await self._post_message(to, {"type": "image", "image": image}, "image")

    async def send_location(self, to: str, latitude: float, longitude: float, name: str, address: str) -> SendResult:
        payload = {
            "type": "location",
            "location": {"latitude": latitude, "longitude": longitude, "name": name, "address": address},
        }
        return await self._post_message(to, payload, "location")

    async def upload_media(self, content: bytes, mime_type: str = "audio/ogg", filename: str = "voice.ogg") -> Optional[str]:
        """Upload media to WhatsApp and return its media id"""
        try:
            resp = await self.client.post(
                f"{self.base_url}/{self.phone_number_id}/media",
                headers=self._headers,
                data={"messaging_product": "whatsapp", "type": mime_type},
                files={"file": (filename, content, mime_type)},
            )
            resp.raise_for_status()
            media_id = resp.json().get("id")
            logger.debug(f"📎 Uploaded {len(content)} bytes as media {media_id}")
            return media_id
        except httpx.HTTPStatusError as exc:
            logger.error(f"❌ Media upload failed ({exc.response.status_code}): {exc.response.text[:300]}")
        except (httpx.HTTPError, ValueError) as exc:
            logger.error(f"❌ Media upload error: {exc}")
        return None

    async def send_voice(self, to: str, audio: bytes) -> SendResult:
        """Upload an OGG/Opus clip and send it as a voice note"""
        media_id = await self.upload_media(audio)
        if not media_id:
            return SendResult(False, error="upload failed")
        return await self._post_message(to, {"type": "audio", "audio": {"id": media_id, "voice": True}}, "voice")

    async def download_media(self, media_id: str) -> Optional[bytes]:
        """Resolve a media id to its URL and download the bytes"""
        try:
            meta = await self.client.get(f"{self.base_url}/{media_id}", headers=self._headers)
            meta.raise_for_status()
            url = meta.json().get("url")
            if not url:
                logger.error(f"❌ No download URL for media {media_id}")
                return None
            resp = await self.client.get(url, headers=self._headers)
            resp.raise_for_status()
            logger.debug(f"📥 Downloaded media {media_id} ({len(resp.content)} bytes)")
            return resp.content
        except httpx.HTTPStatusError as exc:
            logger.error(f"❌ Media download failed ({exc.response.status_code}) for {media_id}")
        except (httpx.HTTPError, ValueError) as exc:
            logger.error(f"❌ Media download error for {media_id}: {exc}")
        return None
