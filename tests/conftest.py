"""Shared fixtures and fake collaborators."""

import itertools
import random
from typing import Dict, List, Optional, Tuple

import pytest

from ibtisama_bot.api.whatsapp_client import SendResult
from ibtisama_bot.api.whatsapp_parser import AudioMessage, InteractiveMessage, TextMessage
from ibtisama_bot.core.transitions import FlowContext
from ibtisama_bot.memory.message_guard import MessageGuard
from ibtisama_bot.memory.session_manager import SessionManager
from ibtisama_bot.memory.store import InMemoryStore
from ibtisama_bot.models.booking import ClinicProfile
from ibtisama_bot.orchestration.dispatcher import IntentDispatcher
from ibtisama_bot.orchestration.router import ConversationRouter
from ibtisama_bot.services.booking_repository import InMemoryBookingRepository
from ibtisama_bot.services.media_flows import MediaFlows
from ibtisama_bot.services.voice_synthesizer import VoiceSynthesisError


USER = "962790000001"

_message_ids = itertools.count(1)


class FakeTransport:
    """Records every WhatsApp call; methods listed in `failing` return a failed SendResult"""

    def __init__(self):
        self.calls: List[Tuple[str, tuple]] = []
        self.failing = set()
        self.media: Dict[str, bytes] = {}

    def _record(self, method: str, *args) -> SendResult:
        self.calls.append((method, args))
        if method in self.failing:
            return SendResult(False, error="forced failure")
        return SendResult(True, {"messages": [{"id": f"wamid.{len(self.calls)}"}]})

    async def send_text(self, to, body):
        return self._record("send_text", to, body)

    async def send_buttons(self, to, body, buttons):
        return self._record("send_buttons", to, body, list(buttons))

    async def send_list(self, to, header, body, button, sections):
        return self._record("send_list", to, header, body, button, sections)

    async def send_image(self, to, link, caption=None):
        return self._record("send_image", to, link, caption)

    async def send_location(self, to, latitude, longitude, name, address):
        return self._record("send_location", to, latitude, longitude, name, address)

    async def send_voice(self, to, audio):
        return self._record("send_voice", to, audio)

    async def download_media(self, media_id):
        return self.media.get(media_id)

    async def close(self):
        return None

    def methods(self) -> List[str]:
        return [method for method, _ in self.calls]

    def texts(self) -> List[str]:
        return [args[1] for method, args in self.calls if method == "send_text"]

    def clear(self):
        self.calls.clear()


class FakeAI:
    def __init__(self, name_valid: bool = True):
        self.name_valid = name_valid
        self.questions: List[str] = []
        self.names: List[str] = []

    async def ask(self, text: str) -> str:
        self.questions.append(text)
        return f"AI: {text}"

    async def validate_name(self, name: str) -> bool:
        self.names.append(name)
        return self.name_valid


class FakeVoice:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.spoken: List[str] = []

    async def synthesize(self, text: str) -> bytes:
        if self.fail:
            raise VoiceSynthesisError("synthesis disabled")
        self.spoken.append(text)
        return b"OggS" + text.encode("utf-8")

    async def close(self):
        return None


class FakeTranscriber:
    def __init__(self, transcripts: Optional[Dict[str, str]] = None):
        self.transcripts = transcripts or {}

    async def transcribe(self, media_id: str, user_id: str) -> Optional[str]:
        return self.transcripts.get(media_id)


def text_message(text: str, user_id: str = USER, message_id: Optional[str] = None) -> TextMessage:
    return TextMessage(user_id=user_id, message_id=message_id or f"wamid.in.{next(_message_ids)}", text=text)


def button_reply(reply_id: str, user_id: str = USER) -> InteractiveMessage:
    return InteractiveMessage(user_id=user_id, message_id=f"wamid.in.{next(_message_ids)}", reply_id=reply_id)


def voice_note(media_id: str, user_id: str = USER) -> AudioMessage:
    return AudioMessage(user_id=user_id, message_id=f"wamid.in.{next(_message_ids)}", media_id=media_id)


@pytest.fixture
def profile():
    return ClinicProfile(clinic_name="عيادة ابتسامة", booking_times=["3 PM", "6 PM", "9 PM"])


@pytest.fixture
def context(profile):
    return FlowContext(profile=profile, rng=random.Random(7))


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def sessions(store):
    return SessionManager(store)


@pytest.fixture
def guard(store):
    return MessageGuard(
        store,
        duplicate_window=5,
        rate_window=30,
        rate_max_messages=10,
        processing_timeout=10,
        sweep_interval=120,
    )


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def ai():
    return FakeAI()


@pytest.fixture
def voice():
    return FakeVoice()


@pytest.fixture
def transcriber():
    return FakeTranscriber({"media-1": "بدي احجز"})


@pytest.fixture
def repository(profile):
    return InMemoryBookingRepository(profile)


@pytest.fixture
def media(transport):
    return MediaFlows(
        transport,
        offer_images=["https://cdn.example.com/offer1.jpg", "https://cdn.example.com/offer2.jpg"],
        doctor_images=["https://cdn.example.com/doctor1.jpg"],
        delay_seconds=0,
    )


@pytest.fixture
def dispatcher(transport, ai, repository, media, voice, profile):
    return IntentDispatcher(transport, ai, repository, media, voice=voice, profile=profile)


@pytest.fixture
def router(sessions, guard, dispatcher, transcriber, context):
    return ConversationRouter(sessions, guard, dispatcher, transcriber, context)
