# -*- coding: utf-8 -*-
"""
Conversation Router
===================
Per-message orchestration:

1. Ensure the sender has a session, then consult the message guard
2. Turn the inbound message into an event (voice notes are transcribed)
3. Load state, run the transition function, persist the new state
4. Dispatch the outbound intents; events returned by query intents are fed
   back into step 3 until nothing is left
"""

from dataclasses import replace
from typing import List, Optional, Tuple

from loguru import logger

from ..api.whatsapp_parser import (
    AudioMessage,
    InboundMessage,
    InteractiveMessage,
    TextMessage,
    UnrecognizedMessage,
)
from ..core.transitions import FlowContext, SLOT_PREFIX, transition
from ..memory.message_guard import MessageGuard
from ..memory.session_manager import SessionManager
from ..models.booking import ClinicProfile
from ..models.conversation import Channel, MessageType
from ..models.events import (
    BookingButtonPressed,
    Event,
    ServiceSelected,
    SlotSelected,
    TextReceived,
    TranscriptMissing,
)
from ..services.media_flows import QUICK_BOOKING_BUTTON_ID, START_BOOKING_BUTTON_ID
from ..services.transcriber import Transcriber
from ..utils.phone_parser import mask_phone
from .dispatcher import IntentDispatcher


STATUS_PROCESSED = "processed"
STATUS_IGNORED = "ignored"
STATUS_REJECTED = "rejected"

SERVICE_PREFIX = "service_"
BOOKING_BUTTON_IDS = (START_BOOKING_BUTTON_ID, QUICK_BOOKING_BUTTON_ID)

# Upper bound on transition rounds per inbound message (one user event plus
# the answers to its queries)
MAX_ROUNDS = 5


class ConversationRouter:
    """
    Routes one inbound WhatsApp message through the conversation state machine.

    All collaborators are injected so the same router runs against the real
    WhatsApp/OpenAI/Supabase clients or against test fakes.
    """

    def __init__(
        self,
        sessions: SessionManager,
        guard: MessageGuard,
        dispatcher: IntentDispatcher,
        transcriber: Optional[Transcriber],
        context: FlowContext,
    ):
        self.sessions = sessions
        self.guard = guard
        self.dispatcher = dispatcher
        self.transcriber = transcriber
        self.context = context
        self.dispatcher.profile = context.profile

    def apply_profile(self, profile: ClinicProfile) -> None:
        """Switch to a clinic profile loaded after startup"""
        self.context.profile = profile
        self.dispatcher.profile = profile

    async def handle(self, inbound: InboundMessage, now: Optional[float] = None) -> str:
        """
        Process one inbound message.

        Returns:
            "processed", "rejected" (guard) or "ignored" (nothing to act on)
        """
        user_id = inbound.user_id
        session = await self.sessions.get_session(user_id)

        if isinstance(inbound, UnrecognizedMessage):
            logger.info(f"🤷 Ignoring unsupported {inbound.message_type} message from {mask_phone(user_id)}")
            return STATUS_IGNORED

        text = inbound.text if isinstance(inbound, TextMessage) else None
        async with self.guard.guard(user_id, inbound.message_id, text, now) as admission:
            if not admission:
                logger.info(f"🛑 Message from {mask_phone(user_id)} rejected: {admission.reason}")
                return STATUS_REJECTED

            message_type = _message_type(inbound)
            await self.sessions.save_session(user_id, replace(session, last_message_type=message_type))

            first = await self._first_event(inbound)
            if first is None:
                return STATUS_IGNORED
            event, channel = first

            await self._run(user_id, event, channel)
            return STATUS_PROCESSED

    async def _first_event(self, inbound: InboundMessage) -> Optional[Tuple[Event, Channel]]:
        if isinstance(inbound, TextMessage):
            return TextReceived(inbound.text), Channel.TEXT

        if isinstance(inbound, InteractiveMessage):
            event = interactive_event(inbound.reply_id)
            if event is None:
                logger.info(f"🔘 Unknown interactive reply '{inbound.reply_id}' ignored")
                return None
            return event, Channel.TEXT

        if isinstance(inbound, AudioMessage):
            transcript = None
            if self.transcriber is not None:
                transcript = await self.transcriber.transcribe(inbound.media_id, inbound.user_id)
            if not transcript:
                return TranscriptMissing(), Channel.VOICE
            return TextReceived(transcript), Channel.VOICE

        return None

    async def _run(self, user_id: str, event: Event, channel: Channel) -> None:
        pending: List[Event] = [event]
        rounds = 0
        while pending:
            if rounds >= MAX_ROUNDS:
                logger.error(f"❌ Dropping {len(pending)} pending events for {mask_phone(user_id)} after {rounds} rounds")
                break
            rounds += 1
            current = pending.pop(0)

            state = await self.sessions.load_state(user_id)
            result = transition(state, current, self.context)
            await self.sessions.save_state(user_id, result.state)

            logger.debug(
                f"🔀 {type(current).__name__}: {state.step.value} → {result.state.step.value} "
                f"({len(result.intents)} intents)"
            )
            pending.extend(await self.dispatcher.execute(user_id, result.intents, channel))


def interactive_event(reply_id: str) -> Optional[Event]:
    """Map a button/list reply id to its event; None for unknown ids"""
    if reply_id.startswith(SLOT_PREFIX):
        return SlotSelected(reply_id)
    if reply_id.startswith(SERVICE_PREFIX):
        return ServiceSelected(reply_id[len(SERVICE_PREFIX):])
    if reply_id in BOOKING_BUTTON_IDS:
        return BookingButtonPressed(reply_id)
    return None


def _message_type(inbound: InboundMessage) -> MessageType:
    if isinstance(inbound, AudioMessage):
        return MessageType.AUDIO
    if isinstance(inbound, InteractiveMessage):
        return MessageType.INTERACTIVE
    return MessageType.TEXT
