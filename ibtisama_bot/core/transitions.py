# -*- coding: utf-8 -*-
"""
Conversation Transitions
========================
The booking/cancellation state machine as a single function:

    transition(state, event, ctx) -> Transition(state, intents)

No I/O happens here. Handlers read the current ConversationState, return the
next one, and describe the replies to send as OutboundIntent values. Answers
to query intents (name validation, booking save, cancellation lookup) come back
in as events.

Text messages go through a priority cascade, first match wins:

    reset > greeting (no draft) > banned content > location > offers >
    offers confirmation > doctors > cancel start > cancel phone >
    booking start > name / phone / service step > AI fallback
"""
import random
from dataclasses import dataclass, field, replace
from typing import Optional, Tuple

from loguru import logger

from ..models.booking import ClinicProfile
from ..models.conversation import (
    BookingDraft,
    ConversationState,
    FlowStep,
    Intent,
    Session,
)
from ..models.events import (
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
from ..models.outbound import IntentKind, OutboundIntent
from ..utils.language_detector import detect_language
from ..utils.phone_parser import DEFAULT_PHONE_PATTERN, fold_digits, is_valid_local_phone, normalize_digits
from . import messages
from .content_filter import ContentFilter
from .intent_classifier import KeywordIntentClassifier, get_intent_classifier
from .service_matcher import detect_service


MIN_NAME_LENGTH = 2
MIN_CANCEL_PHONE_DIGITS = 8
SLOT_PREFIX = "slot_"


@dataclass
class FlowContext:
    """Read-only inputs a transition needs besides the state and the event"""
    profile: ClinicProfile
    phone_pattern: str = DEFAULT_PHONE_PATTERN
    content_filter: ContentFilter = field(default_factory=ContentFilter)
    classifier: KeywordIntentClassifier = field(default_factory=get_intent_classifier)
    rng: random.Random = field(default_factory=random.Random)


@dataclass(frozen=True)
class Transition:
    state: ConversationState
    intents: Tuple[OutboundIntent, ...] = ()


def _result(session: Session, draft: Optional[BookingDraft], *intents: OutboundIntent) -> Transition:
    return Transition(ConversationState(session=session, draft=draft), tuple(intents))


def _unchanged(state: ConversationState, *intents: OutboundIntent) -> Transition:
    return Transition(state, tuple(intents))


def transition(state: ConversationState, event: Event, ctx: FlowContext) -> Transition:
    """
    Compute the next conversation state and the replies for one event.

    Args:
        state: Current session flags and booking draft
        event: User input or the answer to a previous query intent
        ctx: Clinic profile and matchers

    Returns:
        Transition with the new state and the ordered outbound intents
    """
    if isinstance(event, TextReceived):
        return _on_text(state, event.text, ctx)
    if isinstance(event, SlotSelected):
        return _on_slot_selected(state, event.slot_id, ctx)
    if isinstance(event, ServiceSelected):
        return _on_service_selected(state, event.service)
    if isinstance(event, BookingButtonPressed):
        return _start_booking(state, slot=None)
    if isinstance(event, TranscriptMissing):
        return _unchanged(state, OutboundIntent.text(messages.TRANSCRIPT_MISSING))
    if isinstance(event, NameChecked):
        return _on_name_checked(state, event)
    if isinstance(event, BookingSaved):
        return _on_booking_saved(state, event)
    if isinstance(event, CancellationResolved):
        return _on_cancellation_resolved(state, event)

    logger.warning(f"⚠️ Unhandled event type: {type(event).__name__}")
    return _unchanged(state)


# ---------------------------------------------------------------------------
# Text cascade
# ---------------------------------------------------------------------------

def _on_text(state: ConversationState, text: str, ctx: FlowContext) -> Transition:
    session, draft = state.session, state.draft
    text = (text or "").strip()
    detected = ctx.classifier.classify(text)
    language = detect_language(text)

    def tagged(intent: Intent, **changes) -> Session:
        return replace(session, last_intent=intent, **changes)

    if Intent.RESET in detected:
        logger.info("🔄 Conversation reset")
        return _result(
            replace(session.cleared(), last_intent=Intent.RESET),
            None,
            OutboundIntent.text(messages.random_greeting(language, ctx.rng)),
        )

    if Intent.GREETING in detected and draft is None:
        return _result(
            tagged(Intent.GREETING),
            draft,
            OutboundIntent.text(messages.random_greeting(language, ctx.rng)),
        )

    if ctx.content_filter.contains_banned_words(text):
        logger.warning("🚫 Banned content received, dropping booking draft")
        return _result(
            replace(session, waiting_for_cancel_phone=False),
            None,
            OutboundIntent.text(messages.banned_content_reply(language)),
        )

    if Intent.LOCATION in detected:
        return _result(tagged(Intent.LOCATION), draft, OutboundIntent.media(IntentKind.LOCATION, language))

    if Intent.OFFERS in detected:
        return _result(
            tagged(Intent.OFFERS, waiting_for_offers_confirmation=True),
            draft,
            OutboundIntent.media(IntentKind.OFFERS_TEASER, language),
        )

    if session.waiting_for_offers_confirmation:
        cleared = replace(session, waiting_for_offers_confirmation=False)
        if Intent.OFFERS_CONFIRMATION in detected:
            return _result(
                replace(cleared, last_intent=Intent.OFFERS_CONFIRMATION),
                draft,
                OutboundIntent.media(IntentKind.OFFERS_MEDIA, language),
            )
        return _result(cleared, draft)

    if Intent.DOCTORS in detected:
        return _result(tagged(Intent.DOCTORS), draft, OutboundIntent.media(IntentKind.DOCTORS_MEDIA, language))

    if Intent.CANCEL_START in detected:
        logger.info("🗑️ Cancellation requested")
        return _result(
            tagged(Intent.CANCEL_START, waiting_for_cancel_phone=True, awaiting_slot=False),
            None,
            OutboundIntent.text(messages.CANCEL_PHONE_PROMPT),
        )

    if session.waiting_for_cancel_phone:
        return _on_cancel_phone(state, text)

    if draft is None:
        slot = resolve_slot(text, ctx.profile)
        quick = fold_digits(text) in ctx.profile.quick_slots()
        if Intent.BOOKING_START in detected or quick or (session.awaiting_slot and slot):
            return _start_booking(replace(state, session=tagged(Intent.BOOKING_START)), slot)

    step = state.step
    if step == FlowStep.BOOKING_NAME:
        return _on_name_text(state, text, ctx)
    if step == FlowStep.BOOKING_PHONE:
        return _on_phone_text(state, text, ctx)
    if step == FlowStep.BOOKING_SERVICE:
        return _on_service_text(state, text, ctx)

    intents = [OutboundIntent.ai_reply(text)]
    if session.awaiting_slot:
        intents.append(OutboundIntent.slot_options())
    return _result(tagged(Intent.QUESTION), draft, *intents)


def resolve_slot(text: str, profile: ClinicProfile) -> Optional[str]:
    """
    Find the booking time a message refers to.

    A bare quick-slot number ("6") or a configured booking time written with or
    without spaces ("6 PM", "6pm") resolves to that time.
    """
    stripped = fold_digits(text).strip()
    quick = profile.quick_slots()
    if stripped in quick:
        return quick[stripped]
    compact = stripped.lower().replace(" ", "")
    if not compact:
        return None
    for label in profile.booking_times:
        if label.lower().replace(" ", "") in compact:
            return label
    return None


def _start_booking(state: ConversationState, slot: Optional[str]) -> Transition:
    session = replace(state.session, waiting_for_cancel_phone=False)
    if slot:
        logger.info(f"📅 Booking started for slot {slot}")
        return _result(
            replace(session, awaiting_slot=False),
            BookingDraft(appointment=slot),
            OutboundIntent.text(messages.SLOT_CHOSEN),
        )
    return _result(replace(session, awaiting_slot=True), None, OutboundIntent.slot_options())


def _on_cancel_phone(state: ConversationState, text: str) -> Transition:
    phone = normalize_digits(text)
    if len(phone) < MIN_CANCEL_PHONE_DIGITS:
        return _unchanged(state, OutboundIntent.text(messages.CANCEL_PHONE_INVALID))
    return _result(
        replace(state.session, waiting_for_cancel_phone=False),
        state.draft,
        OutboundIntent.cancel_booking(phone),
    )


# ---------------------------------------------------------------------------
# Booking steps
# ---------------------------------------------------------------------------

def _side_question(state: ConversationState, text: str, resume_prompt: str) -> Transition:
    """Answer an unrelated question and re-ask for the current field"""
    logger.info(f"❓ Side question during {state.step.value}")
    return _unchanged(state, OutboundIntent.ai_reply(text), OutboundIntent.text(resume_prompt))


def _on_name_text(state: ConversationState, text: str, ctx: FlowContext) -> Transition:
    if ctx.classifier.is_question(text):
        return _side_question(state, text, messages.NAME_RESUME)
    if len(text) < MIN_NAME_LENGTH:
        return _unchanged(state, OutboundIntent.text(messages.NAME_TOO_SHORT))
    return _unchanged(state, OutboundIntent.validate_name(text))


def _on_name_checked(state: ConversationState, event: NameChecked) -> Transition:
    if state.step != FlowStep.BOOKING_NAME:
        # The draft moved on (or was dropped) while the name was being checked
        return _unchanged(state)
    if not event.valid:
        return _unchanged(state, OutboundIntent.text(messages.NAME_INVALID))
    return _result(
        state.session,
        state.draft.with_name(event.name.strip()),
        OutboundIntent.text(messages.PHONE_PROMPT),
    )


def _on_phone_text(state: ConversationState, text: str, ctx: FlowContext) -> Transition:
    if ctx.classifier.is_question(text):
        return _side_question(state, text, messages.PHONE_RESUME)
    phone = normalize_digits(text)
    if not is_valid_local_phone(phone, ctx.phone_pattern):
        return _unchanged(state, OutboundIntent.text(messages.PHONE_INVALID))
    return _result(
        state.session,
        state.draft.with_phone(phone),
        OutboundIntent.text(messages.SERVICE_PROMPT),
        OutboundIntent.service_list(),
    )


def _on_service_text(state: ConversationState, text: str, ctx: FlowContext) -> Transition:
    if ctx.classifier.is_question(text):
        return _side_question(state, text, messages.SERVICE_RESUME)
    service = detect_service(text)
    if not service:
        return _unchanged(state, OutboundIntent.text(messages.SERVICE_UNKNOWN), OutboundIntent.service_list())
    return _complete_booking(state, service)


def _complete_booking(state: ConversationState, service: str) -> Transition:
    booking = state.draft.with_service(service)
    logger.info(f"✅ Booking complete: {booking.service} at {booking.appointment}")
    return _result(state.session, None, OutboundIntent.save_booking(booking))


def _on_booking_saved(state: ConversationState, event: BookingSaved) -> Transition:
    record = event.record
    if record is None:
        return _unchanged(state, OutboundIntent.text(messages.GENERIC_ERROR, spoken=messages.GENERIC_ERROR_VOICE))
    return _unchanged(
        state,
        OutboundIntent.text(
            messages.booking_confirmation(record.name, record.phone, record.service, record.appointment),
            spoken=messages.booking_confirmation_voice(record.name, record.service, record.appointment),
        ),
    )


# ---------------------------------------------------------------------------
# Interactive replies
# ---------------------------------------------------------------------------

def slot_label(slot_id: str, profile: ClinicProfile) -> str:
    """Map a slot button id back to its booking time ("slot_6pm" -> "6 PM")"""
    known = profile.slot_lookup()
    if slot_id in known:
        return known[slot_id]
    return slot_id[len(SLOT_PREFIX):].upper() if slot_id.startswith(SLOT_PREFIX) else slot_id.upper()


def _on_slot_selected(state: ConversationState, slot_id: str, ctx: FlowContext) -> Transition:
    return _start_booking(state, slot_label(slot_id, ctx.profile))


def _on_service_selected(state: ConversationState, service: str) -> Transition:
    draft = state.draft
    if draft is None:
        return _unchanged(state, OutboundIntent.text(messages.SERVICE_NEEDS_BOOKING))
    if draft.phone is None:
        return _unchanged(state, OutboundIntent.text(messages.SERVICE_NEEDS_PHONE))
    return _complete_booking(state, service)


# ---------------------------------------------------------------------------
# Cancellation
# ---------------------------------------------------------------------------

def _on_cancellation_resolved(state: ConversationState, event: CancellationResolved) -> Transition:
    if event.outcome == CancellationOutcome.CANCELED and event.booking is not None:
        booking = event.booking
        return _unchanged(
            state,
            OutboundIntent.text(
                messages.cancellation_summary(booking.name, booking.service, booking.appointment),
                spoken=messages.cancellation_summary_voice(booking.name, booking.service, booking.appointment),
            ),
        )
    if event.outcome == CancellationOutcome.NOT_FOUND:
        return _unchanged(state, OutboundIntent.text(messages.CANCEL_NOT_FOUND))
    return _unchanged(state, OutboundIntent.text(messages.CANCEL_ERROR))

