"""End-to-end conversation tests through ConversationRouter with fake collaborators."""

import time

import pytest

from conftest import USER, button_reply, text_message, voice_note
from ibtisama_bot.api.whatsapp_parser import InteractiveMessage, UnrecognizedMessage
from ibtisama_bot.core import messages
from ibtisama_bot.models.booking import STATUS_CANCELED, STATUS_NEW
from ibtisama_bot.models.conversation import BookingDraft, FlowStep, MessageType
from ibtisama_bot.orchestration.router import (
    STATUS_IGNORED,
    STATUS_PROCESSED,
    STATUS_REJECTED,
    interactive_event,
)
from ibtisama_bot.models.events import BookingButtonPressed, ServiceSelected, SlotSelected


async def book(router, *steps):
    for step in steps:
        inbound = step if isinstance(step, InteractiveMessage) else text_message(step)
        assert await router.handle(inbound) == STATUS_PROCESSED


class TestBookingFlow:

    @pytest.mark.asyncio
    async def test_full_booking_is_persisted(self, router, repository, sessions, transport):
        await book(router, "بدي احجز", button_reply("slot_6pm"), "Ahmad Khaled", "0791234567", "تنظيف")

        assert len(repository.bookings) == 1
        record = repository.bookings[0]
        assert record.model_dump(include={"name", "phone", "service", "appointment", "status"}) == {
            "name": "Ahmad Khaled",
            "phone": "0791234567",
            "service": "تنظيف الأسنان",
            "appointment": "6 PM",
            "status": STATUS_NEW,
        }
        assert await sessions.get_draft(USER) is None
        assert transport.texts()[-1].startswith("✅ تم تأكيد حجزك بنجاح")

    @pytest.mark.asyncio
    async def test_slot_buttons_use_profile_times(self, router, transport):
        await book(router, "حجز")
        method, args = transport.calls[-1]
        assert method == "send_buttons"
        assert args[2] == [("slot_3pm", "3 PM"), ("slot_6pm", "6 PM"), ("slot_9pm", "9 PM")]

    @pytest.mark.asyncio
    async def test_service_list_after_phone(self, router, transport):
        await book(router, "6", "Ahmad Khaled", "0791234567")
        assert transport.methods()[-2:] == ["send_text", "send_list"]

    @pytest.mark.asyncio
    async def test_service_from_list_reply(self, router, repository):
        await book(router, "9", "سارة محمد", "0781234567", button_reply("service_فحص عام"))
        assert repository.bookings[0].service == "فحص عام"
        assert repository.bookings[0].appointment == "9 PM"

    @pytest.mark.asyncio
    async def test_side_question_keeps_name_unset(self, router, sessions, ai, transport):
        await book(router, "6")
        transport.clear()

        await book(router, "كم السعر؟")

        assert ai.questions == ["كم السعر؟"]
        assert transport.texts() == ["AI: كم السعر؟", messages.NAME_RESUME]
        assert await sessions.get_draft(USER) == BookingDraft(appointment="6 PM")

    @pytest.mark.asyncio
    async def test_invalid_name_reprompts(self, router, ai, sessions, transport):
        ai.name_valid = False
        await book(router, "6", "qwerty")
        assert transport.texts()[-1] == messages.NAME_INVALID
        assert (await sessions.get_draft(USER)).name is None

    @pytest.mark.asyncio
    async def test_abscess_mention_keeps_draft(self, router, sessions, transport):
        await book(router, "6", "Ahmad Khaled", "0791234567", "عندي خراج")

        draft = await sessions.get_draft(USER)
        assert draft is not None and draft.phone == "0791234567"
        assert messages.BANNED_CONTENT_REPLY["ar"] not in transport.texts()
        assert transport.methods()[-1] == "send_list"

    @pytest.mark.asyncio
    async def test_insert_failure_reports_error(self, router, repository, transport):
        async def broken_insert(booking):
            return None

        repository.insert_booking = broken_insert
        await book(router, "6", "Ahmad Khaled", "0791234567", "تبييض")
        assert transport.texts()[-1] == messages.GENERIC_ERROR

    @pytest.mark.asyncio
    async def test_reset_mid_booking(self, router, sessions, transport):
        await book(router, "6", "Ahmad Khaled", "reset")
        state = await sessions.load_state(USER)
        assert state.step == FlowStep.IDLE
        assert state.draft is None
        assert transport.texts()[-1] in messages.ENGLISH_GREETINGS


class TestCancellation:

    @pytest.mark.asyncio
    async def test_unknown_phone(self, router, repository, transport):
        await book(router, "الغاء", "0799999999")
        assert transport.texts()[-1] == messages.CANCEL_NOT_FOUND
        assert repository.status_updates == []

    @pytest.mark.asyncio
    async def test_cancels_latest_booking(self, router, repository, transport):
        await book(router, "6", "Ahmad Khaled", "0791234567", "حشو")
        await book(router, "3", "Ahmad Khaled", "0791234567", "خلع")

        await book(router, "بدي الغي الموعد", "٠٧٩١٢٣٤٥٦٧")

        assert repository.status_updates == [(2, STATUS_CANCELED)]
        assert repository.bookings[0].status == STATUS_NEW
        assert transport.texts()[-1].startswith("🟣 تم إلغاء الحجز")
        assert "خلع الأسنان" in transport.texts()[-1]

    @pytest.mark.asyncio
    async def test_lookup_error(self, router, repository, transport):
        from ibtisama_bot.services.booking_repository import BookingRepositoryError

        async def failing_find(phone):
            raise BookingRepositoryError("boom")

        repository.find_latest_active_booking_by_phone = failing_find
        await book(router, "cancel", "0791234567")
        assert transport.texts()[-1] == messages.CANCEL_ERROR


class TestGuard:

    @pytest.mark.asyncio
    async def test_duplicate_text_has_one_effect(self, router, ai):
        assert await router.handle(text_message("عندي سؤال عن التقويم")) == STATUS_PROCESSED
        assert await router.handle(text_message("عندي سؤال عن التقويم")) == STATUS_REJECTED
        assert len(ai.questions) == 1

    @pytest.mark.asyncio
    async def test_eleventh_message_dropped(self, router, transport):
        results = [await router.handle(text_message(f"سؤال رقم {i}")) for i in range(11)]
        assert results[:10] == [STATUS_PROCESSED] * 10
        assert results[10] == STATUS_REJECTED
        assert len(transport.calls) == 10

    @pytest.mark.asyncio
    async def test_rejected_message_still_creates_session(self, router, guard, sessions, store):
        await guard.admit("962790000009", "m1", now=time.time())
        # Same message id while the first is still in flight
        result = await router.handle(text_message("hello", user_id="962790000009", message_id="m1"))
        assert result == STATUS_REJECTED
        assert await store.get("session:962790000009") is not None


class TestVoiceAndInteractive:

    @pytest.mark.asyncio
    async def test_voice_note_answered_with_voice(self, router, transport, voice, sessions):
        assert await router.handle(voice_note("media-1")) == STATUS_PROCESSED
        assert transport.methods() == ["send_voice"]
        assert voice.spoken == [messages.SLOT_PROMPT_VOICE]
        assert (await sessions.get_session(USER)).last_message_type == MessageType.AUDIO

    @pytest.mark.asyncio
    async def test_untranscribable_voice_note(self, router, voice):
        await router.handle(voice_note("media-unknown"))
        assert voice.spoken == [messages.TRANSCRIPT_MISSING]

    @pytest.mark.asyncio
    async def test_voice_falls_back_to_text(self, router, voice, transport):
        voice.fail = True
        await router.handle(voice_note("media-unknown"))
        assert transport.calls == [("send_text", (USER, messages.TRANSCRIPT_MISSING))]

    @pytest.mark.asyncio
    async def test_unknown_button_ignored(self, router, transport):
        assert await router.handle(button_reply("mystery")) == STATUS_IGNORED
        assert transport.calls == []

    @pytest.mark.asyncio
    async def test_unsupported_message_type_ignored(self, router, transport):
        inbound = UnrecognizedMessage(user_id=USER, message_id="wamid.sticker", message_type="sticker")
        assert await router.handle(inbound) == STATUS_IGNORED
        assert transport.calls == []

    @pytest.mark.asyncio
    async def test_offers_flow_ends_with_booking_button(self, router, transport):
        await book(router, "العروض", "ايوه ارسل")
        assert transport.methods()[-4:] == ["send_text", "send_image", "send_image", "send_buttons"]

    @pytest.mark.asyncio
    async def test_doctors_flow_quick_booking_button_starts_booking(self, router, transport):
        await book(router, "مين الأطباء")
        assert transport.methods() == ["send_text", "send_image", "send_buttons"]
        _, (_, body, buttons) = transport.calls[-1]
        assert buttons == [("quick_booking", messages.QUICK_BOOKING_TITLE["ar"])]

        transport.clear()
        await book(router, button_reply("quick_booking"))
        assert transport.methods() == ["send_buttons"]
        assert transport.calls[0][1][2][0] == ("slot_3pm", "3 PM")

    def test_interactive_event_mapping(self):
        assert interactive_event("slot_3pm") == SlotSelected("slot_3pm")
        assert interactive_event("service_تبييض الأسنان") == ServiceSelected("تبييض الأسنان")
        assert interactive_event("quick_booking") == BookingButtonPressed("quick_booking")
        assert interactive_event("other") is None
