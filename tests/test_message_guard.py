"""Tests for MessageGuard admission control."""

import asyncio

import pytest

from ibtisama_bot.memory.message_guard import (
    GuardSweepTask,
    REASON_DUPLICATE,
    REASON_IN_FLIGHT,
    REASON_RATE_LIMITED,
)


class TestAdmission:

    @pytest.mark.asyncio
    async def test_first_message_admitted(self, guard):
        admission = await guard.admit("u1", "m1", "hello", now=100.0)
        assert admission
        assert admission.reason is None

    @pytest.mark.asyncio
    async def test_in_flight_rejected_until_released(self, guard):
        await guard.admit("u1", "m1", None, now=100.0)
        second = await guard.admit("u1", "m1", None, now=101.0)
        assert not second
        assert second.reason == REASON_IN_FLIGHT

        await guard.release("u1", "m1")
        assert await guard.admit("u1", "m1", None, now=102.0)

    @pytest.mark.asyncio
    async def test_stale_in_flight_mark_expires(self, guard):
        await guard.admit("u1", "m1", None, now=100.0)
        assert await guard.admit("u1", "m1", None, now=111.0)

    @pytest.mark.asyncio
    async def test_duplicate_text_within_window(self, guard):
        assert await guard.admit("u1", "m1", "كم السعر", now=100.0)
        second = await guard.admit("u1", "m2", "كم السعر", now=104.0)
        assert second.reason == REASON_DUPLICATE

    @pytest.mark.asyncio
    async def test_same_text_after_window_allowed(self, guard):
        assert await guard.admit("u1", "m1", "نعم", now=100.0)
        assert await guard.admit("u1", "m2", "نعم", now=106.0)

    @pytest.mark.asyncio
    async def test_duplicates_are_per_user(self, guard):
        assert await guard.admit("u1", "m1", "hello", now=100.0)
        assert await guard.admit("u2", "m2", "hello", now=100.5)

    @pytest.mark.asyncio
    async def test_non_text_skips_duplicate_check(self, guard):
        assert await guard.admit("u1", "m1", None, now=100.0)
        assert await guard.admit("u1", "m2", None, now=100.1)

    @pytest.mark.asyncio
    async def test_rate_limit_eleventh_message(self, guard):
        for i in range(10):
            assert await guard.admit("u1", f"m{i}", f"text {i}", now=100.0 + i)
        eleventh = await guard.admit("u1", "m10", "text 10", now=110.0)
        assert eleventh.reason == REASON_RATE_LIMITED

    @pytest.mark.asyncio
    async def test_rate_window_slides(self, guard):
        for i in range(10):
            await guard.admit("u1", f"m{i}", f"text {i}", now=100.0 + i)
        # The first timestamp (100.0) has left the 30 s window
        assert await guard.admit("u1", "m10", "text 10", now=130.5)

    @pytest.mark.asyncio
    async def test_guard_context_releases(self, guard, store):
        async with guard.guard("u1", "m1", "hi", now=100.0) as admission:
            assert admission
            assert await store.get("guard:inflight:u1:m1") == 100.0
        assert await store.get("guard:inflight:u1:m1") is None


class TestSweep:

    @pytest.mark.asyncio
    async def test_sweep_purges_expired_entries(self, guard, store):
        await guard.admit("u1", "m1", "hello", now=100.0)
        await guard.admit("u2", "m2", "hi", now=200.0)

        removed = await guard.sweep(now=215.0)

        # u1: in-flight, last text and rate window; u2: in-flight and last text
        assert removed == 5
        assert await store.get("guard:last:u1") is None
        assert await store.get("guard:rate:u2") == [200.0]

    @pytest.mark.asyncio
    async def test_admit_triggers_periodic_sweep(self, guard, store):
        await guard.admit("u1", "m1", "hello", now=0.0)
        await guard.admit("u2", "m2", "hello", now=121.0)
        assert await store.get("guard:last:u1") is None

    @pytest.mark.asyncio
    async def test_sweep_task_start_stop(self, guard):
        task = GuardSweepTask(guard, interval_seconds=0.01)
        task.start()
        await asyncio.sleep(0.05)
        await task.stop()
        assert not task.running
        assert guard._last_sweep is not None
