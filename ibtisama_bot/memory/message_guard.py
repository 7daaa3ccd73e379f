"""
Message Guard
=============
Admission control for inbound WhatsApp messages, checked in this order:

1. In-flight: the same (user, message id) is still being processed
2. Duplicate: the same text from the same user within the duplicate window
3. Rate limit: too many messages from one user inside the sliding window

Rejected messages get no reply. Guard state lives in a KeyValueStore with
JSON-friendly values so it works on both the memory and Redis backends.
"""
import asyncio
import contextlib
import time
from dataclasses import dataclass
from typing import AsyncIterator, Optional

from loguru import logger

from ..config import settings
from .store import KeyValueStore


REASON_IN_FLIGHT = "in_flight"
REASON_DUPLICATE = "duplicate"
REASON_RATE_LIMITED = "rate_limited"

INFLIGHT_PREFIX = "guard:inflight:"
LAST_TEXT_PREFIX = "guard:last:"
RATE_PREFIX = "guard:rate:"


@dataclass(frozen=True)
class Admission:
    allowed: bool
    reason: Optional[str] = None

    def __bool__(self) -> bool:
        return self.allowed


ADMITTED = Admission(True)


class MessageGuard:
    """
    In-flight, duplicate and rate-limit checks for one process.

    Expired entries are purged by `sweep()`, which runs at most once per sweep
    interval from `admit()` and periodically from GuardSweepTask.
    """

    def __init__(
        self,
        store: KeyValueStore,
        duplicate_window: float = settings.duplicate_window_seconds,
        rate_window: float = settings.rate_window_seconds,
        rate_max_messages: int = settings.rate_max_messages,
        processing_timeout: float = settings.processing_timeout_seconds,
        sweep_interval: float = settings.guard_sweep_interval_seconds,
    ):
        self.store = store
        self.duplicate_window = duplicate_window
        self.rate_window = rate_window
        self.rate_max_messages = rate_max_messages
        self.processing_timeout = processing_timeout
        self.sweep_interval = sweep_interval
        self._last_sweep: Optional[float] = None

    @staticmethod
    def _inflight_key(user_id: str, message_id: str) -> str:
        return f"{INFLIGHT_PREFIX}{user_id}:{message_id}"

    async def admit(
        self,
        user_id: str,
        message_id: str,
        text: Optional[str] = None,
        now: Optional[float] = None,
    ) -> Admission:
        """
        Decide whether a message may be processed.

        Args:
            user_id: Sender id
            message_id: WhatsApp message id
            text: Message text; None for non-text messages (skips the duplicate check)
            now: Current time in seconds (defaults to time.time())

        Returns:
            Admission; when allowed the message is marked in-flight until release()
        """
        now = time.time() if now is None else now
        await self._maybe_sweep(now)

        inflight_key = self._inflight_key(user_id, message_id)
        started = await self.store.get(inflight_key)
        if started is not None:
            if now - started < self.processing_timeout:
                logger.warning(f"⏳ Message {message_id[-8:]} already in flight, skipping")
                return Admission(False, REASON_IN_FLIGHT)
            await self.store.delete(inflight_key)

        if text is not None:
            last = await self.store.get(f"{LAST_TEXT_PREFIX}{user_id}")
            await self.store.set(f"{LAST_TEXT_PREFIX}{user_id}", {"text": text, "ts": now})
            if last and last.get("text") == text and now - last.get("ts", 0) < self.duplicate_window:
                logger.warning(f"🔁 Duplicate text from {user_id[-4:]} ignored")
                return Admission(False, REASON_DUPLICATE)

        rate_key = f"{RATE_PREFIX}{user_id}"
        recent = [ts for ts in (await self.store.get(rate_key) or []) if now - ts < self.rate_window]
        if len(recent) >= self.rate_max_messages:
            await self.store.set(rate_key, recent)
            logger.warning(f"🚦 Rate limit reached for {user_id[-4:]} ({len(recent)} in {self.rate_window:.0f}s)")
            return Admission(False, REASON_RATE_LIMITED)
        recent.append(now)
        await self.store.set(rate_key, recent)

        await self.store.set(inflight_key, now)
        return ADMITTED

    async def release(self, user_id: str, message_id: str) -> None:
        await self.store.delete(self._inflight_key(user_id, message_id))

    @contextlib.asynccontextmanager
    async def guard(
        self,
        user_id: str,
        message_id: str,
        text: Optional[str] = None,
        now: Optional[float] = None,
    ) -> AsyncIterator[Admission]:
        """Admit a message and release its in-flight mark when the block exits"""
        admission = await self.admit(user_id, message_id, text, now)
        try:
            yield admission
        finally:
            if admission.allowed:
                await self.release(user_id, message_id)

    async def _maybe_sweep(self, now: float) -> None:
        if self._last_sweep is None:
            self._last_sweep = now
        elif now - self._last_sweep >= self.sweep_interval:
            await self.sweep(now)

    async def sweep(self, now: Optional[float] = None) -> int:
        """Purge expired in-flight marks, stale last-texts and empty rate windows"""
        now = time.time() if now is None else now
        self._last_sweep = now
        removed = 0

        async for key, started in self.store.items(INFLIGHT_PREFIX):
            if now - started >= self.processing_timeout:
                await self.store.delete(key)
                removed += 1

        async for key, last in self.store.items(LAST_TEXT_PREFIX):
            if now - last.get("ts", 0) >= self.duplicate_window:
                await self.store.delete(key)
                removed += 1

        async for key, stamps in self.store.items(RATE_PREFIX):
            recent = [ts for ts in stamps if now - ts < self.rate_window]
            if not recent:
                await self.store.delete(key)
                removed += 1
            elif len(recent) != len(stamps):
                await self.store.set(key, recent)

        if removed:
            logger.debug(f"🧹 Guard sweep removed {removed} expired entries")
        return removed


class GuardSweepTask:
    """Background loop calling MessageGuard.sweep() every interval"""

    def __init__(self, guard: MessageGuard, interval_seconds: Optional[float] = None):
        self.guard = guard
        self.interval = interval_seconds or guard.sweep_interval
        self.running = False
        self.task: Optional[asyncio.Task] = None

    async def _sweep_loop(self):
        logger.info(f"🧹 Guard sweep task started (interval: {self.interval}s)")
        while self.running:
            await asyncio.sleep(self.interval)
            try:
                await self.guard.sweep()
            except Exception as exc:
                logger.exception(f"Guard sweep error: {exc}")

    def start(self):
        if not self.running:
            self.running = True
            self.task = asyncio.create_task(self._sweep_loop())

    async def stop(self):
        if self.running:
            self.running = False
            if self.task:
                self.task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await self.task
            logger.info("🧹 Stopped guard sweep task")
