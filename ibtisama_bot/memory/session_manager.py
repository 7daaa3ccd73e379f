from typing import Optional

from loguru import logger

from ..config import settings
from ..models.conversation import BookingDraft, ConversationState, Session
from .store import InMemoryStore, KeyValueStore, RedisStore


SESSION_NAMESPACE = "session"
DRAFT_NAMESPACE = "draft"


class SessionManager:
    """
    Per-user session flags and booking drafts on top of a KeyValueStore.

    Sessions are created lazily on first read and never expire. Drafts live in
    a separate namespace and exist only while a booking is in progress.
    """

    def __init__(self, store: KeyValueStore):
        self.store = store

    @staticmethod
    def _session_key(user_id: str) -> str:
        return f"{SESSION_NAMESPACE}:{user_id}"

    @staticmethod
    def _draft_key(user_id: str) -> str:
        return f"{DRAFT_NAMESPACE}:{user_id}"

    async def get_session(self, user_id: str) -> Session:
        """Return the user's session, creating and storing a default one if missing"""
        session = await self.store.get(self._session_key(user_id))
        if session is None:
            session = Session()
            await self.store.set(self._session_key(user_id), session)
            logger.debug(f"🆕 Session created for {user_id[-4:]}")
        return session

    async def save_session(self, user_id: str, session: Session) -> None:
        await self.store.set(self._session_key(user_id), session)

    async def clear_session_flags(self, user_id: str) -> Session:
        session = (await self.get_session(user_id)).cleared()
        await self.save_session(user_id, session)
        return session

    async def get_draft(self, user_id: str) -> Optional[BookingDraft]:
        return await self.store.get(self._draft_key(user_id))

    async def start_draft(self, user_id: str, appointment: str) -> BookingDraft:
        """Start (or replace) the user's draft with a chosen appointment time"""
        draft = BookingDraft(appointment=appointment)
        await self.save_draft(user_id, draft)
        return draft

    async def save_draft(self, user_id: str, draft: BookingDraft) -> None:
        await self.store.set(self._draft_key(user_id), draft)

    async def clear_draft(self, user_id: str) -> None:
        await self.store.delete(self._draft_key(user_id))

    async def load_state(self, user_id: str) -> ConversationState:
        return ConversationState(
            session=await self.get_session(user_id),
            draft=await self.get_draft(user_id),
        )

    async def save_state(self, user_id: str, state: ConversationState) -> None:
        """Persist a state produced by the transition function; a None draft is deleted"""
        await self.save_session(user_id, state.session)
        if state.draft is None:
            await self.clear_draft(user_id)
        else:
            await self.save_draft(user_id, state.draft)


def build_store(backend: Optional[str] = None, redis_url: Optional[str] = None) -> KeyValueStore:
    """Create the configured state backend (`memory` or `redis`)"""
    backend = (backend or settings.state_backend).lower()
    if backend == "redis":
        store = RedisStore.from_url(redis_url or settings.REDIS_URL)
        store.register_codec(SESSION_NAMESPACE, Session.to_dict, Session.from_dict)
        store.register_codec(DRAFT_NAMESPACE, BookingDraft.to_dict, BookingDraft.from_dict)
        return store
    if backend != "memory":
        raise ValueError(f"Unknown state backend: {backend}")
    logger.info("✅ Using in-memory state store")
    return InMemoryStore()
