"""
IBTISAMA CLINIC BOT
===================
Application entry point: the FastAPI app serving the WhatsApp webhook, the
website notification endpoints and the health probe.

Startup builds the conversation stack once per process:
state store -> message guard -> collaborators (WhatsApp, OpenAI, ElevenLabs,
Supabase) -> intent dispatcher -> conversation router.

Run locally:
    uvicorn ibtisama_bot.main:app --reload --port 3000
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import get_settings
from .logging_config import configure_logging

from .middleware.error_handler import ErrorHandlingMiddleware
from .middleware.request_id import RequestIDMiddleware

from .api.health_endpoints import router as health_router
from .api.notifications import router as notifications_router
from .api.webhook_handler import webhook as webhook_router
from .api.whatsapp_client import WhatsAppClient
from .core.content_filter import ContentFilter
from .core.transitions import FlowContext
from .memory.message_guard import GuardSweepTask, MessageGuard
from .memory.session_manager import SessionManager, build_store
from .models.booking import ClinicProfile
from .orchestration.dispatcher import IntentDispatcher
from .orchestration.router import ConversationRouter
from .services.ai_responder import AIResponder
from .services.booking_repository import build_booking_repository, default_clinic_profile
from .services.media_flows import MediaFlows
from .services.transcriber import Transcriber
from .services.voice_synthesizer import VoiceSynthesizer


def build_conversation_router(transport, repository, store, profile: ClinicProfile) -> ConversationRouter:
    """Wire the conversation stack around an existing transport, repository and store"""
    settings = get_settings()
    voice = VoiceSynthesizer() if settings.ELEVENLABS_API_KEY else None
    if voice is None:
        logger.warning("⚠️ ElevenLabs TTS: NOT CONFIGURED (voice replies fall back to text)")

    dispatcher = IntentDispatcher(
        transport=transport,
        ai=AIResponder(),
        repository=repository,
        media=MediaFlows(transport),
        voice=voice,
        profile=profile,
    )
    context = FlowContext(
        profile=profile,
        phone_pattern=settings.phone_pattern,
        content_filter=ContentFilter(settings.banned_words),
    )
    return ConversationRouter(
        sessions=SessionManager(store),
        guard=MessageGuard(store),
        dispatcher=dispatcher,
        transcriber=Transcriber(transport),
        context=context,
    )


# ============================================================================
# STARTUP AND SHUTDOWN
# ============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the conversation stack on startup and release connections on shutdown"""
    if getattr(app.state, "conversation_router", None) is not None:
        # Stack injected by the caller (tests); nothing to own
        yield
        return

    logger.info("🚀 Application startup - building conversation stack...")
    settings = get_settings()

    store = build_store()
    repository = build_booking_repository()
    transport = WhatsAppClient()

    profile = await repository.load_clinic_profile()
    logger.info(f"🦷 Clinic: {profile.clinic_name} | slots: {', '.join(profile.slot_times)}")

    router = build_conversation_router(transport, repository, store, profile)
    sweeper = GuardSweepTask(router.guard, settings.guard_sweep_interval_seconds)
    sweeper.start()

    app.state.conversation_router = router
    app.state.transport = transport
    app.state.clinic_profile = profile
    logger.info("✅ Ready to process WhatsApp messages")

    yield

    logger.info("🛑 Application shutdown - cleaning up resources...")
    await sweeper.stop()
    for name, resource in (
        ("state store", store),
        ("WhatsApp client", transport),
        ("voice synthesizer", router.dispatcher.voice),
        ("booking repository", repository),
    ):
        if resource is None:
            continue
        try:
            await resource.close()
        except Exception as exc:
            logger.error(f"⚠️ Error closing {name}: {exc}")
    app.state.conversation_router = None
    logger.info("✅ Application shutdown complete")


# ============================================================================
# APPLICATION FACTORY
# ============================================================================

def create_app(
    router: Optional[ConversationRouter] = None,
    transport=None,
    profile: Optional[ClinicProfile] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Passing `router` (and the transport it sends through) skips the startup
    wiring; the HTTP layer then serves that stack as-is.
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="WhatsApp booking assistant for Ibtisama dental clinic",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.conversation_router = router
    app.state.transport = transport
    app.state.clinic_profile = profile or (router.context.profile if router else default_clinic_profile())

    # Last added executes first: ErrorHandling -> RequestID -> CORS -> routes
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["POST", "OPTIONS", "GET"],
        allow_headers=["Content-Type"],
    )
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(ErrorHandlingMiddleware)

    app.include_router(webhook_router)
    app.include_router(notifications_router)
    app.include_router(health_router)

    @app.get("/")
    async def root():
        return {
            "service": settings.app_name,
            "status": "running",
            "environment": settings.app_env,
            "endpoints": {
                "whatsapp_webhook": "/webhook",
                "website_lead": "/webhook-candy",
                "customer_notice": "/api/send-whatsapp",
                "health": "/health",
            },
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == status.HTTP_404_NOT_FOUND:
            return JSONResponse(
                status_code=status.HTTP_404_NOT_FOUND,
                content={"error": "Route not found", "path": request.url.path},
            )
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"❌ Unhandled error on {request.method} {request.url.path}: {exc}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error"},
        )

    return app


# Configure logging first
configure_logging()

app = create_app()


if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run("ibtisama_bot.main:app", host=_settings.app_host, port=_settings.app_port)
