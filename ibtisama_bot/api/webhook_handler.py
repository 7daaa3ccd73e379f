"""
WhatsApp Webhook Handler
========================
Cloud API webhook endpoints:

- GET  /webhook  subscription handshake (hub.challenge echo)
- POST /webhook  inbound messages, routed through the ConversationRouter

Every POST is acknowledged with 200 so WhatsApp never retries a delivery; the
JSON body only reports what happened (processed / ignored / rejected / error).
"""
from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from loguru import logger

from ..config import get_settings
from ..api.whatsapp_parser import get_payload_parser, is_status_callback
from ..utils.phone_parser import mask_phone


webhook = APIRouter()

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


def _ack(result: str) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_200_OK, content={"status": result})


@webhook.get("/webhook")
async def verify_webhook(request: Request):
    """Meta subscription check: echo hub.challenge when the verify token matches"""
    params = request.query_params
    mode = params.get("hub.mode")
    token = params.get("hub.verify_token")
    challenge = params.get("hub.challenge", "")

    expected = get_settings().VERIFY_TOKEN
    if mode == "subscribe" and expected and token == expected:
        logger.info("✅ Webhook verified")
        return PlainTextResponse(challenge, status_code=status.HTTP_200_OK)

    logger.warning(f"🚫 Webhook verification failed (mode={mode})")
    return PlainTextResponse("Forbidden", status_code=status.HTTP_403_FORBIDDEN)


@webhook.options("/webhook")
async def webhook_preflight():
    return Response(status_code=status.HTTP_200_OK, headers=CORS_HEADERS)


@webhook.post("/webhook")
async def receive_message(request: Request):
    """
    Receive one Cloud API delivery.

    Malformed payloads and status callbacks are acknowledged without a reply.
    Errors raised while processing are logged with their traceback and
    acknowledged as {"status": "error"}.
    """
    try:
        payload = await request.json()
    except ValueError:
        logger.warning("⚠️ Webhook body is not valid JSON - ignoring")
        return _ack("ignored")

    if is_status_callback(payload):
        logger.debug("📬 Status callback ignored")
        return _ack("ignored")

    inbound = get_payload_parser().parse(payload)
    if inbound is None:
        logger.debug("📭 Webhook payload without a message - ignoring")
        return _ack("ignored")

    logger.info(f"📩 {type(inbound).__name__} from {mask_phone(inbound.user_id)} ({inbound.message_id})")

    router = request.app.state.conversation_router
    try:
        result = await router.handle(inbound)
    except Exception as exc:
        logger.exception(f"❌ Error processing message {inbound.message_id}: {exc}")
        return _ack("error")

    return _ack(result)
