"""
Booking Notification Endpoints
==============================
Outbound WhatsApp notifications triggered by the clinic website:

- POST /webhook-candy      new website lead -> message to the clinic's own number
- POST /api/send-whatsapp  booking notice to the customer (optional image)
"""
from typing import Any, Dict

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse, Response
from loguru import logger

from ..config import get_settings
from ..core import messages
from ..utils.phone_parser import mask_phone, normalize_digits
from .webhook_handler import CORS_HEADERS


router = APIRouter(tags=["notifications"])


async def _json_body(request: Request) -> Dict[str, Any]:
    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=CORS_HEADERS)


@router.options("/webhook-candy")
@router.options("/api/send-whatsapp")
async def notifications_preflight():
    return Response(status_code=status.HTTP_200_OK, headers=CORS_HEADERS)


@router.post("/webhook-candy")
async def website_lead(request: Request):
    """
    Forward a website booking to the clinic's WhatsApp number.

    Accepts the fields at the top level or under "record" (database webhook
    format).
    """
    body = await _json_body(request)
    record = body.get("record") if isinstance(body.get("record"), dict) else body

    name = record.get("name")
    phone = record.get("phone")
    service = record.get("service")
    if not name or not phone or not service:
        logger.warning("⚠️ webhook-candy: missing name, phone or service")
        return _error(status.HTTP_400_BAD_REQUEST, "Missing name, phone or service")

    text = messages.CANDY_NOTIFICATION.format(name=name, phone=phone, service=service)
    transport = request.app.state.transport
    try:
        result = await transport.send_text(get_settings().candy_notify_phone, text)
    except Exception as exc:
        logger.exception(f"❌ webhook-candy send failed: {exc}")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))

    logger.info(f"📢 Website lead forwarded ({mask_phone(str(phone))}, ok={result.ok})")
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={"success": True, "whatsappResult": result.data},
        headers=CORS_HEADERS,
    )


@router.post("/api/send-whatsapp")
async def send_customer_notice(request: Request):
    """Send the booking notice to a customer, with the offer image when one is given"""
    body = await _json_body(request)
    name = body.get("name")
    phone = body.get("phone")
    if not name or not phone:
        return _error(status.HTTP_400_BAD_REQUEST, "Missing name or phone")

    to = normalize_digits(str(phone))
    image = body.get("image")
    profile = request.app.state.clinic_profile
    notice = messages.customer_booking_notice(
        name,
        profile.clinic_name,
        service=body.get("service"),
        appointment=body.get("appointment"),
    )
    transport = request.app.state.transport

    try:
        if isinstance(image, str) and image.startswith(("http://", "https://")):
            sent = await transport.send_image(to, image, caption=notice)
            if not sent:
                logger.warning("⚠️ Image notice failed - sending text instead")
                sent = await transport.send_text(to, f"{notice}\n\n{messages.CUSTOMER_FOLLOW_UP}")
            else:
                await transport.send_text(to, messages.CUSTOMER_FOLLOW_UP)
        else:
            sent = await transport.send_text(to, notice)
    except Exception as exc:
        logger.exception(f"❌ send-whatsapp failed for {mask_phone(to)}: {exc}")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))

    logger.info(f"📤 Booking notice to {mask_phone(to)} ok={sent.ok}")
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={"success": sent.ok, "whatsappResult": sent.data, "error": sent.error},
        headers=CORS_HEADERS,
    )
