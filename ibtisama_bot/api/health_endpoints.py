"""
Health Check Endpoint
=====================

    GET /health - liveness probe used by the hosting platform
"""
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> Dict[str, Any]:
    """
    Example Response:
        {"status": "ok", "timestamp": "2025-11-03T11:56:50.123456+00:00"}
    """
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}
