from __future__ import annotations

import time
from typing import Any, Dict

from fastapi import APIRouter, Request

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(request: Request) -> Dict[str, Any]:
    settings = request.app.state.relay_settings
    return {
        "ok": True,
        "service": "intake-relay",
        "relayConfigured": settings.is_configured,
        "ts": int(time.time() * 1000),
    }
