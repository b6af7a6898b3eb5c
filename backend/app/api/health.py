"""Liveness endpoint reporting whether provider credentials are configured."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter

from ..core.config import get_settings


router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> Dict[str, Any]:
    settings = get_settings()
    return {
        "ok": True,
        "status": "API running",
        "ts": datetime.now(timezone.utc).isoformat(),
        "hasKey": settings.has_key,
        "hasAssistant": settings.has_assistant,
    }
