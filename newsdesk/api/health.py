from datetime import datetime, timezone
from fastapi import APIRouter, Depends
from typing import Any, Dict

from newsdesk.config import settings
from newsdesk.dependencies import get_queue_panel
from newsdesk.services.queue_panel import QueuePanel

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def get_health(panel: QueuePanel = Depends(get_queue_panel)) -> Dict[str, Any]:
    """Liveness plus poller state"""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "gateway_url": settings.gateway_url,
        "poller": panel.status()
    }
