from fastapi import APIRouter, Depends, HTTPException, Query
from typing import Any, Dict, List, Optional

from newsdesk.dependencies import get_notifications
from newsdesk.models import Notification
from newsdesk.services.notifications import NotificationCenter

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=List[Notification])
async def list_notifications(
    limit: Optional[int] = Query(None, ge=1, le=100),
    notifications: NotificationCenter = Depends(get_notifications)
) -> List[Notification]:
    """Newest first"""
    return notifications.list(limit)


@router.delete("/{notification_id}")
async def dismiss_notification(
    notification_id: str,
    notifications: NotificationCenter = Depends(get_notifications)
) -> Dict[str, Any]:
    if not notifications.dismiss(notification_id):
        raise HTTPException(status_code=404, detail=f"Notification {notification_id} not found")
    return {"dismissed": notification_id}
