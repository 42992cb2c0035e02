from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from typing import Any, Dict, List, Optional

from newsdesk.core.logging_config import get_logger
from newsdesk.dependencies import get_dispatcher, get_queue_panel
from newsdesk.models import (
    ActionResult, ActivityEntry, DispatchAction, ParentArticle, QueueSnapshot, QueueStats, SlideType, StuckJob
)
from newsdesk.services.action_dispatcher import ActionDispatcher
from newsdesk.services.queue_panel import QueuePanel

router = APIRouter(prefix="/queue", tags=["queue"])
logger = get_logger(__name__)


class ActionRequest(BaseModel):
    # None on a bulk action means "use the current selection"
    targets: Optional[List[str]] = None
    # approve only
    slidetype: Optional[SlideType] = None


class ToggleAllRequest(BaseModel):
    ids: Optional[List[str]] = None


@router.get("", response_model=QueueSnapshot)
async def get_queue(
    refresh: bool = Query(False, description="Refetch before answering"),
    panel: QueuePanel = Depends(get_queue_panel)
) -> QueueSnapshot:
    """Reconciled queue rows, pending articles and the current selection"""
    if refresh:
        await panel.refresh()
    return panel.snapshot()


@router.get("/pending-articles", response_model=List[ParentArticle])
async def get_pending_articles(
    refresh: bool = Query(False),
    panel: QueuePanel = Depends(get_queue_panel)
) -> List[ParentArticle]:
    if refresh:
        await panel.refresh()
    return panel.pending_articles


@router.get("/stuck", response_model=List[StuckJob])
async def get_stuck_jobs(
    refresh: bool = Query(False),
    panel: QueuePanel = Depends(get_queue_panel)
) -> List[StuckJob]:
    if refresh:
        await panel.refresh_activity()
    return panel.stuck_jobs


@router.get("/stats", response_model=QueueStats)
async def get_queue_stats(
    refresh: bool = Query(False),
    panel: QueuePanel = Depends(get_queue_panel)
) -> QueueStats:
    if refresh:
        await panel.refresh_activity()
    return panel.stats


@router.get("/activity", response_model=List[ActivityEntry])
async def get_recent_activity(
    refresh: bool = Query(False),
    panel: QueuePanel = Depends(get_queue_panel)
) -> List[ActivityEntry]:
    if refresh:
        await panel.refresh_activity()
    return panel.activity


@router.post("/refresh")
async def refresh_queue(panel: QueuePanel = Depends(get_queue_panel)) -> Dict[str, Any]:
    """Refetch every panel now"""
    success = await panel.refresh()
    await panel.refresh_activity()
    return {
        "success": success,
        "sequence": panel.queue_sequencer.last_applied,
        "queued_count": len(panel.queued),
        "pending_articles_count": len(panel.pending_articles)
    }


@router.post("/selection/toggle/{item_id}")
async def toggle_selection(
    item_id: str,
    panel: QueuePanel = Depends(get_queue_panel)
) -> Dict[str, Any]:
    selected = panel.selection.toggle(item_id)
    return {"item_id": item_id, "selected": selected, "selected_ids": panel.selection.selected()}


@router.post("/selection/toggle-all")
async def toggle_all_selection(
    request: Optional[ToggleAllRequest] = None,
    panel: QueuePanel = Depends(get_queue_panel)
) -> Dict[str, Any]:
    """Select-all checkbox; defaults to every visible queue row"""
    ids = request.ids if request and request.ids is not None else [row.queue_id for row in panel.queued]
    selected = panel.selection.toggle_all(ids)
    return {"selected": selected, "selected_ids": panel.selection.selected()}


@router.delete("/selection")
async def clear_selection(panel: QueuePanel = Depends(get_queue_panel)) -> Dict[str, Any]:
    panel.selection.clear()
    return {"selected_ids": []}


@router.post("/actions/{action}", response_model=ActionResult)
async def dispatch_action(
    action: DispatchAction,
    request: Optional[ActionRequest] = None,
    panel: QueuePanel = Depends(get_queue_panel),
    dispatcher: ActionDispatcher = Depends(get_dispatcher)
) -> ActionResult:
    """Run a remediation action; unknown actions are rejected with 422"""
    targets = request.targets if request else None
    if targets is None:
        targets = panel.selected_targets(action)
    slidetype = request.slidetype if request else None

    logger.info(f"Dispatching {action.value} for {len(targets)} targets")
    return await dispatcher.dispatch(action, targets, slidetype=slidetype)
