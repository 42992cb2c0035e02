"""
Queue Classifier

Labels a queue row as pending, processing or stuck. Pure functions: the
current time is always passed in so results are reproducible.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from newsdesk.config import settings
from newsdesk.models import QueueStatus, StuckClassification, StuckReason, WorkItem, WorkItemStatus


def default_stale_after() -> timedelta:
    return timedelta(minutes=settings.stale_processing_minutes)


def classify_stuck(
    item: WorkItem,
    now: Optional[datetime] = None,
    stale_after: Optional[timedelta] = None
) -> StuckClassification:
    """
    Decide whether a queue row is stuck.

    A row is stuck when it has used all its attempts (whatever its status),
    or when it is processing and was created more than ``stale_after`` ago.
    Exhausted attempts take precedence as the reported reason.
    """
    now = now or datetime.now(timezone.utc)
    stale_after = stale_after if stale_after is not None else default_stale_after()

    if item.attempts >= item.max_attempts:
        return StuckClassification(is_stuck=True, reason=StuckReason.ATTEMPTS_EXHAUSTED)

    if item.status == WorkItemStatus.PROCESSING and item.created_at < now - stale_after:
        return StuckClassification(is_stuck=True, reason=StuckReason.PROCESSING_TIMEOUT)

    return StuckClassification()


def classify(
    item: WorkItem,
    now: Optional[datetime] = None,
    stale_after: Optional[timedelta] = None
) -> QueueStatus:
    if classify_stuck(item, now, stale_after).is_stuck:
        return QueueStatus.STUCK
    if item.status == WorkItemStatus.PROCESSING:
        return QueueStatus.PROCESSING
    return QueueStatus.PENDING


def is_terminal_exhausted(item: WorkItem) -> bool:
    """Exhausted and no longer processing: hidden from the active queue view"""
    return item.attempts >= item.max_attempts and item.status != WorkItemStatus.PROCESSING
