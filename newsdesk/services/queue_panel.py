"""
Queue Panel

Owns the console's live view of the content generation queue: the
reconciled queue rows, the pending-articles list, the stuck-job and
statistics panels, the editor's selection and the polling loops that keep
them fresh.

Two independent asyncio tasks poll the backend (queue/articles and
activity/stats). Overlapping fetches are allowed; a FetchSequencer makes
sure an older response never replaces a newer one.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from newsdesk.config import settings
from newsdesk.core.logging_config import get_logger
from newsdesk.models import (
    ActivityEntry, DispatchAction, ParentArticle, QueuedArticleView, QueueSnapshot, QueueStats, StuckJob
)
from newsdesk.repositories.queue_repo import QueueRepository
from newsdesk.services.action_dispatcher import ARTICLE_ONLY_ACTIONS, ActionDispatcher
from newsdesk.services.notifications import NotificationCenter
from newsdesk.services.prometheus_metrics import get_metrics
from newsdesk.services.reconciliation import ReconciliationFetcher
from newsdesk.services.selection import SelectionController

logger = get_logger(__name__)


class FetchSequencer:
    """Monotonic ticket counter: only the newest completed fetch is applied"""

    def __init__(self):
        self._issued = 0
        self._applied = 0

    def next(self) -> int:
        self._issued += 1
        return self._issued

    def try_apply(self, sequence: int) -> bool:
        if sequence <= self._applied:
            return False
        self._applied = sequence
        return True

    @property
    def last_applied(self) -> int:
        return self._applied


class QueuePanel:
    def __init__(
        self,
        repository: QueueRepository,
        notifications: Optional[NotificationCenter] = None,
        fetcher: Optional[ReconciliationFetcher] = None,
        selection: Optional[SelectionController] = None,
        poll_interval: Optional[float] = None,
        activity_poll_interval: Optional[float] = None
    ):
        self.repository = repository
        self.notifications = notifications or NotificationCenter()
        self.fetcher = fetcher or ReconciliationFetcher(repository, self.notifications)
        self.selection = selection or SelectionController()
        self.dispatcher = ActionDispatcher(
            repository,
            self.notifications,
            self.selection,
            on_refresh=self.refresh_after_action,
            article_lookup=self.article_id_for,
            pending_article_lookup=self.pending_article
        )
        self.poll_interval = poll_interval or settings.poll_interval_seconds
        self.activity_poll_interval = activity_poll_interval or settings.activity_poll_interval_seconds
        self.metrics = get_metrics()

        self.queue_sequencer = FetchSequencer()
        self.activity_sequencer = FetchSequencer()

        self.queued: List[QueuedArticleView] = []
        self.pending_articles: List[ParentArticle] = []
        self.stuck_jobs: List[StuckJob] = []
        self.stats = QueueStats()
        self.activity: List[ActivityEntry] = []
        self.last_refreshed_at: Optional[datetime] = None
        self.last_activity_at: Optional[datetime] = None

        self._tasks: List[asyncio.Task] = []

    @property
    def is_running(self) -> bool:
        return any(not task.done() for task in self._tasks)

    # ----- refresh -----

    async def refresh(self) -> bool:
        """
        Re-run the reconciliation and pending-articles fetchers.

        Returns True when both fetches succeeded. A failed view is shown
        empty; the selection is pruned only after a fully successful
        refresh.
        """
        sequence = self.queue_sequencer.next()

        queued_result, pending_result = await asyncio.gather(
            self.fetcher.fetch_queued_items(),
            self.fetcher.fetch_pending_articles(),
            return_exceptions=True
        )

        succeeded = True
        if isinstance(queued_result, Exception):
            self.fetcher.report_failure("queued", queued_result)
            queued_result = []
            succeeded = False
        if isinstance(pending_result, Exception):
            self.fetcher.report_failure("pending", pending_result)
            pending_result = []
            succeeded = False

        if not self.queue_sequencer.try_apply(sequence):
            self.metrics.record_stale_response()
            logger.debug(
                f"Discarding stale queue response #{sequence}",
                last_applied=self.queue_sequencer.last_applied
            )
            return succeeded

        self.queued = queued_result
        self.pending_articles = pending_result
        self.last_refreshed_at = datetime.now(timezone.utc)

        if succeeded:
            visible = [row.queue_id for row in self.queued]
            visible.extend(article.id for article in self.pending_articles)
            self.selection.retain(visible)

        self.metrics.update_queue_metrics(
            depth=len(self.queued),
            stuck=sum(1 for row in self.queued if row.is_stuck),
            pending_articles=len(self.pending_articles)
        )
        return succeeded

    async def refresh_activity(self) -> None:
        """Reload the dashboard side: stats, stuck jobs and backend activity"""
        sequence = self.activity_sequencer.next()

        stats, stuck_jobs, activity = await asyncio.gather(
            self.fetcher.load_queue_stats(),
            self.fetcher.load_stuck_jobs(),
            self.fetcher.load_recent_activity()
        )

        if not self.activity_sequencer.try_apply(sequence):
            self.metrics.record_stale_response()
            logger.debug(f"Discarding stale activity response #{sequence}")
            return

        self.stats = stats
        self.stuck_jobs = stuck_jobs
        self.activity = activity
        self.last_activity_at = datetime.now(timezone.utc)

    async def refresh_after_action(self, action: DispatchAction) -> None:
        """Refetch after a successful action; the dashboard side too unless only articles changed"""
        await self.refresh()
        if action not in ARTICLE_ONLY_ACTIONS:
            await self.refresh_activity()

    def article_id_for(self, queue_id: str) -> Optional[str]:
        for row in self.queued:
            if row.queue_id == queue_id:
                return row.article_id
        for job in self.stuck_jobs:
            if job.id == queue_id:
                return job.article_id
        return None

    def pending_article(self, article_id: str) -> Optional[ParentArticle]:
        for article in self.pending_articles:
            if article.id == article_id:
                return article
        return None

    def selected_targets(self, action: DispatchAction) -> List[str]:
        """Selected ids that a bulk action applies to, in display order"""
        if action == DispatchAction.BULK_CANCEL:
            return [row.queue_id for row in self.queued if self.selection.is_selected(row.queue_id)]
        if action == DispatchAction.DELETE:
            return [a.id for a in self.pending_articles if self.selection.is_selected(a.id)]
        return []

    def snapshot(self) -> QueueSnapshot:
        return QueueSnapshot(
            sequence=self.queue_sequencer.last_applied,
            queued=list(self.queued),
            pending_articles=list(self.pending_articles),
            selected_ids=self.selection.selected(),
            refreshed_at=self.last_refreshed_at
        )

    def status(self) -> Dict[str, Any]:
        return {
            "is_running": self.is_running,
            "poll_interval_seconds": self.poll_interval,
            "activity_poll_interval_seconds": self.activity_poll_interval,
            "last_refreshed_at": self.last_refreshed_at.isoformat() if self.last_refreshed_at else None,
            "last_activity_at": self.last_activity_at.isoformat() if self.last_activity_at else None,
            "queued_count": len(self.queued),
            "pending_articles_count": len(self.pending_articles),
            "selected_count": self.selection.count,
        }

    # ----- polling lifecycle -----

    def start(self) -> None:
        """Start both polling loops on the running event loop"""
        if self.is_running:
            logger.warning("Queue panel poller is already running")
            return

        logger.info(
            "Starting queue panel poller",
            poll_interval_seconds=self.poll_interval,
            activity_poll_interval_seconds=self.activity_poll_interval
        )
        self._tasks = [
            asyncio.create_task(self._poll("queue", self.refresh, self.poll_interval)),
            asyncio.create_task(self._poll("activity", self.refresh_activity, self.activity_poll_interval)),
        ]

    async def stop(self) -> None:
        """Cancel both polling loops and wait for them to finish"""
        if not self._tasks:
            return

        logger.info("Stopping queue panel poller")
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        self.selection.clear()
        logger.info("Queue panel poller stopped")

    async def _poll(self, name: str, job, interval: float) -> None:
        while True:
            try:
                await job()
            except Exception as e:
                logger.error(f"Queue panel {name} poll error: {e}")
            await asyncio.sleep(interval)
