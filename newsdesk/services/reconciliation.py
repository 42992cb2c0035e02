"""
Reconciliation Fetcher

Joins content_generation_queue state with the articles it belongs to and
produces the display-ready views the console panels bind to:

- active queue rows (classified, exhausted rows filtered out)
- pending articles (not queued, no story yet)
- stuck jobs, queue status counts and recent backend activity

Every ``load_*`` method is a safe boundary: on failure it logs, pushes a
destructive notification and returns an empty result. The ``fetch_*``
counterparts raise, for callers that need to know a refresh failed.
"""

import re
import time
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Sequence

from newsdesk.config import settings
from newsdesk.core.logging_config import get_logger
from newsdesk.models import (
    UNKNOWN_ARTICLE_TITLE, ActivityEntry, ParentArticle, QueuedArticleView,
    QueueStats, StuckJob, WorkItem
)
from newsdesk.repositories.queue_repo import QueueRepository
from newsdesk.services.notifications import NotificationCenter
from newsdesk.services.prometheus_metrics import get_metrics
from newsdesk.services.queue_classifier import classify, classify_stuck, is_terminal_exhausted

logger = get_logger(__name__)

Clock = Callable[[], datetime]

REVIEW_TITLE_MARKERS = (
    "review", "theatre", "theater", "film", "movie", "cinema", "play", "performance"
)
REVIEW_BODY_MARKERS = ("stars out of", "rating:", "★")
RATING_PATTERN = re.compile(r"\d/\d+")

VIEW_LABELS = {
    "queued": "queued articles",
    "pending": "pending articles",
    "stuck": "stuck jobs",
    "stats": "queue statistics",
    "activity": "recent activity",
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def looks_like_review(article: ParentArticle) -> bool:
    """Arts/entertainment reviews sink to the bottom of the approval list"""
    title = (article.title or "").lower()
    body = (article.body or "").lower()

    if any(marker in title for marker in REVIEW_TITLE_MARKERS):
        return True
    if any(marker in body for marker in REVIEW_BODY_MARKERS):
        return True
    return bool(RATING_PATTERN.search(title))


def sort_pending_articles(articles: Sequence[ParentArticle]) -> List[ParentArticle]:
    return sorted(articles, key=lambda a: (looks_like_review(a), -a.relevance_score))


def reconcile_queue(
    work_items: Sequence[WorkItem],
    articles: Sequence[ParentArticle],
    now: datetime,
    stale_after: timedelta
) -> List[QueuedArticleView]:
    """
    Left-join work items to their articles, classify each row and drop
    exhausted rows that are no longer processing.
    """
    by_id: Dict[str, ParentArticle] = {article.id: article for article in articles}
    rows: List[QueuedArticleView] = []

    for item in work_items:
        if is_terminal_exhausted(item):
            continue

        article = by_id.get(item.article_id)
        stuck = classify_stuck(item, now, stale_after)

        rows.append(QueuedArticleView(
            queue_id=item.id,
            article_id=item.article_id,
            title=article.title if article else UNKNOWN_ARTICLE_TITLE,
            source_url=article.source_url if article else None,
            queue_status=classify(item, now, stale_after),
            work_status=item.status,
            queue_type=item.slidetype or "tabloid",
            attempts=item.attempts,
            max_attempts=item.max_attempts,
            error_message=item.error_message,
            created_at=item.created_at,
            is_stuck=stuck.is_stuck,
            stuck_reason=stuck.reason,
        ))

    return rows


def subtract_linked_articles(
    candidates: Sequence[ParentArticle],
    storied_ids: Sequence[str],
    queued_ids: Sequence[str]
) -> List[ParentArticle]:
    excluded = set(storied_ids) | set(queued_ids)
    return [article for article in candidates if article.id not in excluded]


class ReconciliationFetcher:
    """Loads and reconciles queue state for one console instance"""

    def __init__(
        self,
        repository: QueueRepository,
        notifications: NotificationCenter,
        clock: Optional[Clock] = None,
        stale_after: Optional[timedelta] = None,
        max_attempts: Optional[int] = None,
        pending_limit: Optional[int] = None,
        activity_limit: Optional[int] = None,
        activity_function: Optional[str] = None
    ):
        self.repository = repository
        self.notifications = notifications
        self.clock = clock or _utcnow
        if stale_after is None:
            stale_after = timedelta(minutes=settings.stale_processing_minutes)
        self.stale_after = stale_after
        self.max_attempts = max_attempts if max_attempts is not None else settings.default_max_attempts
        self.pending_limit = pending_limit if pending_limit is not None else settings.pending_articles_limit
        self.activity_limit = activity_limit if activity_limit is not None else settings.activity_log_limit
        self.activity_function = activity_function if activity_function is not None else settings.activity_function_name
        self.metrics = get_metrics()

    # ----- raising fetches -----

    async def fetch_queued_items(self) -> List[QueuedArticleView]:
        work_items = await self.repository.fetch_active_work_items()
        if not work_items:
            return []

        articles = await self.repository.fetch_articles_by_ids(item.article_id for item in work_items)
        return reconcile_queue(work_items, articles, self.clock(), self.stale_after)

    async def fetch_pending_articles(self) -> List[ParentArticle]:
        storied_ids = await self.repository.fetch_story_article_ids()
        queued_ids = await self.repository.fetch_queued_article_ids()
        candidates = await self.repository.fetch_candidate_articles(limit=self.pending_limit)

        available = subtract_linked_articles(candidates, storied_ids, queued_ids)
        return sort_pending_articles(available)

    async def fetch_stuck_jobs(self) -> List[StuckJob]:
        stale_before = self.clock() - self.stale_after
        work_items = await self.repository.fetch_stuck_work_items(self.max_attempts, stale_before)
        if not work_items:
            return []

        articles = await self.repository.fetch_articles_by_ids(item.article_id for item in work_items)
        titles = {article.id: article.title for article in articles}

        return [
            StuckJob(
                id=item.id,
                article_id=item.article_id,
                title=titles.get(item.article_id, UNKNOWN_ARTICLE_TITLE),
                status=item.status,
                attempts=item.attempts,
                max_attempts=item.max_attempts,
                error_message=item.error_message,
                created_at=item.created_at,
            )
            for item in work_items
        ]

    # ----- safe loaders -----

    async def load_queued_items(self) -> List[QueuedArticleView]:
        return await self._safe_load("queued", self.fetch_queued_items, [])

    async def load_pending_articles(self) -> List[ParentArticle]:
        return await self._safe_load("pending", self.fetch_pending_articles, [])

    async def load_stuck_jobs(self) -> List[StuckJob]:
        return await self._safe_load("stuck", self.fetch_stuck_jobs, [])

    async def load_queue_stats(self) -> QueueStats:
        return await self._safe_load("stats", self.repository.fetch_status_counts, QueueStats())

    async def load_recent_activity(self) -> List[ActivityEntry]:
        async def fetch():
            return await self.repository.fetch_recent_activity(
                limit=self.activity_limit, function_name=self.activity_function
            )
        return await self._safe_load("activity", fetch, [])

    def report_failure(self, view: str, error: Exception) -> None:
        """Log a failed view fetch and tell the editor about it"""
        label = VIEW_LABELS.get(view, view)
        self.metrics.record_view_fetch(view, "failure")
        logger.error(f"Error loading {label}: {error}", view=view)
        self.notifications.error("Error", f"Failed to load {label}")

    async def _safe_load(self, view: str, fetch, empty):
        started = time.monotonic()
        try:
            result = await fetch()
        except Exception as e:
            self.report_failure(view, e)
            return empty

        self.metrics.record_view_fetch(view, "success")
        logger.debug(
            f"Loaded {VIEW_LABELS.get(view, view)}",
            view=view,
            duration_ms=round((time.monotonic() - started) * 1000, 2)
        )
        return result
