"""
Shared fixtures for the Newsdesk test suite

Service tests run against an AsyncMock QueueRepository; time is pinned
to NOW so stuck classification is reproducible.
"""

import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

from newsdesk.models import ParentArticle, QueueStats, WorkItem
from newsdesk.repositories.queue_repo import QueueRepository
from newsdesk.services.notifications import NotificationCenter
from newsdesk.services.reconciliation import ReconciliationFetcher
from newsdesk.services.selection import SelectionController

NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)
STALE_AFTER = timedelta(minutes=10)


def make_work_item(id, article_id=None, status="pending", attempts=0, max_attempts=3, age=timedelta(minutes=1)):
    return WorkItem(
        id=id,
        article_id=article_id or f"article-{id}",
        status=status,
        attempts=attempts,
        max_attempts=max_attempts,
        created_at=NOW - age,
    )


def make_article(id, title=None, body=None, score=None, **kwargs):
    metadata = {"regional_relevance_score": score} if score is not None else {}
    return ParentArticle(
        id=id,
        title=title or f"Article {id}",
        body=body,
        import_metadata=metadata,
        **kwargs
    )


@pytest.fixture
def repository():
    """QueueRepository double with empty defaults for every query."""
    repo = AsyncMock(spec=QueueRepository)
    repo.fetch_active_work_items.return_value = []
    repo.fetch_work_items_by_ids.return_value = []
    repo.fetch_articles_by_ids.return_value = []
    repo.fetch_story_article_ids.return_value = []
    repo.fetch_queued_article_ids.return_value = []
    repo.fetch_candidate_articles.return_value = []
    repo.fetch_stuck_work_items.return_value = []
    repo.fetch_status_counts.return_value = QueueStats()
    repo.fetch_recent_activity.return_value = []
    repo.delete_work_items.return_value = 1
    repo.reset_stories_to_draft.return_value = 1
    repo.set_articles_status.return_value = 1
    repo.reset_exhausted_pending_items.return_value = 0
    repo.reset_stuck_processing.return_value = {"success": True}
    repo.clear_stuck_queue.return_value = {"success": True}
    repo.run_queue_processor.return_value = {"success": True, "processed": 0}
    repo.enqueue_article.return_value = WorkItem(id="queued-1", article_id="1")
    repo.extract_content.return_value = {"success": True}
    return repo


@pytest.fixture
def notifications():
    return NotificationCenter()


@pytest.fixture
def selection():
    return SelectionController()


@pytest.fixture
def fetcher(repository, notifications):
    return ReconciliationFetcher(
        repository,
        notifications,
        clock=lambda: NOW,
        stale_after=STALE_AFTER,
        max_attempts=3,
        pending_limit=50,
        activity_limit=10,
        activity_function="universal-scraper"
    )
