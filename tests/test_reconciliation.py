"""
Tests for the Reconciliation Fetcher

Covers the queue join, the pending-articles set difference, review
ordering, the supplementary dashboard views and the failure policy.
"""

import pytest
from datetime import timedelta

from newsdesk.core.exceptions import GatewayQueryException
from newsdesk.models import (
    UNKNOWN_ARTICLE_TITLE, ActivityEntry, NotificationVariant, QueueStats, QueueStatus, StuckReason
)
from newsdesk.services.reconciliation import ReconciliationFetcher, looks_like_review, sort_pending_articles
from tests.conftest import NOW, STALE_AFTER, make_article, make_work_item


@pytest.mark.asyncio
async def test_exhausted_pending_excluded_and_stale_processing_shown(fetcher, repository):
    """a (3/3 pending) is dropped, b (0/3 processing, 11 min old) is shown as stuck."""
    repository.fetch_active_work_items.return_value = [
        make_work_item("a", article_id="1", status="pending", attempts=3),
        make_work_item("b", article_id="2", status="processing", age=timedelta(minutes=11)),
    ]
    repository.fetch_articles_by_ids.return_value = [make_article("1"), make_article("2", title="Harbour plan")]

    rows = await fetcher.load_queued_items()

    assert [row.queue_id for row in rows] == ["b"]
    assert rows[0].is_stuck
    assert rows[0].stuck_reason == StuckReason.PROCESSING_TIMEOUT
    assert rows[0].queue_status == QueueStatus.STUCK
    assert rows[0].title == "Harbour plan"


@pytest.mark.asyncio
async def test_exhausted_processing_row_is_kept(fetcher, repository):
    repository.fetch_active_work_items.return_value = [
        make_work_item("a", status="processing", attempts=3),
    ]

    rows = await fetcher.load_queued_items()

    assert len(rows) == 1
    assert rows[0].stuck_reason == StuckReason.ATTEMPTS_EXHAUSTED


@pytest.mark.asyncio
async def test_articles_fetched_once_for_all_parents(fetcher, repository):
    repository.fetch_active_work_items.return_value = [
        make_work_item("a", article_id="1"),
        make_work_item("b", article_id="2"),
    ]

    await fetcher.load_queued_items()

    repository.fetch_articles_by_ids.assert_awaited_once()
    ids = list(repository.fetch_articles_by_ids.await_args.args[0])
    assert sorted(ids) == ["1", "2"]


@pytest.mark.asyncio
async def test_empty_queue_skips_article_fetch(fetcher, repository):
    rows = await fetcher.load_queued_items()

    assert rows == []
    repository.fetch_articles_by_ids.assert_not_awaited()


@pytest.mark.asyncio
async def test_missing_parent_keeps_unknown_title(fetcher, repository):
    repository.fetch_active_work_items.return_value = [make_work_item("a", article_id="gone")]

    rows = await fetcher.load_queued_items()

    assert rows[0].title == UNKNOWN_ARTICLE_TITLE
    assert rows[0].queue_status == QueueStatus.PENDING


@pytest.mark.asyncio
async def test_queue_fetch_failure_returns_empty_and_notifies(fetcher, repository, notifications):
    repository.fetch_active_work_items.side_effect = GatewayQueryException(
        "content_generation_queue", "connection refused"
    )

    rows = await fetcher.load_queued_items()

    assert rows == []
    notices = notifications.list()
    assert len(notices) == 1
    assert notices[0].variant == NotificationVariant.DESTRUCTIVE
    assert "queued articles" in notices[0].description


@pytest.mark.asyncio
async def test_pending_articles_exclude_queued_and_storied(fetcher, repository):
    """articles [1,2,3], queued [2], storied [3] gives [1]."""
    repository.fetch_candidate_articles.return_value = [make_article("1"), make_article("2"), make_article("3")]
    repository.fetch_queued_article_ids.return_value = ["2"]
    repository.fetch_story_article_ids.return_value = ["3"]

    articles = await fetcher.load_pending_articles()

    assert [a.id for a in articles] == ["1"]
    repository.fetch_candidate_articles.assert_awaited_once_with(limit=50)


@pytest.mark.asyncio
async def test_pending_articles_failure_returns_empty(fetcher, repository, notifications):
    repository.fetch_story_article_ids.side_effect = GatewayQueryException("stories", "timeout")

    assert await fetcher.load_pending_articles() == []
    assert notifications.list()[0].description == "Failed to load pending articles"


def test_review_detection():
    assert looks_like_review(make_article("1", title="Theatre review: Hamlet"))
    assert looks_like_review(make_article("2", title="Gig night", body="Four stars out of five"))
    assert looks_like_review(make_article("3", title="New album gets 4/5"))
    assert not looks_like_review(make_article("4", title="Council approves budget"))


def test_reviews_sorted_last_then_by_relevance():
    articles = [
        make_article("review-high", title="Film review", score=9),
        make_article("news-low", title="Road closure", score=2),
        make_article("news-high", title="Harbour redevelopment", score=8),
        make_article("review-low", title="Cinema listings", score=1),
    ]

    ordered = sort_pending_articles(articles)

    assert [a.id for a in ordered] == ["news-high", "news-low", "review-high", "review-low"]


@pytest.mark.asyncio
async def test_stuck_jobs_joined_with_titles(fetcher, repository):
    repository.fetch_stuck_work_items.return_value = [
        make_work_item("a", article_id="1", attempts=3),
        make_work_item("b", article_id="2", status="processing", age=timedelta(minutes=30)),
    ]
    repository.fetch_articles_by_ids.return_value = [make_article("1", title="Bridge repairs")]

    jobs = await fetcher.load_stuck_jobs()

    repository.fetch_stuck_work_items.assert_awaited_once_with(3, NOW - STALE_AFTER)
    assert [job.title for job in jobs] == ["Bridge repairs", UNKNOWN_ARTICLE_TITLE]


@pytest.mark.asyncio
async def test_stats_failure_returns_zero_counts(fetcher, repository, notifications):
    repository.fetch_status_counts.side_effect = GatewayQueryException("content_generation_queue", "503")

    stats = await fetcher.load_queue_stats()

    assert stats == QueueStats()
    assert notifications.list()[0].variant == NotificationVariant.DESTRUCTIVE


@pytest.mark.asyncio
async def test_recent_activity_uses_limit_and_function_filter(fetcher, repository):
    repository.fetch_recent_activity.return_value = [
        ActivityEntry(id="1", level="info", message="Scraped 12 articles", function_name="universal-scraper")
    ]

    entries = await fetcher.load_recent_activity()

    assert len(entries) == 1
    repository.fetch_recent_activity.assert_awaited_once_with(limit=10, function_name="universal-scraper")


@pytest.mark.asyncio
async def test_zero_window_and_attempts_are_honoured(repository, notifications):
    fetcher = ReconciliationFetcher(
        repository,
        notifications,
        clock=lambda: NOW,
        stale_after=timedelta(0),
        max_attempts=0
    )

    await fetcher.fetch_stuck_jobs()

    repository.fetch_stuck_work_items.assert_awaited_once_with(0, NOW)
