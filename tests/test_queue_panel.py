"""
Tests for the Queue Panel

Latest-wins refresh sequencing, selection pruning and the polling
lifecycle.
"""

import asyncio
import pytest

from newsdesk.core.exceptions import GatewayQueryException
from newsdesk.models import DispatchAction
from newsdesk.services.queue_panel import FetchSequencer, QueuePanel
from tests.conftest import make_article, make_work_item


@pytest.fixture
def panel(repository, notifications, fetcher):
    return QueuePanel(
        repository,
        notifications=notifications,
        fetcher=fetcher,
        poll_interval=0.01,
        activity_poll_interval=0.01
    )


def test_sequencer_rejects_older_tickets():
    sequencer = FetchSequencer()
    first, second = sequencer.next(), sequencer.next()

    assert sequencer.try_apply(second)
    assert not sequencer.try_apply(first)
    assert sequencer.last_applied == second


@pytest.mark.asyncio
async def test_refresh_populates_snapshot(panel, repository):
    repository.fetch_active_work_items.return_value = [make_work_item("q1", article_id="1")]
    repository.fetch_articles_by_ids.return_value = [make_article("1")]
    repository.fetch_candidate_articles.return_value = [make_article("1"), make_article("2")]
    repository.fetch_queued_article_ids.return_value = ["1"]

    assert await panel.refresh() is True

    snapshot = panel.snapshot()
    assert [row.queue_id for row in snapshot.queued] == ["q1"]
    assert [a.id for a in snapshot.pending_articles] == ["2"]
    assert snapshot.sequence == 1


@pytest.mark.asyncio
async def test_stale_refresh_never_overwrites_newer(panel, repository):
    slow_release = asyncio.Event()
    calls = {"count": 0}

    async def active_items():
        calls["count"] += 1
        if calls["count"] == 1:
            await slow_release.wait()
            return [make_work_item("old")]
        return [make_work_item("new")]

    repository.fetch_active_work_items.side_effect = active_items

    slow = asyncio.create_task(panel.refresh())
    await asyncio.sleep(0)
    await panel.refresh()
    assert [row.queue_id for row in panel.queued] == ["new"]

    slow_release.set()
    await slow

    assert [row.queue_id for row in panel.queued] == ["new"]
    assert panel.snapshot().sequence == 2


@pytest.mark.asyncio
async def test_refresh_prunes_selection_to_visible_rows(panel, repository):
    repository.fetch_active_work_items.return_value = [make_work_item("q1")]
    repository.fetch_candidate_articles.return_value = [make_article("7")]
    panel.selection.select_all(["q1", "q2", "7", "8"])

    await panel.refresh()

    assert panel.selection.selected() == ["7", "q1"]


@pytest.mark.asyncio
async def test_failed_refresh_keeps_selection(panel, repository, notifications):
    repository.fetch_active_work_items.side_effect = GatewayQueryException("content_generation_queue", "down")
    panel.selection.select_all(["q1", "q2"])

    assert await panel.refresh() is False

    assert panel.queued == []
    assert panel.selection.count == 2
    assert notifications.list()[0].description == "Failed to load queued articles"


@pytest.mark.asyncio
async def test_successful_action_triggers_full_refresh(panel, repository):
    repository.fetch_active_work_items.return_value = [make_work_item("q1"), make_work_item("q2")]
    await panel.refresh()
    panel.selection.select_all(["q1", "q2"])
    repository.fetch_active_work_items.return_value = []

    result = await panel.dispatcher.dispatch(DispatchAction.BULK_CANCEL, panel.selected_targets(DispatchAction.BULK_CANCEL))

    assert result.success
    repository.delete_work_items.assert_awaited_once_with(["q1", "q2"])
    assert panel.queued == []
    assert repository.fetch_candidate_articles.await_count == 2


@pytest.mark.asyncio
async def test_refresh_activity_loads_dashboard_views(panel, repository):
    repository.fetch_stuck_work_items.return_value = [make_work_item("s1", attempts=3)]

    await panel.refresh_activity()

    assert [job.id for job in panel.stuck_jobs] == ["s1"]
    assert panel.article_id_for("s1") == "article-s1"
    assert panel.last_activity_at is not None


@pytest.mark.asyncio
async def test_start_polls_and_stop_cancels_both_tasks(panel, repository):
    panel.start()
    await asyncio.sleep(0.05)

    assert panel.is_running
    tasks = list(panel._tasks)
    assert len(tasks) == 2
    assert repository.fetch_active_work_items.await_count >= 1
    assert repository.fetch_recent_activity.await_count >= 1

    await panel.stop()

    assert all(task.cancelled() for task in tasks)
    assert not panel.is_running


@pytest.mark.asyncio
async def test_start_twice_does_not_duplicate_tasks(panel):
    panel.start()
    tasks = list(panel._tasks)
    panel.start()

    assert panel._tasks == tasks
    await panel.stop()


@pytest.mark.asyncio
async def test_queue_action_also_refreshes_stuck_jobs_and_stats(panel, repository):
    repository.fetch_stuck_work_items.return_value = [make_work_item("s1", attempts=3)]
    await panel.refresh_activity()
    repository.fetch_stuck_work_items.return_value = []

    result = await panel.dispatcher.clear("s1")

    assert result.success
    assert panel.stuck_jobs == []
    assert repository.fetch_status_counts.await_count == 2


@pytest.mark.asyncio
async def test_article_only_action_skips_dashboard_refresh(panel, repository):
    repository.fetch_candidate_articles.return_value = [make_article("7")]
    await panel.refresh()

    result = await panel.dispatcher.reject("7")

    assert result.success
    assert repository.fetch_candidate_articles.await_count == 2
    repository.fetch_status_counts.assert_not_awaited()


@pytest.mark.asyncio
async def test_extract_uses_visible_article_source_url(panel, repository):
    repository.fetch_candidate_articles.return_value = [
        make_article("7", source_url="https://news.example.com/harbour")
    ]
    await panel.refresh()

    result = await panel.dispatcher.extract_content("7")

    assert result.success
    repository.extract_content.assert_awaited_once_with("7", "https://news.example.com/harbour")
