"""
Tests for the console HTTP API

TestClient with the QueuePanel dependency overridden; the lifespan (and
with it the poller) is not started.
"""

import pytest
from fastapi.testclient import TestClient

from newsdesk.core.exceptions import GatewayQueryException
from newsdesk.dependencies import get_queue_panel
from newsdesk.main import app
from newsdesk.models import SlideType
from newsdesk.services.queue_panel import QueuePanel
from tests.conftest import make_article, make_work_item


@pytest.fixture
def panel(repository, notifications, fetcher):
    return QueuePanel(repository, notifications=notifications, fetcher=fetcher)


@pytest.fixture
def client(panel):
    app.dependency_overrides[get_queue_panel] = lambda: panel
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_get_queue_with_refresh(client, repository):
    repository.fetch_active_work_items.return_value = [make_work_item("q1", article_id="1")]
    repository.fetch_articles_by_ids.return_value = [make_article("1", title="Ferry timetable")]

    response = client.get("/api/queue", params={"refresh": True})

    assert response.status_code == 200
    data = response.json()
    assert data["queued"][0]["queue_id"] == "q1"
    assert data["queued"][0]["title"] == "Ferry timetable"
    assert data["queued"][0]["queue_status"] == "pending"
    assert data["selected_ids"] == []


def test_unknown_action_is_422(client):
    response = client.post("/api/queue/actions/explode", json={"targets": ["q1"]})
    assert response.status_code == 422


def test_action_with_empty_targets_is_400(client):
    response = client.post("/api/queue/actions/bulk_cancel", json={"targets": []})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_bulk_cancel_defaults_to_selection(client, panel, repository):
    repository.fetch_active_work_items.return_value = [make_work_item("q1"), make_work_item("q2")]
    client.post("/api/queue/refresh")
    client.post("/api/queue/selection/toggle-all")

    response = client.post("/api/queue/actions/bulk_cancel")

    assert response.status_code == 200
    assert response.json()["success"] is True
    repository.delete_work_items.assert_awaited_once_with(["q1", "q2"])
    assert panel.selection.count == 0


def test_failed_action_returns_result_and_notification(client, repository):
    repository.run_queue_processor.side_effect = GatewayQueryException("queue-processor", "offline")

    response = client.post("/api/queue/actions/process_queue")

    assert response.status_code == 200
    assert response.json()["success"] is False

    notices = client.get("/api/notifications").json()
    assert notices[0]["variant"] == "destructive"
    assert notices[0]["description"] == "Failed to process queue"


def test_selection_toggle_and_clear(client):
    response = client.post("/api/queue/selection/toggle/q7")
    assert response.json() == {"item_id": "q7", "selected": True, "selected_ids": ["q7"]}

    response = client.delete("/api/queue/selection")
    assert response.json() == {"selected_ids": []}


def test_dismiss_notification(client, notifications):
    notice = notifications.success("Success", "Queue processed")

    assert client.delete(f"/api/notifications/{notice.id}").status_code == 200
    assert client.delete(f"/api/notifications/{notice.id}").status_code == 404


def test_health_reports_poller_state(client):
    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json()["poller"]["is_running"] is False


def test_metrics_endpoint(client):
    response = client.get("/metrics")

    assert response.status_code == 200
    assert "newsdesk_gateway_calls_total" in response.text


def test_htmx_queue_fragment(client, repository):
    repository.fetch_active_work_items.return_value = [
        make_work_item("q1", status="processing", attempts=3)
    ]
    client.post("/api/queue/refresh")

    response = client.get("/htmx/queue/items")

    assert response.status_code == 200
    assert "Max attempts reached" in response.text
    assert 'hx-post="/htmx/queue/actions/cancel"' in response.text


def test_htmx_action_without_selection_shows_warning(client):
    response = client.post("/htmx/queue/actions/bulk_cancel")

    assert response.status_code == 200
    assert "Nothing selected" in response.text


def test_clear_action_refreshes_stuck_jobs_view(client, repository):
    repository.fetch_stuck_work_items.return_value = [make_work_item("s1", attempts=3)]
    assert [job["id"] for job in client.get("/api/queue/stuck", params={"refresh": True}).json()] == ["s1"]
    repository.fetch_stuck_work_items.return_value = []

    response = client.post("/api/queue/actions/clear", json={"targets": ["s1"]})

    assert response.json()["success"] is True
    assert client.get("/api/queue/stuck").json() == []


def test_approve_action_with_slidetype(client, repository):
    response = client.post("/api/queue/actions/approve", json={"targets": ["42"], "slidetype": "short"})

    assert response.status_code == 200
    assert response.json()["success"] is True
    repository.enqueue_article.assert_awaited_once_with("42", SlideType.SHORT)


def test_approve_with_unknown_slidetype_is_422(client, repository):
    response = client.post("/api/queue/actions/approve", json={"targets": ["42"], "slidetype": "poster"})

    assert response.status_code == 422
    repository.enqueue_article.assert_not_awaited()


def test_htmx_pending_list_offers_article_actions(client, repository):
    repository.fetch_candidate_articles.return_value = [
        make_article("7", source_url="https://news.example.com/harbour")
    ]
    client.post("/api/queue/refresh")

    response = client.get("/htmx/queue/pending-articles")

    assert 'hx-post="/htmx/queue/actions/approve"' in response.text
    assert 'hx-post="/htmx/queue/actions/extract_content"' in response.text
    assert 'hx-post="/htmx/queue/actions/reject"' in response.text
    assert 'name="slidetype"' in response.text


def test_htmx_approve_posts_form_slidetype(client, repository):
    response = client.post("/htmx/queue/actions/approve", data={"targets": "7", "slidetype": "indepth"})

    assert response.status_code == 200
    assert "In-Depth Analysis generation added to queue" in response.text
    repository.enqueue_article.assert_awaited_once_with("7", SlideType.INDEPTH)
