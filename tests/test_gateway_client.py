"""
Tests for the Remote Data Gateway client

Runs against httpx.MockTransport, checking the PostgREST request shape
and the mapping of backend failures to gateway exceptions.
"""

import json
import pytest
import httpx
from datetime import datetime, timezone

from newsdesk.core.exceptions import ConfigurationException, FunctionInvocationException, GatewayQueryException
from newsdesk.gateway.client import RemoteDataGateway, format_value
from newsdesk.models import SlideType, WorkItemStatus
from newsdesk.repositories.queue_repo import QueueRepository


def make_gateway(handler, api_key="anon-key"):
    return RemoteDataGateway(
        "https://backend.example.com/",
        api_key=api_key,
        transport=httpx.MockTransport(handler)
    )


def test_format_value():
    assert format_value(None) == "null"
    assert format_value(True) == "true"
    assert format_value(WorkItemStatus.PROCESSING) == "processing"
    assert format_value(datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)) == "2026-03-01T12:00:00+00:00"


@pytest.mark.asyncio
async def test_select_builds_postgrest_query():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["request"] = request
        return httpx.Response(200, json=[{"id": "1"}])

    gateway = make_gateway(handler)
    rows = await (
        gateway.table("content_generation_queue")
        .select("id, status")
        .in_("status", [WorkItemStatus.PENDING, WorkItemStatus.PROCESSING])
        .order("created_at", desc=True)
        .limit(5)
        .execute()
    )

    request = seen["request"]
    assert rows == [{"id": "1"}]
    assert request.method == "GET"
    assert request.url.path == "/rest/v1/content_generation_queue"
    assert request.url.params["select"] == "id,status"
    assert request.url.params["status"] == "in.(pending,processing)"
    assert request.url.params["order"] == "created_at.desc"
    assert request.url.params["limit"] == "5"
    assert request.headers["apikey"] == "anon-key"
    assert request.headers["Authorization"] == "Bearer anon-key"
    assert "Prefer" not in request.headers


@pytest.mark.asyncio
async def test_update_sends_filters_body_and_prefer_header():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["request"] = request
        return httpx.Response(200, json=[{"id": "1"}, {"id": "2"}])

    gateway = make_gateway(handler)
    rows = await (
        gateway.table("articles")
        .select("id")
        .in_("id", ["1", "2"])
        .update({"processing_status": "discarded"})
    )

    request = seen["request"]
    assert len(rows) == 2
    assert request.method == "PATCH"
    assert request.url.params["id"] == "in.(1,2)"
    assert request.headers["Prefer"] == "return=representation"
    assert json.loads(request.content) == {"processing_status": "discarded"}


@pytest.mark.asyncio
async def test_unfiltered_mutation_refused_before_request():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("request should not be sent")

    gateway = make_gateway(handler)

    with pytest.raises(GatewayQueryException):
        await gateway.table("content_generation_queue").delete()


@pytest.mark.asyncio
async def test_http_error_maps_to_query_exception():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"message": "JWT expired"})

    gateway = make_gateway(handler)

    with pytest.raises(GatewayQueryException) as exc_info:
        await gateway.table("articles").select("id").execute()

    assert exc_info.value.status_code == 401
    assert "JWT expired" in exc_info.value.message


@pytest.mark.asyncio
async def test_transport_error_maps_to_query_exception():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    gateway = make_gateway(handler)

    with pytest.raises(GatewayQueryException):
        await gateway.table("articles").select("id").execute()


@pytest.mark.asyncio
async def test_invoke_posts_to_functions_endpoint():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["request"] = request
        return httpx.Response(200, json={"success": True, "processed": 4})

    gateway = make_gateway(handler)
    result = await gateway.invoke("queue-processor", {"batch": 10})

    request = seen["request"]
    assert result["processed"] == 4
    assert request.method == "POST"
    assert request.url.path == "/functions/v1/queue-processor"
    assert json.loads(request.content) == {"batch": 10}


@pytest.mark.asyncio
async def test_invoke_success_false_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"success": False, "error": "queue locked"})

    gateway = make_gateway(handler)

    with pytest.raises(FunctionInvocationException) as exc_info:
        await gateway.invoke("reset-stuck-processing", {"action": "clear_stuck_queue"})

    assert "queue locked" in exc_info.value.message


@pytest.mark.asyncio
async def test_repository_bulk_delete_is_one_request():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json=[{"id": "a"}, {"id": "b"}, {"id": "c"}])

    repository = QueueRepository(make_gateway(handler))
    deleted = await repository.delete_work_items(["a", "b", "c"])

    assert deleted == 3
    assert len(requests) == 1
    assert requests[0].method == "DELETE"
    assert requests[0].url.params["id"] == "in.(a,b,c)"


@pytest.mark.asyncio
async def test_repository_stuck_query_uses_or_filter():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["request"] = request
        return httpx.Response(200, json=[])

    repository = QueueRepository(make_gateway(handler))
    cutoff = datetime(2026, 3, 1, 11, 50, tzinfo=timezone.utc)
    await repository.fetch_stuck_work_items(3, cutoff)

    assert seen["request"].url.params["or"] == (
        "(attempts.gte.3,and(status.eq.processing,created_at.lt.2026-03-01T11:50:00+00:00))"
    )


@pytest.mark.parametrize("base_url", ["", "backend.example.com", "ftp://backend.example.com"])
def test_unusable_gateway_url_is_configuration_error(base_url):
    with pytest.raises(ConfigurationException) as exc_info:
        RemoteDataGateway(base_url)

    assert exc_info.value.details["config_key"] == "gateway_url"


@pytest.mark.asyncio
async def test_repository_enqueue_inserts_pending_row():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["request"] = request
        return httpx.Response(201, json=[{
            "id": 91, "article_id": 42, "status": "pending", "slidetype": "short",
            "attempts": 0, "max_attempts": 3, "created_at": "2026-03-01T12:00:00+00:00"
        }])

    repository = QueueRepository(make_gateway(handler))
    work_item = await repository.enqueue_article("42", SlideType.SHORT)

    request = seen["request"]
    assert request.method == "POST"
    assert request.url.path == "/rest/v1/content_generation_queue"
    assert request.headers["Prefer"] == "return=representation"
    assert json.loads(request.content) == {"article_id": "42", "slidetype": "short", "status": "pending"}
    assert work_item.id == "91"
    assert work_item.slidetype == "short"


@pytest.mark.asyncio
async def test_repository_extract_content_invokes_extractor():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["request"] = request
        return httpx.Response(200, json={"success": True, "wordCount": 300})

    repository = QueueRepository(make_gateway(handler))
    result = await repository.extract_content("42", "https://news.example.com/a")

    assert result["wordCount"] == 300
    assert seen["request"].url.path == "/functions/v1/content-extractor"
    assert json.loads(seen["request"].content) == {"articleId": "42", "sourceUrl": "https://news.example.com/a"}
