"""Repository for content generation queue state held by the Remote Data Gateway."""

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from newsdesk.core.exceptions import GatewayQueryException
from newsdesk.core.logging_config import get_logger
from newsdesk.gateway.client import RemoteDataGateway, format_value
from newsdesk.models import (
    ActivityEntry, ParentArticle, QueueStats, SlideType, WorkItem, WorkItemStatus
)

logger = get_logger(__name__)

QUEUE_TABLE = "content_generation_queue"
ARTICLES_TABLE = "articles"
STORIES_TABLE = "stories"
SYSTEM_LOGS_TABLE = "system_logs"

RESET_STUCK_FUNCTION = "reset-stuck-processing"
QUEUE_PROCESSOR_FUNCTION = "queue-processor"
CONTENT_EXTRACTOR_FUNCTION = "content-extractor"

ACTIVE_STATUSES = [WorkItemStatus.PENDING, WorkItemStatus.PROCESSING]

WORK_ITEM_COLUMNS = "id,article_id,status,slidetype,attempts,max_attempts,error_message,created_at"
ARTICLE_COLUMNS = (
    "id,title,author,source_url,summary,body,word_count,processing_status,"
    "regional_relevance_score,import_metadata,published_at,created_at"
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class QueueRepository:
    """
    Named queries over content_generation_queue, articles, stories and system_logs.

    Every method raises GatewayException subclasses on failure; deciding
    how to surface them belongs to the calling service.
    """

    def __init__(self, gateway: RemoteDataGateway):
        self.gateway = gateway

    # ----- reads -----

    async def fetch_active_work_items(self) -> List[WorkItem]:
        rows = await (
            self.gateway.table(QUEUE_TABLE)
            .select(WORK_ITEM_COLUMNS)
            .in_("status", ACTIVE_STATUSES)
            .execute()
        )
        return [WorkItem(**row) for row in rows]

    async def fetch_work_items_by_ids(self, work_item_ids: Iterable[str]) -> List[WorkItem]:
        ids = sorted(set(work_item_ids))
        if not ids:
            return []
        rows = await (
            self.gateway.table(QUEUE_TABLE)
            .select(WORK_ITEM_COLUMNS)
            .in_("id", ids)
            .execute()
        )
        return [WorkItem(**row) for row in rows]

    async def fetch_articles_by_ids(self, article_ids: Iterable[str]) -> List[ParentArticle]:
        ids = sorted(set(article_ids))
        if not ids:
            return []
        rows = await (
            self.gateway.table(ARTICLES_TABLE)
            .select(ARTICLE_COLUMNS)
            .in_("id", ids)
            .execute()
        )
        return [ParentArticle(**row) for row in rows]

    async def fetch_story_article_ids(self) -> List[str]:
        rows = await self.gateway.table(STORIES_TABLE).select("article_id").execute()
        return [str(row["article_id"]) for row in rows if row.get("article_id") is not None]

    async def fetch_queued_article_ids(self) -> List[str]:
        rows = await (
            self.gateway.table(QUEUE_TABLE)
            .select("article_id")
            .in_("status", ACTIVE_STATUSES)
            .execute()
        )
        return [str(row["article_id"]) for row in rows if row.get("article_id") is not None]

    async def fetch_candidate_articles(self, limit: int = 50) -> List[ParentArticle]:
        rows = await (
            self.gateway.table(ARTICLES_TABLE)
            .select(ARTICLE_COLUMNS)
            .eq("processing_status", "new")
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return [ParentArticle(**row) for row in rows]

    async def fetch_stuck_work_items(self, max_attempts: int, stale_before: datetime) -> List[WorkItem]:
        """Rows matching the stuck predicate, evaluated server-side"""
        rows = await (
            self.gateway.table(QUEUE_TABLE)
            .select(WORK_ITEM_COLUMNS)
            .or_(
                f"attempts.gte.{max_attempts},"
                f"and(status.eq.processing,created_at.lt.{format_value(stale_before)})"
            )
            .order("created_at", desc=True)
            .execute()
        )
        return [WorkItem(**row) for row in rows]

    async def fetch_status_counts(self) -> QueueStats:
        rows = await self.gateway.table(QUEUE_TABLE).select("status").execute()
        counts: Dict[str, int] = {}
        for row in rows:
            status = row.get("status")
            counts[status] = counts.get(status, 0) + 1
        return QueueStats(
            pending=counts.get(WorkItemStatus.PENDING.value, 0),
            processing=counts.get(WorkItemStatus.PROCESSING.value, 0),
            completed=counts.get(WorkItemStatus.COMPLETED.value, 0),
            failed=counts.get(WorkItemStatus.FAILED.value, 0),
        )

    async def fetch_recent_activity(
        self, limit: int = 10, function_name: Optional[str] = None
    ) -> List[ActivityEntry]:
        query = self.gateway.table(SYSTEM_LOGS_TABLE).select("id,level,message,function_name,created_at")
        if function_name:
            query = query.eq("function_name", function_name)
        rows = await query.order("created_at", desc=True).limit(limit).execute()
        return [ActivityEntry(**row) for row in rows]

    # ----- writes -----

    async def enqueue_article(self, article_id: str, slidetype: SlideType = SlideType.TABLOID) -> WorkItem:
        """Insert a pending queue row for an approved article"""
        rows = await (
            self.gateway.table(QUEUE_TABLE)
            .select(WORK_ITEM_COLUMNS)
            .insert({"article_id": article_id, "slidetype": slidetype, "status": WorkItemStatus.PENDING})
        )
        if not rows:
            raise GatewayQueryException(QUEUE_TABLE, "insert returned no row")
        return WorkItem(**rows[0])

    async def delete_work_items(self, work_item_ids: List[str]) -> int:
        """Delete queue rows in a single request; returns rows the backend reported"""
        query = self.gateway.table(QUEUE_TABLE).select("id")
        if len(work_item_ids) == 1:
            query = query.eq("id", work_item_ids[0])
        else:
            query = query.in_("id", work_item_ids)
        deleted = await query.delete()
        return len(deleted)

    async def reset_stories_to_draft(self, article_id: str) -> int:
        updated = await (
            self.gateway.table(STORIES_TABLE)
            .select("id")
            .eq("article_id", article_id)
            .update({"status": "draft", "updated_at": _now()})
        )
        return len(updated)

    async def set_articles_status(self, article_ids: List[str], processing_status: str) -> int:
        query = self.gateway.table(ARTICLES_TABLE).select("id")
        if len(article_ids) == 1:
            query = query.eq("id", article_ids[0])
        else:
            query = query.in_("id", article_ids)
        updated = await query.update({"processing_status": processing_status, "updated_at": _now()})
        return len(updated)

    async def reset_exhausted_pending_items(self, max_attempts: int) -> int:
        updated = await (
            self.gateway.table(QUEUE_TABLE)
            .select("id")
            .gte("attempts", max_attempts)
            .eq("status", WorkItemStatus.PENDING)
            .update({"attempts": 0, "status": WorkItemStatus.PENDING, "error_message": None})
        )
        return len(updated)

    # ----- remote functions -----

    async def reset_stuck_processing(self, cleanup_failed: bool = True) -> Dict[str, Any]:
        return await self.gateway.invoke(
            RESET_STUCK_FUNCTION,
            {"action": "reset_stuck_processing", "cleanup_failed": cleanup_failed}
        )

    async def clear_stuck_queue(self) -> Dict[str, Any]:
        return await self.gateway.invoke(RESET_STUCK_FUNCTION, {"action": "clear_stuck_queue"})

    async def run_queue_processor(self) -> Dict[str, Any]:
        return await self.gateway.invoke(QUEUE_PROCESSOR_FUNCTION)

    async def extract_content(self, article_id: str, source_url: Optional[str]) -> Dict[str, Any]:
        return await self.gateway.invoke(
            CONTENT_EXTRACTOR_FUNCTION,
            {"articleId": article_id, "sourceUrl": source_url}
        )
