"""
Action Dispatcher

Runs the editor's remediation actions against the Remote Data Gateway:
cancelling and clearing queue rows, approving, rejecting and discarding
pending articles, and invoking the backend's reset, processing and
content extraction functions.

Each action is all-or-nothing from the console's point of view. On
success the editor gets a notice and both panels are refetched; on
failure the editor gets a destructive notice naming the action and no
refresh happens.
"""

from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Set, Tuple

from newsdesk.config import settings
from newsdesk.core.exceptions import ActionFailedException, ValidationException
from newsdesk.core.logging_config import get_logger
from newsdesk.models import ActionResult, DispatchAction, ParentArticle, SlideType
from newsdesk.repositories.queue_repo import QueueRepository
from newsdesk.services.notifications import NotificationCenter
from newsdesk.services.prometheus_metrics import get_metrics
from newsdesk.services.selection import SelectionController

logger = get_logger(__name__)

RefreshCallback = Callable[[DispatchAction], Awaitable[Any]]
ArticleLookup = Callable[[str], Optional[str]]
PendingArticleLookup = Callable[[str], Optional[ParentArticle]]

ACTION_LABELS: Dict[DispatchAction, str] = {
    DispatchAction.CANCEL: "cancel queued item",
    DispatchAction.CLEAR: "clear stuck job",
    DispatchAction.BULK_CANCEL: "cancel selected items",
    DispatchAction.DELETE: "delete articles",
    DispatchAction.RESET_PROCESSING: "reset processing issues",
    DispatchAction.CLEAR_ALL_STUCK: "clear all stuck jobs",
    DispatchAction.RETURN_TO_PIPELINE: "return article to pipeline",
    DispatchAction.PROCESS_QUEUE: "process queue",
    DispatchAction.RESET_FAILED: "reset failed jobs",
    DispatchAction.APPROVE: "queue generation",
    DispatchAction.REJECT: "reject article",
    DispatchAction.EXTRACT_CONTENT: "extract article content",
}

SLIDE_TYPE_LABELS: Dict[SlideType, str] = {
    SlideType.SHORT: "Short Carousel",
    SlideType.TABLOID: "Tabloid Style",
    SlideType.INDEPTH: "In-Depth Analysis",
}

SINGLE_TARGET_ACTIONS = {
    DispatchAction.CANCEL,
    DispatchAction.CLEAR,
    DispatchAction.RETURN_TO_PIPELINE,
    DispatchAction.APPROVE,
    DispatchAction.REJECT,
    DispatchAction.EXTRACT_CONTENT,
}
BULK_ACTIONS = {DispatchAction.BULK_CANCEL, DispatchAction.DELETE}
TARGETED_ACTIONS = SINGLE_TARGET_ACTIONS | BULK_ACTIONS

# Actions that only touch articles leave the stats and stuck-job views as they are
ARTICLE_ONLY_ACTIONS = {DispatchAction.DELETE, DispatchAction.REJECT, DispatchAction.EXTRACT_CONTENT}

DISCARDED_STATUS = "discarded"
NEW_STATUS = "new"


class ActionDispatcher:
    def __init__(
        self,
        repository: QueueRepository,
        notifications: NotificationCenter,
        selection: SelectionController,
        on_refresh: Optional[RefreshCallback] = None,
        article_lookup: Optional[ArticleLookup] = None,
        pending_article_lookup: Optional[PendingArticleLookup] = None,
        max_attempts: Optional[int] = None
    ):
        self.repository = repository
        self.notifications = notifications
        self.selection = selection
        self.on_refresh = on_refresh
        self.article_lookup = article_lookup
        self.pending_article_lookup = pending_article_lookup
        self.max_attempts = max_attempts if max_attempts is not None else settings.default_max_attempts
        self.metrics = get_metrics()
        self._in_flight: Set[Tuple[DispatchAction, Tuple[str, ...]]] = set()

        self._handlers: Dict[DispatchAction, Callable[..., Awaitable[str]]] = {
            DispatchAction.CANCEL: self._cancel,
            DispatchAction.CLEAR: self._clear,
            DispatchAction.BULK_CANCEL: self._bulk_cancel,
            DispatchAction.DELETE: self._delete_articles,
            DispatchAction.RESET_PROCESSING: self._reset_processing,
            DispatchAction.CLEAR_ALL_STUCK: self._clear_all_stuck,
            DispatchAction.RETURN_TO_PIPELINE: self._return_to_pipeline,
            DispatchAction.PROCESS_QUEUE: self._process_queue,
            DispatchAction.RESET_FAILED: self._reset_failed,
            DispatchAction.APPROVE: self._approve,
            DispatchAction.REJECT: self._reject,
            DispatchAction.EXTRACT_CONTENT: self._extract_content,
        }

    def is_in_flight(self, action: DispatchAction) -> bool:
        return any(key[0] == action for key in self._in_flight)

    async def dispatch(
        self,
        action: DispatchAction,
        targets: Sequence[str] = (),
        slidetype: Optional[SlideType] = None
    ) -> ActionResult:
        """
        Run one action.

        Args:
            action: What to do
            targets: Queue row ids (cancel/clear/return/bulk_cancel) or
                article ids (delete/approve/reject/extract_content); ignored
                by the backend-wide actions
            slidetype: Story format for approve, tabloid when omitted

        Returns:
            ActionResult; success=False on backend failure, skipped=True
            when the same action on the same targets is already running

        Raises:
            ValidationException: missing or surplus targets, unknown slide type
        """
        action = DispatchAction(action)
        ids = self._validate_targets(action, targets)
        options = self._options_for(action, slidetype)
        key = (action, tuple(ids))

        if key in self._in_flight:
            self.metrics.record_action(action.value, "skipped")
            logger.info(f"Ignoring duplicate trigger for {action.value}", action=action.value)
            return ActionResult(
                action=action,
                success=False,
                target_count=len(ids),
                message="Already in progress",
                skipped=True
            )

        self._in_flight.add(key)
        try:
            logger.operation_start(action.value, target_count=len(ids))
            try:
                message = await self._handlers[action](ids, **options)
            except Exception as e:
                return self._failed(action, ids, e)

            self.metrics.record_action(action.value, "success")
            logger.operation_end(action.value, target_count=len(ids))
            self.notifications.success("Success", message)

            if action in BULK_ACTIONS:
                self.selection.clear()

            if self.on_refresh is not None:
                await self.on_refresh(action)

            return ActionResult(action=action, success=True, target_count=len(ids), message=message)
        finally:
            self._in_flight.discard(key)

    # Named entry points, one per panel button

    async def cancel(self, queue_id: str) -> ActionResult:
        return await self.dispatch(DispatchAction.CANCEL, [queue_id])

    async def clear(self, queue_id: str) -> ActionResult:
        return await self.dispatch(DispatchAction.CLEAR, [queue_id])

    async def bulk_cancel(self, queue_ids: Sequence[str]) -> ActionResult:
        return await self.dispatch(DispatchAction.BULK_CANCEL, queue_ids)

    async def delete_articles(self, article_ids: Sequence[str]) -> ActionResult:
        return await self.dispatch(DispatchAction.DELETE, article_ids)

    async def reset_processing(self) -> ActionResult:
        return await self.dispatch(DispatchAction.RESET_PROCESSING)

    async def clear_all_stuck(self) -> ActionResult:
        return await self.dispatch(DispatchAction.CLEAR_ALL_STUCK)

    async def return_to_pipeline(self, queue_id: str) -> ActionResult:
        return await self.dispatch(DispatchAction.RETURN_TO_PIPELINE, [queue_id])

    async def process_queue(self) -> ActionResult:
        return await self.dispatch(DispatchAction.PROCESS_QUEUE)

    async def reset_failed(self) -> ActionResult:
        return await self.dispatch(DispatchAction.RESET_FAILED)

    async def approve(self, article_id: str, slidetype: SlideType = SlideType.TABLOID) -> ActionResult:
        return await self.dispatch(DispatchAction.APPROVE, [article_id], slidetype=slidetype)

    async def reject(self, article_id: str) -> ActionResult:
        return await self.dispatch(DispatchAction.REJECT, [article_id])

    async def extract_content(self, article_id: str) -> ActionResult:
        return await self.dispatch(DispatchAction.EXTRACT_CONTENT, [article_id])

    # ----- internals -----

    def _validate_targets(self, action: DispatchAction, targets: Sequence[str]) -> List[str]:
        ids: List[str] = []
        for target in targets or ():
            target = str(target).strip()
            if target and target not in ids:
                ids.append(target)

        if action not in TARGETED_ACTIONS:
            return []

        if not ids:
            raise ValidationException(
                f"{action.value} requires at least one target",
                field="targets",
                user_message="Nothing selected"
            )
        if action in SINGLE_TARGET_ACTIONS and len(ids) > 1:
            raise ValidationException(
                f"{action.value} takes exactly one target",
                field="targets",
                value=len(ids)
            )
        return ids

    def _options_for(self, action: DispatchAction, slidetype: Optional[SlideType]) -> Dict[str, Any]:
        if action != DispatchAction.APPROVE:
            return {}
        try:
            return {"slidetype": SlideType(slidetype) if slidetype is not None else SlideType.TABLOID}
        except ValueError:
            raise ValidationException(
                f"unknown slide type {slidetype!r}",
                field="slidetype",
                value=slidetype
            )

    def _failed(self, action: DispatchAction, ids: List[str], error: Exception) -> ActionResult:
        label = ACTION_LABELS[action]
        self.metrics.record_action(action.value, "failure")
        logger.operation_error(action.value, error, target_count=len(ids))
        self.notifications.error("Error", f"Failed to {label}")
        return ActionResult(
            action=action,
            success=False,
            target_count=len(ids),
            message=f"Failed to {label}",
            error=str(error)
        )

    async def _resolve_article_id(self, queue_id: str) -> Optional[str]:
        if self.article_lookup is not None:
            article_id = self.article_lookup(queue_id)
            if article_id:
                return article_id

        items = await self.repository.fetch_work_items_by_ids([queue_id])
        return items[0].article_id if items else None

    async def _reset_stories(self, article_id: Optional[str]) -> None:
        """Best effort: a story that cannot be reset is only worth a warning"""
        if not article_id:
            return
        try:
            await self.repository.reset_stories_to_draft(article_id)
        except Exception as e:
            logger.warning(f"Could not reset stories for article {article_id}: {e}")

    async def _remove_work_item(self, queue_id: str) -> None:
        article_id = await self._resolve_article_id(queue_id)
        await self.repository.delete_work_items([queue_id])
        await self._reset_stories(article_id)

    async def _cancel(self, ids: List[str]) -> str:
        await self._remove_work_item(ids[0])
        return "Article removed from queue"

    async def _clear(self, ids: List[str]) -> str:
        await self._remove_work_item(ids[0])
        return "Stuck job cleared"

    async def _bulk_cancel(self, ids: List[str]) -> str:
        await self.repository.delete_work_items(ids)
        return f"Cancelled {len(ids)} queued items"

    async def _delete_articles(self, ids: List[str]) -> str:
        await self.repository.set_articles_status(ids, DISCARDED_STATUS)
        return f"Deleted {len(ids)} articles"

    async def _reset_processing(self, ids: List[str]) -> str:
        await self.repository.reset_stuck_processing(cleanup_failed=True)
        return "Processing issues reset"

    async def _clear_all_stuck(self, ids: List[str]) -> str:
        await self.repository.clear_stuck_queue()
        return "All stuck jobs cleared"

    async def _return_to_pipeline(self, ids: List[str]) -> str:
        queue_id = ids[0]
        article_id = await self._resolve_article_id(queue_id)
        if not article_id:
            raise ActionFailedException(
                DispatchAction.RETURN_TO_PIPELINE.value,
                f"queue item {queue_id} no longer exists",
                target_count=1
            )

        await self.repository.delete_work_items([queue_id])
        await self.repository.set_articles_status([article_id], NEW_STATUS)
        return "Article returned to pipeline"

    async def _process_queue(self, ids: List[str]) -> str:
        result = await self.repository.run_queue_processor()
        processed = result.get("processed", 0)
        return f"Processed {processed} jobs"

    async def _reset_failed(self, ids: List[str]) -> str:
        reset = await self.repository.reset_exhausted_pending_items(self.max_attempts)
        return f"Reset {reset} failed jobs"

    async def _approve(self, ids: List[str], slidetype: SlideType = SlideType.TABLOID) -> str:
        work_item = await self.repository.enqueue_article(ids[0], slidetype)
        logger.info(f"Queued article {ids[0]} as {slidetype.value}", queue_id=work_item.id)
        return f"{SLIDE_TYPE_LABELS[slidetype]} generation added to queue"

    async def _reject(self, ids: List[str]) -> str:
        await self.repository.set_articles_status(ids, DISCARDED_STATUS)
        return "Article moved to discarded status"

    async def _extract_content(self, ids: List[str]) -> str:
        article = await self._resolve_article(ids[0])
        if article is None or not article.source_url:
            raise ActionFailedException(
                DispatchAction.EXTRACT_CONTENT.value,
                f"article {ids[0]} has no source url",
                target_count=1
            )

        result = await self.repository.extract_content(article.id, article.source_url)
        word_count = result.get("wordCount")
        method = result.get("extractionMethod") or "direct"
        words = f" ({word_count} words)" if word_count else ""
        return f"Extracted{words} using {method} method"

    async def _resolve_article(self, article_id: str) -> Optional[ParentArticle]:
        if self.pending_article_lookup is not None:
            article = self.pending_article_lookup(article_id)
            if article is not None:
                return article

        articles = await self.repository.fetch_articles_by_ids([article_id])
        return articles[0] if articles else None
