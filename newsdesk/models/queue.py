"""
Queue Models

Read-only client copies of content_generation_queue rows and their parent
articles, plus the derived view models the console renders.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any, List
from pydantic import BaseModel, Field, field_validator

UNKNOWN_ARTICLE_TITLE = "Unknown Article"
DEFAULT_MAX_ATTEMPTS = 3


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WorkItemStatus(str, Enum):
    """Lifecycle status of a queued generation job (owned by the backend)"""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class QueueStatus(str, Enum):
    """Display classification of an active queue row"""
    PENDING = "pending"
    PROCESSING = "processing"
    STUCK = "stuck"


class StuckReason(str, Enum):
    ATTEMPTS_EXHAUSTED = "attempts_exhausted"
    PROCESSING_TIMEOUT = "processing_timeout"


class SlideType(str, Enum):
    """Story format requested when an article is approved into the queue"""
    SHORT = "short"
    TABLOID = "tabloid"
    INDEPTH = "indepth"


class WorkItem(BaseModel):
    """One queued unit of content generation"""
    id: str
    article_id: str
    status: WorkItemStatus = WorkItemStatus.PENDING
    attempts: int = 0
    max_attempts: int = 3
    error_message: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    slidetype: Optional[str] = None

    @field_validator("id", "article_id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        return str(value)

    @field_validator("attempts", mode="before")
    @classmethod
    def _null_to_zero(cls, value: Any) -> Any:
        return 0 if value is None else value

    @field_validator("max_attempts", mode="before")
    @classmethod
    def _null_to_default(cls, value: Any) -> Any:
        return DEFAULT_MAX_ATTEMPTS if value is None else value

    @field_validator("created_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class ParentArticle(BaseModel):
    """Article record a WorkItem generates a story for"""
    id: str
    title: str = UNKNOWN_ARTICLE_TITLE
    source_url: Optional[str] = None
    author: Optional[str] = None
    summary: Optional[str] = None
    body: Optional[str] = None
    word_count: Optional[int] = None
    processing_status: Optional[str] = None
    regional_relevance_score: Optional[float] = None
    import_metadata: Dict[str, Any] = Field(default_factory=dict)
    published_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        return str(value)

    @field_validator("title", mode="before")
    @classmethod
    def _title_fallback(cls, value: Any) -> Any:
        return value or UNKNOWN_ARTICLE_TITLE

    @field_validator("import_metadata", mode="before")
    @classmethod
    def _metadata_dict(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else {}

    @property
    def relevance_score(self) -> float:
        score = self.import_metadata.get("regional_relevance_score")
        if score is None:
            score = self.regional_relevance_score
        try:
            return float(score or 0)
        except (TypeError, ValueError):
            return 0.0


class StuckClassification(BaseModel):
    """Derived stuck flag and the rule that triggered it"""
    is_stuck: bool = False
    reason: Optional[StuckReason] = None


class QueuedArticleView(BaseModel):
    """A reconciled queue row: WorkItem joined with its parent article"""
    queue_id: str
    article_id: str
    title: str = UNKNOWN_ARTICLE_TITLE
    source_url: Optional[str] = None
    queue_status: QueueStatus
    work_status: WorkItemStatus
    queue_type: str = "tabloid"
    attempts: int = 0
    max_attempts: int = 3
    error_message: Optional[str] = None
    created_at: datetime
    is_stuck: bool = False
    stuck_reason: Optional[StuckReason] = None


class StuckJob(BaseModel):
    """Row of the stuck job manager"""
    id: str
    article_id: str
    title: str = UNKNOWN_ARTICLE_TITLE
    status: WorkItemStatus
    attempts: int = 0
    max_attempts: int = 3
    error_message: Optional[str] = None
    created_at: datetime


class QueueStats(BaseModel):
    pending: int = 0
    processing: int = 0
    completed: int = 0
    failed: int = 0

    @property
    def total(self) -> int:
        return self.pending + self.processing + self.completed + self.failed


class ActivityEntry(BaseModel):
    """Recent backend activity from system_logs"""
    id: str
    level: str = "info"
    message: str = ""
    function_name: Optional[str] = None
    created_at: Optional[datetime] = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        return str(value)


class DispatchAction(str, Enum):
    """Remediation actions the console can request"""
    CANCEL = "cancel"
    CLEAR = "clear"
    BULK_CANCEL = "bulk_cancel"
    DELETE = "delete"
    RESET_PROCESSING = "reset_processing"
    CLEAR_ALL_STUCK = "clear_all_stuck"
    RETURN_TO_PIPELINE = "return_to_pipeline"
    PROCESS_QUEUE = "process_queue"
    RESET_FAILED = "reset_failed"
    APPROVE = "approve"
    REJECT = "reject"
    EXTRACT_CONTENT = "extract_content"


class ActionResult(BaseModel):
    action: DispatchAction
    success: bool
    target_count: int = 0
    message: Optional[str] = None
    error: Optional[str] = None
    skipped: bool = False


class NotificationVariant(str, Enum):
    DEFAULT = "default"
    DESTRUCTIVE = "destructive"


class Notification(BaseModel):
    """Dismissible user-facing notice"""
    id: str
    title: str
    description: str = ""
    variant: NotificationVariant = NotificationVariant.DEFAULT
    created_at: datetime = Field(default_factory=utcnow)


class QueueSnapshot(BaseModel):
    """Everything the queue panel currently shows"""
    sequence: int = 0
    queued: List[QueuedArticleView] = Field(default_factory=list)
    pending_articles: List[ParentArticle] = Field(default_factory=list)
    selected_ids: List[str] = Field(default_factory=list)
    refreshed_at: Optional[datetime] = None
