from .queue import (
    UNKNOWN_ARTICLE_TITLE,
    WorkItemStatus,
    QueueStatus,
    StuckReason,
    SlideType,
    WorkItem,
    ParentArticle,
    StuckClassification,
    QueuedArticleView,
    StuckJob,
    QueueStats,
    ActivityEntry,
    DispatchAction,
    ActionResult,
    NotificationVariant,
    Notification,
    QueueSnapshot,
)

__all__ = [
    "UNKNOWN_ARTICLE_TITLE",
    "WorkItemStatus",
    "QueueStatus",
    "StuckReason",
    "SlideType",
    "WorkItem",
    "ParentArticle",
    "StuckClassification",
    "QueuedArticleView",
    "StuckJob",
    "QueueStats",
    "ActivityEntry",
    "DispatchAction",
    "ActionResult",
    "NotificationVariant",
    "Notification",
    "QueueSnapshot",
]
