"""Dependency injection for the console's long-lived services."""

from functools import lru_cache

from fastapi import Depends

from newsdesk.config import settings
from newsdesk.gateway.client import RemoteDataGateway
from newsdesk.repositories.queue_repo import QueueRepository
from newsdesk.services.action_dispatcher import ActionDispatcher
from newsdesk.services.notifications import NotificationCenter
from newsdesk.services.queue_panel import QueuePanel


@lru_cache(maxsize=1)
def get_gateway() -> RemoteDataGateway:
    """Get the Remote Data Gateway client (stateless, can be cached)."""
    return RemoteDataGateway(
        base_url=settings.gateway_url,
        api_key=settings.gateway_key,
        timeout=settings.gateway_timeout_seconds
    )


@lru_cache(maxsize=1)
def get_queue_panel() -> QueuePanel:
    """Get the single QueuePanel holding the console's view state."""
    return QueuePanel(QueueRepository(get_gateway()))


def get_notifications(panel: QueuePanel = Depends(get_queue_panel)) -> NotificationCenter:
    return panel.notifications


def get_dispatcher(panel: QueuePanel = Depends(get_queue_panel)) -> ActionDispatcher:
    return panel.dispatcher
