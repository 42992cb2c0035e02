"""HTMX Components package for the Newsdesk console."""

from .base_component import BaseComponent
from .queue_components import QueueComponent, router as queue_router

__all__ = [
    "BaseComponent",
    "QueueComponent",
    "queue_router"
]
