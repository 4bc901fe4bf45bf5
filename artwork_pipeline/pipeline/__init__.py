"""Invocation pipelines and event dispatching."""

from .creation import CreationContext, CreationPipeline
from .dispatcher import EventDispatcher
from .notifications import Notification, parse_notification
from .removal import RemovalContext, RemovalPipeline
from .stages import Stage, run_stages

__all__ = [
    "CreationContext",
    "CreationPipeline",
    "EventDispatcher",
    "Notification",
    "RemovalContext",
    "RemovalPipeline",
    "Stage",
    "parse_notification",
    "run_stages",
]
