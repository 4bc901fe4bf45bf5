"""SQS notification consumption package."""

from .notification_consumer import NotificationConsumer

__all__ = ["NotificationConsumer"]
