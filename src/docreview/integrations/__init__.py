"""External integrations for Docreview."""

from docreview.integrations.notifications import (
    LoggingNotificationSender,
    NotificationDispatcher,
    NotificationSender,
    NotificationTemplate,
    WebhookNotificationSender,
    build_dispatcher,
)

__all__ = [
    "LoggingNotificationSender",
    "NotificationDispatcher",
    "NotificationSender",
    "NotificationTemplate",
    "WebhookNotificationSender",
    "build_dispatcher",
]
