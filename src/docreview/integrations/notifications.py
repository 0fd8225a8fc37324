"""Review notification delivery.

Notifications are fire-and-forget: the engine hands a message to the
NotificationDispatcher, which delivers it on a background task bounded by
a timeout. Delivery failures and timeouts are logged and never reach the
operation that triggered them.

Two senders are provided:

- LoggingNotificationSender: records the notification in the log (default
  when no webhook is configured).
- WebhookNotificationSender: POSTs a JSON payload to a webhook (e.g. an n8n
  or mail relay workflow).
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Protocol

import httpx

from docreview.config import NotificationConfig
from docreview.logging import get_logger

logger = get_logger(__name__)


class NotificationTemplate(str, Enum):
    """Templates the engine sends."""

    REVIEW_ASSIGNMENT = "review_assignment"
    REVIEW_APPROVED = "review_approved"
    REVIEW_REJECTED = "review_rejected"
    REVISION_REQUESTED = "revision_requested"


class NotificationSender(Protocol):
    """Delivers one notification."""

    async def send(self, address: str, template: str, data: dict[str, Any]) -> None:
        ...


class LoggingNotificationSender:
    """Sender that only logs what would have been sent."""

    async def send(self, address: str, template: str, data: dict[str, Any]) -> None:
        logger.info("notification_logged", address=address, template=template, data=data)

    async def close(self) -> None:
        return None


class WebhookNotificationSender:
    """Sender that POSTs notifications to a webhook."""

    def __init__(
        self,
        webhook_url: str,
        auth_header: str | None = None,
        timeout_seconds: float = 10.0,
    ) -> None:
        self.webhook_url = webhook_url
        self.auth_header = auth_header
        self.timeout_seconds = timeout_seconds
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout_seconds)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def send(self, address: str, template: str, data: dict[str, Any]) -> None:
        """Deliver the notification.

        Raises:
            httpx.HTTPError: On transport errors or non-2xx responses.
        """
        client = await self._get_client()
        headers = {"Content-Type": "application/json"}
        if self.auth_header:
            headers["Authorization"] = self.auth_header

        payload = {
            "address": address,
            "template": template,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "data": data,
        }
        response = await client.post(self.webhook_url, json=payload, headers=headers)
        response.raise_for_status()
        logger.info(
            "notification_webhook_sent",
            template=template,
            status_code=response.status_code,
        )


class NotificationDispatcher:
    """Schedules notifications on background tasks."""

    def __init__(
        self,
        sender: NotificationSender,
        timeout_seconds: float = 10.0,
        enabled: bool = True,
    ) -> None:
        self.sender = sender
        self.timeout_seconds = timeout_seconds
        self.enabled = enabled
        self._pending: set[asyncio.Task[None]] = set()

    def dispatch(
        self,
        address: str,
        template: NotificationTemplate | str,
        data: dict[str, Any],
    ) -> asyncio.Task[None] | None:
        """Schedule a notification and return immediately.

        Must be called from a running event loop.
        """
        template_name = getattr(template, "value", template)
        if not self.enabled:
            logger.debug("notifications_disabled", template=template_name)
            return None
        task = asyncio.get_running_loop().create_task(
            self._deliver(address, template_name, data)
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _deliver(self, address: str, template: str, data: dict[str, Any]) -> None:
        try:
            await asyncio.wait_for(
                self.sender.send(address, template, data),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "notification_timed_out",
                address=address,
                template=template,
                timeout_seconds=self.timeout_seconds,
            )
        except Exception as exc:
            logger.warning(
                "notification_failed",
                address=address,
                template=template,
                error=str(exc),
            )

    @property
    def pending(self) -> int:
        """Deliveries still in flight."""
        return len(self._pending)

    async def drain(self) -> None:
        """Wait for all in-flight deliveries to finish."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def close(self) -> None:
        """Drain deliveries and close the sender."""
        await self.drain()
        close = getattr(self.sender, "close", None)
        if close is not None:
            await close()


def build_dispatcher(config: NotificationConfig) -> NotificationDispatcher:
    """Create the dispatcher described by NotificationConfig."""
    sender: NotificationSender
    if config.webhook_url:
        sender = WebhookNotificationSender(
            webhook_url=config.webhook_url,
            auth_header=config.auth_header,
            timeout_seconds=config.timeout_seconds,
        )
    else:
        sender = LoggingNotificationSender()
    return NotificationDispatcher(
        sender,
        timeout_seconds=config.timeout_seconds,
        enabled=config.enabled,
    )
