"""Unit tests for notification delivery.

Tests cover:
- Fire-and-forget dispatch and drain
- Failures and timeouts are contained
- Disabled dispatchers send nothing
- Webhook payloads and error handling
- Dispatcher construction from configuration
"""

from __future__ import annotations

import asyncio
import json
from typing import Any
from unittest.mock import AsyncMock

import httpx
import pytest
import respx

from docreview.config import NotificationConfig
from docreview.integrations.notifications import (
    LoggingNotificationSender,
    NotificationDispatcher,
    NotificationTemplate,
    WebhookNotificationSender,
    build_dispatcher,
)

WEBHOOK_URL = "https://hooks.example.com/notify"


class TestNotificationDispatcher:
    """Tests for NotificationDispatcher."""

    @pytest.mark.asyncio
    async def test_dispatch_delivers_in_background(self) -> None:
        """Test that dispatch returns a task and drain waits for it."""
        sender = AsyncMock()
        dispatcher = NotificationDispatcher(sender)

        task = dispatcher.dispatch(
            "alice@example.com",
            NotificationTemplate.REVIEW_ASSIGNMENT,
            {"document_name": "Design"},
        )
        assert task is not None
        await dispatcher.drain()

        sender.send.assert_awaited_once_with(
            "alice@example.com", "review_assignment", {"document_name": "Design"}
        )
        assert dispatcher.pending == 0

    @pytest.mark.asyncio
    async def test_sender_failure_is_contained(self) -> None:
        """Test that a raising sender does not propagate."""
        sender = AsyncMock()
        sender.send.side_effect = RuntimeError("smtp down")
        dispatcher = NotificationDispatcher(sender)

        task = dispatcher.dispatch("bob@example.com", "review_approved", {})
        await dispatcher.drain()

        assert task is not None
        assert task.exception() is None

    @pytest.mark.asyncio
    async def test_sender_timeout_is_contained(self) -> None:
        """Test that a slow sender is cut off at the timeout."""

        class SlowSender:
            async def send(self, address: str, template: str, data: dict[str, Any]) -> None:
                await asyncio.sleep(5)

        dispatcher = NotificationDispatcher(SlowSender(), timeout_seconds=0.05)

        task = dispatcher.dispatch("carol@example.com", "review_rejected", {})
        await asyncio.wait_for(dispatcher.drain(), timeout=1.0)

        assert task is not None
        assert task.done()

    @pytest.mark.asyncio
    async def test_disabled_dispatcher_sends_nothing(self) -> None:
        """Test that disabled dispatchers skip delivery."""
        sender = AsyncMock()
        dispatcher = NotificationDispatcher(sender, enabled=False)

        assert dispatcher.dispatch("alice@example.com", "review_assignment", {}) is None
        await dispatcher.drain()

        sender.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_close_drains_and_closes_sender(self) -> None:
        """Test that close waits for deliveries and closes the sender."""
        sender = AsyncMock()
        dispatcher = NotificationDispatcher(sender)

        dispatcher.dispatch("alice@example.com", "revision_requested", {})
        await dispatcher.close()

        sender.send.assert_awaited_once()
        sender.close.assert_awaited_once()


class TestWebhookNotificationSender:
    """Tests for WebhookNotificationSender."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_posts_json_payload(self) -> None:
        """Test the webhook payload and authorization header."""
        route = respx.post(WEBHOOK_URL).mock(return_value=httpx.Response(200))
        sender = WebhookNotificationSender(WEBHOOK_URL, auth_header="Bearer token")

        await sender.send("alice@example.com", "review_assignment", {"review_id": "R-1"})
        await sender.close()

        assert route.called
        request = route.calls.last.request
        assert request.headers["Authorization"] == "Bearer token"
        payload = json.loads(request.content)
        assert payload["address"] == "alice@example.com"
        assert payload["template"] == "review_assignment"
        assert payload["data"] == {"review_id": "R-1"}
        assert "timestamp" in payload

    @pytest.mark.asyncio
    @respx.mock
    async def test_error_status_raises(self) -> None:
        """Test that non-2xx responses raise for the dispatcher to log."""
        respx.post(WEBHOOK_URL).mock(return_value=httpx.Response(503))
        sender = WebhookNotificationSender(WEBHOOK_URL)

        with pytest.raises(httpx.HTTPStatusError):
            await sender.send("alice@example.com", "review_approved", {})
        await sender.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_dispatcher_contains_webhook_errors(self) -> None:
        """Test that webhook failures stay inside the dispatcher."""
        route = respx.post(WEBHOOK_URL).mock(return_value=httpx.Response(500))
        dispatcher = NotificationDispatcher(WebhookNotificationSender(WEBHOOK_URL))

        dispatcher.dispatch("alice@example.com", "review_rejected", {})
        await dispatcher.close()

        assert route.called


class TestBuildDispatcher:
    """Tests for build_dispatcher."""

    def test_logging_sender_without_webhook(self) -> None:
        """Test the default sender when no webhook is configured."""
        dispatcher = build_dispatcher(NotificationConfig(webhook_url=None))
        assert isinstance(dispatcher.sender, LoggingNotificationSender)
        assert dispatcher.enabled is True

    def test_webhook_sender_when_configured(self) -> None:
        """Test that a webhook URL selects the webhook sender."""
        dispatcher = build_dispatcher(
            NotificationConfig(webhook_url=WEBHOOK_URL, timeout_seconds=3, enabled=False)
        )
        assert isinstance(dispatcher.sender, WebhookNotificationSender)
        assert dispatcher.sender.timeout_seconds == 3
        assert dispatcher.timeout_seconds == 3
        assert dispatcher.enabled is False
