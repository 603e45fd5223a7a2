"""Tests for email notifications."""

import asyncio
import json

import httpx
import pytest

from app.config import settings
from app.services.notification_service import (
    SENDGRID_SEND_URL,
    EmailNotificationService,
    NotificationError,
    TemplateKind,
    dispatch_best_effort,
    render_email,
)
from conftest import RecordingNotifier


def sendgrid_settings(**overrides):
    values = {"email_provider": "sendgrid", "sendgrid_api_key": "SG.test-key", **overrides}
    return settings.model_copy(update=values)


class TestRenderEmail:
    """Tests for render_email."""

    def test_approval(self):
        email = render_email(
            TemplateKind.APPROVAL_DECISION,
            {"name": "Dr. Ana", "approved": True},
            brand="Medblog",
            app_url="https://medblog.org",
        )

        assert email.subject == "Your account has been approved"
        assert "Dr. Ana" in email.html
        assert "https://medblog.org/login" in email.html

    def test_rejection_includes_escaped_reason(self):
        email = render_email(
            TemplateKind.APPROVAL_DECISION,
            {"name": "<b>Eve</b>", "approved": False, "reason": "License <expired>"},
            brand="Medblog",
            app_url="https://medblog.org",
        )

        assert email.subject == "Update on your account status"
        assert "License &lt;expired&gt;" in email.html
        assert "<b>Eve</b>" not in email.html

    def test_welcome_for_pending_professional(self):
        email = render_email(
            TemplateKind.WELCOME,
            {"name": "Sam", "pending_review": True},
            brand="Medblog",
            app_url="https://medblog.org",
        )

        assert email.subject == "Welcome to Medblog"
        assert "waiting for verification" in email.html


class TestEmailNotificationService:
    """Tests for EmailNotificationService."""

    async def test_sends_through_sendgrid(self):
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(202)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            service = EmailNotificationService(sendgrid_settings(), http_client=http_client)
            await service.send("u1@medblog.org", TemplateKind.APPROVAL_DECISION, {"approved": True})

        assert len(captured) == 1
        request = captured[0]
        assert str(request.url) == SENDGRID_SEND_URL
        assert request.headers["Authorization"] == "Bearer SG.test-key"
        payload = json.loads(request.content)
        assert payload["personalizations"][0]["to"] == [{"email": "u1@medblog.org"}]
        assert payload["personalizations"][0]["subject"] == "Your account has been approved"

    async def test_provider_error_raises(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(401, text="bad key"))

        async with httpx.AsyncClient(transport=transport) as http_client:
            service = EmailNotificationService(sendgrid_settings(), http_client=http_client)
            with pytest.raises(NotificationError):
                await service.send("u1@medblog.org", TemplateKind.WELCOME, {})

    async def test_missing_api_key_raises(self):
        service = EmailNotificationService(sendgrid_settings(sendgrid_api_key=None))

        with pytest.raises(NotificationError):
            await service.send("u1@medblog.org", TemplateKind.WELCOME, {})

    async def test_log_provider_does_not_call_out(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no HTTP call expected")

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            service = EmailNotificationService(
                settings.model_copy(update={"email_provider": "log"}), http_client=http_client
            )
            await service.send("u1@medblog.org", TemplateKind.WELCOME, {"name": "U1"})


class SlowNotifier:
    async def send(self, to_address, template_kind, data) -> None:
        await asyncio.sleep(1)


class TestDispatchBestEffort:
    """Tests for dispatch_best_effort."""

    async def test_success(self):
        notifier = RecordingNotifier()

        sent = await dispatch_best_effort(
            notifier, "u1@medblog.org", TemplateKind.WELCOME, {}, timeout=1
        )

        assert sent is True
        assert notifier.sent == [("u1@medblog.org", TemplateKind.WELCOME, {})]

    async def test_failure_is_swallowed(self):
        notifier = RecordingNotifier(error=NotificationError("smtp down"))

        sent = await dispatch_best_effort(
            notifier, "u1@medblog.org", TemplateKind.WELCOME, {}, timeout=1
        )

        assert sent is False

    async def test_timeout_is_swallowed(self):
        sent = await dispatch_best_effort(
            SlowNotifier(), "u1@medblog.org", TemplateKind.WELCOME, {}, timeout=0.05
        )

        assert sent is False

    async def test_missing_address_is_skipped(self):
        notifier = RecordingNotifier()

        sent = await dispatch_best_effort(notifier, None, TemplateKind.WELCOME, {}, timeout=1)

        assert sent is False
        assert notifier.sent == []
