"""Email notifications for account lifecycle events."""

import asyncio
import html
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, Protocol

import httpx
import structlog

from app.config import Settings

logger = structlog.get_logger(__name__)

SENDGRID_SEND_URL = "https://api.sendgrid.com/v3/mail/send"


class TemplateKind(StrEnum):
    """Emails the platform sends."""

    APPROVAL_DECISION = "approval_decision"
    WELCOME = "welcome"


class NotificationError(Exception):
    """Notification could not be delivered to the provider."""


class NotificationService(Protocol):
    """Outbound notification channel."""

    async def send(self, to_address: str, template_kind: TemplateKind, data: dict[str, Any]) -> None:
        """Deliver a message; raise on failure."""
        ...


@dataclass(frozen=True)
class RenderedEmail:
    subject: str
    html: str


_LAYOUT = """<!DOCTYPE html>
<html>
  <head><meta charset="utf-8"></head>
  <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
    <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
      <div style="background: {color}; color: white; padding: 20px; text-align: center;">
        <h1>{heading}</h1>
      </div>
      <div style="padding: 30px 20px; background: #f9fafb;">
        {body}
        <p>Kind regards,<br>The {brand} team</p>
      </div>
      <div style="text-align: center; padding: 20px; color: #6b7280; font-size: 14px;">
        <p>&copy; {year} {brand}. All rights reserved.</p>
      </div>
    </div>
  </body>
</html>
"""


def render_email(
    template_kind: TemplateKind, data: dict[str, Any], brand: str, app_url: str
) -> RenderedEmail:
    """
    Render a template to subject and HTML.

    Args:
        template_kind: Which email to render
        data: Template fields (``name``; ``approved`` and ``reason`` for decisions;
            ``pending_review`` for welcome emails)
        brand: Product name shown in the email
        app_url: Public URL of the web client

    Returns:
        Rendered email
    """
    name = html.escape(data.get("name") or "there")
    year = datetime.now(UTC).year

    if template_kind is TemplateKind.APPROVAL_DECISION:
        if data.get("approved"):
            subject = "Your account has been approved"
            heading, color = "Account approved!", "#10b981"
            body = (
                f"<p>Hello {name},</p>"
                "<p>Your professional account has been approved. You can now sign in "
                "and access professional medical content.</p>"
                f'<p style="text-align: center;"><a href="{html.escape(app_url)}/login">Sign in</a></p>'
            )
        else:
            subject = "Update on your account status"
            heading, color = "Account status update", "#ef4444"
            reason = data.get("reason")
            body = (
                f"<p>Hello {name},</p>"
                "<p>Unfortunately we could not verify your professional account at this time.</p>"
            )
            if reason:
                body += f"<p><strong>Reason:</strong> {html.escape(reason)}</p>"
            body += "<p>If you believe this is a mistake, you can submit your application again.</p>"
    elif template_kind is TemplateKind.WELCOME:
        subject = f"Welcome to {brand}"
        heading, color = f"Welcome to {brand}!", "#3b82f6"
        body = f"<p>Hello {name},</p><p>Thank you for registering.</p>"
        if data.get("pending_review"):
            body += (
                "<p>Your account is waiting for verification by our team. We will email you "
                "once it has been reviewed; this usually takes 24-48 hours.</p>"
            )
    else:
        raise ValueError(f"Unknown template: {template_kind}")

    return RenderedEmail(
        subject=subject,
        html=_LAYOUT.format(
            color=color, heading=heading, body=body, brand=html.escape(brand), year=year
        ),
    )


class EmailNotificationService:
    """Sends templated emails through SendGrid, or logs them when configured to."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient | None = None):
        """Initialize with settings and an optional shared HTTP client."""
        self.settings = settings
        self._client = http_client

    async def send(self, to_address: str, template_kind: TemplateKind, data: dict[str, Any]) -> None:
        """
        Render and deliver an email.

        Raises:
            NotificationError: If the provider is misconfigured or rejects the message
        """
        email = render_email(
            template_kind, data, brand=self.settings.email_from_name, app_url=self.settings.app_url
        )

        if self.settings.email_provider == "log":
            logger.info(
                "email_logged",
                to=to_address,
                template=template_kind.value,
                subject=email.subject,
            )
            return

        if not self.settings.sendgrid_api_key:
            raise NotificationError("SENDGRID_API_KEY is not configured")

        payload = {
            "personalizations": [{"to": [{"email": to_address}], "subject": email.subject}],
            "from": {
                "email": self.settings.sendgrid_from_email,
                "name": self.settings.email_from_name,
            },
            "content": [{"type": "text/html", "value": email.html}],
        }
        headers = {"Authorization": f"Bearer {self.settings.sendgrid_api_key}"}

        try:
            if self._client is not None:
                response = await self._client.post(SENDGRID_SEND_URL, json=payload, headers=headers)
            else:
                async with httpx.AsyncClient(
                    timeout=self.settings.notification_timeout_seconds
                ) as client:
                    response = await client.post(SENDGRID_SEND_URL, json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise NotificationError(f"SendGrid request failed: {e!s}") from e

        if response.is_error:
            raise NotificationError(f"SendGrid API error {response.status_code}: {response.text}")

        logger.info("email_sent", to=to_address, template=template_kind.value)


async def dispatch_best_effort(
    notifier: NotificationService,
    to_address: str | None,
    template_kind: TemplateKind,
    data: dict[str, Any],
    timeout: float,
) -> bool:
    """
    Send a notification without letting its failure reach the caller.

    Returns:
        True if the notifier reported success, False otherwise
    """
    if not to_address:
        logger.warning("notification_skipped_no_address", template=template_kind.value)
        return False

    try:
        await asyncio.wait_for(notifier.send(to_address, template_kind, data), timeout=timeout)
    except TimeoutError:
        logger.warning("notification_timeout", template=template_kind.value, timeout=timeout)
        return False
    except Exception as e:
        logger.warning("notification_failed", template=template_kind.value, error=str(e))
        return False
    return True
