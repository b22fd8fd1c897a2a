"""
Outbound email capability.

Emails are delivered by posting a JSON payload to a webhook (an automation
service renders and sends the actual message). The sender only knows how to
deliver a payload and report success or failure.
"""

import logging
from typing import Any, Dict

import httpx
from fastapi import Request

from app.services.errors import ConfigurationError, UpstreamError


logger = logging.getLogger(__name__)


class WebhookEmailSender:
    """Delivers email payloads to webhook URLs over a shared httpx client."""

    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    async def send(self, webhook_url: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        POST the payload to the webhook.

        Raises:
            ConfigurationError: webhook_url is empty
            UpstreamError: transport failure or non-2xx response
        """
        if not webhook_url:
            raise ConfigurationError("Email service not configured")

        try:
            response = await self.client.post(webhook_url, json=payload)
        except httpx.HTTPError as e:
            logger.error("Email webhook request failed: %s", e)
            raise UpstreamError(f"Email webhook request failed: {e}") from e

        if response.is_error:
            logger.error(
                "Email webhook returned %d %s",
                response.status_code,
                response.reason_phrase,
            )
            raise UpstreamError(
                f"Email webhook failed: {response.status_code} {response.reason_phrase}",
                upstream_status=response.status_code,
            )

        # Automation services often answer with plain text ("Accepted")
        try:
            body = response.json()
        except ValueError:
            body = {"raw": response.text}
        return body if isinstance(body, dict) else {"result": body}


def get_email_sender(request: Request) -> WebhookEmailSender:
    """FastAPI dependency: the process-wide sender created in the app lifespan."""
    return request.app.state.email_sender
