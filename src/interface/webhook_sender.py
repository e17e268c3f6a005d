"""Outbound JSON webhook sender with retry logic."""

import asyncio
import logging
from typing import Any

import httpx
from pydantic import BaseModel, Field

from src.core.config import constants


logger = logging.getLogger(__name__)


HTTP_CLIENT_ERROR_START = 400
HTTP_CLIENT_ERROR_END = 500


class SendWebhookResult(BaseModel):
    """Result of posting a webhook."""

    success: bool = Field(..., description="Whether the receiver accepted the payload")
    status_code: int | None = Field(None, description="HTTP status of the last attempt")
    error: str | None = Field(None, description="Error message if failed")


async def send_webhook(
    *,
    url: str,
    payload: dict[str, Any],
    max_retries: int = 3,
    retry_delay: float = 1.0,
) -> SendWebhookResult:
    """POST ``payload`` as JSON, retrying server errors and transport failures.

    Client errors (4xx) are not retried.
    """
    headers = {"Content-Type": "application/json"}
    last_error = "Max retries exceeded"

    for attempt in range(max_retries):
        try:
            async with httpx.AsyncClient(timeout=constants.API_TIMEOUT_SECONDS) as client:
                response = await client.post(url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            last_error = f"Failed after retries: {e!s}"
            logger.warning("Webhook delivery attempt %d/%d failed: %s", attempt + 1, max_retries, e)
        else:
            if response.is_success:
                return SendWebhookResult(success=True, status_code=response.status_code)
            if HTTP_CLIENT_ERROR_START <= response.status_code < HTTP_CLIENT_ERROR_END:
                return SendWebhookResult(
                    success=False, status_code=response.status_code, error=f"Client error: {response.text}"
                )
            last_error = f"Server error: {response.status_code}"
            logger.warning(
                "Webhook receiver returned %d (attempt %d/%d)", response.status_code, attempt + 1, max_retries
            )

        if attempt < max_retries - 1:
            await asyncio.sleep(retry_delay * (2**attempt))

    return SendWebhookResult(success=False, error=last_error)
