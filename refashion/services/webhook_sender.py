"""
Outbound webhook delivery for job completion notices.
"""
import asyncio
import time
from typing import Any, Awaitable, Callable, Optional

import httpx
from pydantic import BaseModel

from refashion.core.config import settings
from refashion.schemas.job import OutboundWebhookPayload
from refashion.utils.logging import get_logger

logger = get_logger(__name__)

SECRET_HEADER = "X-Refashion-Secret"


class WebhookDeliveryResult(BaseModel):
    """Result of a single webhook delivery attempt."""

    success: bool
    status_code: Optional[int] = None
    error_message: Optional[str] = None
    delivery_time_ms: int
    attempt_number: int


async def _attempt_delivery(
    client: httpx.AsyncClient,
    url: str,
    body: dict,
    secret: str,
    attempt: int,
    timeout: float,
) -> WebhookDeliveryResult:
    start = time.monotonic()
    status_code = None
    error_message = None
    try:
        response = await client.post(
            url,
            json=body,
            headers={"Content-Type": "application/json", SECRET_HEADER: secret},
            timeout=timeout,
        )
        status_code = response.status_code
        if not response.is_success:
            error_message = f"Webhook failed with status {response.status_code}: {response.text[:500]}"
    except Exception as exc:
        # Unparsable URLs raise outside httpx.HTTPError; they still count as a failed attempt
        error_message = f"{type(exc).__name__}: {exc}"

    return WebhookDeliveryResult(
        success=error_message is None,
        status_code=status_code,
        error_message=error_message,
        delivery_time_ms=int((time.monotonic() - start) * 1000),
        attempt_number=attempt,
    )


async def send_webhook(
    url: str,
    payload: OutboundWebhookPayload,
    *,
    secret: Optional[str] = None,
    client: Optional[httpx.AsyncClient] = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> bool:
    """
    Deliver a completion notice to a caller's webhook URL.

    Every failed attempt n is followed by a wait of backoff * n before the
    next one. Delivery problems are logged, never raised.

    Args:
        url: Caller's webhook URL
        payload: Notice to deliver
        secret: Shared secret (defaults to settings.WEBHOOK_SECRET)
        client: Optional HTTP client to reuse
        sleep: Awaitable sleep used between attempts

    Returns:
        True if an attempt succeeded, False after giving up

    Raises:
        ConfigurationError: If no shared secret is configured
    """
    secret = secret or settings.require_webhook_secret()

    max_attempts = settings.OUTBOUND_WEBHOOK_MAX_ATTEMPTS
    backoff = settings.OUTBOUND_WEBHOOK_BACKOFF_SECONDS
    timeout = settings.OUTBOUND_WEBHOOK_TIMEOUT_SECONDS
    body = payload.to_wire()

    owns_client = client is None
    client = client or httpx.AsyncClient()
    try:
        for attempt in range(1, max_attempts + 1):
            logger.info("Sending webhook", url=url, attempt=attempt, history_id=payload.history_id)
            result = await _attempt_delivery(client, url, body, secret, attempt, timeout)

            if result.success:
                logger.info(
                    "Webhook delivered",
                    url=url,
                    attempt=attempt,
                    status_code=result.status_code,
                    delivery_time_ms=result.delivery_time_ms,
                )
                return True

            logger.warning(
                "Webhook attempt failed",
                url=url,
                attempt=attempt,
                max_attempts=max_attempts,
                error=result.error_message,
            )
            if attempt < max_attempts:
                await sleep(backoff * attempt)
    finally:
        if owns_client:
            await client.aclose()

    logger.error("Giving up on webhook delivery", url=url, attempts=max_attempts, history_id=payload.history_id)
    return False
