from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import httpx

from lib.errors import DeliveryError
from lib.logger import setup_logger
from lib.retry import retry_async
from models import ExtractionResult, LoginRequest, WebhookPayload
from services.cookie_extractor import build_set_cookie_strings

logger = setup_logger(__name__)

USER_AGENT = "LoginAutomation/1.0"
ERROR_BODY_LENGTH = 100


@dataclass
class DeliveryResult:
    sent: bool
    attempts: int
    error: str | None = None


def build_webhook_payload(request: LoginRequest, extraction: ExtractionResult) -> WebhookPayload:
    """Everything harvested, plus the target URLs and username. Never the password."""
    return WebhookPayload(
        target_url=str(request.target_url),
        login_url=str(request.login_url),
        username=request.username,
        timestamp=datetime.now(timezone.utc),
        extraction_method=extraction.extraction_method,
        cookie_count=extraction.cookie_count,
        critical_count=len(extraction.critical_names),
        session_token_count=len(extraction.session_tokens),
        critical_cookies=extraction.critical_names,
        session_tokens=extraction.session_tokens,
        cookies=extraction.cookies,
        cookie_string=extraction.cookie_string,
        set_cookie_strings=build_set_cookie_strings(extraction.cookies),
    )


async def deliver_payload(
    webhook_url: str,
    payload: dict[str, Any],
    *,
    attempts: int = 3,
    delay: float = 1.5,
    timeout: float = 30.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> DeliveryResult:
    """
    POST the payload to the webhook, retrying non-2xx responses and transport errors.

    Args:
        webhook_url: Destination URL
        payload: JSON-serializable body
        attempts: Maximum number of requests
        delay: Fixed pause between attempts, in seconds
        timeout: Per-request timeout, in seconds
        transport: Optional httpx transport (used by tests)

    Returns:
        DeliveryResult; delivery problems are reported here, never raised
    """
    async with httpx.AsyncClient(
        timeout=timeout, transport=transport, headers={"User-Agent": USER_AGENT}
    ) as client:

        async def post_once() -> httpx.Response:
            response = await client.post(webhook_url, json=payload)
            if not response.is_success:
                raise DeliveryError(
                    f"Webhook responded with status {response.status_code}: "
                    f"{response.text[:ERROR_BODY_LENGTH]}"
                )
            return response

        logger.info(f"Sending {payload.get('cookieCount', 0)} cookies to webhook: {webhook_url}")
        result = await retry_async(
            post_once, attempts=attempts, delay=delay, label="Webhook delivery"
        )

    if result.succeeded:
        logger.info(f"Webhook sent successfully. Status: {result.value.status_code}")
        return DeliveryResult(sent=True, attempts=result.attempts)

    logger.error(f"Failed to send webhook after {result.attempts} attempts: {result.error}")
    return DeliveryResult(sent=False, attempts=result.attempts, error=result.error)
