from collections.abc import Awaitable, Callable
from contextlib import AbstractAsyncContextManager
from typing import Any

from lib.config import Settings, get_settings
from lib.errors import AutomationError, UnexpectedError
from lib.logger import redact, setup_logger
from models import AutomationOutcome, ExtractionResult, LoginRequest, parse_login_request
from services.browser_service import BrowserSession, open_browser_session
from services.cookie_extractor import harvest_cookies
from services.login_driver import LoginDriver, LoginReport
from services.webhook import DeliveryResult, build_webhook_payload, deliver_payload

logger = setup_logger(__name__)

SessionFactory = Callable[[Settings], AbstractAsyncContextManager[BrowserSession]]
Delivery = Callable[..., Awaitable[DeliveryResult]]


async def run_automation(
    data: Any,
    settings: Settings | None = None,
    *,
    session_factory: SessionFactory = open_browser_session,
    delivery: Delivery = deliver_payload,
) -> AutomationOutcome:
    """
    Run one login + harvest + delivery job and return its outcome.

    The browser session is acquired only after the request validates and is
    released before delivery starts, whatever happens inside the login flow.

    Args:
        data: Raw request body
        settings: Runtime settings; read from the environment when omitted
        session_factory: Async context manager factory yielding a BrowserSession
        delivery: Webhook sender

    Returns:
        AutomationOutcome, never raises
    """
    settings = settings or get_settings()

    try:
        request = parse_login_request(data)
    except AutomationError as e:
        logger.warning(f"Rejected request: {e.message}")
        return AutomationOutcome.from_error(e)

    logger.info(
        f"Processing request for {redact(request.username)}: "
        f"login={request.login_url} target={request.target_url}"
    )

    try:
        async with session_factory(settings) as session:
            report = await LoginDriver(session.page, settings).login(
                request.target, request.credential
            )
            extraction = await harvest_cookies(session)
    except AutomationError as e:
        logger.error(f"Automation failed ({e.kind}): {e.message}")
        return AutomationOutcome.from_error(e)
    except Exception as e:
        cause = f"{e.__class__.__name__}: {e}".replace(request.password, "***")
        logger.error(f"Unexpected error during automation: {cause}")
        return AutomationOutcome.from_error(UnexpectedError("Automation failed", cause=cause))

    return await _deliver(request, extraction, report, settings, delivery)


async def _deliver(
    request: LoginRequest,
    extraction: ExtractionResult,
    report: LoginReport,
    settings: Settings,
    delivery: Delivery,
) -> AutomationOutcome:
    payload = build_webhook_payload(request, extraction)
    result = await delivery(
        str(request.webhook_url),
        payload.model_dump(mode="json", by_alias=True),
        attempts=settings.webhook_attempts,
        delay=settings.webhook_retry_delay,
        timeout=settings.webhook_timeout,
    )

    count = extraction.cookie_count
    suffix = " and sent to webhook" if result.sent else " (webhook failed)"
    return AutomationOutcome(
        status="success",
        message=f"Captured {count} cookies{suffix}",
        challenge_detected=report.challenge_detected,
        failure_hint=report.failure_hint,
        extraction=extraction,
        webhook_sent=result.sent,
        webhook_error=result.error,
    )
