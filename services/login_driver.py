from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from playwright.async_api import ElementHandle, Page
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from lib.config import Settings
from lib.errors import FieldNotFoundError, NavigationError
from lib.logger import redact, setup_logger
from lib.retry import retry_async
from models import ChallengeResult, Credential, TargetDescriptor
from services.challenge import detect_challenge, handle_challenge
from services.field_discovery import (
    PASSWORD_CANDIDATES,
    SUBMIT_CANDIDATES,
    USERNAME_CANDIDATES,
    FieldKind,
    describe_inputs,
    find_field,
)

logger = setup_logger(__name__)

FAILURE_TEXT_SELECTOR = "text=/incorrect|invalid|wrong|error|failed/i"
FAILURE_HINT_LENGTH = 100

BUTTON_ENABLED_SCRIPT = (
    '(btn) => !btn.disabled && btn.getAttribute("aria-disabled") !== "true"'
)


@dataclass
class LoginReport:
    """What the driver observed. Informational only; none of it is authoritative."""

    final_url: str
    page_title: str | None = None
    submitted_via: str | None = None
    challenge: ChallengeResult | None = None
    challenge_detected: bool = False
    failure_hint: str | None = None
    target_visited: bool | None = None


class LoginDriver:
    """Drives one page from blank to (hopefully) authenticated."""

    def __init__(self, page: Page, settings: Settings):
        self.page = page
        self.settings = settings
        self.report = LoginReport(final_url=page.url)

    async def login(self, target: TargetDescriptor, credential: Credential) -> LoginReport:
        """
        Navigate, fill credentials, submit and let the session settle.

        Raises:
            NavigationError: Login page did not load after every attempt
            FieldNotFoundError: Username, password or submit control missing
        """
        logger.info(f"Starting login for {redact(credential.username)} at {target.login_url}")

        await self.navigate(target.login_url)
        await self.settle(self.settings.post_load_pause_ms)

        self.report.challenge = await handle_challenge(self.page)
        if self.report.challenge is not None:
            self.report.challenge_detected = True

        username_field = await self.require_field(USERNAME_CANDIDATES, FieldKind.USERNAME)
        await self.type_into(username_field, credential.username)
        logger.info("Filled username field")

        password_field = await self.require_field(PASSWORD_CANDIDATES, FieldKind.PASSWORD)
        await self.type_into(password_field, credential.password.get_secret_value())
        logger.info("Filled password field")

        await self.page.wait_for_timeout(1000)

        submit_button = await self.require_field(SUBMIT_CANDIDATES, FieldKind.SUBMIT)
        await self.submit(submit_button, password_field)

        await self.scan_failure_text()
        if await detect_challenge(self.page):
            logger.warning("Verification challenge present after submit")
            self.report.challenge_detected = True

        if target.target_url != target.login_url:
            await self.visit_target(target.target_url)

        self.report.final_url = self.page.url
        self.report.page_title = await self._soft(self.page.title(), "Reading page title")
        logger.info(f"Login flow finished at {self.report.final_url}")
        return self.report

    async def navigate(self, url: str) -> None:
        settings = self.settings
        result = await retry_async(
            lambda: self.page.goto(
                url, wait_until="load", timeout=settings.navigation_timeout_ms
            ),
            attempts=settings.navigation_attempts,
            delay=settings.navigation_retry_delay,
            label=f"Navigation to {url}",
        )
        if not result.succeeded:
            raise NavigationError(
                f"Failed to load login page after {settings.navigation_attempts} attempts: "
                f"{result.error or 'Unknown error'}. This may be due to the target website "
                "blocking automated access or network restrictions.",
                cause=result.error,
            )
        logger.info(f"Successfully loaded {url}")

    async def settle(self, pause_ms: int) -> None:
        """Best-effort network-idle wait followed by a fixed pause."""
        await self._soft(
            self.page.wait_for_load_state("networkidle", timeout=self.settings.settle_timeout_ms),
            "Waiting for network idle",
        )
        await self.page.wait_for_timeout(pause_ms)

    async def require_field(
        self, candidates, kind: FieldKind
    ) -> ElementHandle:
        element = await find_field(
            self.page, candidates, kind, timeout_ms=self.settings.selector_timeout_ms
        )
        if element is not None:
            return element

        diagnostics = await describe_inputs(self.page)
        messages = {
            FieldKind.USERNAME: (
                "Could not find username/email input field. The page may have a "
                "different structure or be blocking automation."
            ),
            FieldKind.PASSWORD: "Could not find password input field.",
            FieldKind.SUBMIT: "Could not find submit button.",
        }
        raise FieldNotFoundError(
            messages[kind],
            diagnostics=diagnostics,
            challenge_detected=self.report.challenge_detected,
        )

    async def type_into(self, field: ElementHandle, text: str) -> None:
        """Click, clear, then type character by character."""
        await field.click()
        await self.page.wait_for_timeout(300)
        await field.fill("")
        await field.type(text, delay=self.settings.typing_delay_ms)

    async def submit(self, button: ElementHandle, password_field: ElementHandle) -> None:
        settings = self.settings
        try:
            await self.page.wait_for_function(
                BUTTON_ENABLED_SCRIPT, arg=button, timeout=settings.button_enabled_timeout_ms
            )
            logger.info("Submit button is enabled")
        except PlaywrightTimeoutError:
            logger.info("Button may be disabled, trying to click anyway")

        try:
            await self.act_and_await_navigation(
                lambda: button.click(timeout=settings.click_timeout_ms)
            )
            self.report.submitted_via = "click"
            logger.info("Clicked submit button")
        except PlaywrightError as e:
            logger.info(f"Click failed ({e.__class__.__name__}), trying Enter key")
            try:
                await self.act_and_await_navigation(lambda: password_field.press("Enter"))
                self.report.submitted_via = "keyboard"
            except PlaywrightError as press_error:
                logger.warning(f"Enter key submit failed: {press_error.__class__.__name__}")

        await self.page.wait_for_timeout(settings.post_submit_pause_ms)

    async def act_and_await_navigation(self, action: Callable[[], Awaitable[Any]]) -> None:
        """
        Run `action` while waiting for the navigation it starts.

        Errors raised by the action itself propagate. A navigation that never
        happens, or fails, is logged and ignored.
        """
        acted = False
        try:
            async with self.page.expect_navigation(
                wait_until="networkidle", timeout=self.settings.post_submit_timeout_ms
            ):
                await action()
                acted = True
        except PlaywrightError as e:
            if not acted:
                raise
            logger.info(f"No navigation after submit ({e.__class__.__name__}), continuing")

    async def scan_failure_text(self) -> None:
        """Records a failure-looking phrase if one is on the page. Never fails the run."""
        try:
            element = await self.page.query_selector(FAILURE_TEXT_SELECTOR)
            if element is None:
                return
            text = (await element.text_content() or "").strip()
        except PlaywrightError as e:
            logger.debug(f"Failure text scan skipped: {e}")
            return
        self.report.failure_hint = text[:FAILURE_HINT_LENGTH]
        logger.info(f"Login may have failed: {self.report.failure_hint}")

    async def visit_target(self, url: str) -> None:
        logger.info(f"Navigating to target: {url}")
        response = await self._soft(
            self.page.goto(url, wait_until="load", timeout=self.settings.navigation_timeout_ms),
            f"Navigation to {url}",
            failed=False,
        )
        self.report.target_visited = response is not False
        await self.settle(self.settings.post_load_pause_ms // 2)

    async def _soft(self, awaitable: Awaitable[Any], label: str, failed: Any = None) -> Any:
        """Await a wait that is allowed to time out or fail; returns `failed` if it did."""
        try:
            return await awaitable
        except PlaywrightError as e:
            logger.info(f"{label} did not complete: {e.__class__.__name__}")
            return failed
