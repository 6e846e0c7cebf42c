from enum import Enum
from typing import Any

from playwright.async_api import ElementHandle, Page
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from lib.logger import setup_logger

logger = setup_logger(__name__)


class FieldKind(str, Enum):
    USERNAME = "username"
    PASSWORD = "password"
    SUBMIT = "submit"


# Site-specific selectors first, then generic attribute matches, then structure.
USERNAME_CANDIDATES = (
    # LeetCode
    'input[data-cy="sign-in-email-input"]',
    'input[name="login"]',
    "#id_login",
    # Generic
    'input[name="username"]',
    'input[name="email"]',
    'input[type="email"]',
    'input[id="username"]',
    'input[id="email"]',
    'input[id="login-email"]',
    'input[placeholder*="email" i]',
    'input[placeholder*="username" i]',
    'input[placeholder*="E-mail" i]',
    'input[autocomplete="username"]',
    'input[autocomplete="email"]',
    # Structural fallback: first visible text input in a form
    'form input[type="text"]:visible',
    "form input:not([type]):visible",
)

PASSWORD_CANDIDATES = (
    # LeetCode
    'input[data-cy="sign-in-password-input"]',
    "#id_password",
    # Generic
    'input[name="password"]',
    'input[type="password"]',
    'input[id="password"]',
    'input[autocomplete="current-password"]',
)

SUBMIT_CANDIDATES = (
    # LeetCode
    'button[data-cy="sign-in-btn"]',
    "#signin_btn",
    # Generic
    'button[type="submit"]',
    'input[type="submit"]',
    'button:has-text("Log in")',
    'button:has-text("Login")',
    'button:has-text("Sign in")',
    'button:has-text("Sign In")',
    'button:has-text("Submit")',
    'button:has-text("Continue")',
    '[role="button"]:has-text("Log in")',
    '[role="button"]:has-text("Sign in")',
    '[role="button"]:has-text("Sign In")',
)

DESCRIBE_INPUTS_SCRIPT = """(els) => els.map((el) => ({
    type: el.type,
    name: el.name,
    id: el.id,
    placeholder: el.placeholder,
    dataCy: el.getAttribute("data-cy"),
}))"""


async def find_field(
    page: Page,
    candidates: tuple[str, ...],
    kind: FieldKind,
    timeout_ms: int = 3000,
) -> ElementHandle | None:
    """
    Try candidate selectors in order and return the first match.

    Args:
        page: Live Playwright page
        candidates: Ordered selector table; a match must be visible
        kind: Field role, used for logging
        timeout_ms: Per-selector wait budget

    Returns:
        Matching element, or None once every candidate is exhausted
    """
    for selector in candidates:
        try:
            element = await page.wait_for_selector(selector, timeout=timeout_ms, state="visible")
        except PlaywrightTimeoutError:
            continue
        except PlaywrightError as e:
            logger.debug(f"Selector {selector} rejected: {e}")
            continue
        if element:
            logger.info(f"Found {kind.value} field with selector: {selector}")
            return element

    logger.warning(f"No {kind.value} field matched any of {len(candidates)} selectors")
    return None


async def describe_inputs(page: Page) -> dict[str, Any]:
    """Page title, URL and the attributes (never the values) of every input."""
    diagnostics: dict[str, Any] = {"url": page.url}
    try:
        diagnostics["title"] = await page.title()
    except PlaywrightError as e:
        diagnostics["title"] = None
        logger.debug(f"Could not read page title: {e}")
    try:
        diagnostics["inputs"] = await page.eval_on_selector_all("input", DESCRIBE_INPUTS_SCRIPT)
    except PlaywrightError as e:
        diagnostics["inputs"] = []
        logger.debug(f"Could not enumerate inputs: {e}")

    logger.info(f"Page title: {diagnostics['title']}")
    logger.info(f"Current URL: {diagnostics['url']}")
    logger.info(f"Found inputs: {diagnostics['inputs']}")
    return diagnostics
