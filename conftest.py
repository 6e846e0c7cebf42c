"""In-process fakes of the Playwright surface the services touch."""

from contextlib import asynccontextmanager
from types import SimpleNamespace

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from lib.config import Settings


class FakeElement:
    def __init__(self, *, click_error=None, box=None, text="", visible=True):
        self.click_error = click_error
        self.box = box
        self.text = text
        self.visible = visible
        self.value = ""
        self.clicks = 0
        self.pressed = []

    async def click(self, timeout=None):
        if self.click_error:
            raise self.click_error
        self.clicks += 1

    async def fill(self, value):
        self.value = value

    async def type(self, text, delay=None):
        self.value += text

    async def press(self, key):
        self.pressed.append(key)

    async def bounding_box(self):
        return self.box

    async def is_visible(self):
        return self.visible

    async def text_content(self):
        return self.text


class FakeMouse:
    def __init__(self):
        self.moves = []
        self.clicks = []

    async def move(self, x, y, steps=1):
        self.moves.append((x, y, steps))

    async def click(self, x, y):
        self.clicks.append((x, y))


class FakeFrame:
    def __init__(self, url, elements=None):
        self.url = url
        self.elements = dict(elements or {})

    async def query_selector(self, selector):
        return self.elements.get(selector)


class FakePage:
    def __init__(
        self,
        *,
        elements=None,
        goto_failures=0,
        cookie_string="",
        challenge=False,
        title="Sign in",
        inputs=None,
        frames=None,
        button_enabled=True,
        navigates=True,
        url="about:blank",
    ):
        self.elements = dict(elements or {})
        self.goto_failures = goto_failures
        self.cookie_string = cookie_string
        self.challenge = challenge
        self.title_text = title
        self.inputs = list(inputs or [])
        self.frames = list(frames or [])
        self.button_enabled = button_enabled
        self.navigates = navigates
        self.url = url
        self.mouse = FakeMouse()
        self.goto_calls = []
        self.looked_up = []
        self.navigation_waits = []

    async def goto(self, url, wait_until=None, timeout=None):
        self.goto_calls.append(url)
        if self.goto_failures > 0:
            self.goto_failures -= 1
            raise PlaywrightError("net::ERR_CONNECTION_REFUSED")
        self.url = url
        return None

    async def wait_for_load_state(self, state=None, timeout=None):
        return None

    async def wait_for_timeout(self, timeout):
        return None

    @asynccontextmanager
    async def expect_navigation(self, wait_until=None, timeout=None):
        self.navigation_waits.append(wait_until)
        yield SimpleNamespace()
        if not self.navigates:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded.")

    async def wait_for_selector(self, selector, timeout=None, state=None):
        self.looked_up.append(selector)
        element = self.elements.get(selector)
        if element is not None and (state != "visible" or element.visible):
            return element
        raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded.")

    async def wait_for_function(self, expression, arg=None, timeout=None):
        if not self.button_enabled:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded.")

    async def query_selector(self, selector):
        return self.elements.get(selector)

    async def evaluate(self, expression, arg=None):
        if "document.cookie" in expression:
            return self.cookie_string
        return self.challenge

    async def eval_on_selector_all(self, selector, expression):
        return self.inputs

    async def title(self):
        return self.title_text


class FakeContext:
    def __init__(self, cookies=None, error=None):
        self.raw_cookies = list(cookies or [])
        self.error = error

    async def cookies(self):
        if self.error:
            raise self.error
        return list(self.raw_cookies)


class FakeSessionFactory:
    """Counts acquisitions and releases of the browser session."""

    def __init__(self, page=None, context=None, enter_error=None):
        self.page = page or FakePage()
        self.context = context or FakeContext()
        self.enter_error = enter_error
        self.acquired = 0
        self.released = 0

    @asynccontextmanager
    async def open(self, settings):
        self.acquired += 1
        if self.enter_error:
            raise self.enter_error
        try:
            yield SimpleNamespace(page=self.page, context=self.context)
        finally:
            self.released += 1


def login_elements(**overrides):
    """A minimal generic login form."""
    elements = {
        'input[name="username"]': FakeElement(),
        'input[type="password"]': FakeElement(),
        'button[type="submit"]': FakeElement(),
    }
    elements.update(overrides)
    return elements


def playwright_cookie(name, value, domain=".example.com", **extra):
    cookie = {
        "name": name,
        "value": value,
        "domain": domain,
        "path": "/",
        "expires": -1,
        "httpOnly": False,
        "secure": True,
        "sameSite": "Lax",
    }
    cookie.update(extra)
    return cookie


@pytest.fixture
def fast_settings():
    """Settings with every pause and backoff collapsed to zero."""
    return Settings(
        navigation_retry_delay=0,
        settle_timeout_ms=10,
        post_load_pause_ms=0,
        selector_timeout_ms=10,
        typing_delay_ms=0,
        button_enabled_timeout_ms=10,
        click_timeout_ms=10,
        post_submit_timeout_ms=10,
        post_submit_pause_ms=0,
        webhook_retry_delay=0,
    )
