import re
from collections.abc import Iterable, Sequence
from datetime import datetime, timezone
from email.utils import formatdate
from typing import Protocol
from urllib.parse import urlparse

from playwright.async_api import Error as PlaywrightError

from lib.errors import ExtractionError
from lib.logger import setup_logger
from models import Cookie, ExtractionMethod, ExtractionResult, SessionToken

logger = setup_logger(__name__)

CRITICAL_PATTERNS = [
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"session",
        r"sid",
        r"sessionid",
        r"jsessionid",
        r"phpsessid",
        r"asp\.net_sessionid",
        r"auth",
        r"token",
        r"jwt",
        r"access_token",
        r"refresh_token",
        r"user_token",
        r"csrf",
        r"xsrf",
        r"crumb",
        r"_token",
        r"connect\.sid",
        r"laravel_session",
        r"SERVERID",
        r"AWSALB",
        r"cf_clearance",
        r"__Secure",
        r"__Host",
        r"LEETCODE_SESSION",
        r"INGRESSCOOKIE",
    )
]

ENCODED_VALUE = re.compile(r"^[A-Za-z0-9+/=_-]+$")

LONG_VALUE_LENGTH = 80
ENCODED_VALUE_LENGTH = 50
SESSION_TOKEN_LENGTH = 100

DOCUMENT_COOKIE_SCRIPT = "() => document.cookie"


def is_critical(cookie: Cookie) -> bool:
    """Any single signal is enough: name pattern, long value, JWT prefix or long base64 value."""
    value = cookie.value
    return (
        any(pattern.search(cookie.name) for pattern in CRITICAL_PATTERNS)
        or len(value) > LONG_VALUE_LENGTH
        or value.startswith("eyJ")
        or (len(value) > ENCODED_VALUE_LENGTH and ENCODED_VALUE.match(value) is not None)
    )


def identify_critical(cookies: Iterable[Cookie]) -> set[str]:
    """
    Names of cookies likely to carry authentication, session or CSRF state.

    Args:
        cookies: Harvested cookies

    Returns:
        Set of critical cookie names
    """
    return {cookie.name for cookie in cookies if is_critical(cookie)}


def extract_session_tokens(cookies: Iterable[Cookie]) -> list[SessionToken]:
    """Cookies with values longer than 100 chars, longest first."""
    tokens = [
        SessionToken(name=cookie.name, value=cookie.value, length=len(cookie.value))
        for cookie in cookies
        if len(cookie.value) > SESSION_TOKEN_LENGTH
    ]
    return sorted(tokens, key=lambda token: token.length, reverse=True)


def build_cookie_string(cookies: Iterable[Cookie]) -> str:
    """HTTP Cookie header value, in jar order."""
    return "; ".join(f"{cookie.name}={cookie.value}" for cookie in cookies)


def build_set_cookie_strings(cookies: Iterable[Cookie]) -> list[str]:
    """One Set-Cookie style line per cookie, carrying whatever attributes are known."""
    lines = []
    for cookie in cookies:
        header = f"{cookie.name}={cookie.value}"
        if cookie.domain:
            header += f"; Domain={cookie.domain}"
        if cookie.path:
            header += f"; Path={cookie.path}"
        if cookie.expires is not None:
            header += f"; Expires={formatdate(cookie.expires, usegmt=True)}"
        if cookie.http_only:
            header += "; HttpOnly"
        if cookie.secure:
            header += "; Secure"
        if cookie.same_site:
            header += f"; SameSite={cookie.same_site}"
        lines.append(header)
    return lines


def parse_cookie_string(raw: str, domain: str) -> list[Cookie]:
    """
    Parse a document.cookie string.

    Pairs are split on ';' and then on the first '='. Script-visible cookies
    carry no scoping data, so every entry gets the page host and path "/".
    """
    cookies = []
    for part in raw.split(";"):
        part = part.strip()
        if not part:
            continue
        name, _, value = part.partition("=")
        cookies.append(Cookie(name=name.strip(), value=value.strip(), domain=domain, path="/"))
    return cookies


def build_extraction_result(
    cookies: Sequence[Cookie], method: ExtractionMethod
) -> ExtractionResult:
    return ExtractionResult(
        cookies=list(cookies),
        critical_names=sorted(identify_critical(cookies)),
        session_tokens=extract_session_tokens(cookies),
        cookie_string=build_cookie_string(cookies),
        extraction_method=method,
        extracted_at=datetime.now(timezone.utc),
    )


class CookieStrategy(Protocol):
    method: ExtractionMethod

    async def extract(self, session) -> list[Cookie]: ...


class ContextCookieStrategy:
    """Reads the browser context's cookie jar. Authoritative for domain, path and flags."""

    method = ExtractionMethod.CONTEXT

    async def extract(self, session) -> list[Cookie]:
        try:
            raw_cookies = await session.context.cookies()
        except PlaywrightError as e:
            logger.error(f"Context cookie extraction failed: {e}")
            return []
        return [Cookie.from_playwright(raw) for raw in raw_cookies]


class InjectedScriptStrategy:
    """Reads document.cookie inside the page. Misses HttpOnly cookies."""

    method = ExtractionMethod.INJECTED_SCRIPT

    async def extract(self, session) -> list[Cookie]:
        page = session.page
        try:
            raw = await page.evaluate(DOCUMENT_COOKIE_SCRIPT)
        except PlaywrightError as e:
            logger.error(f"Script cookie extraction failed: {e}")
            return []
        hostname = urlparse(page.url).hostname or ""
        return parse_cookie_string(raw or "", hostname)


def select_cookies(
    context_cookies: list[Cookie], script_cookies: list[Cookie]
) -> tuple[list[Cookie], ExtractionMethod]:
    """
    Pick the strategy that found more cookies; ties go to the context jar.

    Raises:
        ExtractionError: If both strategies came back empty
    """
    if not context_cookies and not script_cookies:
        raise ExtractionError(
            "No cookies extracted from any method. The login most likely did not succeed."
        )
    if len(script_cookies) > len(context_cookies):
        return script_cookies, ExtractionMethod.INJECTED_SCRIPT
    return context_cookies, ExtractionMethod.CONTEXT


async def harvest_cookies(
    session,
    strategies: tuple[CookieStrategy, CookieStrategy] | None = None,
) -> ExtractionResult:
    """
    Run both extraction strategies against the session and merge them.

    Args:
        session: Browser session exposing `context` and `page`
        strategies: (context strategy, script strategy); defaults to the built-in pair

    Returns:
        ExtractionResult built from the winning strategy's cookies
    """
    context_strategy, script_strategy = strategies or (
        ContextCookieStrategy(),
        InjectedScriptStrategy(),
    )

    context_cookies = await context_strategy.extract(session)
    logger.info(f"Context strategy found {len(context_cookies)} cookies")
    script_cookies = await script_strategy.extract(session)
    logger.info(f"Script strategy found {len(script_cookies)} cookies")

    cookies, method = select_cookies(context_cookies, script_cookies)
    result = build_extraction_result(cookies, method)
    logger.info(
        f"Extracted {result.cookie_count} cookies via {method.value} "
        f"({len(result.critical_names)} critical, {len(result.session_tokens)} session tokens): "
        f"{[cookie.name for cookie in cookies]}"
    )
    return result
