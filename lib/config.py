import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    return int(raw) if raw else default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    return float(raw) if raw else default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    """Runtime knobs for one automation run. Millisecond values go straight to Playwright."""

    api_key: str | None = None

    # Browser session
    headless: bool = True
    user_agent: str = DEFAULT_USER_AGENT
    timezone_id: str = "America/New_York"

    # Navigation
    navigation_timeout_ms: int = 60000
    navigation_attempts: int = 3
    navigation_retry_delay: float = 2.0
    settle_timeout_ms: int = 15000
    post_load_pause_ms: int = 5000

    # Field discovery and input
    selector_timeout_ms: int = 3000
    typing_delay_ms: int = 80

    # Submission
    button_enabled_timeout_ms: int = 10000
    click_timeout_ms: int = 5000
    post_submit_timeout_ms: int = 30000
    post_submit_pause_ms: int = 5000

    # Webhook delivery
    webhook_attempts: int = 3
    webhook_retry_delay: float = 1.5
    webhook_timeout: float = 30.0

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            api_key=os.getenv("API_KEY") or None,
            headless=_env_bool("HEADLESS", True),
            user_agent=os.getenv("BROWSER_USER_AGENT") or DEFAULT_USER_AGENT,
            timezone_id=os.getenv("BROWSER_TIMEZONE") or "America/New_York",
            navigation_timeout_ms=_env_int("NAVIGATION_TIMEOUT_MS", 60000),
            navigation_attempts=_env_int("NAVIGATION_ATTEMPTS", 3),
            navigation_retry_delay=_env_float("NAVIGATION_RETRY_DELAY", 2.0),
            settle_timeout_ms=_env_int("SETTLE_TIMEOUT_MS", 15000),
            post_load_pause_ms=_env_int("POST_LOAD_PAUSE_MS", 5000),
            selector_timeout_ms=_env_int("SELECTOR_TIMEOUT_MS", 3000),
            typing_delay_ms=_env_int("TYPING_DELAY_MS", 80),
            button_enabled_timeout_ms=_env_int("BUTTON_ENABLED_TIMEOUT_MS", 10000),
            click_timeout_ms=_env_int("CLICK_TIMEOUT_MS", 5000),
            post_submit_timeout_ms=_env_int("POST_SUBMIT_TIMEOUT_MS", 30000),
            post_submit_pause_ms=_env_int("POST_SUBMIT_PAUSE_MS", 5000),
            webhook_attempts=_env_int("WEBHOOK_ATTEMPTS", 3),
            webhook_retry_delay=_env_float("WEBHOOK_RETRY_DELAY", 1.5),
            webhook_timeout=_env_float("WEBHOOK_TIMEOUT", 30.0),
        )


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()
