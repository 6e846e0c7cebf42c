"""Error taxonomy for an automation run.

Every error carries a message safe for direct display. Credentials never go
into a message, a cause or the diagnostics.
"""

from typing import Any

CHALLENGE_HINT = (
    "A Cloudflare-style verification challenge was detected on the page; "
    "complete it manually or retry later instead of retrying immediately."
)


class AutomationError(Exception):
    kind = "unexpected"
    status_code = 500

    def __init__(
        self,
        message: str,
        *,
        cause: str | None = None,
        diagnostics: dict[str, Any] | None = None,
        challenge_detected: bool = False,
    ):
        if challenge_detected:
            message = f"{message} {CHALLENGE_HINT}"
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.diagnostics = diagnostics
        self.challenge_detected = challenge_detected


class ValidationError(AutomationError):
    """Missing or malformed request fields. Raised before any browser is started."""

    kind = "validation"
    status_code = 400


class NavigationError(AutomationError):
    """Login page unreachable after every navigation attempt."""

    kind = "navigation"


class FieldNotFoundError(AutomationError):
    """Username, password or submit control not located."""

    kind = "field_not_found"


class ExtractionError(AutomationError):
    """Both cookie strategies came back empty."""

    kind = "extraction"


class DeliveryError(AutomationError):
    """Webhook unreachable or non-2xx. Recovered locally, never fails a run."""

    kind = "delivery"


class UnexpectedError(AutomationError):
    kind = "unexpected"
