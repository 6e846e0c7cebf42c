from collections.abc import Mapping
from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    HttpUrl,
    SecretStr,
    field_validator,
)
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from lib.errors import AutomationError, ValidationError

WEBHOOK_PATH_MARKERS = ("/webhook/", "/webhook-test/")
INVALID_WEBHOOK_MESSAGE = (
    "Invalid webhook URL. Use your n8n webhook URL like: "
    "https://your-n8n.app.n8n.cloud/webhook/xxxxx"
)


class CamelModel(BaseModel):
    """Wire models use camelCase keys; Python code uses snake_case names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Credential(BaseModel):
    username: str
    password: SecretStr


class TargetDescriptor(BaseModel):
    login_url: str
    target_url: str
    webhook_url: str


class LoginRequest(CamelModel):
    target_url: HttpUrl
    login_url: HttpUrl
    username: str = Field(min_length=1)
    password: str = Field(min_length=1, repr=False)
    webhook_url: HttpUrl

    @field_validator("webhook_url")
    @classmethod
    def require_webhook_path(cls, value: HttpUrl) -> HttpUrl:
        if not any(marker in str(value) for marker in WEBHOOK_PATH_MARKERS):
            raise ValueError(INVALID_WEBHOOK_MESSAGE)
        return value

    @property
    def credential(self) -> Credential:
        return Credential(username=self.username, password=SecretStr(self.password))

    @property
    def target(self) -> TargetDescriptor:
        return TargetDescriptor(
            login_url=str(self.login_url),
            target_url=str(self.target_url),
            webhook_url=str(self.webhook_url),
        )


def parse_login_request(data: Any) -> LoginRequest:
    """
    Validate an incoming job body.

    Raises:
        ValidationError: Missing fields, bad URLs or a webhook URL without a webhook path
    """
    if not isinstance(data, Mapping):
        raise ValidationError("Request body must be a JSON object")

    try:
        return LoginRequest.model_validate(data)
    except PydanticValidationError as e:
        errors = e.errors(include_url=False, include_input=False)
        missing = [
            str(err["loc"][0])
            for err in errors
            if err["loc"] and data.get(err["loc"][0]) in (None, "")
        ]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}") from None
        err = errors[0]
        message = err["msg"].removeprefix("Value error, ")
        field = ".".join(str(part) for part in err["loc"])
        if message == INVALID_WEBHOOK_MESSAGE:
            raise ValidationError(message) from None
        raise ValidationError(f"Invalid {field}: {message}") from None


class Cookie(CamelModel):
    """One entry of the browser cookie jar. The value is never shown in repr."""

    model_config = ConfigDict(frozen=True)

    name: str
    value: str = Field(repr=False)
    domain: str
    path: str | None = None
    expires: float | None = None
    http_only: bool | None = None
    secure: bool | None = None
    same_site: str | None = None

    @classmethod
    def from_playwright(cls, raw: Mapping[str, Any]) -> "Cookie":
        # Playwright reports session cookies with expires == -1
        expires = raw.get("expires")
        if expires is not None and expires < 0:
            expires = None
        return cls(
            name=raw["name"],
            value=raw.get("value", ""),
            domain=raw.get("domain", ""),
            path=raw.get("path"),
            expires=expires,
            http_only=raw.get("httpOnly"),
            secure=raw.get("secure"),
            same_site=raw.get("sameSite"),
        )


class ExtractionMethod(str, Enum):
    CONTEXT = "context"
    INJECTED_SCRIPT = "injected-script"


class SessionToken(CamelModel):
    model_config = ConfigDict(frozen=True)

    name: str
    value: str = Field(repr=False)
    length: int


class ExtractionResult(CamelModel):
    model_config = ConfigDict(frozen=True)

    cookies: list[Cookie]
    critical_names: list[str]
    session_tokens: list[SessionToken]
    cookie_string: str = Field(repr=False)
    extraction_method: ExtractionMethod
    extracted_at: datetime

    @property
    def cookie_count(self) -> int:
        return len(self.cookies)


class ChallengeResult(CamelModel):
    success: bool
    message: str
    method: str | None = None


class WebhookPayload(CamelModel):
    """Payload sent to the webhook URL after a successful harvest"""

    target_url: str
    login_url: str
    username: str
    timestamp: datetime
    extraction_method: ExtractionMethod
    cookie_count: int
    critical_count: int
    session_token_count: int
    critical_cookies: list[str]
    session_tokens: list[SessionToken]
    cookies: list[Cookie]
    cookie_string: str = Field(repr=False)
    set_cookie_strings: list[str] = Field(repr=False)


class AutomationOutcome(CamelModel):
    """Terminal result of one run: either a full success shape or an error shape."""

    status: Literal["success", "error"]
    message: str
    error_kind: str | None = None
    cause: str | None = None
    challenge_detected: bool = False
    diagnostics: dict[str, Any] | None = None
    failure_hint: str | None = None
    extraction: ExtractionResult | None = None
    webhook_sent: bool = False
    webhook_error: str | None = None
    status_code: int = Field(200, exclude=True)

    @classmethod
    def from_error(cls, error: AutomationError) -> "AutomationOutcome":
        return cls(
            status="error",
            message=error.message,
            error_kind=error.kind,
            cause=error.cause,
            challenge_detected=error.challenge_detected,
            diagnostics=error.diagnostics,
            status_code=error.status_code,
        )

    @property
    def http_status(self) -> int:
        return self.status_code

    def to_response(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
