"""Unit tests for webhook delivery, the webhook payload and the dev receiver."""

import asyncio
import json
from datetime import datetime, timezone

import httpx
import pytest
from fastapi.testclient import TestClient

from models import Cookie, ExtractionMethod, LoginRequest
from services.cookie_extractor import build_extraction_result
from services.webhook import build_webhook_payload, deliver_payload
from webhook_receiver import app

WEBHOOK_URL = "https://demo.app.n8n.cloud/webhook/abc123"


def scripted_transport(responses):
    """MockTransport replaying `responses` in order; exceptions are raised."""
    requests = []
    queue = list(responses)

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        item = queue.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    return httpx.MockTransport(handler), requests


def deliver(transport, payload=None):
    return asyncio.run(
        deliver_payload(
            WEBHOOK_URL,
            payload or {"cookieCount": 1},
            attempts=3,
            delay=0,
            transport=transport,
        )
    )


class TestDelivery:
    def test_succeeds_on_third_attempt(self):
        transport, requests = scripted_transport(
            [httpx.Response(500), httpx.Response(500), httpx.Response(200)]
        )

        result = deliver(transport)

        assert result.sent is True
        assert result.attempts == 3
        assert len(requests) == 3

    def test_first_success_stops_retrying(self):
        transport, requests = scripted_transport([httpx.Response(204)])

        result = deliver(transport)

        assert result.sent is True
        assert len(requests) == 1

    def test_exhausted_attempts_truncate_error_body(self):
        transport, requests = scripted_transport(
            [httpx.Response(500, text="x" * 300) for _ in range(3)]
        )

        result = deliver(transport)

        assert result.sent is False
        assert len(requests) == 3
        assert result.error.startswith("Webhook responded with status 500")
        assert result.error.endswith("x" * 100)
        assert "x" * 101 not in result.error

    def test_transport_errors_are_retried(self):
        transport, requests = scripted_transport(
            [httpx.ConnectError("connection refused"), httpx.Response(200)]
        )

        result = deliver(transport)

        assert result.sent is True
        assert result.attempts == 2

    def test_posts_json_with_user_agent(self):
        transport, requests = scripted_transport([httpx.Response(200)])

        deliver(transport, {"cookieCount": 2, "cookieString": "a=1; b=2"})

        request = requests[0]
        assert request.method == "POST"
        assert str(request.url) == WEBHOOK_URL
        assert request.headers["user-agent"] == "LoginAutomation/1.0"
        assert json.loads(request.content) == {"cookieCount": 2, "cookieString": "a=1; b=2"}


@pytest.fixture
def login_request():
    return LoginRequest.model_validate(
        {
            "targetUrl": "https://leetcode.com/problemset/",
            "loginUrl": "https://leetcode.com/accounts/login/",
            "username": "alice",
            "password": "hunter2",
            "webhookUrl": WEBHOOK_URL,
        }
    )


def test_webhook_payload_carries_full_harvest_without_password(login_request):
    cookies = [
        Cookie(name="LEETCODE_SESSION", value="e" * 120, domain=".leetcode.com", http_only=True),
        Cookie(name="lang", value="en", domain="leetcode.com"),
    ]
    extraction = build_extraction_result(cookies, ExtractionMethod.CONTEXT)

    payload = build_webhook_payload(login_request, extraction).model_dump(
        mode="json", by_alias=True
    )

    assert "password" not in payload
    assert "hunter2" not in json.dumps(payload)
    assert payload["loginUrl"] == "https://leetcode.com/accounts/login/"
    assert payload["extractionMethod"] == "context"
    assert payload["criticalCookies"] == ["LEETCODE_SESSION"]
    assert payload["sessionTokenCount"] == 1
    assert payload["cookies"][0]["httpOnly"] is True
    assert payload["cookieString"] == f"LEETCODE_SESSION={'e' * 120}; lang=en"
    assert payload["setCookieStrings"][0].endswith("; HttpOnly")


def test_login_request_hides_password(login_request):
    assert "hunter2" not in repr(login_request)
    assert "hunter2" not in repr(login_request.credential)
    assert login_request.credential.password.get_secret_value() == "hunter2"


def test_webhook_receiver_accepts_harvest():
    client = TestClient(app)
    payload = {
        "loginUrl": "https://leetcode.com/accounts/login/",
        "targetUrl": "https://leetcode.com/problemset/",
        "extractionMethod": "context",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "cookies": [{"name": "csrftoken", "value": "abc", "domain": "leetcode.com"}],
        "criticalCookies": ["csrftoken"],
        "sessionTokens": [],
    }

    response = client.post("/webhook/test", json=payload)

    assert response.status_code == 200
    assert response.json() == {"status": "received", "cookieCount": 1}
