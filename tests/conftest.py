"""Shared fixtures: clean configuration, a recording sink transport and app clients."""

import json
from urllib.parse import parse_qsl

import httpx
import pytest
from fastapi.testclient import TestClient

from swag_order.config import Settings
from swag_order.main import create_app

SHEETS_URL = "https://sheets.test/macros/exec"
EMAIL_URL = "https://mail.test/emails"
CHAT_URL = "https://chat.test/api/webhooks/1"

ADA = {
    "name": "Ada",
    "email": "ada@x.com",
    "address": "1 Main",
    "city": "X",
    "stateProvince": "Y",
    "zipCode": "00000",
    "country": "US",
    "tshirtSize": "M",
    "hoodieSize": "M",
    "isEmployee": False,
    "manager": "",
    "firstChoice": "T-Shirt",
    "secondChoice": "Hoodie",
}


def make_settings(**overrides) -> Settings:
    """Settings that ignore any local .env file."""
    overrides.setdefault("EMAIL_API_URL", EMAIL_URL)
    return Settings(_env_file=None, **overrides)


def all_sinks_settings(**overrides) -> Settings:
    values = {
        "GOOGLE_SHEETS_WEBHOOK_URL": SHEETS_URL,
        "RESEND_API_KEY": "re_test_key",
        "NOTIFICATION_EMAILS": "orders@example.com, ops@example.com",
        "CHAT_WEBHOOK_URL": CHAT_URL,
    }
    values.update(overrides)
    return make_settings(**values)


class SinkRecorder:
    """httpx.MockTransport handler that records outbound calls and answers per URL."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self._answers: dict[str, object] = {}

    def respond(self, url: str, status_code: int = 200, text: str = None, json_body=None):
        if json_body is not None:
            self._answers[url] = httpx.Response(status_code, json=json_body)
        else:
            self._answers[url] = httpx.Response(status_code, text=text if text is not None else "ok")

    def fail(self, url: str, message: str = "connection refused", error=httpx.ConnectError):
        self._answers[url] = error(message)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        answer = self._answers.get(str(request.url), httpx.Response(200, json={"id": "ok"}))
        if isinstance(answer, Exception):
            raise answer
        return answer

    def urls(self) -> list[str]:
        return [str(request.url) for request in self.requests]

    def sent_to(self, url: str) -> httpx.Request:
        for request in self.requests:
            if str(request.url) == url:
                return request
        raise AssertionError(f"no request sent to {url}")

    @staticmethod
    def json_of(request: httpx.Request):
        return json.loads(request.content)

    @staticmethod
    def form_of(request: httpx.Request) -> dict:
        return dict(parse_qsl(request.content.decode("utf-8"), keep_blank_values=True))


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in Settings.model_fields:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def recorder():
    return SinkRecorder()


@pytest.fixture
def client_for(recorder):
    """Build a TestClient for the given settings, with outbound sink calls going to the recorder."""

    def _client(settings: Settings) -> TestClient:
        app = create_app(settings, transport=httpx.MockTransport(recorder))
        return TestClient(app)

    return _client
