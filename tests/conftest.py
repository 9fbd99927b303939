"""Shared pytest fixtures and configuration.

Fixture Categories:
1. Configuration: settings, signed_settings
2. Clients: messenger, signed_messenger, test_client, signed_test_client
3. Recording: recorder (collects handler invocations in call order)
4. Payloads: text_payload, sign
"""

import json
import os
from unittest.mock import MagicMock

import pytest

# Logfire is never configured in tests; silence the "not configured" warning
os.environ.setdefault("LOGFIRE_IGNORE_NO_CONFIG", "1")

from messenger.client import Messenger
from messenger.config import Settings
from messenger.services.dispatcher import DispatchContext
from messenger.services.integrity import compute_signature

from tests.helpers import APP_SECRET, make_settings


# =============================================================================
# Configuration
# =============================================================================


@pytest.fixture
def settings() -> Settings:
    """Settings with signature verification disabled."""
    return make_settings()


@pytest.fixture
def signed_settings() -> Settings:
    """Settings with signature verification enabled."""
    return make_settings(
        facebook_verify_signature=True,
        facebook_app_secret=APP_SECRET,
    )


# =============================================================================
# Clients
# =============================================================================


@pytest.fixture
def messenger(settings) -> Messenger:
    return Messenger(settings)


@pytest.fixture
def signed_messenger(signed_settings) -> Messenger:
    return Messenger(signed_settings)


@pytest.fixture
def test_client(messenger):
    """FastAPI TestClient for E2E tests (lifespan not run)."""
    from fastapi.testclient import TestClient

    from messenger.main import create_app

    return TestClient(create_app(messenger))


@pytest.fixture
def signed_test_client(signed_messenger):
    """TestClient whose webhook requires a valid X-Hub-Signature."""
    from fastapi.testclient import TestClient

    from messenger.main import create_app

    return TestClient(create_app(signed_messenger))


# =============================================================================
# Recording
# =============================================================================


class Recorder:
    """Collects ``(name, ctx, payload, response)`` tuples in call order."""

    def __init__(self):
        self.calls: list[tuple] = []

    def handler(self, name: str):
        async def _handler(ctx, payload, response):
            self.calls.append((name, ctx, payload, response))

        _handler.__qualname__ = f"recorder.{name}"
        return _handler

    @property
    def names(self) -> list[str]:
        return [call[0] for call in self.calls]


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
def dispatch_context() -> DispatchContext:
    return DispatchContext(correlation_id="test-correlation-id")


@pytest.fixture
def mock_graph():
    """Graph API client double; nothing in the dispatcher calls it directly."""
    return MagicMock()


# =============================================================================
# Payloads
# =============================================================================


@pytest.fixture
def text_payload() -> dict:
    """The canonical single-text-message delivery."""
    return {
        "object": "page",
        "entry": [
            {
                "messaging": [
                    {
                        "sender": {"id": 1},
                        "recipient": {"id": 2},
                        "timestamp": 1000000,
                        "message": {"text": "hi"},
                    }
                ]
            }
        ],
    }


@pytest.fixture
def sign():
    """Return ``(body_bytes, headers)`` for a JSON payload signed with APP_SECRET."""

    def _sign(payload: dict, secret: str = APP_SECRET) -> tuple[bytes, dict]:
        body = json.dumps(payload).encode("utf-8")
        return body, {
            "Content-Type": "application/json",
            "X-Hub-Signature": f"sha1={compute_signature(body, secret)}",
        }

    return _sign
