"""
Pytest configuration and shared fixtures.

Provides test utilities, fake provider transports, and environment setup
for the Interview Coach test suite.

IMPORTANT: Environment variables must be set BEFORE importing package
modules that use pydantic-settings, as Settings validates on first use.
"""

import os

# Set test environment variables before importing package modules
os.environ["GEMINI_API_KEY"] = "test-key-not-real"
os.environ["AI_PROVIDER"] = "gemini"
os.environ["PROXY_URL"] = ""
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["DEBUG"] = "false"

# Now safe to import everything else
import httpx
import pytest
from unittest.mock import AsyncMock, patch
from fastapi.testclient import TestClient

from interview_coach.config import MAX_NUMBERED_KEYS, get_settings

from fixtures import FakeServer

# Env vars that feed the credential pools; cleared so the developer's
# environment cannot leak keys into tests
KEY_ENV_VARS = (
    "GEMINI_API_KEYS",
    "GEMINI_RESUME_KEYS",
    "OPENAI_API_KEY",
    "OPENAI_API_KEYS",
    *(f"GEMINI_API_KEY{i}" for i in range(1, MAX_NUMBERED_KEYS + 1)),
    *(f"GEMINI_RESUME_KEY{i}" for i in range(1, MAX_NUMBERED_KEYS + 1)),
    *(f"OPENAI_API_KEY{i}" for i in range(1, MAX_NUMBERED_KEYS + 1)),
)


def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "asyncio: mark test as async")


@pytest.fixture(autouse=True)
def clean_key_env(monkeypatch):
    """Start every test with exactly one Gemini key and no proxy."""
    for name in KEY_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("GEMINI_API_KEY", "test-key-not-real")
    monkeypatch.setenv("PROXY_URL", "")
    monkeypatch.setenv("AI_PROVIDER", "gemini")
    get_settings.cache_clear()
    yield


@pytest.fixture(autouse=True)
def reset_singletons():
    """
    Reset all singleton instances between tests.

    This ensures each test starts with a clean state.
    """
    yield

    get_settings.cache_clear()

    # Reset provider clients
    from interview_coach.dispatcher import handlers

    handlers._clients = None

    # Reset round-robin key assignment
    from interview_coach.dispatcher import credentials

    credentials._counter = None


@pytest.fixture
def configure_env(monkeypatch):
    """
    Factory fixture for overriding settings through the environment.

    Usage:
        configure_env(GEMINI_API_KEYS="k0,k1,k2", PROXY_URL=PROXY_URL)
    """

    def _apply(**env: str | None) -> None:
        for name, value in env.items():
            if value is None:
                monkeypatch.delenv(name, raising=False)
            else:
                monkeypatch.setenv(name, value)
        get_settings.cache_clear()

    return _apply


@pytest.fixture
def use_keys(configure_env):
    """
    Replace the general Gemini pool with exactly the given keys.

    Usage:
        use_keys("k0", "k1", "k2")
    """

    def _apply(*keys: str) -> None:
        configure_env(GEMINI_API_KEY=None, GEMINI_API_KEYS=",".join(keys))

    return _apply


@pytest.fixture
def fake_server():
    """
    Install a FakeServer behind the shared HTTP client.

    Usage:
        fake_server.gemini = [gemini_reply("hello")]
    """
    from interview_coach.dispatcher import handlers

    server = FakeServer()
    client = httpx.AsyncClient(transport=httpx.MockTransport(server.handler))
    handlers._clients = handlers.ProviderClients(http=client)
    yield server
    handlers._clients = None


@pytest.fixture
def mock_backoff():
    """Replace dispatcher backoff so tests never sleep; records wait times."""
    with patch(
        "interview_coach.dispatcher.handlers.backoff", new_callable=AsyncMock
    ) as mocked:
        yield mocked


@pytest.fixture
def test_client(fake_server, mock_backoff):
    """
    Create a FastAPI TestClient backed by the fake provider server.

    The lifespan would close the shared clients on shutdown, so the fake
    server fixture is installed first and survives until teardown.
    """
    from interview_coach.main import app

    with TestClient(app) as client:
        yield client
