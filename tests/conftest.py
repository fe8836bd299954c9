"""
Pytest configuration and shared fixtures.
"""
import json
import os
import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

# config.Settings requires a bot token at import time
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "test-token")


# =============================================================================
# AI fixtures
# =============================================================================

ENDPOINT = "https://llm.example.test/v1/chat/completions"


@pytest.fixture
def ai_enabled():
    """AI settings that would reach the network."""
    from agent.modules.remix import AISettings
    return AISettings(enabled=True, api_key="sk-test-12345", model="test-model", endpoint=ENDPOINT)


@pytest.fixture
def completion_body():
    """Build an OpenAI-style chat completion body."""
    def _build(content: str) -> dict:
        return {
            "id": "chatcmpl-1",
            "choices": [{"index": 0, "message": {"role": "assistant", "content": content}}],
            "usage": {"total_tokens": 42},
        }
    return _build


@pytest.fixture
def mock_transport():
    """httpx client whose requests are answered by ``handler``; requests are recorded."""
    clients = []

    def _make(handler):
        seen: list[httpx.Request] = []

        def _record(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return handler(request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(_record))
        client.seen = seen
        clients.append(client)
        return client

    return _make


def json_payload(request: httpx.Request) -> dict:
    return json.loads(request.content)


# =============================================================================
# Settings fixtures
# =============================================================================

@pytest.fixture
def settings_path(tmp_path):
    return tmp_path / "remix" / "settings.json"


@pytest.fixture
def store(settings_path):
    from store import SettingsStore
    return SettingsStore(settings_path)


# =============================================================================
# Telegram fixtures
# =============================================================================

@pytest.fixture
def update():
    """A private-chat text update from user 1."""
    upd = MagicMock()
    upd.effective_user.id = 1
    upd.effective_chat.id = 1
    upd.message.text = ""
    upd.message.reply_text = AsyncMock()
    upd.message.delete = AsyncMock()
    return upd


@pytest.fixture
def context(store):
    ctx = MagicMock()
    ctx.user_data = {}
    ctx.bot_data = {"store": store}
    ctx.args = []
    ctx.bot.send_chat_action = AsyncMock()
    return ctx


@pytest.fixture
def allow_all(monkeypatch):
    """Every user is authorized and an admin."""
    import bot.handlers as handlers
    fake = MagicMock()
    fake.is_authorized.return_value = True
    fake.is_admin.return_value = True
    monkeypatch.setattr(handlers, "auth", fake)
    monkeypatch.setattr(handlers, "_rate_limit_buckets", {})
    return fake
