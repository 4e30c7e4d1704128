"""Tests for client configuration."""
import random

import pytest
from pydantic import ValidationError

from chatroom_client.config import ChatClientConfig, ReconnectPolicy


def test_ws_url_is_derived_from_api_url():
    config = ChatClientConfig(api_base_url="https://chat.example.com/")
    assert config.api_base_url == "https://chat.example.com"
    assert config.ws_base_url == "wss://chat.example.com"

    config = ChatClientConfig(api_base_url="http://localhost:8080")
    assert config.ws_base_url == "ws://localhost:8080"


def test_explicit_ws_url_wins():
    config = ChatClientConfig(api_base_url="http://api.local", ws_base_url="ws://push.local:9000/")
    assert config.ws_base_url == "ws://push.local:9000"


def test_room_endpoint_and_api_url():
    config = ChatClientConfig(api_base_url="http://localhost:8080")
    assert config.room_endpoint("42") == "ws://localhost:8080/chat/42"
    assert config.room_endpoint("a b") == "ws://localhost:8080/chat/a%20b"
    assert config.api_url("/chat/getUser") == "http://localhost:8080/chat/getUser"


def test_auth_headers():
    assert ChatClientConfig().auth_headers() == {}
    assert not ChatClientConfig().has_credential
    config = ChatClientConfig(token="abc")
    assert config.auth_headers() == {"Authorization": "Bearer abc"}
    assert config.has_credential


def test_from_env(monkeypatch):
    monkeypatch.setenv("CHAT_API_BASE_URL", "http://env.local")
    monkeypatch.setenv("CHAT_TOKEN", "env-token")
    monkeypatch.setenv("CHAT_DISPLAY_NAME", "bob")
    monkeypatch.setenv("CHAT_REQUEST_TIMEOUT", "2.5")
    monkeypatch.setenv("CHAT_RECONNECT_ATTEMPTS", "3")
    monkeypatch.delenv("CHAT_WS_BASE_URL", raising=False)

    config = ChatClientConfig.from_env(load_env_file=False, token="cli-token", ws_base_url=None)

    assert config.api_base_url == "http://env.local"
    assert config.ws_base_url == "ws://env.local"
    assert config.token == "cli-token"
    assert config.display_name == "bob"
    assert config.request_timeout == pytest.approx(2.5)
    assert config.reconnect.max_attempts == 3


def test_invalid_timeout_rejected():
    with pytest.raises(ValidationError):
        ChatClientConfig(request_timeout=0)


def test_reconnect_disabled_by_default():
    assert not ChatClientConfig().reconnect.enabled


def test_backoff_grows_and_is_capped():
    policy = ReconnectPolicy(max_attempts=5, initial_delay=1.0, max_delay=5.0, jitter=False)
    assert [policy.delay_for(n) for n in range(1, 6)] == [1.0, 2.0, 4.0, 5.0, 5.0]


def test_jittered_backoff_stays_below_ceiling():
    policy = ReconnectPolicy(max_attempts=3, initial_delay=1.0, max_delay=10.0)
    rng = random.Random(7)
    for attempt in range(1, 4):
        assert 0 <= policy.delay_for(attempt, rng) <= 2 ** (attempt - 1)
