"""Pydantic config models for the chat room client.

ChatClientConfig — endpoints, credential and tuning of one client.
ReconnectPolicy — optional backoff policy for a dropped live channel.
"""
import os
import random
from typing import Optional
from urllib.parse import quote, urlsplit, urlunsplit

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field, model_validator


class ReconnectPolicy(BaseModel):
    """Exponential backoff with full jitter. ``max_attempts=0`` disables reconnects."""
    max_attempts: int = Field(0, ge=0, description="Reconnect attempts after a dropped channel")
    initial_delay: float = Field(0.5, gt=0, description="Delay before the first attempt in seconds")
    max_delay: float = Field(30.0, gt=0, description="Upper bound for a single delay in seconds")
    multiplier: float = Field(2.0, ge=1.0)
    jitter: bool = True

    @property
    def enabled(self) -> bool:
        return self.max_attempts > 0

    def delay_for(self, attempt: int, rng: Optional[random.Random] = None) -> float:
        """Delay before reconnect attempt ``attempt`` (1-based)."""
        ceiling = min(self.max_delay, self.initial_delay * (self.multiplier ** (attempt - 1)))
        if not self.jitter:
            return ceiling
        return (rng or random).uniform(0, ceiling)


def _to_ws_url(http_url: str) -> str:
    parts = urlsplit(http_url)
    scheme = {"https": "wss", "http": "ws"}.get(parts.scheme, parts.scheme)
    return urlunsplit((scheme, parts.netloc, parts.path, parts.query, parts.fragment))


class ChatClientConfig(BaseModel):
    """Settings of one chat room client."""
    api_base_url: str = Field("http://localhost:8080", description="Base URL of the REST backend")
    ws_base_url: Optional[str] = Field(None, description="Base URL of the WebSocket endpoint; derived from api_base_url if unset")
    token: Optional[str] = Field(None, description="Bearer credential from the auth collaborator")
    display_name: str = Field("", description="Fallback sender name until the current user is resolved")
    request_timeout: Optional[float] = Field(None, gt=0, description="Total timeout of a REST call; None = no timeout")
    connect_timeout: Optional[float] = Field(None, gt=0, description="WebSocket handshake timeout; None = no timeout")
    max_ledger_messages: Optional[int] = Field(None, gt=0, description="Bound of the in-memory ledger; None = unbounded")
    reconnect: ReconnectPolicy = Field(default_factory=ReconnectPolicy)

    @model_validator(mode="after")
    def _normalize_urls(self) -> "ChatClientConfig":
        self.api_base_url = self.api_base_url.rstrip("/")
        if not self.ws_base_url:
            self.ws_base_url = _to_ws_url(self.api_base_url)
        self.ws_base_url = self.ws_base_url.rstrip("/")
        return self

    @property
    def has_credential(self) -> bool:
        return bool(self.token)

    def room_endpoint(self, room_id: str) -> str:
        """WebSocket endpoint of a room."""
        return f"{self.ws_base_url}/chat/{quote(str(room_id), safe='')}"

    def api_url(self, path: str) -> str:
        """Absolute REST URL for a path like ``/chat/getUser``."""
        return f"{self.api_base_url}/{path.lstrip('/')}"

    def auth_headers(self) -> dict[str, str]:
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}

    @classmethod
    def from_env(cls, load_env_file: bool = True, **overrides) -> "ChatClientConfig":
        """Build a config from ``CHAT_*`` environment variables.

        Loads ``.env`` from the current working directory or any parent
        directory first. Keyword overrides that are not None win over the
        environment.
        """
        if load_env_file:
            load_dotenv(find_dotenv(usecwd=True))

        values: dict = {}
        env_map = {
            "api_base_url": "CHAT_API_BASE_URL",
            "ws_base_url": "CHAT_WS_BASE_URL",
            "token": "CHAT_TOKEN",
            "display_name": "CHAT_DISPLAY_NAME",
            "request_timeout": "CHAT_REQUEST_TIMEOUT",
            "connect_timeout": "CHAT_CONNECT_TIMEOUT",
            "max_ledger_messages": "CHAT_MAX_MESSAGES",
        }
        for field_name, env_name in env_map.items():
            value = os.environ.get(env_name)
            if value:
                values[field_name] = value

        attempts = os.environ.get("CHAT_RECONNECT_ATTEMPTS")
        if attempts:
            values["reconnect"] = ReconnectPolicy(max_attempts=int(attempts))

        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
