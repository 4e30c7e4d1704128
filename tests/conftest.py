"""Test configuration and fixtures."""
import asyncio
from typing import Callable

import pytest
import pytest_asyncio

from chatroom_client.config import ChatClientConfig
from .chat_server import BackendState, ChatBackend
from .fakes import ChannelRecorder, FakeRestApi


@pytest.fixture
def config() -> ChatClientConfig:
    """Config for tests that never touch the network."""
    return ChatClientConfig(api_base_url="http://chat.test", token="secret", display_name="guest")


@pytest.fixture
def fake_api() -> FakeRestApi:
    return FakeRestApi()


@pytest.fixture
def channels() -> ChannelRecorder:
    return ChannelRecorder()


@pytest_asyncio.fixture
async def backend() -> ChatBackend:
    """In-process REST + WebSocket chat backend."""
    server = ChatBackend(BackendState())
    await server.start()
    try:
        yield server
    finally:
        await server.close()


@pytest.fixture
def backend_config(backend: ChatBackend) -> ChatClientConfig:
    return ChatClientConfig(api_base_url=backend.base_url, token=backend.state.token, request_timeout=5.0)


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Yield to the event loop until ``predicate`` holds."""
    async def _poll():
        while not predicate():
            await asyncio.sleep(0.01)
    await asyncio.wait_for(_poll(), timeout)
