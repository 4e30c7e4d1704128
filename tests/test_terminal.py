"""Tests for the terminal client."""
import io

import pytest

from chatroom_client.chat_models import ChatMessage
from chatroom_client.config import ChatClientConfig
from chatroom_client.terminal import TerminalChatController, format_message, main, run_terminal
from .fakes import ChannelRecorder, FakeRestApi


def test_format_message():
    message = ChatMessage(chat_room_id="R1", sender="bob", message="hi", send_at="2024-01-01T13:05:09Z")
    assert format_message(message, own=False) == "  [13:05:09] bob: hi"
    assert format_message(message, own=True) == "> [13:05:09] bob: hi"


def test_format_message_with_unparsable_time():
    message = ChatMessage(chat_room_id="R1", sender="bob", message="hi", send_at="later")
    assert format_message(message, own=False) == "  [later] bob: hi"


@pytest.mark.asyncio
async def test_controller_prints_each_message_once(config):
    api = FakeRestApi()
    api.backlog["R1"] = [{"chatRoomId": "R1", "sender": "me", "message": "mine", "sendAt": "2024-01-01T00:00:00Z"}]
    channels = ChannelRecorder()
    out = io.StringIO()
    controller = TerminalChatController(config, out=out, rest_api=api, channel_factory=channels)

    session = await controller.join("R1")
    await session.bootstrap_task
    channels.last.deliver({"chatRoomId": "R1", "sender": "bob", "message": "yo", "sendAt": "2024-01-01T00:00:01Z"})
    await controller.leave()

    lines = out.getvalue().splitlines()
    assert "* connected to room R1" in lines
    assert "* chatting as me" in lines
    assert lines.count("  [00:00:01] bob: yo") == 1
    assert len([line for line in lines if line.endswith("mine")]) == 1


@pytest.mark.asyncio
async def test_run_terminal_without_token_exits():
    out = io.StringIO()
    code = await run_terminal("R1", ChatClientConfig(), stdin=io.StringIO(""), out=out)
    assert code == 2


@pytest.mark.asyncio
async def test_run_terminal_sends_lines_and_rents(backend, backend_config):
    out = io.StringIO()
    stdin = io.StringIO("hello\n\n/rent\n/quit\nnever sent\n")

    code = await run_terminal("R1", backend_config, stdin=stdin, out=out)

    assert code == 0
    assert [p["message"] for p in backend.state.persisted] == ["hello"]
    assert backend.state.rented == ["R1"]
    text = out.getvalue()
    assert "* connected to room R1" in text
    assert "! Please enter a message" in text
    assert "* rental confirmed" in text


def test_main_parses_arguments(monkeypatch):
    captured = {}

    async def fake_run(room_id, config, **kwargs):
        captured["room_id"] = room_id
        captured["config"] = config
        return 0

    monkeypatch.setattr("chatroom_client.terminal.run_terminal", fake_run)
    monkeypatch.delenv("CHAT_TOKEN", raising=False)
    monkeypatch.delenv("CHAT_WS_BASE_URL", raising=False)

    code = main(["42", "--token", "abc", "--api", "http://example.test", "--name", "zoe"])

    assert code == 0
    assert captured["room_id"] == "42"
    assert captured["config"].token == "abc"
    assert captured["config"].ws_base_url == "ws://example.test"
    assert captured["config"].display_name == "zoe"
