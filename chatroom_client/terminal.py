"""Terminal chat client — join one room and chat from the console.

Usage::

    chatroom-client 42 --token $CHAT_TOKEN --api http://localhost:8080

    # Or with settings from the environment / a .env file:
    CHAT_TOKEN=... chatroom-client 42

Commands typed at the prompt:
    /rent   — rent the article this room is about
    /quit   — leave the room and exit

Environment variables:
    CHAT_API_BASE_URL   — REST backend (default: http://localhost:8080)
    CHAT_WS_BASE_URL    — WebSocket base (default: derived from the REST URL)
    CHAT_TOKEN          — Bearer credential
    CHAT_DISPLAY_NAME   — Name used until the backend reports the user
"""

import argparse
import asyncio
import logging
import sys
from typing import Optional, TextIO

from chatroom_client.chat_errors import ApiError, ChatError, NotReadyToJoin, SendRejected
from chatroom_client.chat_models import ChatMessage, ChatUser, ConnectionState
from chatroom_client.config import ChatClientConfig
from chatroom_client.message_ledger import LedgerView
from chatroom_client.session_controller import ChatSessionController

logger = logging.getLogger(__name__)


def format_message(message: ChatMessage, own: bool) -> str:
    """``[HH:MM:SS] sender: text`` with a ``>`` marker for own messages."""
    sent = message.sent_at_datetime
    clock = sent.strftime("%H:%M:%S") if sent else message.send_at
    marker = ">" if own else " "
    return f"{marker} [{clock}] {message.sender}: {message.message}"


class TerminalChatController(ChatSessionController):
    """Renders the room to a text stream."""

    def __init__(self, config: ChatClientConfig, out: TextIO = sys.stdout, **kwargs):
        super().__init__(config, **kwargs)
        self.out = out
        self._last_printed: Optional[ChatMessage] = None

    def write_line(self, line: str) -> None:
        self.out.write(line + "\n")
        self.out.flush()

    def _on_messages_changed(self, view: LedgerView) -> None:
        start = 0
        if self._last_printed is not None:
            for index in range(len(view) - 1, -1, -1):
                if view[index] is self._last_printed:
                    start = index + 1
                    break
        for message in view[start:]:
            self.write_line(format_message(message, self.is_own(message)))
        if view:
            self._last_printed = view[-1]

    def _on_connection_state(self, state: ConnectionState) -> None:
        if state == ConnectionState.OPEN:
            self.write_line(f"* connected to room {self.room_id}")
        elif state == ConnectionState.CLOSED:
            self.write_line("* connection closed")

    def _on_user_resolved(self, user: ChatUser) -> None:
        self.write_line(f"* chatting as {user.name}")

    def _on_notice(self, error: ChatError) -> None:
        self.write_line(f"! {error}")

    async def _teardown(self) -> None:
        self._last_printed = None
        await super()._teardown()


async def run_terminal(
    room_id: str,
    config: ChatClientConfig,
    stdin: TextIO = sys.stdin,
    out: TextIO = sys.stdout,
) -> int:
    """Join ``room_id`` and forward stdin lines until EOF or ``/quit``."""
    loop = asyncio.get_running_loop()
    async with TerminalChatController(config, out=out) as controller:
        try:
            await controller.join(room_id)
        except NotReadyToJoin as e:
            logger.error(str(e))
            return 2

        while True:
            line = await loop.run_in_executor(None, stdin.readline)
            if not line:
                break
            line = line.rstrip("\n")
            if line == "/quit":
                break
            if line == "/rent":
                try:
                    await controller.api.rent_article(controller.room_id)
                    controller.write_line("* rental confirmed")
                except ApiError as e:
                    controller.write_line(f"! {e}")
                continue
            try:
                await controller.send(line)
            except SendRejected:
                pass
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="chatroom-client", description="Join a chat room from the terminal.")
    parser.add_argument("room_id", help="Room to join")
    parser.add_argument("--token", help="Bearer credential (default: $CHAT_TOKEN)")
    parser.add_argument("--api", dest="api_base_url", help="REST base URL (default: $CHAT_API_BASE_URL)")
    parser.add_argument("--ws", dest="ws_base_url", help="WebSocket base URL (default: derived from --api)")
    parser.add_argument("--name", dest="display_name", help="Display name until the user is resolved")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    config = ChatClientConfig.from_env(
        token=args.token,
        api_base_url=args.api_base_url,
        ws_base_url=args.ws_base_url,
        display_name=args.display_name,
    )
    try:
        return asyncio.run(run_terminal(args.room_id, config))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
