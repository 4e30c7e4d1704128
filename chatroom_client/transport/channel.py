"""Live transport channels for chat rooms.

A channel owns one persistent bidirectional connection to a room endpoint,
reports lifecycle changes and inbound messages to its listeners and accepts
outbound messages while open.

States::

    CONNECTING -> OPEN -> CLOSED
         \\          \\
          +-> ERRORED <+

CLOSED and ERRORED are terminal for a channel object; a new connection
needs a new channel.
"""
import asyncio
import json
import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Protocol

import aiohttp
from pydantic import ValidationError

from chatroom_client.chat_errors import ChannelNotReady, ConnectionFailure
from chatroom_client.chat_models import ChatMessage, ConnectionState
from chatroom_client.config import ChatClientConfig

logger = logging.getLogger(__name__)


class ChannelListener(Protocol):
    """Receiver of channel events. Callbacks run on the event loop and must not block."""

    def on_open(self, channel: "ChatChannel") -> None: ...

    def on_message(self, channel: "ChatChannel", message: ChatMessage) -> None: ...

    def on_close(self, channel: "ChatChannel") -> None: ...

    def on_error(self, channel: "ChatChannel", error: ConnectionFailure) -> None: ...


class ChatChannel(ABC):
    """Abstract base class for live chat channels."""

    def __init__(self, room_id: str):
        self.room_id = room_id
        self.state = ConnectionState.CONNECTING
        self._listeners: List[ChannelListener] = []

    @property
    def is_open(self) -> bool:
        return self.state == ConnectionState.OPEN

    def add_listener(self, listener: ChannelListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: ChannelListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    @abstractmethod
    async def connect(self) -> None:
        """Open the connection. Raises ConnectionFailure if the handshake fails."""
        pass

    @abstractmethod
    async def send(self, message: ChatMessage) -> None:
        """Send one message. Raises ChannelNotReady unless the channel is open."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close the connection. Idempotent."""
        pass

    # ── event fan-out ─────────────────────────────────────────

    def _dispatch(self, event: str, *args) -> None:
        for listener in list(self._listeners):
            try:
                getattr(listener, event)(self, *args)
            except Exception as e:
                logger.error(f"[CHANNEL] Listener {event} failed for room {self.room_id}: {e}")

    def _emit_open(self) -> None:
        self._dispatch("on_open")

    def _emit_message(self, message: ChatMessage) -> None:
        self._dispatch("on_message", message)

    def _emit_close(self) -> None:
        self._dispatch("on_close")

    def _emit_error(self, error: ConnectionFailure) -> None:
        self._dispatch("on_error", error)


class WebSocketChannel(ChatChannel):
    """Chat channel over a WebSocket (aiohttp client).

    Frames are UTF-8 JSON encodings of a ChatMessage in both directions.
    """

    def __init__(
        self,
        config: ChatClientConfig,
        room_id: str,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """Initialize the channel.

        Args:
            config: Client configuration with the WebSocket base URL and credential
            room_id: Room to join; determines the endpoint
            session: Optional shared aiohttp session. If omitted the channel
                creates one on connect and closes it again on teardown.
        """
        super().__init__(room_id)
        self.config = config
        self.url = config.room_endpoint(room_id)
        self._session = session
        self._owns_session = session is None
        self._ws: Optional[aiohttp.ClientWebSocketResponse] = None
        self._reader_task: Optional[asyncio.Task] = None

    async def connect(self) -> None:
        if self.state != ConnectionState.CONNECTING:
            raise ConnectionFailure(f"Channel for room {self.room_id} is {self.state.value}", self.room_id)

        if self._session is None:
            self._session = aiohttp.ClientSession()

        try:
            ws = await asyncio.wait_for(self._handshake(), timeout=self.config.connect_timeout)
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            logger.error(f"[CHANNEL] Connection to {self.url} failed: {e}")
            error = ConnectionFailure(f"Could not connect to room {self.room_id}: {e}", self.room_id)
            if self.state == ConnectionState.CONNECTING:
                self.state = ConnectionState.ERRORED
                await self._release()
                self._emit_error(error)
            raise error from e

        if self.state != ConnectionState.CONNECTING:
            # closed while the handshake was in flight
            await ws.close()
            await self._release()
            return

        self._ws = ws
        self.state = ConnectionState.OPEN
        logger.info(f"[CHANNEL] Connected to room {self.room_id}")
        self._reader_task = asyncio.create_task(self._read_frames())
        self._emit_open()

    async def _handshake(self) -> aiohttp.ClientWebSocketResponse:
        return await self._session.ws_connect(self.url, headers=self.config.auth_headers())

    async def _read_frames(self) -> None:
        """Deliver inbound frames to listeners in arrival order."""
        ws = self._ws
        try:
            async for msg in ws:
                if msg.type == aiohttp.WSMsgType.TEXT:
                    self._handle_text(msg.data)
                elif msg.type == aiohttp.WSMsgType.BINARY:
                    logger.warning(f"[CHANNEL] Dropped binary frame in room {self.room_id}")
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    await self._fail(ws.exception())
                    return
        except asyncio.CancelledError:
            raise
        except Exception as e:
            await self._fail(e)
            return

        if self.state == ConnectionState.OPEN:
            self.state = ConnectionState.CLOSED
            logger.info(f"[CHANNEL] Room {self.room_id} closed by peer (code={ws.close_code})")
            await self._release()
            self._emit_close()

    def _handle_text(self, data: str) -> None:
        try:
            message = ChatMessage.from_wire(json.loads(data))
        except (ValueError, RecursionError, ValidationError) as e:
            logger.warning(f"[CHANNEL] Dropped malformed frame in room {self.room_id}: {e}")
            return
        self._emit_message(message)

    async def _fail(self, cause: Optional[BaseException]) -> None:
        if self.state.is_terminal:
            return
        self.state = ConnectionState.ERRORED
        logger.error(f"[CHANNEL] Transport error in room {self.room_id}: {cause}")
        await self._release()
        self._emit_error(ConnectionFailure(f"Connection to room {self.room_id} lost: {cause}", self.room_id))

    async def send(self, message: ChatMessage) -> None:
        if self.state != ConnectionState.OPEN or self._ws is None or self._ws.closed:
            raise ChannelNotReady()
        try:
            await self._ws.send_str(json.dumps(message.to_wire(), ensure_ascii=False))
        except (aiohttp.ClientError, ConnectionError) as e:
            raise ConnectionFailure(f"Send to room {self.room_id} failed: {e}", self.room_id) from e

    async def close(self) -> None:
        was_terminal = self.state.is_terminal
        if not was_terminal:
            self.state = ConnectionState.CLOSED

        task = self._reader_task
        if task and not task.done() and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        await self._release()
        if not was_terminal:
            logger.info(f"[CHANNEL] Closed channel for room {self.room_id}")
            self._emit_close()

    async def _release(self) -> None:
        """Close the socket and, if owned, the HTTP session."""
        if self._ws is not None and not self._ws.closed:
            await self._ws.close()
        if self._owns_session and self._session is not None:
            session, self._session = self._session, None
            await session.close()


def create_channel(config: ChatClientConfig, room_id: str) -> ChatChannel:
    """Default channel factory used by the session controller."""
    return WebSocketChannel(config, room_id)
