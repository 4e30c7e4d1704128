"""Session controller tying a chat room's channel, history and ledger together.

Views (terminal, GUI) subclass ChatSessionController and override the
``_on_*`` hooks for view-specific rendering. Connection lifetime, backlog
loading and the send protocol happen here.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from chatroom_client.api import ChatRestApi
from chatroom_client.chat_errors import (
    ChannelNotReady, ChatError, ConnectionFailure, FetchFailure, NotReadyToJoin, SendRejected,
)
from chatroom_client.chat_models import ChatMessage, ChatUser, ConnectionState, SendOutcome
from chatroom_client.config import ChatClientConfig
from chatroom_client.history_loader import HistoryLoader
from chatroom_client.message_ledger import LedgerView, MessageLedger, is_own
from chatroom_client.send_coordinator import InputBuffer, SendCoordinator
from chatroom_client.transport import ChatChannel, create_channel

logger = logging.getLogger(__name__)

ChannelFactory = Callable[[ChatClientConfig, str], ChatChannel]


@dataclass
class ChatSession:
    """Live state of being in one room."""
    room_id: str
    generation: int
    ledger: MessageLedger
    channel: Optional[ChatChannel] = None
    connection_state: ConnectionState = ConnectionState.CONNECTING
    current_user: Optional[ChatUser] = None
    bootstrapped: bool = False
    bootstrap_task: Optional[asyncio.Task] = None
    reconnect_task: Optional[asyncio.Task] = None


class ChatSessionController:
    """Owns the session of the active room.

    Exactly one session is live at a time. Joining another room tears the
    previous session down completely first; results of requests that were
    still in flight for a torn-down session are discarded.

    Usage::

        async with ChatSessionController(config) as controller:
            await controller.join("42")
            await controller.send("hello")
    """

    def __init__(
        self,
        config: ChatClientConfig,
        *,
        rest_api: Optional[ChatRestApi] = None,
        channel_factory: Optional[ChannelFactory] = None,
    ):
        """Initialize controller with configuration.

        Args:
            config: Client configuration (endpoints, credential, display name)
            rest_api: Optional REST client; created from config if omitted
            channel_factory: Optional factory building the live channel for a room
        """
        self.config = config
        self.api = rest_api or ChatRestApi(config)
        self._owns_api = rest_api is None
        self.history_loader = HistoryLoader(self.api)
        self.channel_factory = channel_factory or create_channel
        self.input_buffer = InputBuffer()
        self.send_coordinator = SendCoordinator(self.api, self._active_channel)
        self.session: Optional[ChatSession] = None
        self._generation = 0

    async def __aenter__(self) -> "ChatSessionController":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    # ── read model ────────────────────────────────────────────

    @property
    def room_id(self) -> Optional[str]:
        return self.session.room_id if self.session else None

    @property
    def connection_state(self) -> ConnectionState:
        return self.session.connection_state if self.session else ConnectionState.CLOSED

    @property
    def current_user(self) -> Optional[ChatUser]:
        return self.session.current_user if self.session else None

    @property
    def messages(self) -> LedgerView:
        return self.session.ledger.current_view() if self.session else ()

    def _active_channel(self) -> Optional[ChatChannel]:
        return self.session.channel if self.session else None

    def _owns(self, channel: ChatChannel) -> bool:
        return self.session is not None and self.session.channel is channel

    def _is_active(self, session: ChatSession) -> bool:
        return self.session is session

    # ========== BUSINESS LOGIC ==========

    async def join(self, room_id: str) -> ChatSession:
        """Enter a room, replacing any previous session.

        Raises:
            NotReadyToJoin: If no credential is configured
        """
        if not self.config.has_credential:
            raise NotReadyToJoin("A login is required before joining a chat room")

        await self._teardown()

        self._generation += 1
        session = ChatSession(
            room_id=str(room_id),
            generation=self._generation,
            ledger=MessageLedger(self.config.max_ledger_messages),
        )
        session.ledger.add_observer(self._on_messages_changed)
        self.session = session
        logger.info(f"[SESSION] Joining room {session.room_id} (generation {session.generation})")

        await self._open_channel(session)
        return session

    async def _open_channel(self, session: ChatSession) -> bool:
        """Create and connect a channel for ``session``. Returns True if it is open."""
        if session.channel is not None:
            session.channel.remove_listener(self)
        channel = self.channel_factory(self.config, session.room_id)
        session.channel = channel
        self._set_state(session, ConnectionState.CONNECTING)
        channel.add_listener(self)
        try:
            await channel.connect()
        except ConnectionFailure as e:
            if self._owns(channel) and session.connection_state != ConnectionState.ERRORED:
                self.on_error(channel, e)
            return False
        return channel.is_open

    async def leave(self) -> None:
        """Leave the current room and release its channel."""
        await self._teardown()

    async def aclose(self) -> None:
        """Leave the room and close the REST client if this controller created it."""
        try:
            await self._teardown()
        finally:
            if self._owns_api:
                await self.api.close()

    async def _teardown(self) -> None:
        session = self.session
        if session is None:
            return
        self.session = None
        session.ledger.remove_observer(self._on_messages_changed)

        pending = [t for t in (session.bootstrap_task, session.reconnect_task) if t and not t.done()]
        for task in pending:
            task.cancel()
        try:
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
        finally:
            if session.channel is not None:
                channel = session.channel
                try:
                    await channel.close()
                finally:
                    channel.remove_listener(self)
            session.connection_state = ConnectionState.CLOSED
            logger.info(f"[SESSION] Left room {session.room_id} (generation {session.generation})")

    async def send(self, text: Optional[str] = None) -> SendOutcome:
        """Send the draft, or ``text`` if given, over both send paths.

        ``text`` replaces the draft first. The draft is cleared once the
        persist call has settled; it is kept if the send is rejected.

        Raises:
            EmptyMessage: If there is nothing to send
            ChannelNotReady: If the live channel is not open
        """
        if text is not None:
            self.input_buffer.set(text)

        session = self.session
        try:
            if session is None:
                raise ChannelNotReady("Not in a chat room")
            sender = session.current_user.name if session.current_user else self.config.display_name
            return await self.send_coordinator.send(
                session.room_id,
                sender,
                self.input_buffer.text,
                input_buffer=self.input_buffer,
            )
        except SendRejected as e:
            self._on_notice(e)
            raise

    def is_own(self, message: ChatMessage) -> bool:
        """True if the message was sent by the resolved current user."""
        return is_own(message, self.current_user)

    # ── backlog bootstrap ─────────────────────────────────────

    async def _bootstrap(self, session: ChatSession) -> None:
        await asyncio.gather(self._load_backlog(session), self._resolve_user(session))

    async def _load_backlog(self, session: ChatSession) -> None:
        try:
            backlog = await self.history_loader.load_backlog(session.room_id)
        except FetchFailure as e:
            logger.error(f"[SESSION] Backlog of room {session.room_id} unavailable: {e}")
            backlog = []
        if not self._is_active(session):
            logger.debug(f"[SESSION] Discarded backlog of stale generation {session.generation}")
            return
        session.ledger.seed(backlog)

    async def _resolve_user(self, session: ChatSession) -> None:
        try:
            user = await self.history_loader.resolve_current_user()
        except FetchFailure as e:
            logger.error(f"[SESSION] Current user unresolved: {e}")
            return
        if not self._is_active(session):
            logger.debug(f"[SESSION] Discarded user of stale generation {session.generation}")
            return
        session.current_user = user
        try:
            self._on_user_resolved(user)
        except Exception as e:
            logger.error(f"[SESSION] User hook failed: {e}")

    # ── reconnect ─────────────────────────────────────────────

    async def _reconnect(self, session: ChatSession) -> None:
        policy = self.config.reconnect
        for attempt in range(1, policy.max_attempts + 1):
            delay = policy.delay_for(attempt)
            logger.info(
                f"[SESSION] Reconnecting to room {session.room_id} in {delay:.2f}s "
                f"(attempt {attempt}/{policy.max_attempts})"
            )
            await asyncio.sleep(delay)
            if not self._is_active(session):
                return
            if await self._open_channel(session):
                return
            if not self._is_active(session):
                return
        logger.warning(f"[SESSION] Gave up reconnecting to room {session.room_id}")

    # ── channel listener ──────────────────────────────────────

    def on_open(self, channel: ChatChannel) -> None:
        if not self._owns(channel):
            return
        session = self.session
        self._set_state(session, ConnectionState.OPEN)
        if not session.bootstrapped:
            session.bootstrapped = True
            session.bootstrap_task = asyncio.create_task(self._bootstrap(session))

    def on_message(self, channel: ChatChannel, message: ChatMessage) -> None:
        if not self._owns(channel):
            return
        self.session.ledger.append(message)

    def on_close(self, channel: ChatChannel) -> None:
        if not self._owns(channel):
            return
        self._set_state(self.session, ConnectionState.CLOSED)

    def on_error(self, channel: ChatChannel, error: ConnectionFailure) -> None:
        if not self._owns(channel):
            return
        session = self.session
        self._set_state(session, ConnectionState.ERRORED)
        self._on_notice(error)
        if self.config.reconnect.enabled and (session.reconnect_task is None or session.reconnect_task.done()):
            session.reconnect_task = asyncio.create_task(self._reconnect(session))

    def _set_state(self, session: ChatSession, state: ConnectionState) -> None:
        session.connection_state = state
        self._on_connection_state(state)

    # ========== VIEW HOOKS ==========

    def _on_messages_changed(self, view: LedgerView) -> None:
        """Called after every visible ledger change, e.g. to scroll to the newest message."""
        logger.debug(f"[SESSION] {len(view)} message(s) visible")

    def _on_connection_state(self, state: ConnectionState) -> None:
        """Called when the channel of the active session changes state."""
        logger.debug(f"[SESSION] Connection {state.value}")

    def _on_user_resolved(self, user: ChatUser) -> None:
        """Called once the current user is known."""
        logger.debug(f"[SESSION] Current user is {user.name!r}")

    def _on_notice(self, error: ChatError) -> None:
        """Called for user-visible, non-fatal problems."""
        logger.warning(f"[SESSION] {type(error).__name__}: {error}")
