"""Dual-path dispatch of locally authored messages.

One authored message is first persisted over request/response and then
pushed over the live channel, with an identical payload on both paths.
The two paths are not transactional: a failed persist does not stop the
live push. The coordinator never writes to the ledger; the author's own
message comes back through the channel like any other.
"""
import logging
from typing import Callable, Optional

from chatroom_client.api import ChatRestApi
from chatroom_client.chat_errors import ChannelNotReady, ConnectionFailure, EmptyMessage, PersistFailure
from chatroom_client.chat_models import ChatMessage, SendOutcome
from chatroom_client.transport import ChatChannel

logger = logging.getLogger(__name__)

ChannelAccessor = Callable[[], Optional[ChatChannel]]


class InputBuffer:
    """Draft text of the message being authored."""

    def __init__(self, text: str = ""):
        self.text = text

    def set(self, text: str) -> None:
        self.text = text

    def clear(self) -> None:
        self.text = ""

    @property
    def is_empty(self) -> bool:
        return not self.text.strip()


class SendCoordinator:
    """Validates and dispatches authored messages.

    The live channel is obtained through an injected accessor so the
    coordinator always checks the channel of the currently active session.
    """

    def __init__(self, api: ChatRestApi, channel_accessor: ChannelAccessor):
        self.api = api
        self._channel_accessor = channel_accessor

    async def send(
        self,
        room_id: str,
        sender: str,
        text: str,
        sent_at: Optional[str] = None,
        input_buffer: Optional[InputBuffer] = None,
    ) -> SendOutcome:
        """Persist, then broadcast one message.

        Args:
            room_id: Room the message belongs to
            sender: Display name of the author
            text: Message text
            sent_at: Optional ISO-8601 authoring time; now (UTC) if omitted
            input_buffer: Draft to clear once the persist call has settled

        Returns:
            SendOutcome describing which paths succeeded

        Raises:
            EmptyMessage: If text is empty; nothing is dispatched
            ChannelNotReady: If the live channel is not open; nothing is dispatched
        """
        if not text or not text.strip():
            raise EmptyMessage()

        channel = self._channel_accessor()
        if channel is None or not channel.is_open:
            raise ChannelNotReady()

        message = ChatMessage.compose(room_id, sender, text, sent_at)
        outcome = SendOutcome(message=message)

        try:
            await self.api.send_message(message)
            outcome.persisted = True
        except PersistFailure as e:
            logger.error(f"[SEND] Persist of {message.client_message_id} in room {room_id} failed: {e}")
            outcome.persist_error = str(e)

        if input_buffer is not None:
            input_buffer.clear()
            outcome.input_cleared = True

        try:
            await channel.send(message)
            outcome.broadcast = True
        except (ChannelNotReady, ConnectionFailure) as e:
            logger.error(f"[SEND] Live send of {message.client_message_id} in room {room_id} failed: {e}")
            outcome.broadcast_error = str(e)

        return outcome
