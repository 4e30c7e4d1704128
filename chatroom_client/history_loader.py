"""One-shot loading of a room's backlog and of the current user."""
import logging
from typing import List

from pydantic import ValidationError

from chatroom_client.api import ChatRestApi
from chatroom_client.chat_errors import FetchFailure
from chatroom_client.chat_models import ChatMessage, ChatUser

logger = logging.getLogger(__name__)


class HistoryLoader:
    """Fetches the backlog and the user identity over request/response.

    Both operations raise FetchFailure on any failure; there is no retry.
    """

    def __init__(self, api: ChatRestApi):
        self.api = api

    async def load_backlog(self, room_id: str) -> List[ChatMessage]:
        """Backlog of a room in the order the backend returned it.

        Entries that do not validate as a ChatMessage are skipped.
        """
        raw = await self.api.get_messages(room_id)
        if not isinstance(raw, list):
            raise FetchFailure(f"Backlog of room {room_id} is not a list", "messages")

        messages: List[ChatMessage] = []
        for index, entry in enumerate(raw):
            try:
                messages.append(ChatMessage.from_wire(entry))
            except ValidationError as e:
                logger.warning(f"[HISTORY] Skipped backlog entry {index} of room {room_id}: {e}")
        logger.info(f"[HISTORY] Loaded {len(messages)} message(s) for room {room_id}")
        return messages

    async def resolve_current_user(self) -> ChatUser:
        """Identity of the logged-in user."""
        raw = await self.api.get_user()
        try:
            user = ChatUser.model_validate(raw)
        except ValidationError as e:
            raise FetchFailure(f"Invalid user payload: {e}", "user") from e
        logger.debug(f"[HISTORY] Resolved current user {user.name!r}")
        return user
