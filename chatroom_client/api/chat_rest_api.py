"""REST client for the chat backend.

All calls carry the bearer credential of the configured user:

- ``GET  /chat/messages/{roomId}`` — message backlog of a room
- ``GET  /chat/getUser``           — identity of the logged-in user
- ``POST /chat/sendMessage``       — persist an authored message
- ``POST /articles/{roomId}/rent`` — auxiliary rent action of the room's article
"""
import asyncio
import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import aiohttp

from chatroom_client.chat_errors import ApiError, FetchFailure, PersistFailure
from chatroom_client.chat_models import ChatMessage
from chatroom_client.config import ChatClientConfig

logger = logging.getLogger(__name__)


class ChatRestApi:
    """Thin aiohttp wrapper around the chat backend's request/response calls."""

    def __init__(self, config: ChatClientConfig, session: Optional[aiohttp.ClientSession] = None):
        """Initialize the client.

        Args:
            config: Client configuration with base URL, token and timeout
            session: Optional shared aiohttp session; created lazily otherwise
        """
        self.config = config
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "ChatRestApi":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def start(self) -> None:
        """Create the HTTP session if none was provided."""
        if self._session is None:
            timeout = aiohttp.ClientTimeout(total=self.config.request_timeout)
            self._session = aiohttp.ClientSession(timeout=timeout)
            logger.debug(f"[API] Session started for {self.config.api_base_url}")

    async def close(self) -> None:
        """Close the HTTP session if this client owns it."""
        if self._owns_session and self._session is not None:
            session, self._session = self._session, None
            await session.close()

    def _build_headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        headers.update(self.config.auth_headers())
        return headers

    async def _get_json(self, path: str, resource: str) -> Any:
        await self.start()
        url = self.config.api_url(path)
        try:
            async with self._session.get(url, headers=self._build_headers()) as resp:
                if resp.status != 200:
                    raise FetchFailure(f"Failed to load {resource}: HTTP {resp.status}", resource, resp.status)
                try:
                    return await resp.json(content_type=None)
                except ValueError as e:
                    raise FetchFailure(f"Invalid JSON for {resource}: {e}", resource, resp.status) from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise FetchFailure(f"Failed to load {resource}: {e}", resource) from e

    async def _post(self, path: str, body: Any) -> int:
        """POST a JSON body and return the status. Transport errors propagate."""
        await self.start()
        url = self.config.api_url(path)
        async with self._session.post(url, json=body, headers=self._build_headers()) as resp:
            await resp.read()
            return resp.status

    async def get_messages(self, room_id: str) -> Any:
        """Raw backlog of a room, expected to be a JSON array."""
        return await self._get_json(f"/chat/messages/{quote(str(room_id), safe='')}", "messages")

    async def get_user(self) -> Any:
        """Raw identity object of the logged-in user."""
        return await self._get_json("/chat/getUser", "user")

    async def send_message(self, message: ChatMessage) -> None:
        """Persist an authored message. The acknowledgement body is not used."""
        try:
            status = await self._post("/chat/sendMessage", message.to_wire())
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise PersistFailure(f"Failed to persist message: {e}") from e
        if not 200 <= status < 300:
            raise PersistFailure(f"Failed to persist message: HTTP {status}", status)

    async def rent_article(self, room_id: str) -> None:
        """Confirm renting the article the room is about."""
        try:
            status = await self._post(f"/articles/{quote(str(room_id), safe='')}/rent", {})
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ApiError(f"Rent request failed: {e}") from e
        if not 200 <= status < 300:
            raise ApiError(f"Rent request failed: HTTP {status}", status)
        logger.info(f"[API] Rented article of room {room_id}")
