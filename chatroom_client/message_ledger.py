"""In-memory ordered message log of the active room.

The ledger merges two sources into one append-only sequence: the backlog
(seeded once) and live arrivals (appended in receipt order). Live messages
that arrive before the backlog are buffered and replayed right after it.
"""
import logging
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Set, Tuple

from chatroom_client.chat_errors import LedgerError
from chatroom_client.chat_models import ChatMessage, ChatUser

logger = logging.getLogger(__name__)

LedgerView = Tuple[ChatMessage, ...]
LedgerObserver = Callable[[LedgerView], None]


class MessageLedger:
    """De-duplicated, arrival-ordered messages of one room.

    Messages carrying a ``client_message_id`` are recorded once; a second
    delivery with the same id (e.g. persisted backlog plus live echo) is
    ignored. Messages without an id are never de-duplicated.
    """

    def __init__(self, max_messages: Optional[int] = None):
        """Initialize an empty, unseeded ledger.

        Args:
            max_messages: Optional bound of the visible sequence. When
                exceeded the oldest messages are evicted; the ids of the
                last ``max_messages`` evicted ones still count as seen.
                None keeps all.
        """
        if max_messages is not None and max_messages <= 0:
            raise ValueError("max_messages must be positive")
        self.max_messages = max_messages
        self._messages: List[ChatMessage] = []
        self._pending: List[ChatMessage] = []
        self._seen_ids: Set[str] = set()
        self._retired_ids: Dict[str, None] = {}
        self._seeded = False
        self._observers: List[LedgerObserver] = []

    @property
    def is_seeded(self) -> bool:
        return self._seeded

    @property
    def pending_count(self) -> int:
        """Live arrivals buffered until the backlog lands."""
        return len(self._pending)

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[ChatMessage]:
        return iter(self.current_view())

    def current_view(self) -> LedgerView:
        """Snapshot of the visible sequence."""
        return tuple(self._messages)

    def add_observer(self, observer: LedgerObserver) -> None:
        """Register a callback invoked with the new view after every visible change."""
        if observer not in self._observers:
            self._observers.append(observer)

    def remove_observer(self, observer: LedgerObserver) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    def seed(self, initial: Sequence[ChatMessage]) -> None:
        """Set the backlog. Buffered live arrivals follow it in arrival order.

        Raises:
            LedgerError: If the ledger was already seeded
        """
        if self._seeded:
            raise LedgerError("Ledger was already seeded")

        buffered = self._pending
        self._pending = []
        self._seen_ids = set()
        self._retired_ids = {}
        self._messages = []
        for message in list(initial) + buffered:
            self._record(message)
        self._seeded = True
        self._evict()
        logger.debug(
            f"[LEDGER] Seeded with {len(initial)} backlog and {len(buffered)} buffered message(s)"
        )
        self._notify()

    def append(self, message: ChatMessage) -> bool:
        """Add a live arrival. Returns False if it was dropped as a duplicate."""
        if self._is_duplicate(message):
            logger.debug(f"[LEDGER] Ignored duplicate message {message.client_message_id}")
            return False

        if not self._seeded:
            self._pending.append(message)
            if message.client_message_id:
                self._seen_ids.add(message.client_message_id)
            return True

        self._record(message)
        self._evict()
        self._notify()
        return True

    def _is_duplicate(self, message: ChatMessage) -> bool:
        client_id = message.client_message_id
        return client_id is not None and (client_id in self._seen_ids or client_id in self._retired_ids)

    def _record(self, message: ChatMessage) -> None:
        if self._is_duplicate(message):
            return
        self._messages.append(message)
        if message.client_message_id:
            self._seen_ids.add(message.client_message_id)

    def _evict(self) -> None:
        if self.max_messages is None:
            return
        overflow = len(self._messages) - self.max_messages
        if overflow <= 0:
            return
        for message in self._messages[:overflow]:
            if message.client_message_id:
                self._seen_ids.discard(message.client_message_id)
                self._retired_ids[message.client_message_id] = None
        del self._messages[:overflow]
        while len(self._retired_ids) > self.max_messages:
            del self._retired_ids[next(iter(self._retired_ids))]

    def _notify(self) -> None:
        view = self.current_view()
        for observer in list(self._observers):
            try:
                observer(view)
            except Exception as e:
                logger.error(f"[LEDGER] Observer failed: {e}")


def is_own(message: ChatMessage, user: Optional[ChatUser]) -> bool:
    """True if ``message`` was authored by ``user``. Unknown user means nothing is own."""
    return user is not None and message.sender == user.name
