"""Error taxonomy for chat room sessions.

None of these errors is fatal to the process; each one degrades a single
session and is recovered from by leaving and rejoining the room.
"""


class ChatError(Exception):
    """Base class for all chat client errors."""
    pass


class ConnectionFailure(ChatError):
    """The live channel never reached the open state or dropped unexpectedly."""
    def __init__(self, message: str, room_id: str):
        self.room_id = room_id
        super().__init__(message)


class FetchFailure(ChatError):
    """Backlog or current-user resolution failed."""
    def __init__(self, message: str, resource: str, status: int | None = None):
        self.resource = resource
        self.status = status
        super().__init__(message)


class SendRejected(ChatError):
    """A send was refused before any dispatch path was attempted."""
    pass


class EmptyMessage(SendRejected):
    """The message text is empty."""
    def __init__(self, message: str = "Please enter a message"):
        super().__init__(message)


class ChannelNotReady(SendRejected):
    """The live channel is not open."""
    def __init__(self, message: str = "Chat connection is not open"):
        super().__init__(message)


class PersistFailure(ChatError):
    """The durability call for an authored message failed."""
    def __init__(self, message: str, status: int | None = None):
        self.status = status
        super().__init__(message)


class LedgerError(ChatError):
    """The message ledger was used out of order."""
    pass


class NotReadyToJoin(ChatError):
    """Credential or routing context required to join a room is missing."""
    pass


class ApiError(ChatError):
    """A REST call outside the messaging core failed."""
    def __init__(self, message: str, status: int | None = None):
        self.status = status
        super().__init__(message)
