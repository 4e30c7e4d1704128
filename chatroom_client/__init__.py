"""chatroom-client — real-time chat room session package."""

from chatroom_client.chat_models import ChatMessage, ChatUser, ConnectionState, MessageType, SendOutcome
from chatroom_client.chat_errors import (
    ApiError, ChannelNotReady, ChatError, ConnectionFailure, EmptyMessage, FetchFailure,
    LedgerError, NotReadyToJoin, PersistFailure, SendRejected,
)
from chatroom_client.config import ChatClientConfig, ReconnectPolicy
from chatroom_client.message_ledger import MessageLedger
from chatroom_client.history_loader import HistoryLoader
from chatroom_client.send_coordinator import InputBuffer, SendCoordinator
from chatroom_client.session_controller import ChatSession, ChatSessionController

__all__ = [
    "ChatMessage",
    "ChatUser",
    "ConnectionState",
    "MessageType",
    "SendOutcome",
    "ChatError",
    "ConnectionFailure",
    "FetchFailure",
    "SendRejected",
    "EmptyMessage",
    "ChannelNotReady",
    "PersistFailure",
    "LedgerError",
    "NotReadyToJoin",
    "ApiError",
    "ChatClientConfig",
    "ReconnectPolicy",
    "MessageLedger",
    "HistoryLoader",
    "InputBuffer",
    "SendCoordinator",
    "ChatSession",
    "ChatSessionController",
    "TerminalChatController",
]


def __getattr__(name: str):
    if name == "TerminalChatController":
        from chatroom_client.terminal import TerminalChatController
        return TerminalChatController
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
