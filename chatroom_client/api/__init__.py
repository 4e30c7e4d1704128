"""Request/response API of the chat backend."""
from .chat_rest_api import ChatRestApi

__all__ = ["ChatRestApi"]
