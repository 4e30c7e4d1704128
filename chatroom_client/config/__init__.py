from .chat_client_config import ChatClientConfig, ReconnectPolicy

__all__ = ["ChatClientConfig", "ReconnectPolicy"]
