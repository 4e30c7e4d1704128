from .channel import ChannelListener, ChatChannel, WebSocketChannel, create_channel

__all__ = ["ChannelListener", "ChatChannel", "WebSocketChannel", "create_channel"]
