"""Test package for chatroom-client."""
