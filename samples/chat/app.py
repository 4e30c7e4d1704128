#!/usr/bin/env python3
"""Terminal chat sample — join a room from the console.

    cd samples/chat
    python app.py 42

Requires CHAT_TOKEN in your environment or a .env file, and a chat backend
at CHAT_API_BASE_URL (default: http://localhost:8080).

Environment variables:
    CHAT_API_BASE_URL   — REST backend
    CHAT_WS_BASE_URL    — WebSocket base (derived from the REST URL if unset)
    CHAT_TOKEN          — Bearer credential
    CHAT_DISPLAY_NAME   — Name shown until the backend reports the user
"""
import sys

from chatroom_client.terminal import main

if __name__ == "__main__":
    sys.exit(main())
