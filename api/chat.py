# api/chat.py
# Vercel serves the ASGI `app` exported here at /api/chat.
# The relay accepts POST at "/" as well as "/chat-with-ai".
from chat_relay.relay import app

__all__ = ["app"]
