# api/index.py
from mangum import Mangum

from chat_relay.relay import app

# Mangum translates API Gateway / Lambda events into ASGI calls on the relay.
handler = Mangum(app)
