"""
The chat-with-ai relay.

Receives {"message": ...}, asks Gemini for a reply and answers
{"response": ...}. Every response, including failures, carries the same
CORS headers so a browser client can always read it.
"""

import asyncio
import logging
import sys
from typing import Any, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from chat_relay.config import Settings, get_settings
from chat_relay.models import (
    ChatResponse,
    ErrorResponse,
    FAILURE_RESPONSE,
    MISSING_MESSAGE_ERROR,
    NOT_CONFIGURED_RESPONSE,
)
from chat_relay.tracing import RelayTrace
from chat_relay.upstream import GeminiClient

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}

logging.basicConfig(
    level=getattr(logging, get_settings().log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)


def json_response(content: Any, status_code: int = 200) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=content, headers=CORS_HEADERS)


def failure_response() -> JSONResponse:
    # Still a "response" field: the client renders it as chat text.
    return json_response(ChatResponse(response=FAILURE_RESPONSE).model_dump(), status_code=500)


# --- FastAPI App Initialization ---
app = FastAPI(title="chat-relay")


@app.middleware("http")
async def cors_middleware(request: Request, call_next):
    """Answer preflight probes immediately and stamp CORS headers on the rest."""
    if request.method == "OPTIONS":
        return PlainTextResponse("ok", headers=CORS_HEADERS)
    response = await call_next(request)
    response.headers.update(CORS_HEADERS)
    return response


# --- Master Error Handler ---
@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled error in chat-with-ai: %s", exc, exc_info=exc)
    return failure_response()


# --- Dependencies ---
def get_gemini_client(settings: Settings = Depends(get_settings)) -> Optional[GeminiClient]:
    return GeminiClient.from_settings(settings)


def read_message(payload: Any) -> Optional[str]:
    """
    Return the message to relay, or None when it is missing or blank.

    A JSON null body has no fields to read and is treated as a parse failure.
    """
    if payload is None:
        raise ValueError("Request body is null")
    message = payload.get("message") if isinstance(payload, dict) else None
    if not isinstance(message, str) or not message.strip():
        return None
    return message


# --- Main Chat Endpoint ---
@app.post("/")
@app.post("/chat-with-ai")
async def chat_with_ai(
    request: Request,
    settings: Settings = Depends(get_settings),
    gemini: Optional[GeminiClient] = Depends(get_gemini_client),
):
    try:
        payload = await request.json()

        message = read_message(payload)
        if message is None:
            return json_response(ErrorResponse(error=MISSING_MESSAGE_ERROR).model_dump(), status_code=400)

        if gemini is None:
            logger.error("GEMINI_API_KEY not found in environment variables")
            return json_response(ChatResponse(response=NOT_CONFIGURED_RESPONSE).model_dump())

        # Langfuse calls block; keep them off the event loop.
        trace = await asyncio.to_thread(RelayTrace, settings, message)
        try:
            text = await gemini.generate(message)
        except Exception as e:
            await asyncio.to_thread(trace.fail, e)
            raise
        await asyncio.to_thread(trace.succeed, text)

        return json_response(ChatResponse(response=text).model_dump())

    except Exception as e:
        logger.error("Error in chat-with-ai function: %s", e, exc_info=True)
        return failure_response()
