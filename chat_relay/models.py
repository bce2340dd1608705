from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict

# --- Fixed reply texts ---
MISSING_MESSAGE_ERROR = "Message is required"
NOT_CONFIGURED_RESPONSE = (
    "I'm sorry, but the AI service is not properly configured. "
    "Please contact the administrator to set up the Gemini API key."
)
NO_CANDIDATE_RESPONSE = "I'm sorry, I couldn't generate a response at this time."
FAILURE_RESPONSE = (
    "I'm sorry, I encountered an error while processing your message. Please try again."
)

Role = Literal["user", "assistant"]


# --- Relay payloads ---
class ChatResponse(BaseModel):
    response: str


class ErrorResponse(BaseModel):
    error: str


# --- Gemini generateContent envelope ---
class Part(BaseModel):
    text: str


class Content(BaseModel):
    parts: List[Part]


class GenerateContentRequest(BaseModel):
    contents: List[Content]

    @classmethod
    def for_message(cls, text: str) -> "GenerateContentRequest":
        """Wrap a single user message; no history is ever sent."""
        return cls(contents=[Content(parts=[Part(text=text)])])


# --- Persisted chat records ---
class Conversation(BaseModel):
    id: str
    title: str
    user_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class Message(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    conversation_id: str
    role: Role
    content: str
    created_at: datetime
