"""Shared exceptions for the chat relay and its client."""
from typing import Any, Dict, Optional


class ChatRelayError(Exception):
    """Base exception for chat-relay."""

    def __init__(
        self,
        message: str,
        error_code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class UpstreamError(ChatRelayError):
    """Raised when the generation API cannot be reached or rejects a call."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "UPSTREAM_ERROR", details)


class StorageError(ChatRelayError):
    """Raised when a conversation store operation fails."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "STORAGE_ERROR", details)


class RelayError(ChatRelayError):
    """Raised by the client when the relay gives no displayable reply."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "RELAY_ERROR", details)


class ChatClientError(ChatRelayError):
    """A failed chat action, carrying the text to show the end user."""

    def __init__(self, description: str, cause: Optional[Exception] = None):
        self.description = description
        self.cause = cause
        details = {"cause": str(cause)} if cause else None
        super().__init__(description, "CHAT_CLIENT_ERROR", details)
