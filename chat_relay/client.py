"""
Chat client orchestration.

A user turn runs in a fixed order: persist the user message, ask the relay,
persist the assistant reply, reload the thread from storage. Failures are
logged and surfaced as ChatClientError with a short description meant for
the end user. Nothing is retried.
"""

import logging
from typing import Dict, List, Optional

import httpx

from chat_relay.config import Settings
from chat_relay.exceptions import ChatClientError, ChatRelayError, RelayError
from chat_relay.models import Conversation, Message
from chat_relay.store import ConversationStore

logger = logging.getLogger(__name__)

NEW_CHAT_TITLE = "New Chat"
TITLE_PREFIX_LENGTH = 50


def title_for(text: str) -> str:
    """Default conversation title: a truncated prefix of the first message."""
    return text[:TITLE_PREFIX_LENGTH] + "..."


class RelayClient:
    """Invokes the chat-with-ai relay for a single message."""

    def __init__(
        self,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self.headers = headers or {}
        self.transport = transport

    @classmethod
    def from_settings(cls, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        if not settings.relay_url:
            raise RelayError("RELAY_URL must be set")
        headers = {}
        if settings.supabase_anon_key:
            headers["apikey"] = settings.supabase_anon_key
            headers["Authorization"] = f"Bearer {settings.supabase_access_token or settings.supabase_anon_key}"
        return cls(settings.relay_url, headers=headers, transport=transport)

    async def ask(self, message: str) -> str:
        async with httpx.AsyncClient(transport=self.transport) as client:
            try:
                response = await client.post(self.url, json={"message": message}, headers=self.headers)
            except httpx.HTTPError as e:
                raise RelayError(f"Relay unreachable: {e}") from e

        try:
            data = response.json()
        except ValueError as e:
            raise RelayError(
                f"Relay returned a non-JSON body ({response.status_code})",
                {"status_code": response.status_code},
            ) from e

        # A 500 from the relay still carries displayable text in "response".
        reply = data.get("response") if isinstance(data, dict) else None
        if not isinstance(reply, str):
            error = data.get("error") if isinstance(data, dict) else None
            raise RelayError(
                error or f"Relay returned no response ({response.status_code})",
                {"status_code": response.status_code},
            )
        return reply


class ChatSession:
    """Conversation list and current thread for one user."""

    def __init__(self, store: ConversationStore, relay: RelayClient, user_id: Optional[str] = None):
        self.store = store
        self.relay = relay
        self.user_id = user_id
        self.conversations: List[Conversation] = []
        self.current_conversation: Optional[str] = None
        self.messages: List[Message] = []
        self.loading = False
        # user text shown before the stored row comes back on reload
        self.pending_echo: Optional[str] = None

    async def refresh_conversations(self) -> List[Conversation]:
        try:
            self.conversations = await self.store.list_conversations()
        except ChatRelayError as e:
            logger.error("Error loading conversations: %s", e)
            raise ChatClientError("Failed to load conversations", e) from e
        return self.conversations

    async def load_messages(self, conversation_id: str) -> List[Message]:
        try:
            self.messages = await self.store.list_messages(conversation_id)
        except ChatRelayError as e:
            logger.error("Error loading messages: %s", e)
            raise ChatClientError("Failed to load messages", e) from e
        return self.messages

    async def select(self, conversation_id: str) -> List[Message]:
        self.current_conversation = conversation_id
        return await self.load_messages(conversation_id)

    async def new_conversation(self) -> Conversation:
        try:
            conversation = await self.store.create_conversation(NEW_CHAT_TITLE, user_id=self.user_id)
        except ChatRelayError as e:
            logger.error("Error creating conversation: %s", e)
            raise ChatClientError("Failed to create new conversation", e) from e

        self.current_conversation = conversation.id
        self.messages = []
        await self.refresh_conversations()
        return conversation

    async def send(self, text: str) -> Optional[str]:
        """
        Run one user turn and return the assistant's reply.

        Blank input, or a call made while another send is still running,
        is ignored and returns None.
        """
        if not text.strip() or self.loading:
            return None

        conversation_id = self.current_conversation
        if conversation_id is None:
            try:
                conversation = await self.store.create_conversation(title_for(text), user_id=self.user_id)
            except ChatRelayError as e:
                logger.error("Error creating conversation: %s", e)
                raise ChatClientError("Failed to create conversation", e) from e
            conversation_id = conversation.id
            self.current_conversation = conversation_id
            await self.refresh_conversations()

        self.loading = True
        try:
            await self.store.create_message(conversation_id, "user", text)
            self.pending_echo = text

            reply = await self.relay.ask(text)

            await self.store.create_message(conversation_id, "assistant", reply)
            self.messages = await self.store.list_messages(conversation_id)
            self.conversations = await self.store.list_conversations()
            return reply
        except ChatRelayError as e:
            logger.error("Error sending message: %s", e)
            raise ChatClientError("Failed to send message", e) from e
        finally:
            self.pending_echo = None
            self.loading = False
