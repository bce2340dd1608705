"""
Conversation storage used by the chat client.

The relay never touches storage; the client writes the user turn, calls the
relay, then writes the assistant turn. Two backends share one contract:
an in-memory store for local use and tests, and a Supabase (PostgREST)
store for the hosted tables `conversations` and `messages`.
"""

import itertools
import logging
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from chat_relay.config import Settings
from chat_relay.exceptions import StorageError
from chat_relay.models import Conversation, Message

logger = logging.getLogger(__name__)

ROLES = ("user", "assistant")


class ConversationStore(ABC):
    """CRUD contract for conversations and their messages."""

    @abstractmethod
    async def create_conversation(self, title: str, user_id: Optional[str] = None) -> Conversation:
        pass

    @abstractmethod
    async def list_conversations(self) -> List[Conversation]:
        """Most recently updated first."""
        pass

    @abstractmethod
    async def create_message(self, conversation_id: str, role: str, content: str) -> Message:
        pass

    @abstractmethod
    async def list_messages(self, conversation_id: str) -> List[Message]:
        """Oldest first."""
        pass


def _check_role(role: str) -> None:
    if role not in ROLES:
        raise StorageError(f"Invalid message role: {role!r}", {"role": role})


class InMemoryConversationStore(ConversationStore):
    """Dict-backed store. Ties on timestamps fall back to insertion order."""

    def __init__(self):
        self._conversations: Dict[str, Conversation] = {}
        self._messages: Dict[str, List[Message]] = {}
        self._touched: Dict[str, int] = {}
        self._counter = itertools.count()

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

    async def create_conversation(self, title: str, user_id: Optional[str] = None) -> Conversation:
        now = self._now()
        conversation = Conversation(
            id=str(uuid.uuid4()),
            title=title,
            user_id=user_id,
            created_at=now,
            updated_at=now,
        )
        self._conversations[conversation.id] = conversation
        self._messages[conversation.id] = []
        self._touched[conversation.id] = next(self._counter)
        return conversation

    async def list_conversations(self) -> List[Conversation]:
        return sorted(
            self._conversations.values(),
            key=lambda c: (c.updated_at, self._touched[c.id]),
            reverse=True,
        )

    async def create_message(self, conversation_id: str, role: str, content: str) -> Message:
        _check_role(role)
        if conversation_id not in self._conversations:
            raise StorageError(
                f"Conversation with identifier '{conversation_id}' not found",
                {"conversation_id": conversation_id},
            )

        now = self._now()
        message = Message(
            id=str(uuid.uuid4()),
            conversation_id=conversation_id,
            role=role,
            content=content,
            created_at=now,
        )
        # list order is insertion order, which is creation order
        self._messages[conversation_id].append(message)

        conversation = self._conversations[conversation_id]
        self._conversations[conversation_id] = conversation.model_copy(update={"updated_at": now})
        self._touched[conversation_id] = next(self._counter)
        return message

    async def list_messages(self, conversation_id: str) -> List[Message]:
        return list(self._messages.get(conversation_id, []))


class SupabaseConversationStore(ConversationStore):
    """Talks to the hosted tables through Supabase's PostgREST endpoint."""

    def __init__(
        self,
        url: str,
        api_key: str,
        access_token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = f"{url.rstrip('/')}/rest/v1"
        self.headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {access_token or api_key}",
            "Content-Type": "application/json",
        }
        self.transport = transport

    @classmethod
    def from_settings(cls, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        if not settings.supabase_url or not settings.supabase_anon_key:
            raise StorageError("SUPABASE_URL and SUPABASE_ANON_KEY must be set")
        return cls(
            url=settings.supabase_url,
            api_key=settings.supabase_anon_key,
            access_token=settings.supabase_access_token,
            transport=transport,
        )

    async def _request(
        self,
        method: str,
        table: str,
        params: Optional[Dict[str, str]] = None,
        json: Any = None,
    ) -> List[Dict[str, Any]]:
        logger.debug("Supabase %s %s params=%s", method, table, params)
        headers = dict(self.headers)
        if method == "POST":
            headers["Prefer"] = "return=representation"

        async with httpx.AsyncClient(transport=self.transport) as client:
            try:
                response = await client.request(
                    method, f"{self.base_url}/{table}", params=params, json=json, headers=headers
                )
                response.raise_for_status()
                data = response.json()
            except httpx.HTTPStatusError as e:
                raise StorageError(
                    f"Supabase {method} {table} failed: {e.response.status_code}",
                    {"status_code": e.response.status_code, "body": e.response.text},
                ) from e
            except (httpx.HTTPError, ValueError) as e:
                raise StorageError(f"Supabase {method} {table} failed: {e}") from e

        if not isinstance(data, list):
            raise StorageError(
                f"Supabase {method} {table} returned {type(data).__name__}, expected a list of rows",
                {"body": data},
            )
        return data

    @staticmethod
    def _single(rows: List[Dict[str, Any]], table: str) -> Dict[str, Any]:
        if not rows:
            raise StorageError(f"Supabase insert into {table} returned no row")
        return rows[0]

    async def create_conversation(self, title: str, user_id: Optional[str] = None) -> Conversation:
        rows = await self._request("POST", "conversations", json=[{"user_id": user_id, "title": title}])
        return self._parse(Conversation, self._single(rows, "conversations"))

    async def list_conversations(self) -> List[Conversation]:
        rows = await self._request(
            "GET", "conversations", params={"select": "*", "order": "updated_at.desc"}
        )
        return [self._parse(Conversation, row) for row in rows]

    async def create_message(self, conversation_id: str, role: str, content: str) -> Message:
        _check_role(role)
        rows = await self._request(
            "POST",
            "messages",
            json=[{"conversation_id": conversation_id, "role": role, "content": content}],
        )
        return self._parse(Message, self._single(rows, "messages"))

    async def list_messages(self, conversation_id: str) -> List[Message]:
        rows = await self._request(
            "GET",
            "messages",
            params={
                "select": "*",
                "conversation_id": f"eq.{conversation_id}",
                "order": "created_at.asc",
            },
        )
        return [self._parse(Message, row) for row in rows]

    @staticmethod
    def _parse(model, row: Dict[str, Any]):
        try:
            return model.model_validate(row)
        except ValidationError as e:
            raise StorageError(f"Unexpected {model.__name__} row from Supabase", {"row": row}) from e
