"""
Message data model and storage interface.

Messages of a chat form a flat list ordered by 'id', a sequence number the
storage assigns on insert. That order is the canonical chronology of the chat:
a user message, the source messages collected while answering it, then the
assistant message. Editing a turn discards every message after it, which is
why 'delete_messages_after' works on sequence numbers.

The 'MessageDatabase' ABC is the pluggable storage backend. Concrete
implementations: 'InMemoryMessageDatabase', 'SQLMessageDatabase'.
"""

from abc import ABC, abstractmethod
from enum import StrEnum
from typing import Any

from conversational_orchestrator.schemas import CamelModel


class MessageRole(StrEnum):
    USER = "user"
    ASSISTANT = "assistant"
    SOURCE = "source"


class Message(CamelModel):
    """
    A single persisted message.

    'id' is None until the storage assigns it. 'content' is None for source
    messages and 'sources' is None for every other role.
    """

    id: int | None = None
    message_id: str
    chat_id: str
    role: MessageRole
    content: str | None = None
    sources: list[dict[str, Any]] | None = None
    created_at: str


class MessageDatabase(ABC):
    """Abstract repository for 'Message' records."""

    @abstractmethod
    async def create_message(self, message: Message) -> Message:
        """Insert 'message' and return it with its assigned sequence number."""
        pass

    @abstractmethod
    async def get_message(self, chat_id: str, message_id: str) -> Message | None:
        """Return the first message of 'chat_id' with the external id 'message_id'."""
        pass

    @abstractmethod
    async def get_messages_by_chat_id(self, chat_id: str) -> list[Message]:
        """Return the messages of 'chat_id' in sequence order."""
        pass

    @abstractmethod
    async def delete_messages_after(self, chat_id: str, sequence_id: int) -> int:
        """Delete every message of 'chat_id' whose 'id' is greater than 'sequence_id'; return the count."""
        pass

    @abstractmethod
    async def delete_messages_by_chat_id(self, chat_id: str) -> int:
        pass
