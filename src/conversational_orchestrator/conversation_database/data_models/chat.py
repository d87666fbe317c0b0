"""
Chat data model and storage interface.

A chat is created lazily by the first turn of a conversation. Afterwards only
its 'files' change: they always mirror the file set of the latest turn.

The 'ChatDatabase' ABC is the pluggable storage backend for chat records.
Concrete implementations ('InMemoryChatDatabase', 'SQLChatDatabase') are
interchangeable at construction time, keeping the orchestrator and API layer
free of storage-specific code.
"""

import json
from abc import ABC, abstractmethod
from collections.abc import Sequence

from pydantic import Field

from conversational_orchestrator.schemas import CamelModel


class FileDescriptor(CamelModel):
    """Name and id of an uploaded file attached to a chat."""

    name: str
    file_id: str


def serialize_files(files: Sequence[FileDescriptor]) -> str:
    """Serialized form of a file set; two file sets are equal when these strings are."""
    return json.dumps([file.model_dump(by_alias=True) for file in files])


class Chat(CamelModel):
    """A conversation, keyed by the client-chosen 'id'."""

    id: str
    title: str
    created_at: str
    focus_mode: str
    files: list[FileDescriptor] = Field(default_factory=list)


class ChatDatabase(ABC):
    """Abstract repository for 'Chat' records."""

    @abstractmethod
    async def create_chat(self, chat: Chat) -> Chat:
        pass

    @abstractmethod
    async def get_chat_by_id(self, chat_id: str) -> Chat | None:
        pass

    @abstractmethod
    async def get_chats(self) -> list[Chat]:
        """Return every chat, most recently created first."""
        pass

    @abstractmethod
    async def update_chat_files(self, chat_id: str, files: list[FileDescriptor]) -> None:
        pass

    @abstractmethod
    async def delete_chat(self, chat_id: str) -> bool:
        pass
