"""
In-process repositories.

Used by tests and for running the server without a database. Records are
copied on the way in and out so callers never share mutable state with the
store.
"""

import itertools

from conversational_orchestrator.conversation_database.data_models.chat import Chat, ChatDatabase, FileDescriptor
from conversational_orchestrator.conversation_database.data_models.message import Message, MessageDatabase


class InMemoryChatDatabase(ChatDatabase):
    def __init__(self) -> None:
        self.chats: dict[str, Chat] = {}

    async def create_chat(self, chat: Chat) -> Chat:
        if chat.id in self.chats:
            raise ValueError(f"Chat with id {chat.id} already exists")
        self.chats[chat.id] = chat.model_copy(deep=True)
        return chat

    async def get_chat_by_id(self, chat_id: str) -> Chat | None:
        chat = self.chats.get(chat_id)
        return chat.model_copy(deep=True) if chat else None

    async def get_chats(self) -> list[Chat]:
        return [chat.model_copy(deep=True) for chat in reversed(self.chats.values())]

    async def update_chat_files(self, chat_id: str, files: list[FileDescriptor]) -> None:
        chat = self.chats.get(chat_id)
        if chat is None:
            raise ValueError(f"Chat with id {chat_id} not found")
        self.chats[chat_id] = chat.model_copy(update={"files": list(files)}, deep=True)

    async def delete_chat(self, chat_id: str) -> bool:
        return self.chats.pop(chat_id, None) is not None


class InMemoryMessageDatabase(MessageDatabase):
    def __init__(self) -> None:
        self.messages: list[Message] = []
        self._sequence = itertools.count(1)

    async def create_message(self, message: Message) -> Message:
        stored = message.model_copy(update={"id": next(self._sequence)}, deep=True)
        self.messages.append(stored)
        return stored.model_copy(deep=True)

    async def get_message(self, chat_id: str, message_id: str) -> Message | None:
        for message in self.messages:
            if message.chat_id == chat_id and message.message_id == message_id:
                return message.model_copy(deep=True)
        return None

    async def get_messages_by_chat_id(self, chat_id: str) -> list[Message]:
        return [message.model_copy(deep=True) for message in self.messages if message.chat_id == chat_id]

    async def delete_messages_after(self, chat_id: str, sequence_id: int) -> int:
        kept = [m for m in self.messages if not (m.chat_id == chat_id and m.id is not None and m.id > sequence_id)]
        deleted = len(self.messages) - len(kept)
        self.messages = kept
        return deleted

    async def delete_messages_by_chat_id(self, chat_id: str) -> int:
        kept = [m for m in self.messages if m.chat_id != chat_id]
        deleted = len(self.messages) - len(kept)
        self.messages = kept
        return deleted
