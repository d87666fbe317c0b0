"""
History reconciliation.

'HistoryReconciler.reconcile' brings the stored chat in line with the turn that
was just submitted, before any output of that turn is persisted:

1. the chat is created on its first turn (titled with the turn's content), or
   its file set is replaced when the turn attaches a different one;
2. the user message is inserted for a new turn; for a resubmitted turn (same
   message id already stored in the chat) every later message is deleted and
   the stored user message is kept as it is, content included.
"""

from collections.abc import Callable

from loguru import logger

from conversational_orchestrator.conversation_database.data_models.chat import (
    Chat,
    ChatDatabase,
    FileDescriptor,
    serialize_files,
)
from conversational_orchestrator.conversation_database.data_models.message import (
    Message,
    MessageDatabase,
    MessageRole,
)
from conversational_orchestrator.schemas import Turn
from conversational_orchestrator.utils.time import get_current_timestamp

FileDescriptorDeriver = Callable[[str], FileDescriptor]


class HistoryReconciler:
    def __init__(
        self,
        chat_db: ChatDatabase,
        message_db: MessageDatabase,
        derive_file: FileDescriptorDeriver,
    ) -> None:
        self.chat_db = chat_db
        self.message_db = message_db
        self.derive_file = derive_file

    async def reconcile(self, turn: Turn, focus_mode: str, file_ids: list[str]) -> Message:
        """Persist 'turn' and return the stored user message it maps to."""
        files = [self.derive_file(file_id) for file_id in file_ids]
        await self._sync_chat(turn, focus_mode, files)

        existing = await self.message_db.get_message(turn.chat_id, turn.message_id)
        if existing is None:
            user_message = await self.message_db.create_message(
                Message(
                    message_id=turn.message_id,
                    chat_id=turn.chat_id,
                    role=MessageRole.USER,
                    content=turn.content,
                    created_at=get_current_timestamp(),
                )
            )
            logger.debug(f"Stored user message {turn.message_id!r} in chat {turn.chat_id!r}")
            return user_message

        if existing.id is None:
            raise ValueError(f"Stored message {turn.message_id!r} has no sequence number")
        deleted = await self.message_db.delete_messages_after(turn.chat_id, existing.id)
        logger.info(
            f"Resubmitted message {turn.message_id!r} in chat {turn.chat_id!r}: discarded {deleted} later messages"
        )
        return existing

    async def _sync_chat(self, turn: Turn, focus_mode: str, files: list[FileDescriptor]) -> None:
        chat = await self.chat_db.get_chat_by_id(turn.chat_id)
        if chat is None:
            await self.chat_db.create_chat(
                Chat(
                    id=turn.chat_id,
                    title=turn.content,
                    created_at=get_current_timestamp(),
                    focus_mode=focus_mode,
                    files=files,
                )
            )
            logger.info(f"Created chat {turn.chat_id!r} (focus mode {focus_mode!r})")
        elif serialize_files(chat.files) != serialize_files(files):
            await self.chat_db.update_chat_files(turn.chat_id, files)
            logger.debug(f"Updated files of chat {turn.chat_id!r}: {[file.file_id for file in files]}")
