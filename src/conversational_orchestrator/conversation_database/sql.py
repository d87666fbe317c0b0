"""
SQLAlchemy repositories.

Works with any async SQLAlchemy driver; the default configuration uses SQLite
through 'aiosqlite'. Message sequence numbers come from the autoincrementing
primary key of the 'messages' table. Each repository call runs in its own
session and transaction, so concurrent writers are serialized by the database.
"""

from pathlib import Path
from typing import Any

from loguru import logger
from sqlalchemy import JSON, Integer, String, Text, delete, select, update
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from conversational_orchestrator.conversation_database.data_models.chat import Chat, ChatDatabase, FileDescriptor
from conversational_orchestrator.conversation_database.data_models.message import (
    Message,
    MessageDatabase,
    MessageRole,
)


class Base(DeclarativeBase):
    pass


class ChatRecord(Base):
    __tablename__ = "chats"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[str] = mapped_column(String, nullable=False)
    focus_mode: Mapped[str] = mapped_column(String, nullable=False)
    files: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)


class MessageRecord(Base):
    __tablename__ = "messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    message_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    chat_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    role: Mapped[str] = mapped_column(String, nullable=False)
    content: Mapped[str | None] = mapped_column(Text, nullable=True)
    sources: Mapped[list[dict[str, Any]] | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[str] = mapped_column(String, nullable=False)


def _to_chat(record: ChatRecord) -> Chat:
    return Chat(
        id=record.id,
        title=record.title,
        created_at=record.created_at,
        focus_mode=record.focus_mode,
        files=[FileDescriptor.model_validate(file) for file in record.files or []],
    )


def _to_message(record: MessageRecord) -> Message:
    return Message(
        id=record.id,
        message_id=record.message_id,
        chat_id=record.chat_id,
        role=MessageRole(record.role),
        content=record.content,
        sources=record.sources,
        created_at=record.created_at,
    )


class SQLDatabase:
    """Engine and session factory shared by the SQL repositories."""

    def __init__(self, url: str, echo: bool = False) -> None:
        self.url = url
        self.engine: AsyncEngine = create_async_engine(url, echo=echo)
        self.sessions = async_sessionmaker(self.engine, expire_on_commit=False)

    async def create_tables(self) -> None:
        url = self.engine.url
        if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)
        async with self.engine.begin() as connection:
            await connection.run_sync(Base.metadata.create_all)
        logger.info(f"Database schema ready at {self.engine.url.render_as_string(hide_password=True)}")

    async def dispose(self) -> None:
        await self.engine.dispose()


class SQLChatDatabase(ChatDatabase):
    def __init__(self, database: SQLDatabase) -> None:
        self.sessions = database.sessions

    async def create_chat(self, chat: Chat) -> Chat:
        async with self.sessions.begin() as session:
            session.add(
                ChatRecord(
                    id=chat.id,
                    title=chat.title,
                    created_at=chat.created_at,
                    focus_mode=chat.focus_mode,
                    files=[file.model_dump(by_alias=True) for file in chat.files],
                )
            )
        return chat

    async def get_chat_by_id(self, chat_id: str) -> Chat | None:
        async with self.sessions() as session:
            record = await session.get(ChatRecord, chat_id)
            return _to_chat(record) if record else None

    async def get_chats(self) -> list[Chat]:
        async with self.sessions() as session:
            records = (await session.scalars(select(ChatRecord).order_by(ChatRecord.created_at.desc()))).all()
            return [_to_chat(record) for record in records]

    async def update_chat_files(self, chat_id: str, files: list[FileDescriptor]) -> None:
        async with self.sessions.begin() as session:
            await session.execute(
                update(ChatRecord)
                .where(ChatRecord.id == chat_id)
                .values(files=[file.model_dump(by_alias=True) for file in files])
            )

    async def delete_chat(self, chat_id: str) -> bool:
        async with self.sessions.begin() as session:
            result = await session.execute(delete(ChatRecord).where(ChatRecord.id == chat_id))
            return bool(result.rowcount)


class SQLMessageDatabase(MessageDatabase):
    def __init__(self, database: SQLDatabase) -> None:
        self.sessions = database.sessions

    async def create_message(self, message: Message) -> Message:
        async with self.sessions.begin() as session:
            record = MessageRecord(
                message_id=message.message_id,
                chat_id=message.chat_id,
                role=message.role.value,
                content=message.content,
                sources=message.sources,
                created_at=message.created_at,
            )
            session.add(record)
            await session.flush()
            return message.model_copy(update={"id": record.id})

    async def get_message(self, chat_id: str, message_id: str) -> Message | None:
        async with self.sessions() as session:
            record = await session.scalar(
                select(MessageRecord)
                .where(MessageRecord.chat_id == chat_id, MessageRecord.message_id == message_id)
                .order_by(MessageRecord.id)
                .limit(1)
            )
            return _to_message(record) if record else None

    async def get_messages_by_chat_id(self, chat_id: str) -> list[Message]:
        async with self.sessions() as session:
            records = (
                await session.scalars(
                    select(MessageRecord).where(MessageRecord.chat_id == chat_id).order_by(MessageRecord.id)
                )
            ).all()
            return [_to_message(record) for record in records]

    async def delete_messages_after(self, chat_id: str, sequence_id: int) -> int:
        async with self.sessions.begin() as session:
            result = await session.execute(
                delete(MessageRecord).where(MessageRecord.chat_id == chat_id, MessageRecord.id > sequence_id)
            )
            return result.rowcount or 0

    async def delete_messages_by_chat_id(self, chat_id: str) -> int:
        async with self.sessions.begin() as session:
            result = await session.execute(delete(MessageRecord).where(MessageRecord.chat_id == chat_id))
            return result.rowcount or 0
