"""
Shared fakes for the test suite.

Every external collaborator of the orchestrator is replaced by a small
deterministic stand-in: scripted chat models and embeddings, a static model
catalog, a handler that replays a fixed list of events, and repositories that
fail on demand. Coroutines are driven with 'asyncio.run' from plain test
functions.
"""

import json
from collections.abc import AsyncGenerator, Callable, Iterable
from pathlib import Path
from typing import Any

import numpy as np
import pytest
from numpy.typing import NDArray

from conversational_orchestrator.conversation_database.data_models.chat import Chat, FileDescriptor
from conversational_orchestrator.conversation_database.data_models.message import Message, MessageRole
from conversational_orchestrator.conversation_database.in_memory import InMemoryChatDatabase, InMemoryMessageDatabase
from conversational_orchestrator.embeddings.base import EmbeddingsModel
from conversational_orchestrator.handlers.base import ResponseEvent, SearchHandler, SourcesEvent, StreamEvent
from conversational_orchestrator.handlers.registry import HandlerRegistry
from conversational_orchestrator.llms.base import LLM, LLMMessage, Roles
from conversational_orchestrator.orchestrator import ChatOrchestrator
from conversational_orchestrator.providers.base import (
    ChatModelProviders,
    EmbeddingModelProviders,
    ModelCatalog,
    ModelHandle,
)
from conversational_orchestrator.schemas import ChatRequest, OptimizationMode


class ScriptedLLM(LLM):
    """Streams a fixed list of chunks and answers 'generate' with a fixed reply."""

    def __init__(self, chunks: Iterable[str] = ("Hello", ", ", "world"), reply: str = "", model_name: str = "scripted"):
        self.model_name = model_name
        self.chunks = list(chunks)
        self.reply = reply
        self.generate_calls: list[list[LLMMessage]] = []
        self.stream_calls: list[list[LLMMessage]] = []

    async def generate(self, conversation: list[LLMMessage]) -> LLMMessage:
        self.generate_calls.append(conversation)
        return LLMMessage(role=Roles.ASSISTANT, content=self.reply)

    async def generate_stream(self, conversation: list[LLMMessage]) -> AsyncGenerator[LLMMessage, None]:
        self.stream_calls.append(conversation)
        for chunk in self.chunks:
            yield LLMMessage(role=Roles.ASSISTANT, content=chunk)


class FailingLLM(ScriptedLLM):
    async def generate_stream(self, conversation: list[LLMMessage]) -> AsyncGenerator[LLMMessage, None]:
        yield LLMMessage(role=Roles.ASSISTANT, content="partial")
        raise RuntimeError("model backend unavailable")


class KeywordEmbeddings(EmbeddingsModel):
    """Bag-of-keywords vectors: one dimension per vocabulary word."""

    def __init__(self, vocabulary: Iterable[str] = ("pallet", "wood", "shipping", "warranty")):
        self.model_name = "keywords"
        self.vocabulary = list(vocabulary)
        self.calls: list[list[str]] = []

    async def get_embeddings(self, texts: str | list[str]) -> NDArray[np.float64]:
        if isinstance(texts, str):
            texts = [texts]
        self.calls.append(list(texts))
        return np.array(
            [[float(text.lower().count(word)) for word in self.vocabulary] for text in texts], dtype=np.float64
        )


class StaticCatalog(ModelCatalog):
    def __init__(self, chat: ChatModelProviders, embedding: EmbeddingModelProviders):
        self.chat = chat
        self.embedding = embedding

    async def get_chat_model_providers(self) -> ChatModelProviders:
        return self.chat

    async def get_embedding_model_providers(self) -> EmbeddingModelProviders:
        return self.embedding


def make_catalog(llm: LLM | None = None, embeddings: EmbeddingsModel | None = None) -> StaticCatalog:
    llm = llm or ScriptedLLM()
    embeddings = embeddings or KeywordEmbeddings()
    return StaticCatalog(
        chat={"scripted": {llm.model_name: ModelHandle(display_name="Scripted", model=llm)}},
        embedding={"keywords": {embeddings.model_name: ModelHandle(display_name="Keywords", model=embeddings)}},
    )


class ScriptedHandler(SearchHandler):
    """Replays 'events' verbatim, bypassing the terminal-event handling of 'SearchHandler'."""

    def __init__(
        self,
        events: Iterable[StreamEvent],
        on_start: Callable[[], Any] | None = None,
    ):
        self.events = list(events)
        self.on_start = on_start
        self.calls: list[dict[str, Any]] = []

    async def search_and_answer(  # type: ignore[override]
        self,
        query: str,
        history: list[LLMMessage],
        llm: LLM,
        embeddings: EmbeddingsModel,
        optimization_mode: OptimizationMode,
        file_ids: list[str],
        system_instructions: str,
    ) -> AsyncGenerator[StreamEvent, None]:
        self.calls.append(
            {
                "query": query,
                "history": history,
                "llm": llm,
                "embeddings": embeddings,
                "optimization_mode": optimization_mode,
                "file_ids": file_ids,
                "system_instructions": system_instructions,
            }
        )
        if self.on_start is not None:
            await self.on_start()
        for event in self.events:
            yield event

    async def _answer(self, *args: Any, **kwargs: Any) -> AsyncGenerator[ResponseEvent | SourcesEvent, None]:
        for event in self.events:
            if isinstance(event, (ResponseEvent, SourcesEvent)):
                yield event


class FailingMessageDatabase(InMemoryMessageDatabase):
    """Raises on insert for the given roles, behaves normally otherwise."""

    def __init__(self, failing_roles: Iterable[MessageRole]):
        super().__init__()
        self.failing_roles = set(failing_roles)

    async def create_message(self, message: Message) -> Message:
        if message.role in self.failing_roles:
            raise RuntimeError(f"cannot store {message.role} message")
        return await super().create_message(message)


class FailingChatDatabase(InMemoryChatDatabase):
    async def get_chat_by_id(self, chat_id: str) -> Chat | None:
        raise RuntimeError("database is locked")


async def events_from(events: Iterable[StreamEvent]) -> AsyncGenerator[StreamEvent, None]:
    for event in events:
        yield event


def parse_frames(body: bytes | str) -> list[dict[str, Any]]:
    text = body.decode() if isinstance(body, bytes) else body
    return [json.loads(line) for line in text.splitlines() if line.strip()]


def describe_file(file_id: str) -> FileDescriptor:
    return FileDescriptor(name=f"{file_id}.pdf", file_id=file_id)


def make_request(**overrides: Any) -> ChatRequest:
    payload: dict[str, Any] = {
        "message": {"messageId": "m1", "chatId": "c1", "content": "hello"},
        "optimizationMode": "balanced",
        "focusMode": "web",
        "history": [],
        "files": [],
    }
    payload.update(overrides)
    return ChatRequest.model_validate(payload)


def make_orchestrator(
    handler: SearchHandler,
    focus_mode: str = "web",
    catalog: ModelCatalog | None = None,
    chat_db: InMemoryChatDatabase | None = None,
    message_db: InMemoryMessageDatabase | None = None,
) -> ChatOrchestrator:
    return ChatOrchestrator(
        catalog=catalog or make_catalog(),
        registry=HandlerRegistry({focus_mode: handler}),
        chat_db=chat_db if chat_db is not None else InMemoryChatDatabase(),
        message_db=message_db if message_db is not None else InMemoryMessageDatabase(),
        derive_file=describe_file,
    )


def write_upload(uploads_dir: Path, file_id: str, title: str, contents: list[str]) -> None:
    uploads_dir.mkdir(parents=True, exist_ok=True)
    (uploads_dir / f"{file_id}-extracted.json").write_text(json.dumps({"title": title, "contents": contents}))


@pytest.fixture
def scripted_llm() -> ScriptedLLM:
    return ScriptedLLM()


@pytest.fixture
def keyword_embeddings() -> KeywordEmbeddings:
    return KeywordEmbeddings()
