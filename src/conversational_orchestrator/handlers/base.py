"""
Answer-producing handlers and the events they emit.

A handler turns one user query into an Answer Stream: an async iterator of
'StreamEvent' objects. The orchestrator treats the stream as opaque and only
relies on its event contract:

    'ResponseEvent'  - a fragment of answer text, zero or more times;
    'SourcesEvent'   - citation records backing the answer, zero or more times;
    'EndEvent'       - the answer is complete, emitted after every other event;
    'ErrorEvent'     - the answer failed, emitted instead of 'EndEvent'.

'SearchHandler.search_and_answer' enforces the terminal part of that contract
for every subclass: subclasses implement '_answer' and only yield response and
sources events; the base class appends 'EndEvent' and turns an exception into
a single 'ErrorEvent'.
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncGenerator, AsyncIterator
from typing import Any, Literal

from loguru import logger
from pydantic import BaseModel

from conversational_orchestrator.embeddings.base import EmbeddingsModel
from conversational_orchestrator.llms.base import LLM, LLMMessage, Roles
from conversational_orchestrator.schemas import OptimizationMode


class ResponseEvent(BaseModel):
    type: Literal["response"] = "response"
    data: str


class SourcesEvent(BaseModel):
    type: Literal["sources"] = "sources"
    data: list[dict[str, Any]]


class EndEvent(BaseModel):
    type: Literal["end"] = "end"


class ErrorEvent(BaseModel):
    type: Literal["error"] = "error"
    data: str


StreamEvent = ResponseEvent | SourcesEvent | EndEvent | ErrorEvent
AnswerStream = AsyncIterator[StreamEvent]

HANDLER_ERROR_MESSAGE = "An error occurred while generating the answer"


class SearchHandler(ABC):
    """Abstract base class for focus-mode handlers."""

    async def search_and_answer(
        self,
        query: str,
        history: list[LLMMessage],
        llm: LLM,
        embeddings: EmbeddingsModel,
        optimization_mode: OptimizationMode,
        file_ids: list[str],
        system_instructions: str,
    ) -> AsyncGenerator[StreamEvent, None]:
        """Answer 'query' as a stream of events that ends with exactly one 'EndEvent' or 'ErrorEvent'."""
        try:
            async for event in self._answer(
                query, history, llm, embeddings, optimization_mode, file_ids, system_instructions
            ):
                yield event
        except Exception:
            logger.exception(f"{type(self).__name__} failed to answer query {query!r}")
            yield ErrorEvent(data=HANDLER_ERROR_MESSAGE)
            return
        yield EndEvent()

    @abstractmethod
    def _answer(
        self,
        query: str,
        history: list[LLMMessage],
        llm: LLM,
        embeddings: EmbeddingsModel,
        optimization_mode: OptimizationMode,
        file_ids: list[str],
        system_instructions: str,
    ) -> AsyncGenerator[ResponseEvent | SourcesEvent, None]:
        """Yield the response and sources events of one answer."""
        pass

    @staticmethod
    async def _stream_response(llm: LLM, conversation: list[LLMMessage]) -> AsyncGenerator[ResponseEvent, None]:
        """Relay the model's streamed chunks as 'ResponseEvent' fragments."""
        async for chunk in llm.generate_stream(conversation):
            if chunk.content:
                yield ResponseEvent(data=chunk.content)

    @staticmethod
    def _build_conversation(system_prompt: str, history: list[LLMMessage], user_content: str) -> list[LLMMessage]:
        return [
            LLMMessage(role=Roles.SYSTEM, content=system_prompt),
            *history,
            LLMMessage(role=Roles.USER, content=user_content),
        ]
