from collections.abc import AsyncGenerator

from conversational_orchestrator.embeddings.base import EmbeddingsModel
from conversational_orchestrator.handlers.base import ResponseEvent, SearchHandler, SourcesEvent
from conversational_orchestrator.llms.base import LLM, LLMMessage
from conversational_orchestrator.schemas import OptimizationMode


class WritingAssistantHandler(SearchHandler):
    """Answers directly from the chat model, without retrieval or sources."""

    async def _answer(
        self,
        query: str,
        history: list[LLMMessage],
        llm: LLM,
        embeddings: EmbeddingsModel,
        optimization_mode: OptimizationMode,
        file_ids: list[str],
        system_instructions: str,
    ) -> AsyncGenerator[ResponseEvent | SourcesEvent, None]:
        conversation = self._build_conversation(system_instructions, history, query)
        async for event in self._stream_response(llm, conversation):
            yield event
