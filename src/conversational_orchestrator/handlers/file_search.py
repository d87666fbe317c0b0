"""
Answers grounded on the files attached to a turn.

Retrieval runs per turn over the extracted passages of the attached uploads:

1. with history and a non-'speed' mode, the query is rewritten to stand alone;
2. BM25 ranks the passages;
3. in 'balanced' and 'quality' mode the BM25 candidates are re-ranked by
   embedding cosine similarity and those under 'SIMILARITY_THRESHOLD' dropped;
4. the surviving passages are emitted as one sources event and injected into
   the prompt of the chat model, whose answer is streamed.
"""

from collections.abc import AsyncGenerator

from loguru import logger

from conversational_orchestrator.chunking.base import ChunkMatch
from conversational_orchestrator.embeddings.base import EmbeddingsModel, cosine_similarity
from conversational_orchestrator.handlers.base import ResponseEvent, SearchHandler, SourcesEvent
from conversational_orchestrator.llms.base import LLM, LLMMessage
from conversational_orchestrator.retriever.bm25_retriever import BM25Retriever
from conversational_orchestrator.schemas import OptimizationMode
from conversational_orchestrator.uploads import UploadStore
from conversational_orchestrator.utils.retriever import build_query_with_chunks, make_query_standalone

TOP_K = {
    OptimizationMode.SPEED: 3,
    OptimizationMode.BALANCED: 5,
    OptimizationMode.QUALITY: 8,
}
# BM25 candidates fetched per kept passage before embedding re-ranking
CANDIDATE_FACTOR = 3
SIMILARITY_THRESHOLD = 0.3

GROUNDING_INSTRUCTIONS = (
    "Answer using the excerpts from the user's files provided with the query. "
    "If the excerpts do not contain the answer, say so instead of guessing."
)


class FileSearchHandler(SearchHandler):
    def __init__(self, uploads: UploadStore) -> None:
        self.uploads = uploads

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
        search_query = query
        if history and optimization_mode != OptimizationMode.SPEED:
            search_query = await make_query_standalone(llm, history, query)
            logger.debug(f"Standalone query: {search_query!r}")

        sources = await self._retrieve(search_query, embeddings, optimization_mode, file_ids)
        if sources:
            yield SourcesEvent(data=[chunk.to_citation() for chunk in sources])

        conversation = self._build_conversation(
            f"{system_instructions}\n\n{GROUNDING_INSTRUCTIONS}",
            history,
            build_query_with_chunks(query, sources),
        )
        async for event in self._stream_response(llm, conversation):
            yield event

    async def _retrieve(
        self,
        query: str,
        embeddings: EmbeddingsModel,
        optimization_mode: OptimizationMode,
        file_ids: list[str],
    ) -> list[ChunkMatch]:
        corpus = self.uploads.load_chunks(file_ids)
        if not corpus:
            return []

        top_k = TOP_K[optimization_mode]
        if optimization_mode == OptimizationMode.SPEED:
            return await BM25Retriever(corpus, top_k=top_k).retrieve(query)

        candidates = await BM25Retriever(corpus, top_k=top_k * CANDIDATE_FACTOR).retrieve(query)
        if not candidates:
            return []
        vectors = await embeddings.get_embeddings([query, *(chunk.content for chunk in candidates)])
        similarities = cosine_similarity(vectors[0], vectors[1:])
        reranked = sorted(zip(candidates, similarities.tolist()), key=lambda pair: pair[1], reverse=True)
        kept = [
            chunk.model_copy(update={"score": similarity})
            for chunk, similarity in reranked
            if similarity >= SIMILARITY_THRESHOLD
        ]
        logger.debug(f"Re-ranked {len(candidates)} candidates, kept {len(kept[:top_k])}")
        return kept[:top_k]
