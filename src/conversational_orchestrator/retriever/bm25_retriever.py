"""
BM25 lexical retriever backed by 'rank-bm25'.

Only chunks sharing at least one term with the query are returned. BM25 scores
alone cannot decide that: on very small corpora (a single uploaded file with
one or two passages) the Okapi IDF of a matching term goes negative.
"""

import re

from rank_bm25 import BM25Okapi  # type: ignore[import-untyped]

from conversational_orchestrator.chunking.base import ChunkMatch, ChunkRecord
from conversational_orchestrator.retriever.base import Retriever

_WORD = re.compile(r"\b\w+\b")


def tokenize(text: str) -> list[str]:
    return _WORD.findall(text.lower())


class BM25Retriever(Retriever[ChunkMatch]):
    def __init__(self, corpus: list[ChunkRecord], top_k: int) -> None:
        super().__init__(corpus, top_k)
        documents = [tokenize(chunk.content) for chunk in corpus]
        self._vocabularies = [set(tokens) for tokens in documents]
        self._index = BM25Okapi(documents) if corpus else None

    async def retrieve(self, query: str) -> list[ChunkMatch]:
        terms = tokenize(query)
        if self._index is None or not terms:
            return []

        scores = self._index.get_scores(terms).tolist()
        query_vocabulary = set(terms)
        matching = [i for i, vocabulary in enumerate(self._vocabularies) if vocabulary & query_vocabulary]
        matching.sort(key=lambda i: scores[i], reverse=True)
        return [ChunkMatch(**self.corpus[i].model_dump(), score=scores[i]) for i in matching[: self.top_k]]
