"""
Retriever abstractions.

Retrievers here are short-lived: a handler builds one per turn over the chunks
of the files attached to that turn, asks it for the passages matching the
query and drops it. Concrete implementation: 'BM25Retriever'.
"""

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from conversational_orchestrator.chunking.base import ChunkMatch, ChunkRecord

T_co = TypeVar("T_co", bound=ChunkMatch, covariant=True)


class Retriever(ABC, Generic[T_co]):
    """
    Ranks a fixed corpus of chunks against a query.

    Attributes:
        corpus: The chunks searched by 'retrieve'.
        top_k: Maximum number of matches returned per query.
    """

    def __init__(self, corpus: list[ChunkRecord], top_k: int):
        self.corpus = corpus
        self.top_k = top_k

    @abstractmethod
    async def retrieve(self, query: str) -> list[T_co]:
        """Return at most 'top_k' matches for 'query', best first; an empty list when nothing matches."""
        pass
