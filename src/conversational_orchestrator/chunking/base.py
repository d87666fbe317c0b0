"""
Document chunk data models.

A 'Chunk' is the atomic unit of content a handler can cite: uploaded files are
split into chunks, retrievers rank them, and the surviving chunks are sent to
the client as sources. 'ChunkRecord' adds a stable identity and 'ChunkMatch'
adds a relevance score, so each stage keeps its type without duplicating
fields.
"""

from typing import Any

from pydantic import BaseModel, Field


class Chunk(BaseModel):
    """
    A single piece of document content.

    Attributes:
        title: Header or label of the source document.
        content: The text content of the chunk.
        mime_type: MIME type of the content (e.g. 'text/plain').
        metadata: Arbitrary key-value pairs from the source document
            (e.g. the uploaded file id and name).
    """

    title: str
    content: str
    mime_type: str
    metadata: dict[str, Any] = Field(default_factory=dict)

    def to_citation(self) -> dict[str, Any]:
        """Return the citation record sent to the client and stored with source messages."""
        return {"pageContent": self.content, "metadata": {"title": self.title, **self.metadata}}


class ChunkRecord(Chunk):
    """A 'Chunk' with a stable identifier."""

    id: str


class ChunkMatch(ChunkRecord):
    """A 'ChunkRecord' returned from a search, augmented with a relevance score."""

    score: float
