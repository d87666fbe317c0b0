"""
Embeddings model abstractions.

Concrete implementations: 'OpenAIEmbeddings', 'OllamaEmbeddings'.
"""

from abc import ABC, abstractmethod

import numpy as np
from numpy.typing import NDArray


class EmbeddingsModel(ABC):
    """
    Abstract base class for text embedding models.

    Attributes:
        model_name: Identifier of the underlying model.
    """

    model_name: str

    @abstractmethod
    async def get_embeddings(self, texts: str | list[str]) -> NDArray[np.float64]:
        """Embed one or more texts and return a float64 array of shape '(n, embedding_size)'."""
        pass


def cosine_similarity(query: NDArray[np.float64], candidates: NDArray[np.float64]) -> NDArray[np.float64]:
    """Cosine similarity between a single query vector and each row of 'candidates'."""
    query = query.reshape(-1)
    norms = np.linalg.norm(candidates, axis=1) * np.linalg.norm(query)
    norms[norms == 0] = 1.0
    return (candidates @ query) / norms
