import numpy as np
from numpy.typing import NDArray
from ollama import AsyncClient

from conversational_orchestrator.embeddings.base import EmbeddingsModel


class OllamaEmbeddings(EmbeddingsModel):
    """Embeddings computed by an Ollama server ('/api/embed')."""

    def __init__(self, model_name: str = "nomic-embed-text", host: str | None = None) -> None:
        self.model_name = model_name
        self.client = AsyncClient(host=host)

    async def get_embeddings(self, texts: str | list[str]) -> NDArray[np.float64]:
        if isinstance(texts, str):
            texts = [texts]
        response = await self.client.embed(model=self.model_name, input=texts)
        return np.array(response.embeddings, dtype=np.float64)
