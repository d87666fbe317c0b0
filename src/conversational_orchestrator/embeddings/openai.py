import numpy as np
from numpy.typing import NDArray
from openai import AsyncOpenAI

from conversational_orchestrator.embeddings.base import EmbeddingsModel


class OpenAIEmbeddings(EmbeddingsModel):
    """Embeddings served by the OpenAI '/embeddings' endpoint."""

    def __init__(self, model_name: str = "text-embedding-3-small", openai_api_key: str | None = None) -> None:
        self.model_name = model_name
        self.client = AsyncOpenAI(api_key=openai_api_key)

    async def get_embeddings(self, texts: str | list[str]) -> NDArray[np.float64]:
        if isinstance(texts, str):
            texts = [texts]
        response = await self.client.embeddings.create(model=self.model_name, input=texts)
        return np.array([item.embedding for item in response.data], dtype=np.float64)
