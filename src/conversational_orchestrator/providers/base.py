"""
Model catalog abstractions.

A catalog maps provider keys to the models each provider offers:
'{provider: {model_name: handle}}'. Both levels are plain dicts and their
insertion order is the catalog's ordering guarantee: the resolver's
"first available" fallback always picks the first inserted key.

Concrete implementation: 'ConfiguredModelCatalog'.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Generic, TypeVar

from conversational_orchestrator.embeddings.base import EmbeddingsModel
from conversational_orchestrator.llms.base import LLM

M = TypeVar("M", LLM, EmbeddingsModel)


@dataclass
class ModelHandle(Generic[M]):
    """A ready-to-use model together with its human-readable name."""

    display_name: str
    model: M


ChatModelProviders = dict[str, dict[str, ModelHandle[LLM]]]
EmbeddingModelProviders = dict[str, dict[str, ModelHandle[EmbeddingsModel]]]


class ModelCatalog(ABC):
    """Abstract source of the currently available chat and embedding models."""

    @abstractmethod
    async def get_chat_model_providers(self) -> ChatModelProviders:
        pass

    @abstractmethod
    async def get_embedding_model_providers(self) -> EmbeddingModelProviders:
        pass
