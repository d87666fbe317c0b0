from loguru import logger

from conversational_orchestrator.config import Settings
from conversational_orchestrator.embeddings.base import EmbeddingsModel
from conversational_orchestrator.embeddings.ollama import OllamaEmbeddings
from conversational_orchestrator.embeddings.openai import OpenAIEmbeddings
from conversational_orchestrator.llms.base import LLM
from conversational_orchestrator.llms.ollama import OllamaLLM
from conversational_orchestrator.llms.openai import OpenAILLM
from conversational_orchestrator.providers.base import (
    ChatModelProviders,
    EmbeddingModelProviders,
    ModelCatalog,
    ModelHandle,
)


class ConfiguredModelCatalog(ModelCatalog):
    """
    Catalog built once from 'Settings'.

    A provider appears only when it is configured: 'openai' needs an API key,
    'ollama' needs a host. Providers are inserted in that order and models in
    the order they are listed in the configuration, which fixes the default
    chat and embedding model. Every model (and its API client) is created at
    construction and shared by all turns.
    """

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self._chat_providers = self._build_chat_providers(settings)
        self._embedding_providers = self._build_embedding_providers(settings)
        if not self._chat_providers:
            logger.warning("No chat model provider is configured")
        if not self._embedding_providers:
            logger.warning("No embedding model provider is configured")

    @staticmethod
    def _build_chat_providers(settings: Settings) -> ChatModelProviders:
        providers: ChatModelProviders = {}
        if settings.openai_api_key:
            openai_models: dict[str, ModelHandle[LLM]] = {}
            for name in settings.openai_chat_models:
                openai_models[name] = ModelHandle(
                    display_name=name,
                    model=OpenAILLM(model_name=name, temperature=0.7, openai_api_key=settings.openai_api_key),
                )
            providers["openai"] = openai_models
        if settings.ollama_host:
            ollama_models: dict[str, ModelHandle[LLM]] = {}
            for name in settings.ollama_chat_models:
                ollama_models[name] = ModelHandle(
                    display_name=name,
                    model=OllamaLLM(model_name=name, temperature=0.7, host=settings.ollama_host),
                )
            providers["ollama"] = ollama_models
        return providers

    @staticmethod
    def _build_embedding_providers(settings: Settings) -> EmbeddingModelProviders:
        providers: EmbeddingModelProviders = {}
        if settings.openai_api_key:
            openai_models: dict[str, ModelHandle[EmbeddingsModel]] = {}
            for name in settings.openai_embedding_models:
                openai_models[name] = ModelHandle(
                    display_name=name,
                    model=OpenAIEmbeddings(model_name=name, openai_api_key=settings.openai_api_key),
                )
            providers["openai"] = openai_models
        if settings.ollama_host:
            ollama_models: dict[str, ModelHandle[EmbeddingsModel]] = {}
            for name in settings.ollama_embedding_models:
                ollama_models[name] = ModelHandle(
                    display_name=name,
                    model=OllamaEmbeddings(model_name=name, host=settings.ollama_host),
                )
            providers["ollama"] = ollama_models
        return providers

    async def get_chat_model_providers(self) -> ChatModelProviders:
        return self._chat_providers

    async def get_embedding_model_providers(self) -> EmbeddingModelProviders:
        return self._embedding_providers
