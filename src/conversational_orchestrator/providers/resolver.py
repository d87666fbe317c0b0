"""
Model resolution.

Turns the optional '{provider, name}' selection of a request into concrete
model instances. An unset (or empty) provider or name falls back to the first
entry of the catalog level it selects from. The 'custom_openai' chat provider
bypasses the catalog and is built from the configured credentials.

Resolution failures are terminal for the request and surface to the client as
'ModelResolutionError'.
"""

from typing import Any, TypeVar

from conversational_orchestrator.config import CustomOpenAISettings
from conversational_orchestrator.embeddings.base import EmbeddingsModel
from conversational_orchestrator.llms.base import LLM
from conversational_orchestrator.llms.openai import OpenAILLM
from conversational_orchestrator.providers.base import ChatModelProviders, EmbeddingModelProviders, ModelHandle
from conversational_orchestrator.schemas import ModelSelection

CUSTOM_OPENAI_PROVIDER = "custom_openai"
CUSTOM_OPENAI_TEMPERATURE = 0.7

INVALID_CHAT_MODEL = "Invalid chat model"
INVALID_EMBEDDING_MODEL = "Invalid embedding model"

T = TypeVar("T")


class ModelResolutionError(ValueError):
    """The requested (or default) model is not available."""


def _pick(models: dict[str, T], key: str | None) -> T | None:
    if not models:
        return None
    return models.get(key or next(iter(models)))


def _select(providers: dict[str, dict[str, ModelHandle[Any]]], selection: ModelSelection) -> Any | None:
    provider_models = _pick(providers, selection.provider)
    if provider_models is None:
        return None
    handle = _pick(provider_models, selection.name)
    return handle.model if handle is not None else None


def resolve_chat_model(
    providers: ChatModelProviders,
    selection: ModelSelection | None = None,
    custom_openai: CustomOpenAISettings | None = None,
) -> LLM:
    """Return the chat model for 'selection' or raise 'ModelResolutionError'."""
    selection = selection or ModelSelection()
    if selection.provider == CUSTOM_OPENAI_PROVIDER:
        custom_openai = custom_openai or CustomOpenAISettings()
        return OpenAILLM(
            model_name=custom_openai.model_name,
            temperature=CUSTOM_OPENAI_TEMPERATURE,
            openai_api_key=custom_openai.api_key,
            base_url=custom_openai.base_url or None,
        )

    model = _select(providers, selection)
    if model is None:
        raise ModelResolutionError(INVALID_CHAT_MODEL)
    return model


def resolve_embedding_model(
    providers: EmbeddingModelProviders, selection: ModelSelection | None = None
) -> EmbeddingsModel:
    """Return the embedding model for 'selection' or raise 'ModelResolutionError'."""
    model = _select(providers, selection or ModelSelection())
    if model is None:
        raise ModelResolutionError(INVALID_EMBEDDING_MODEL)
    return model
