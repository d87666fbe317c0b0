"""
Core LLM abstractions and message data models.

All concrete LLM backends ('OpenAILLM', 'OllamaLLM') implement the 'LLM' ABC.
The shared message format ('LLMMessage') is backend-agnostic so handlers and
the orchestrator never need to know which provider a model came from. The
model resolver hands an 'LLM' instance to the selected handler on every turn.
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncGenerator, Sequence
from enum import StrEnum

from pydantic import BaseModel


class Roles(StrEnum):
    """Conversation roles as used by the OpenAI chat completions API."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class LLMMessage(BaseModel):
    """A single message in a conversation sent to or received from an LLM."""

    content: str = ""
    role: Roles = Roles.ASSISTANT


def history_to_messages(history: Sequence[tuple[str, str]]) -> list[LLMMessage]:
    """Convert client '(role, text)' pairs into 'LLMMessage' objects.

    Only the 'human' role maps to a user message; every other role is treated
    as an assistant turn.
    """
    return [
        LLMMessage(role=Roles.USER if role == "human" else Roles.ASSISTANT, content=text) for role, text in history
    ]


class LLM(ABC):
    """
    Abstract base class for language model backends.

    Concrete implementations adapt a specific API client (OpenAI, Ollama, any
    OpenAI-compatible server) to a common interface.

    Attributes:
        model_name: Identifier of the underlying model, used for logging.
    """

    model_name: str

    @abstractmethod
    async def generate(self, conversation: list[LLMMessage]) -> LLMMessage:
        """Return a single complete response for the given conversation."""
        pass

    @abstractmethod
    def generate_stream(self, conversation: list[LLMMessage]) -> AsyncGenerator[LLMMessage, None]:
        """Yield response chunks as they arrive from the model."""
        pass
