"""
Ollama chat backend.

Talks to a local or remote Ollama server through 'ollama.AsyncClient'. When
'host' is None the client falls back to http://localhost:11434.
"""

from collections.abc import AsyncGenerator

from ollama import AsyncClient

from conversational_orchestrator.llms.base import LLM, LLMMessage, Roles


class OllamaLLM(LLM):
    def __init__(
        self,
        model_name: str = "llama3.2",
        temperature: float = 0.7,
        seed: int | None = None,
        host: str | None = None,
    ) -> None:
        self.model_name = model_name
        self.temperature = temperature
        self.seed = seed
        self.client = AsyncClient(host=host)

    @property
    def _options(self) -> dict[str, float | int]:
        options: dict[str, float | int] = {"temperature": self.temperature}
        if self.seed is not None:
            options["seed"] = self.seed
        return options

    async def generate(self, conversation: list[LLMMessage]) -> LLMMessage:
        response = await self.client.chat(
            model=self.model_name,
            messages=[message.model_dump() for message in conversation],
            options=self._options,
        )
        return LLMMessage(role=Roles.ASSISTANT, content=response.message.content or "")

    async def generate_stream(self, conversation: list[LLMMessage]) -> AsyncGenerator[LLMMessage, None]:
        stream = await self.client.chat(
            model=self.model_name,
            messages=[message.model_dump() for message in conversation],
            options=self._options,
            stream=True,
        )
        async for part in stream:
            if part.message.content:
                yield LLMMessage(role=Roles.ASSISTANT, content=part.message.content)
