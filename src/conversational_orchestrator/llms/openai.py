"""
OpenAI chat completions backend.

Also used for the synthetic 'custom_openai' provider: any OpenAI-compatible
server is reachable by passing its 'base_url'.
"""

from collections.abc import AsyncGenerator

from loguru import logger
from openai import AsyncOpenAI

from conversational_orchestrator.llms.base import LLM, LLMMessage, Roles


class OpenAILLM(LLM):
    def __init__(
        self,
        model_name: str = "gpt-4o-mini",
        temperature: float = 0.7,
        seed: int | None = None,
        openai_api_key: str | None = None,
        base_url: str | None = None,
    ) -> None:
        self.model_name = model_name
        self.temperature = temperature
        self.seed = seed
        self.client = AsyncOpenAI(api_key=openai_api_key, base_url=base_url)

    def _to_openai_messages(self, conversation: list[LLMMessage]) -> list[dict[str, str]]:
        return [{"role": message.role.value, "content": message.content} for message in conversation]

    async def generate(self, conversation: list[LLMMessage]) -> LLMMessage:
        completion = await self.client.chat.completions.create(
            model=self.model_name,
            messages=self._to_openai_messages(conversation),  # type: ignore[arg-type]
            temperature=self.temperature,
            seed=self.seed,
        )
        content = completion.choices[0].message.content or ""
        logger.debug(f"OpenAI {self.model_name} usage: {completion.usage}")
        return LLMMessage(role=Roles.ASSISTANT, content=content)

    async def generate_stream(self, conversation: list[LLMMessage]) -> AsyncGenerator[LLMMessage, None]:
        stream = await self.client.chat.completions.create(
            model=self.model_name,
            messages=self._to_openai_messages(conversation),  # type: ignore[arg-type]
            temperature=self.temperature,
            seed=self.seed,
            stream=True,
        )
        async for chunk in stream:
            if not chunk.choices:
                continue
            delta = chunk.choices[0].delta.content
            if delta:
                yield LLMMessage(role=Roles.ASSISTANT, content=delta)
