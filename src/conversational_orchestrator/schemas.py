"""
Request body of the chat endpoint.

Field names are snake_case in Python and camelCase on the wire. Validation
errors are flattened by 'format_validation_errors' into the
'[{"path": ..., "message": ...}]' list returned to the client.
"""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from conversational_orchestrator.config import DEFAULT_SYSTEM_INSTRUCTIONS


class OptimizationMode(StrEnum):
    SPEED = "speed"
    BALANCED = "balanced"
    QUALITY = "quality"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Turn(CamelModel):
    """One user utterance. 'message_id' is unique within 'chat_id'."""

    message_id: str = Field(min_length=1)
    chat_id: str = Field(min_length=1)
    content: str = Field(min_length=1)


class ModelSelection(CamelModel):
    provider: str | None = None
    name: str | None = None


class ChatRequest(CamelModel):
    message: Turn
    optimization_mode: OptimizationMode
    focus_mode: str = Field(min_length=1)
    history: list[tuple[str, str]] = Field(default_factory=list)
    files: list[str] = Field(default_factory=list)
    chat_model: ModelSelection = Field(default_factory=ModelSelection)
    embedding_model: ModelSelection = Field(default_factory=ModelSelection)
    system_instructions: str = DEFAULT_SYSTEM_INSTRUCTIONS

    @field_validator("system_instructions", mode="before")
    @classmethod
    def _default_instructions(cls, value: Any) -> Any:
        return DEFAULT_SYSTEM_INSTRUCTIONS if value is None else value


_REQUIRED_MESSAGES = {
    "message.messageId": "Message ID is required",
    "message.chatId": "Chat ID is required",
    "message.content": "Message content is required",
    "focusMode": "Focus mode is required",
}
_OPTIMIZATION_MODE_MESSAGE = "Optimization mode must be one of: speed, balanced, quality"
_HISTORY_ITEM_MESSAGE = "History items must be tuples of two strings"


def format_validation_errors(exc: ValidationError) -> list[dict[str, str]]:
    """Flatten a pydantic 'ValidationError' into '{path, message}' items, one per field."""
    items: list[dict[str, str]] = []
    seen: set[str] = set()
    for error in exc.errors():
        loc = [str(part) for part in error["loc"]]
        path = ".".join(loc)
        message = error["msg"]
        if loc[:1] == ["history"] and len(loc) >= 2:
            path = ".".join(loc[:2])
            message = _HISTORY_ITEM_MESSAGE
        elif path == "optimizationMode":
            message = _OPTIMIZATION_MODE_MESSAGE
        elif path in _REQUIRED_MESSAGES and error["type"] in {"missing", "string_too_short"}:
            message = _REQUIRED_MESSAGES[path]
        if path in seen:
            continue
        seen.add(path)
        items.append({"path": path, "message": message})
    return items
