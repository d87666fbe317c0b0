"""
Focus-mode registry.

Maps the 'focusMode' of a request to the handler that answers it. An unknown
focus mode is a client error, reported as 'UnknownFocusModeError'.
"""

from collections.abc import Mapping

from conversational_orchestrator.handlers.base import SearchHandler
from conversational_orchestrator.handlers.file_search import FileSearchHandler
from conversational_orchestrator.handlers.writing_assistant import WritingAssistantHandler
from conversational_orchestrator.uploads import UploadStore

INVALID_FOCUS_MODE = "Invalid focus mode"


class UnknownFocusModeError(KeyError):
    def __init__(self, focus_mode: str) -> None:
        super().__init__(focus_mode)
        self.focus_mode = focus_mode

    def __str__(self) -> str:
        return INVALID_FOCUS_MODE


class HandlerRegistry:
    def __init__(self, handlers: Mapping[str, SearchHandler] | None = None) -> None:
        self._handlers: dict[str, SearchHandler] = dict(handlers or {})

    def register(self, focus_mode: str, handler: SearchHandler) -> None:
        self._handlers[focus_mode] = handler

    def get(self, focus_mode: str) -> SearchHandler:
        try:
            return self._handlers[focus_mode]
        except KeyError:
            raise UnknownFocusModeError(focus_mode) from None

    def __contains__(self, focus_mode: object) -> bool:
        return focus_mode in self._handlers

    @property
    def focus_modes(self) -> list[str]:
        return list(self._handlers)


def build_default_registry(uploads: UploadStore) -> HandlerRegistry:
    return HandlerRegistry(
        {
            "writingAssistant": WritingAssistantHandler(),
            "fileSearch": FileSearchHandler(uploads),
        }
    )
