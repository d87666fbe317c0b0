"""
Stream bridge.

'StreamBridge' is the single consumer of a handler's Answer Stream for one
turn. It relays every event to the client as soon as it arrives and records
the turn's output in the message store on the side:

    response  ->  'message' frame; the fragment is appended to the answer text
    sources   ->  'sources' frame; a source message is persisted
    end       ->  'messageEnd' frame, channel closed; the assistant message
                  (the concatenated fragments) is persisted
    error     ->  'error' frame, channel closed; nothing is persisted
    cancelled ->  'error' frame, channel closed; the cancellation propagates

All frames share the assistant message id generated for the turn. The first
'end' or 'error' terminates the turn: later events are logged and ignored, but
the stream is still drained. Persistence goes through a 'PersistenceQueue', so
storage never delays the client and a storage failure never reaches it.
"""

import asyncio
from typing import Any

from loguru import logger

from conversational_orchestrator.conversation_database.data_models.message import (
    Message,
    MessageDatabase,
    MessageRole,
)
from conversational_orchestrator.handlers.base import (
    AnswerStream,
    EndEvent,
    ErrorEvent,
    ResponseEvent,
    SourcesEvent,
    StreamEvent,
)
from conversational_orchestrator.streaming.channel import ResponseChannel
from conversational_orchestrator.streaming.frames import ErrorFrame, MessageEndFrame, MessageFrame, SourcesFrame
from conversational_orchestrator.streaming.persistence import PersistenceQueue
from conversational_orchestrator.utils.database import generate_message_id
from conversational_orchestrator.utils.time import get_current_timestamp

STREAM_FAILED_MESSAGE = "An error occurred while generating the answer"
STREAM_INCOMPLETE_MESSAGE = "The answer stream ended unexpectedly"
STREAM_CANCELLED_MESSAGE = "The server is shutting down"


class StreamBridge:
    def __init__(
        self,
        chat_id: str,
        channel: ResponseChannel,
        message_db: MessageDatabase,
        persistence: PersistenceQueue,
    ) -> None:
        self.chat_id = chat_id
        self.channel = channel
        self.message_db = message_db
        self.persistence = persistence
        self.assistant_message_id = generate_message_id()
        self.accumulated_text = ""
        self.terminated = False

    async def relay(self, stream: AnswerStream, history_saved: asyncio.Future[Any] | None = None) -> None:
        """Consume 'stream' to the end, relaying and persisting as events arrive.

        When 'history_saved' is given, consumption starts only after it has
        finished (successfully or not), so the turn's own output can never be
        removed by its reconciliation.
        """
        try:
            if history_saved is not None:
                await asyncio.wait({history_saved})
            async for event in stream:
                self.handle_event(event)
        except asyncio.CancelledError:
            logger.warning(f"Answer stream for chat {self.chat_id!r} was cancelled")
            if not self.terminated:
                self._fail(STREAM_CANCELLED_MESSAGE)
            raise
        except Exception:
            logger.exception(f"Answer stream for chat {self.chat_id!r} raised")
            if not self.terminated:
                self._fail(STREAM_FAILED_MESSAGE)

        if not self.terminated:
            logger.error(f"Answer stream for chat {self.chat_id!r} ended without an end or error event")
            self._fail(STREAM_INCOMPLETE_MESSAGE)

    def handle_event(self, event: StreamEvent) -> None:
        if self.terminated:
            logger.warning(f"Ignoring {event.type!r} event received after the stream of chat {self.chat_id!r} ended")
            return

        match event:
            case ResponseEvent(data=fragment):
                self.accumulated_text += fragment
                self.channel.write(MessageFrame(data=fragment, message_id=self.assistant_message_id))
            case SourcesEvent(data=citations):
                self.channel.write(SourcesFrame(data=citations, message_id=self.assistant_message_id))
                self._persist(
                    Message(
                        message_id=generate_message_id(),
                        chat_id=self.chat_id,
                        role=MessageRole.SOURCE,
                        sources=citations,
                        created_at=get_current_timestamp(),
                    ),
                    "source message",
                )
            case EndEvent():
                self.terminated = True
                self.channel.write(MessageEndFrame())
                self.channel.close()
                self._persist(
                    Message(
                        message_id=self.assistant_message_id,
                        chat_id=self.chat_id,
                        role=MessageRole.ASSISTANT,
                        content=self.accumulated_text,
                        created_at=get_current_timestamp(),
                    ),
                    "assistant message",
                )
            case ErrorEvent(data=error):
                logger.warning(f"Answer stream for chat {self.chat_id!r} reported an error: {error}")
                self._fail(error)
            case _:
                logger.warning(f"Ignoring unknown event {event!r}")

    def _fail(self, error: str) -> None:
        self.terminated = True
        self.accumulated_text = ""
        self.channel.write(ErrorFrame(data=error))
        self.channel.close()

    def _persist(self, message: Message, description: str) -> None:
        self.persistence.submit(
            lambda: self.message_db.create_message(message),
            f"{description} {message.message_id!r} of chat {self.chat_id!r}",
        )
