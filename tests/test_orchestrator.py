"""
Tests for 'ChatOrchestrator': full turns against in-memory repositories with a
scripted handler, covering ordering between reconciliation and the stream,
resubmitted turns and the client-error paths.
"""

import asyncio

import pytest
from conftest import (
    FailingChatDatabase,
    ScriptedHandler,
    ScriptedLLM,
    make_catalog,
    make_orchestrator,
    make_request,
    parse_frames,
)

from conversational_orchestrator.config import DEFAULT_SYSTEM_INSTRUCTIONS
from conversational_orchestrator.conversation_database.data_models.message import MessageRole
from conversational_orchestrator.conversation_database.in_memory import InMemoryChatDatabase, InMemoryMessageDatabase
from conversational_orchestrator.handlers.base import EndEvent, ResponseEvent
from conversational_orchestrator.handlers.registry import UnknownFocusModeError
from conversational_orchestrator.handlers.writing_assistant import WritingAssistantHandler
from conversational_orchestrator.llms.base import LLMMessage, Roles
from conversational_orchestrator.providers.resolver import ModelResolutionError
from conversational_orchestrator.streaming.bridge import STREAM_CANCELLED_MESSAGE

ANSWER = [ResponseEvent(data="Hel"), ResponseEvent(data="lo"), EndEvent()]


async def run_turn(orchestrator, request):
    channel = await orchestrator.start_turn(request)
    body = b"".join([chunk async for chunk in channel.stream()])
    await orchestrator.wait_until_idle()
    return parse_frames(body)


def test_first_turn_creates_chat_and_streams_answer():
    handler = ScriptedHandler(ANSWER)
    orchestrator = make_orchestrator(handler)

    frames = asyncio.run(run_turn(orchestrator, make_request()))

    assert [frame["type"] for frame in frames] == ["message", "message", "messageEnd"]
    message_id = frames[0]["messageId"]
    assert frames[1]["messageId"] == message_id

    chat = orchestrator.chat_db.chats["c1"]
    assert chat.title == "hello"
    assert chat.focus_mode == "web"
    user, assistant = orchestrator.message_db.messages
    assert (user.role, user.message_id, user.content) == (MessageRole.USER, "m1", "hello")
    assert (assistant.role, assistant.message_id) == (MessageRole.ASSISTANT, message_id)
    assert assistant.content == "".join(frame["data"] for frame in frames if frame["type"] == "message")


def test_resubmitted_turn_discards_later_messages_before_streaming():
    message_db = InMemoryMessageDatabase()
    snapshots = []

    async def snapshot():
        snapshots.append([(m.role, m.message_id) for m in message_db.messages])

    handler = ScriptedHandler(ANSWER, on_start=snapshot)
    orchestrator = make_orchestrator(handler, message_db=message_db)

    async def scenario():
        first = await run_turn(orchestrator, make_request())
        await run_turn(
            orchestrator,
            make_request(message={"messageId": "m2", "chatId": "c1", "content": "follow-up"}),
        )
        resubmitted = await run_turn(
            orchestrator,
            make_request(message={"messageId": "m1", "chatId": "c1", "content": "hello again"}),
        )
        return first, resubmitted

    first, resubmitted = asyncio.run(scenario())

    assert snapshots[-1] == [(MessageRole.USER, "m1")]
    user, assistant = message_db.messages
    assert user.content == "hello"
    assert assistant.message_id == resubmitted[0]["messageId"]
    assert assistant.message_id != first[0]["messageId"]


def test_handler_receives_resolved_models_and_request_fields():
    llm = ScriptedLLM(model_name="picked")
    handler = ScriptedHandler(ANSWER)
    orchestrator = make_orchestrator(handler, catalog=make_catalog(llm=llm))
    request = make_request(
        history=[["human", "Hi"], ["assistant", "Hello!"]],
        files=["f1"],
        optimizationMode="quality",
    )

    asyncio.run(run_turn(orchestrator, request))

    [call] = handler.calls
    assert call["query"] == "hello"
    assert call["llm"] is llm
    assert call["history"] == [
        LLMMessage(role=Roles.USER, content="Hi"),
        LLMMessage(role=Roles.ASSISTANT, content="Hello!"),
    ]
    assert call["file_ids"] == ["f1"]
    assert call["optimization_mode"] == "quality"
    assert call["system_instructions"] == DEFAULT_SYSTEM_INSTRUCTIONS
    assert [file.name for file in orchestrator.chat_db.chats["c1"].files] == ["f1.pdf"]


def test_writing_assistant_turn():
    llm = ScriptedLLM(chunks=["Hello", ", ", "world"])
    orchestrator = make_orchestrator(WritingAssistantHandler(), catalog=make_catalog(llm=llm))

    frames = asyncio.run(run_turn(orchestrator, make_request(systemInstructions="Be brief.")))

    assert [frame.get("data") for frame in frames] == ["Hello", ", ", "world", None]
    assert orchestrator.message_db.messages[-1].content == "Hello, world"
    [conversation] = llm.stream_calls
    assert conversation[0] == LLMMessage(role=Roles.SYSTEM, content="Be brief.")
    assert conversation[-1] == LLMMessage(role=Roles.USER, content="hello")


def test_unknown_focus_mode_starts_nothing():
    orchestrator = make_orchestrator(ScriptedHandler(ANSWER))

    async def scenario():
        with pytest.raises(UnknownFocusModeError):
            await orchestrator.start_turn(make_request(focusMode="academic"))
        return len(orchestrator.tasks)

    assert asyncio.run(scenario()) == 0
    assert orchestrator.chat_db.chats == {}
    assert orchestrator.message_db.messages == []


def test_invalid_chat_model_starts_nothing():
    handler = ScriptedHandler(ANSWER)
    orchestrator = make_orchestrator(handler)

    with pytest.raises(ModelResolutionError):
        asyncio.run(orchestrator.start_turn(make_request(chatModel={"provider": "nope"})))

    assert handler.calls == []
    assert orchestrator.message_db.messages == []


def test_history_failure_does_not_stop_the_answer():
    orchestrator = make_orchestrator(ScriptedHandler(ANSWER), chat_db=FailingChatDatabase())

    frames = asyncio.run(run_turn(orchestrator, make_request()))

    assert [frame["type"] for frame in frames] == ["message", "message", "messageEnd"]
    [assistant] = orchestrator.message_db.messages
    assert assistant.content == "Hello"


def test_get_and_delete_chat():
    orchestrator = make_orchestrator(ScriptedHandler(ANSWER))

    async def scenario():
        await run_turn(orchestrator, make_request())
        found = await orchestrator.get_chat("c1")
        deleted = await orchestrator.delete_chat("c1")
        return found, deleted, await orchestrator.get_chat("c1"), await orchestrator.delete_chat("c1")

    found, deleted, after, deleted_again = asyncio.run(scenario())

    chat, messages = found
    assert chat.id == "c1"
    assert [m.role for m in messages] == [MessageRole.USER, MessageRole.ASSISTANT]
    assert deleted is True
    assert after is None
    assert deleted_again is False
    assert orchestrator.message_db.messages == []


class FlakyChatDatabase(InMemoryChatDatabase):
    """Fails the first chat deletion, then behaves normally."""

    def __init__(self):
        super().__init__()
        self.failures = 1

    async def delete_chat(self, chat_id: str) -> bool:
        if self.failures:
            self.failures -= 1
            raise RuntimeError("database is locked")
        return await super().delete_chat(chat_id)


def test_failed_chat_delete_can_be_retried():
    orchestrator = make_orchestrator(ScriptedHandler(ANSWER), chat_db=FlakyChatDatabase())

    async def scenario():
        await run_turn(orchestrator, make_request())
        with pytest.raises(RuntimeError):
            await orchestrator.delete_chat("c1")
        chats = await orchestrator.get_chats()
        messages = list(orchestrator.message_db.messages)
        return chats, messages, await orchestrator.delete_chat("c1"), await orchestrator.get_chats()

    chats, messages, deleted, remaining = asyncio.run(scenario())

    assert [chat.id for chat in chats] == ["c1"]
    assert messages == []
    assert deleted is True
    assert remaining == []


def test_shutdown_lets_running_turns_finish():
    orchestrator = make_orchestrator(ScriptedHandler(ANSWER))

    async def scenario():
        channel = await orchestrator.start_turn(make_request())
        await orchestrator.shutdown(timeout=5)
        return parse_frames(b"".join([chunk async for chunk in channel.stream()]))

    frames = asyncio.run(scenario())

    assert [frame["type"] for frame in frames] == ["message", "message", "messageEnd"]
    assert [m.role for m in orchestrator.message_db.messages] == [MessageRole.USER, MessageRole.ASSISTANT]


def test_shutdown_cancels_stalled_turn():
    async def stall():
        await asyncio.Event().wait()

    orchestrator = make_orchestrator(ScriptedHandler(ANSWER, on_start=stall))

    async def scenario():
        channel = await orchestrator.start_turn(make_request())
        await orchestrator.shutdown(timeout=0.05)
        body = b"".join([chunk async for chunk in channel.stream()])
        return channel, parse_frames(body)

    channel, frames = asyncio.run(scenario())

    assert len(orchestrator.tasks) == 0
    assert channel.closed
    assert frames == [{"type": "error", "data": STREAM_CANCELLED_MESSAGE}]
    assert [m.role for m in orchestrator.message_db.messages] == [MessageRole.USER]
