"""
Chat orchestrator (Facade).

'ChatOrchestrator' is the single entry point for the application logic behind
the chat endpoint. It coordinates the model catalog, the focus-mode registry
and the chat/message repositories to run one conversation turn:

    'start_turn' - resolves the models and the handler (failures are client
                   errors raised to the caller), starts the Answer Stream and
                   returns a 'ResponseChannel' right away. Two detached tasks
                   then do the work: history reconciliation, and the stream
                   bridge, which starts consuming once reconciliation is over.

The remaining methods read and delete stored chats.
"""

import asyncio

from loguru import logger

from conversational_orchestrator.config import CustomOpenAISettings
from conversational_orchestrator.conversation_database.data_models.chat import Chat, ChatDatabase
from conversational_orchestrator.conversation_database.data_models.message import Message, MessageDatabase
from conversational_orchestrator.conversation_database.reconciler import FileDescriptorDeriver, HistoryReconciler
from conversational_orchestrator.handlers.registry import HandlerRegistry
from conversational_orchestrator.llms.base import history_to_messages
from conversational_orchestrator.providers.base import ModelCatalog
from conversational_orchestrator.providers.resolver import resolve_chat_model, resolve_embedding_model
from conversational_orchestrator.schemas import ChatRequest
from conversational_orchestrator.streaming.bridge import StreamBridge
from conversational_orchestrator.streaming.channel import ResponseChannel
from conversational_orchestrator.streaming.persistence import PersistenceQueue
from conversational_orchestrator.utils.tasks import BackgroundTasks


class ChatOrchestrator:
    def __init__(
        self,
        catalog: ModelCatalog,
        registry: HandlerRegistry,
        chat_db: ChatDatabase,
        message_db: MessageDatabase,
        derive_file: FileDescriptorDeriver,
        custom_openai: CustomOpenAISettings | None = None,
    ) -> None:
        self.catalog = catalog
        self.registry = registry
        self.chat_db = chat_db
        self.message_db = message_db
        self.custom_openai = custom_openai or CustomOpenAISettings()
        self.reconciler = HistoryReconciler(chat_db, message_db, derive_file)
        self.tasks = BackgroundTasks()

    async def start_turn(self, request: ChatRequest) -> ResponseChannel:
        chat_providers, embedding_providers = await asyncio.gather(
            self.catalog.get_chat_model_providers(),
            self.catalog.get_embedding_model_providers(),
        )
        llm = resolve_chat_model(chat_providers, request.chat_model, self.custom_openai)
        embeddings = resolve_embedding_model(embedding_providers, request.embedding_model)
        handler = self.registry.get(request.focus_mode)

        turn = request.message
        logger.info(
            f"Turn {turn.message_id!r} in chat {turn.chat_id!r}: focus mode {request.focus_mode!r}, "
            f"{request.optimization_mode} mode, chat model {llm.model_name!r}, embeddings {embeddings.model_name!r}"
        )

        stream = handler.search_and_answer(
            turn.content,
            history_to_messages(request.history),
            llm,
            embeddings,
            request.optimization_mode,
            request.files,
            request.system_instructions,
        )

        channel = ResponseChannel()
        bridge = StreamBridge(turn.chat_id, channel, self.message_db, PersistenceQueue(self.tasks))
        history_saved = self.tasks.spawn(
            self.reconciler.reconcile(turn, request.focus_mode, request.files),
            name=f"reconcile {turn.chat_id}/{turn.message_id}",
        )
        self.tasks.spawn(bridge.relay(stream, history_saved), name=f"relay {turn.chat_id}/{turn.message_id}")
        return channel

    async def get_chats(self) -> list[Chat]:
        return await self.chat_db.get_chats()

    async def get_chat(self, chat_id: str) -> tuple[Chat, list[Message]] | None:
        chat = await self.chat_db.get_chat_by_id(chat_id)
        if chat is None:
            return None
        return chat, await self.message_db.get_messages_by_chat_id(chat_id)

    async def delete_chat(self, chat_id: str) -> bool:
        if await self.chat_db.get_chat_by_id(chat_id) is None:
            return False
        # Messages go first: if deleting the chat then fails, the chat is still
        # listed and the delete can be retried, and no message is left orphaned.
        deleted = await self.message_db.delete_messages_by_chat_id(chat_id)
        logger.info(f"Deleting chat {chat_id!r} and its {deleted} messages")
        return await self.chat_db.delete_chat(chat_id)

    async def wait_until_idle(self) -> None:
        """Wait for all detached reconciliation, relay and persistence work."""
        await self.tasks.wait_until_idle()

    async def shutdown(self, timeout: float) -> None:
        """Wait up to 'timeout' seconds for background work, then cancel whatever is still running."""
        logger.info(f"Waiting for {len(self.tasks)} background tasks to finish")
        try:
            async with asyncio.timeout(timeout):
                await self.tasks.wait_until_idle()
        except TimeoutError:
            logger.warning(f"Cancelling {len(self.tasks)} background tasks still running after {timeout}s")
            await self.tasks.cancel_all()
