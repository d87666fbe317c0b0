"""
HTTP API.

'create_app' exposes a 'ChatOrchestrator' over FastAPI:

    POST   /api/chat             - run one turn; streams newline-delimited JSON frames
    GET    /api/chats            - list stored chats
    GET    /api/chats/{chat_id}  - one chat with its messages
    DELETE /api/chats/{chat_id}  - delete a chat and its messages

The chat endpoint validates the body itself so that validation, resolution and
internal failures keep the response shapes clients already rely on. Once the
stream has started, failures are reported in-band as 'error' frames.

'build_app' wires the production collaborators from 'Settings'.
"""

from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Any

from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, Response, StreamingResponse
from loguru import logger
from pydantic import ValidationError

from conversational_orchestrator.config import Settings
from conversational_orchestrator.conversation_database.sql import SQLChatDatabase, SQLDatabase, SQLMessageDatabase
from conversational_orchestrator.handlers.registry import UnknownFocusModeError, build_default_registry
from conversational_orchestrator.orchestrator import ChatOrchestrator
from conversational_orchestrator.providers.catalog import ConfiguredModelCatalog
from conversational_orchestrator.providers.resolver import ModelResolutionError
from conversational_orchestrator.schemas import ChatRequest, format_validation_errors
from conversational_orchestrator.uploads import UploadStore

STREAM_HEADERS = {
    "Connection": "keep-alive",
    "Cache-Control": "no-cache, no-transform",
}
INTERNAL_ERROR_MESSAGE = "An error occurred while processing chat request"

Lifespan = Callable[[FastAPI], AbstractAsyncContextManager[None]]


def create_app(orchestrator: ChatOrchestrator, lifespan: Lifespan | None = None) -> FastAPI:
    app = FastAPI(title="Conversational Orchestrator", lifespan=lifespan)
    app.state.orchestrator = orchestrator
    router = APIRouter(prefix="/api")

    @router.post("/chat")
    async def chat(request: Request) -> Response:
        try:
            payload = await request.json()
        except ValueError:
            return JSONResponse(
                {"message": "Invalid request body", "error": [{"path": "", "message": "Body must be valid JSON"}]},
                status_code=400,
            )

        try:
            body = ChatRequest.model_validate(payload)
        except ValidationError as exc:
            return JSONResponse(
                {"message": "Invalid request body", "error": format_validation_errors(exc)},
                status_code=400,
            )

        try:
            channel = await orchestrator.start_turn(body)
        except ModelResolutionError as exc:
            return JSONResponse({"error": str(exc)}, status_code=400)
        except UnknownFocusModeError as exc:
            return JSONResponse({"message": str(exc)}, status_code=400)
        except Exception:
            logger.exception("An error occurred while processing chat request")
            return JSONResponse({"message": INTERNAL_ERROR_MESSAGE}, status_code=500)

        return StreamingResponse(channel.stream(), media_type="text/event-stream", headers=STREAM_HEADERS)

    @router.get("/chats")
    async def list_chats() -> dict[str, Any]:
        chats = await orchestrator.get_chats()
        return {"chats": [chat.model_dump(by_alias=True) for chat in chats]}

    @router.get("/chats/{chat_id}")
    async def get_chat(chat_id: str) -> dict[str, Any]:
        found = await orchestrator.get_chat(chat_id)
        if found is None:
            raise HTTPException(status_code=404, detail="Chat not found")
        chat, messages = found
        return {
            "chat": chat.model_dump(by_alias=True),
            "messages": [message.model_dump(by_alias=True) for message in messages],
        }

    @router.delete("/chats/{chat_id}")
    async def delete_chat(chat_id: str) -> dict[str, Any]:
        if not await orchestrator.delete_chat(chat_id):
            raise HTTPException(status_code=404, detail="Chat not found")
        return {"message": "Chat deleted successfully"}

    app.include_router(router)
    return app


def build_app(settings: Settings) -> FastAPI:
    database = SQLDatabase(settings.database_url)
    uploads = UploadStore(settings.uploads_dir)
    orchestrator = ChatOrchestrator(
        catalog=ConfiguredModelCatalog(settings),
        registry=build_default_registry(uploads),
        chat_db=SQLChatDatabase(database),
        message_db=SQLMessageDatabase(database),
        derive_file=uploads.get_file_details,
        custom_openai=settings.custom_openai,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await database.create_tables()
        yield
        await orchestrator.shutdown(settings.shutdown_timeout)
        await database.dispose()

    return create_app(orchestrator, lifespan=lifespan)
