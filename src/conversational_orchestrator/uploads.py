"""
Uploaded files.

An upload with id 'F' is stored as '<uploads_dir>/F-extracted.json', holding
the text extracted from the original document:

    {"title": "manual.pdf", "contents": ["first passage", "second passage", ...]}

'UploadStore.get_file_details' derives the 'FileDescriptor' stored on a chat,
and 'UploadStore.load_chunks' turns the extracted passages into chunks the
file search handler can rank.
"""

import json
from pathlib import Path
from typing import Any

from loguru import logger

from conversational_orchestrator.chunking.base import ChunkRecord
from conversational_orchestrator.conversation_database.data_models.chat import FileDescriptor


class UploadStore:
    def __init__(self, uploads_dir: Path) -> None:
        self.uploads_dir = Path(uploads_dir)

    def _extracted_path(self, file_id: str) -> Path:
        # file ids are opaque; only the final path component is used
        return self.uploads_dir / f"{Path(file_id).name}-extracted.json"

    def _read_extracted(self, file_id: str) -> dict[str, Any]:
        return json.loads(self._extracted_path(file_id).read_text(encoding="utf-8"))

    def get_file_details(self, file_id: str) -> FileDescriptor:
        """Return the descriptor of 'file_id'; unreadable uploads are named after their id."""
        try:
            extracted = self._read_extracted(file_id)
        except (OSError, ValueError) as exc:
            logger.warning(f"Could not read extracted upload {file_id!r}: {exc}")
            return FileDescriptor(name=file_id, file_id=file_id)
        return FileDescriptor(name=str(extracted.get("title") or file_id), file_id=file_id)

    def load_chunks(self, file_ids: list[str]) -> list[ChunkRecord]:
        """Return one chunk per extracted passage of every readable upload in 'file_ids'."""
        chunks: list[ChunkRecord] = []
        for file_id in file_ids:
            try:
                extracted = self._read_extracted(file_id)
            except (OSError, ValueError) as exc:
                logger.warning(f"Skipping upload {file_id!r}: {exc}")
                continue
            title = str(extracted.get("title") or file_id)
            for index, passage in enumerate(extracted.get("contents") or []):
                if not str(passage).strip():
                    continue
                chunks.append(
                    ChunkRecord(
                        id=f"{file_id}:{index}",
                        title=title,
                        content=str(passage),
                        mime_type="text/plain",
                        metadata={"fileId": file_id, "fileName": title},
                    )
                )
        logger.debug(f"Loaded {len(chunks)} chunks from {len(file_ids)} uploads")
        return chunks
