"""
Client wire protocol.

The response body of a chat turn is a sequence of framed records: one compact
JSON object per line. Four frame types exist; a stream ends with exactly one
'messageEnd' or 'error' frame.
"""

from typing import Any, Literal

from pydantic import BaseModel, Field


class Frame(BaseModel):
    def encode(self, charset: str = "utf-8") -> bytes:
        return (self.model_dump_json(by_alias=True) + "\n").encode(charset)


class MessageFrame(Frame):
    type: Literal["message"] = "message"
    data: str
    message_id: str = Field(serialization_alias="messageId")


class SourcesFrame(Frame):
    type: Literal["sources"] = "sources"
    data: list[dict[str, Any]]
    message_id: str = Field(serialization_alias="messageId")


class MessageEndFrame(Frame):
    type: Literal["messageEnd"] = "messageEnd"


class ErrorFrame(Frame):
    type: Literal["error"] = "error"
    data: str
