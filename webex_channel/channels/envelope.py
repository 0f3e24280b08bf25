from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

AttachmentType = Literal["file", "card"]


class Attachment(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: AttachmentType
    url: Optional[str] = None
    content: Any = None


class Author(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    is_bot: bool = False


class EnvelopeContent(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: Optional[str] = None
    markdown: Optional[str] = None
    attachments: list[Attachment] = Field(default_factory=list)


class EnvelopeMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    room_type: Optional[str]  # direct | group
    room_id: str
    timestamp: Optional[str]
    mentions: Optional[list[str]] = None
    parent_id: Optional[str] = None
    raw: dict[str, Any] = Field(default_factory=dict)


class Envelope(BaseModel):
    """Normalized inbound message. Subscribers receive it read-only."""

    model_config = ConfigDict(frozen=True)

    id: str
    channel: Literal["webex"] = "webex"
    conversation_id: str
    author: Author
    content: EnvelopeContent
    metadata: EnvelopeMetadata


class OutboundContent(BaseModel):
    text: Optional[str] = None
    markdown: Optional[str] = None
    files: list[str] = Field(default_factory=list)
    card: Optional[dict[str, Any]] = None


class OutboundMessage(BaseModel):
    """Generic message to send. `to` is a room id, person id or email."""

    to: str
    content: OutboundContent = Field(default_factory=OutboundContent)
    parent_id: Optional[str] = None


class OutboundSendResult(BaseModel):
    channel: Literal["webex"] = "webex"
    message_id: str
    room_id: Optional[str] = None
