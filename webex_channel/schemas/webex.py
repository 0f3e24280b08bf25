"""
Webex REST and webhook payload schemas.

Matches the camelCase JSON Webex sends and accepts. Python attributes are
snake_case; dump with `by_alias=True` to get the wire shape back.
"""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

ADAPTIVE_CARD_CONTENT_TYPE = "application/vnd.microsoft.card.adaptive"


class WebexModel(BaseModel):
    """Base for Webex wire models: camelCase aliases, unknown keys kept."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow"
    )

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class WebexPerson(WebexModel):
    """GET /people/me and /people/{id}."""

    id: str
    emails: list[str] = Field(default_factory=list)
    display_name: Optional[str] = None
    nick_name: Optional[str] = None
    org_id: Optional[str] = None
    type: Optional[str] = None  # person | bot


class WebexCardAttachment(WebexModel):
    """Adaptive card attached to a message."""

    content_type: str = ADAPTIVE_CARD_CONTENT_TYPE
    content: Any = None


class WebexMessage(WebexModel):
    """Full message as returned by GET /messages/{id} and POST /messages."""

    id: str
    room_id: str
    room_type: Optional[str] = None  # direct | group
    to_person_id: Optional[str] = None
    to_person_email: Optional[str] = None
    text: Optional[str] = None
    markdown: Optional[str] = None
    html: Optional[str] = None
    files: Optional[list[str]] = None
    person_id: Optional[str] = None
    person_email: Optional[str] = None
    mentioned_people: Optional[list[str]] = None
    mentioned_groups: Optional[list[str]] = None
    attachments: Optional[list[WebexCardAttachment]] = None
    created: Optional[str] = None
    updated: Optional[str] = None
    parent_id: Optional[str] = None


class WebexWebhookData(WebexModel):
    """The `data` object of a webhook notification. Identifiers only."""

    id: str
    room_id: Optional[str] = None
    room_type: Optional[str] = None
    person_id: Optional[str] = None
    person_email: Optional[str] = None
    created: Optional[str] = None
    mentioned_people: Optional[list[str]] = None
    mentioned_groups: Optional[list[str]] = None
    files: Optional[list[str]] = None


class WebexWebhookPayload(WebexModel):
    """Webhook notification (root object) POSTed to the target URL."""

    id: Optional[str] = None
    name: Optional[str] = None
    target_url: Optional[str] = None
    resource: str
    event: str
    filter: Optional[str] = None
    org_id: Optional[str] = None
    created_by: Optional[str] = None
    app_id: Optional[str] = None
    owned_by: Optional[str] = None
    status: Optional[str] = None
    created: Optional[str] = None
    actor_id: Optional[str] = None
    data: WebexWebhookData


class WebexWebhook(WebexModel):
    """A webhook registration as stored by Webex."""

    id: str
    name: Optional[str] = None
    target_url: str
    resource: str
    event: str
    filter: Optional[str] = None
    secret: Optional[str] = None
    status: Optional[str] = None
    created: Optional[str] = None


class CreateMessageRequest(WebexModel):
    """POST /messages body. Exactly one of room_id, to_person_id, to_person_email."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    room_id: Optional[str] = None
    to_person_id: Optional[str] = None
    to_person_email: Optional[str] = None
    text: Optional[str] = None
    markdown: Optional[str] = None
    files: Optional[list[str]] = None
    attachments: Optional[list[WebexCardAttachment]] = None
    parent_id: Optional[str] = None


class CreateWebhookRequest(WebexModel):
    """POST /webhooks body."""

    name: str
    target_url: str
    resource: Literal["messages", "memberships", "rooms", "attachmentActions"]
    event: Literal["created", "updated", "deleted"]
    filter: Optional[str] = None
    secret: Optional[str] = None


class WebexErrorDetail(WebexModel):
    description: Optional[str] = None


class WebexApiErrorBody(WebexModel):
    """Structured error body Webex returns on non-2xx responses."""

    message: Optional[str] = None
    errors: Optional[list[WebexErrorDetail]] = None
    tracking_id: Optional[str] = None
