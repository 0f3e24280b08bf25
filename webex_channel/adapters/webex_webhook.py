"""
Inbound Webex webhook processing.

A notification only carries identifiers. Processing filters it, checks the
signature and the direct-message policy, fetches the full message and
normalizes it into an Envelope. Policy denials and filtered traffic return
None; signature failures and fetch failures raise.

No deduplication is done here: a redelivered notification is normalized
again and produces a second, independent Envelope.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional, Union

from webex_channel.adapters.signature import verify_signature
from webex_channel.adapters.webex_client import WebexClient
from webex_channel.channels.envelope import (
    Attachment,
    Author,
    Envelope,
    EnvelopeContent,
    EnvelopeMetadata,
)
from webex_channel.channels.plugins.webex.config import DmPolicy, WebexConfig
from webex_channel.errors import (
    ChannelNotInitializedError,
    WebexApiError,
    WebhookSignatureError,
)
from webex_channel.schemas.webex import (
    CreateWebhookRequest,
    WebexMessage,
    WebexPerson,
    WebexWebhook,
    WebexWebhookData,
    WebexWebhookPayload,
)

logger = logging.getLogger(__name__)

WEBHOOK_NAME = "Conversa Webex Message Handler"
DIRECT_ROOM_TYPE = "direct"


def normalize_message(message: WebexMessage) -> Envelope:
    """Convert a full Webex message into the provider-agnostic Envelope."""
    attachments: list[Attachment] = []
    for file_url in message.files or []:
        attachments.append(Attachment(type="file", url=file_url))
    for card in message.attachments or []:
        attachments.append(Attachment(type="card", content=card.content))

    return Envelope(
        id=message.id,
        conversation_id=message.room_id,
        author=Author(
            id=message.person_id or "",
            email=message.person_email,
            display_name=None,  # not in the message; needs a /people lookup
            is_bot=False,  # the bot's own messages never get this far
        ),
        content=EnvelopeContent(
            text=message.text,
            markdown=message.markdown,
            attachments=attachments,
        ),
        metadata=EnvelopeMetadata(
            room_type=message.room_type,
            room_id=message.room_id,
            timestamp=message.created,
            mentions=message.mentioned_people,
            parent_id=message.parent_id,
            raw=message.model_dump(by_alias=True, exclude_none=True),
        ),
    )


def is_allowed_sender(config: WebexConfig, data: WebexWebhookData) -> bool:
    """Evaluate the direct-message policy. Closed by default."""
    policy = config.dm_policy
    if policy == DmPolicy.ALLOW.value:
        return True
    if policy == DmPolicy.ALLOWLISTED.value:
        if not config.allow_from:
            return False
        allowed = set(config.allow_from)
        return (data.person_id in allowed) or (data.person_email in allowed)
    return False


class WebexWebhookProcessor:
    """Turns Webex webhook notifications into Envelopes for one account."""

    def __init__(
        self, config: WebexConfig, client: Optional[WebexClient] = None
    ) -> None:
        self.config = config
        self._owns_client = client is None
        self.client = client or WebexClient(
            token=config.token, api_base_url=config.api_base_url
        )
        self._bot_id: Optional[str] = None

    @property
    def bot_id(self) -> Optional[str]:
        return self._bot_id

    @property
    def is_initialized(self) -> bool:
        return self._bot_id is not None

    async def initialize(self) -> None:
        """Fetch and cache the bot identity. Raises if it cannot be fetched."""
        data = await self.client.execute("GET", "/people/me")
        person = WebexPerson.model_validate(data)
        self._bot_id = person.id
        logger.info("Webex webhook processor initialized for bot %s", person.id)

    async def handle(
        self,
        notification: Union[WebexWebhookPayload, dict[str, Any]],
        raw_body: Optional[bytes] = None,
        signature: Optional[str] = None,
    ) -> Optional[Envelope]:
        """
        Process one notification.

        Returns:
            The normalized Envelope, or None for filtered or denied traffic.

        Raises:
            ChannelNotInitializedError: initialize() has not succeeded.
            WebhookSignatureError: signature does not match the secret.
            WebexApiError / WebexNetworkError: the message fetch failed.
        """
        if not self.is_initialized:
            raise ChannelNotInitializedError(
                "Webex webhook processor is not initialized"
            )

        if isinstance(notification, WebexWebhookPayload):
            payload = notification
        else:
            payload = WebexWebhookPayload.model_validate(notification)

        if payload.resource != "messages" or payload.event != "created":
            logger.debug(
                "Ignoring webhook %s/%s", payload.resource, payload.event
            )
            return None

        data = payload.data
        if data.person_id == self._bot_id:
            logger.debug("Ignoring message %s from the bot itself", data.id)
            return None

        if self.config.webhook_secret and signature:
            body = raw_body if raw_body is not None else self._canonical_body(notification)
            if not verify_signature(body, signature, self.config.webhook_secret):
                logger.warning("Rejected webhook %s: invalid signature", payload.id)
                raise WebhookSignatureError("Invalid webhook signature")

        if data.room_type == DIRECT_ROOM_TYPE and not is_allowed_sender(
            self.config, data
        ):
            logger.info(
                "Direct message %s denied by dm_policy=%s",
                data.id,
                self.config.dm_policy,
            )
            return None

        message = await self.fetch_message(data.id)
        return normalize_message(message)

    @staticmethod
    def _canonical_body(
        notification: Union[WebexWebhookPayload, dict[str, Any]]
    ) -> bytes:
        if isinstance(notification, WebexWebhookPayload):
            notification = notification.to_wire()
        return json.dumps(notification, separators=(",", ":")).encode("utf-8")

    async def fetch_message(self, message_id: str) -> WebexMessage:
        data = await self.client.execute("GET", f"/messages/{message_id}")
        return WebexMessage.model_validate(data)

    async def register_webhooks(self) -> list[WebexWebhook]:
        """
        Replace this account's webhooks with one messages/created webhook.

        Existing webhooks pointing at the same target URL are deleted first so
        restarts do not accumulate duplicates.
        """
        target_url = self.config.webhook_url
        for webhook in await self.list_webhooks():
            if webhook.target_url == target_url:
                await self.delete_webhook(webhook.id)

        created = await self.create_webhook(
            CreateWebhookRequest(
                name=WEBHOOK_NAME,
                target_url=target_url,
                resource="messages",
                event="created",
                secret=self.config.webhook_secret,
            )
        )
        logger.info("Registered Webex webhook %s -> %s", created.id, target_url)
        return [created]

    async def list_webhooks(self) -> list[WebexWebhook]:
        data = await self.client.execute("GET", "/webhooks")
        items = (data or {}).get("items", [])
        return [WebexWebhook.model_validate(item) for item in items]

    async def create_webhook(self, request: CreateWebhookRequest) -> WebexWebhook:
        data = await self.client.execute("POST", "/webhooks", request.to_wire())
        return WebexWebhook.model_validate(data)

    async def delete_webhook(self, webhook_id: str) -> None:
        """Delete a webhook. An already-deleted webhook (404) is not an error."""
        try:
            await self.client.execute("DELETE", f"/webhooks/{webhook_id}")
        except WebexApiError as e:
            if e.status_code != 404:
                raise
        logger.info("Deleted Webex webhook %s", webhook_id)

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()
