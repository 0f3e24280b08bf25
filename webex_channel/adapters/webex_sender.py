"""
Outbound delivery to Webex.

Builds a CreateMessageRequest from a generic OutboundMessage, validates it
without touching the network, then drives WebexClient through a bounded
retry loop. Only transient failures (429/502/503/504, network errors) are
retried; everything else is surfaced on the first failure.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from webex_channel.adapters.targets import TargetKind, classify_target
from webex_channel.adapters.webex_client import WebexClient
from webex_channel.channels.envelope import OutboundContent, OutboundMessage
from webex_channel.channels.plugins.webex.config import WebexConfig
from webex_channel.core.retry import RetryPolicy, RetryState
from webex_channel.errors import MessageValidationError
from webex_channel.schemas.webex import (
    CreateMessageRequest,
    WebexCardAttachment,
    WebexMessage,
)

logger = logging.getLogger(__name__)

MAX_TEXT_BYTES = 7439

Sleep = Callable[[float], Awaitable[Any]]


def build_message_request(message: OutboundMessage) -> CreateMessageRequest:
    """Map an OutboundMessage onto the Webex POST /messages shape."""
    target: dict[str, str] = {}
    kind = classify_target(message.to)
    if kind is TargetKind.PERSON_EMAIL:
        target["to_person_email"] = message.to
    elif kind is TargetKind.PERSON_ID:
        target["to_person_id"] = message.to
    else:
        target["room_id"] = message.to

    content: OutboundContent = message.content
    return CreateMessageRequest(
        **target,
        text=content.text or None,
        markdown=content.markdown or None,
        # Webex accepts a single file per message
        files=[content.files[0]] if content.files else None,
        attachments=(
            [WebexCardAttachment(content=content.card)] if content.card else None
        ),
        parent_id=message.parent_id or None,
    )


def validate_message_request(request: CreateMessageRequest) -> None:
    """Raise MessageValidationError for requests Webex would reject."""
    targets = [request.room_id, request.to_person_id, request.to_person_email]
    resolved = sum(1 for t in targets if t)
    if resolved == 0:
        raise MessageValidationError(
            "Message must have a target: room_id, to_person_id, or to_person_email"
        )
    if resolved > 1:
        raise MessageValidationError("Message must have exactly one target")

    if not (
        request.text or request.markdown or request.files or request.attachments
    ):
        raise MessageValidationError(
            "Message must have content: text, markdown, files, or attachments"
        )

    if request.text and len(request.text.encode("utf-8")) > MAX_TEXT_BYTES:
        raise MessageValidationError(
            f"Message text exceeds maximum size of {MAX_TEXT_BYTES} bytes"
        )


class WebexSender:
    """Sends messages through the Webex API with retry and backoff."""

    def __init__(
        self,
        config: WebexConfig,
        client: Optional[WebexClient] = None,
        sleep: Sleep = asyncio.sleep,
        rng: Optional[Callable[[], float]] = None,
    ) -> None:
        self.config = config
        self._owns_client = client is None
        self.client = client or WebexClient(
            token=config.token, api_base_url=config.api_base_url
        )
        self._sleep = sleep
        policy_kwargs: dict[str, Any] = {
            "max_retries": config.max_retries,
            "base_delay_ms": config.retry_delay_ms,
        }
        if rng is not None:
            policy_kwargs["rng"] = rng
        self.retry_policy = RetryPolicy(**policy_kwargs)

    @property
    def api_base_url(self) -> str:
        return self.client.api_base_url

    async def send(self, message: OutboundMessage) -> WebexMessage:
        """Send a generic outbound message and return the created Webex message."""
        request = build_message_request(message)
        return await self.create_message(request)

    async def send_to_room(
        self, room_id: str, text: str, markdown: Optional[str] = None
    ) -> WebexMessage:
        return await self.create_message(
            CreateMessageRequest(room_id=room_id, text=text, markdown=markdown)
        )

    async def send_direct_by_id(
        self, person_id: str, text: str, markdown: Optional[str] = None
    ) -> WebexMessage:
        return await self.create_message(
            CreateMessageRequest(to_person_id=person_id, text=text, markdown=markdown)
        )

    async def send_direct_by_email(
        self, email: str, text: str, markdown: Optional[str] = None
    ) -> WebexMessage:
        return await self.create_message(
            CreateMessageRequest(to_person_email=email, text=text, markdown=markdown)
        )

    async def send_with_file(
        self, room_id: str, text: str, file_url: str
    ) -> WebexMessage:
        return await self.create_message(
            CreateMessageRequest(room_id=room_id, text=text, files=[file_url])
        )

    async def send_reply(
        self,
        room_id: str,
        parent_id: str,
        text: str,
        markdown: Optional[str] = None,
    ) -> WebexMessage:
        return await self.create_message(
            CreateMessageRequest(
                room_id=room_id, parent_id=parent_id, text=text, markdown=markdown
            )
        )

    async def get_message(self, message_id: str) -> WebexMessage:
        data = await self.request("GET", f"/messages/{message_id}")
        return WebexMessage.model_validate(data)

    async def delete_message(self, message_id: str) -> None:
        await self.request("DELETE", f"/messages/{message_id}")

    async def create_message(self, request: CreateMessageRequest) -> WebexMessage:
        validate_message_request(request)
        data = await self.request("POST", "/messages", request.to_wire())
        return WebexMessage.model_validate(data)

    async def request(
        self, method: str, path: str, body: Optional[Any] = None
    ) -> Any:
        """
        Run one logical request, retrying transient failures.

        The body is built once by the caller and reused unchanged on every
        attempt. After the retry budget is spent the last error is raised.
        """
        state = RetryState()
        while True:
            try:
                return await self.client.execute(method, path, body)
            except Exception as e:
                if not self.retry_policy.record_failure(state, e):
                    logger.warning(
                        "Webex %s %s failed after %d attempt(s): %s",
                        method,
                        path,
                        state.attempt,
                        e,
                    )
                    raise
                logger.warning(
                    "Webex %s %s attempt %d failed (%s); retrying in %.0f ms",
                    method,
                    path,
                    state.attempt,
                    e,
                    state.next_delay_ms,
                )
                await self._sleep(state.next_delay_ms / 1000)

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()
