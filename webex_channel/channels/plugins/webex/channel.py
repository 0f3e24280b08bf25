"""
WebexChannel: the per-account public surface.

Combines the sender, the webhook processor and an ordered subscriber list.
States: uninitialized -> initialized -> (shutdown) uninitialized. Every
operational method raises ChannelNotInitializedError outside `initialized`.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional, Union

import httpx

from webex_channel import __version__
from webex_channel.adapters.webex_client import TIMEOUT_SECONDS, WebexClient
from webex_channel.adapters.webex_sender import Sleep, WebexSender
from webex_channel.adapters.webex_webhook import WebexWebhookProcessor
from webex_channel.channels.envelope import Envelope, OutboundContent, OutboundMessage
from webex_channel.channels.plugins.webex.config import WebexConfig, validate_config
from webex_channel.core.subscribers import EnvelopeHandler, SubscriberList
from webex_channel.errors import ChannelNotInitializedError
from webex_channel.schemas.webex import WebexMessage, WebexWebhook, WebexWebhookPayload

logger = logging.getLogger(__name__)


class WebexChannel:
    name = "webex"
    version = __version__

    def __init__(
        self,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Sleep = asyncio.sleep,
        timeout: float = TIMEOUT_SECONDS,
    ) -> None:
        self._transport = transport
        self._timeout = timeout
        self._sleep = sleep
        self._config: Optional[WebexConfig] = None
        self._client: Optional[WebexClient] = None
        self._sender: Optional[WebexSender] = None
        self._processor: Optional[WebexWebhookProcessor] = None
        self._subscribers = SubscriberList()

    async def initialize(self, config: Union[WebexConfig, dict[str, Any]]) -> None:
        """
        Validate `config`, build the sender and processor, fetch the bot identity.

        Raises:
            ChannelConfigError: config is invalid.
            RuntimeError: the channel is already initialized.
            WebexApiError / WebexNetworkError: the bot identity fetch failed;
                the channel stays uninitialized.
        """
        if self.is_initialized:
            raise RuntimeError(
                "Webex channel is already initialized. Call shutdown() first."
            )
        if not isinstance(config, WebexConfig):
            config = WebexConfig.model_validate(config)
        validate_config(config)

        client = WebexClient(
            token=config.token,
            api_base_url=config.api_base_url,
            timeout=self._timeout,
            transport=self._transport,
        )
        processor = WebexWebhookProcessor(config, client=client)
        try:
            await processor.initialize()
        except Exception:
            await client.aclose()
            raise

        self._config = config
        self._client = client
        self._sender = WebexSender(config, client=client, sleep=self._sleep)
        self._processor = processor

    @property
    def is_initialized(self) -> bool:
        return self._processor is not None

    def _ensure_initialized(self) -> None:
        if (
            self._config is None
            or self._sender is None
            or self._processor is None
        ):
            raise ChannelNotInitializedError()

    @property
    def subscribers(self) -> SubscriberList:
        self._ensure_initialized()
        return self._subscribers

    def get_config(self) -> WebexConfig:
        self._ensure_initialized()
        assert self._config is not None
        return self._config

    @property
    def config(self) -> WebexConfig:
        return self.get_config()

    def get_sender(self) -> WebexSender:
        self._ensure_initialized()
        assert self._sender is not None
        return self._sender

    def get_webhook_processor(self) -> WebexWebhookProcessor:
        self._ensure_initialized()
        assert self._processor is not None
        return self._processor

    async def send(self, message: OutboundMessage) -> WebexMessage:
        return await self.get_sender().send(message)

    async def send_text(self, room_id: str, text: str) -> WebexMessage:
        return await self.send(
            OutboundMessage(to=room_id, content=OutboundContent(text=text))
        )

    async def send_markdown(self, room_id: str, markdown: str) -> WebexMessage:
        return await self.send(
            OutboundMessage(to=room_id, content=OutboundContent(markdown=markdown))
        )

    async def send_direct(self, person_id_or_email: str, text: str) -> WebexMessage:
        return await self.send(
            OutboundMessage(to=person_id_or_email, content=OutboundContent(text=text))
        )

    async def reply(self, room_id: str, parent_id: str, text: str) -> WebexMessage:
        return await self.send(
            OutboundMessage(
                to=room_id, content=OutboundContent(text=text), parent_id=parent_id
            )
        )

    async def handle_webhook(
        self,
        payload: Union[WebexWebhookPayload, dict[str, Any]],
        raw_body: Optional[bytes] = None,
        signature: Optional[str] = None,
    ) -> Optional[Envelope]:
        """Process a notification and notify subscribers when it yields an Envelope."""
        envelope = await self.get_webhook_processor().handle(
            payload, raw_body=raw_body, signature=signature
        )
        if envelope is not None:
            await self._subscribers.notify(envelope)
        return envelope

    def on_message(self, handler: EnvelopeHandler) -> None:
        self._subscribers.add(handler)

    def off_message(self, handler: EnvelopeHandler) -> None:
        self._subscribers.remove(handler)

    async def register_webhooks(self) -> list[WebexWebhook]:
        return await self.get_webhook_processor().register_webhooks()

    async def shutdown(self) -> None:
        """Drop subscribers and components. The channel may be initialized again."""
        self._subscribers.clear()
        self._subscribers = SubscriberList()
        client = self._client
        self._sender = None
        self._processor = None
        self._client = None
        self._config = None
        if client is not None:
            await client.aclose()


async def create_and_initialize(
    config: Union[WebexConfig, dict[str, Any]],
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> WebexChannel:
    channel = WebexChannel(transport=transport)
    await channel.initialize(config)
    return channel
