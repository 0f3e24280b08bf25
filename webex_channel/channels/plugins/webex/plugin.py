"""Webex channel plugin: the surface the Conversa host talks to."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import partial
from typing import Any, Optional

import httpx

from webex_channel.adapters.targets import looks_like_webex_id
from webex_channel.adapters.webex_client import TIMEOUT_SECONDS, WebexClient
from webex_channel.adapters.webex_sender import Sleep, WebexSender
from webex_channel.channels.base import ChannelCapabilities, ChannelMeta, StopCallback
from webex_channel.channels.envelope import (
    Envelope,
    OutboundContent,
    OutboundMessage,
    OutboundSendResult,
)
from webex_channel.channels.plugins.webex.channel import WebexChannel
from webex_channel.channels.plugins.webex.config import (
    DEFAULT_ACCOUNT_ID,
    ResolvedWebexAccount,
    WebexSection,
    describe_account,
    list_account_ids,
    resolve_account,
)
from webex_channel.config import Settings, get_settings
from webex_channel.core.runtime import Runtime
from webex_channel.core.session_key import build_host_context
from webex_channel.core.webhook_router import WebhookRouter, WebhookTarget
from webex_channel.errors import ChannelConfigError, WebexError

logger = logging.getLogger(__name__)

TARGET_PREFIX = "webex:"


@dataclass
class ProbeResult:
    ok: bool
    elapsed_ms: int
    error: Optional[str] = None


@dataclass
class AccountRuntimeStatus:
    account_id: str
    running: bool = False
    last_start_at: Optional[datetime] = None
    last_stop_at: Optional[datetime] = None
    last_error: Optional[str] = None
    last_probe_at: Optional[datetime] = None


@dataclass
class _AccountHandle:
    channel: WebexChannel
    stop: StopCallback


def _now() -> datetime:
    return datetime.now(timezone.utc)


class WebexPlugin:
    id = "webex"
    meta = ChannelMeta(
        label="Webex",
        docs="/channels/webex",
        selection_label="Cisco Webex",
        blurb="Cisco Webex messaging via bot webhooks.",
        aliases=("cisco-webex",),
    )
    capabilities = ChannelCapabilities(
        chat_types=["direct", "group"],
        supports_webhook=True,
        supports_threads=True,
        supports_media=True,
    )
    text_chunk_limit = 7000  # below the 7439 byte API limit

    def __init__(
        self,
        webhook_router: WebhookRouter,
        runtime: Optional[Runtime] = None,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.settings = settings or get_settings()
        self.webhook_router = webhook_router
        self.runtime = runtime or Runtime()
        self._transport = transport
        self._sleep = sleep
        self._status: dict[str, AccountRuntimeStatus] = {}
        self._accounts: dict[str, _AccountHandle] = {}

    # -- config ---------------------------------------------------------

    def list_account_ids(self, section: Optional[WebexSection] = None) -> list[str]:
        return list_account_ids(section or self.settings.webex_section())

    def resolve_account(
        self,
        account_id: str = DEFAULT_ACCOUNT_ID,
        section: Optional[WebexSection] = None,
    ) -> ResolvedWebexAccount:
        return resolve_account(section or self.settings.webex_section(), account_id)

    # -- messaging ------------------------------------------------------

    @staticmethod
    def normalize_target(raw: str) -> Optional[str]:
        normalized = raw.strip()
        if normalized.lower().startswith(TARGET_PREFIX):
            normalized = normalized[len(TARGET_PREFIX):].strip()
        return normalized or None

    @staticmethod
    def looks_like_id(raw: str) -> bool:
        trimmed = raw.strip()
        if not trimmed:
            return False
        return looks_like_webex_id(trimmed) or "@" in trimmed

    # -- outbound -------------------------------------------------------

    async def send_text(
        self,
        to: str,
        text: str,
        account: ResolvedWebexAccount,
        reply_to_id: Optional[str] = None,
    ) -> OutboundSendResult:
        return await self.send(
            account,
            OutboundMessage(
                to=to, content=OutboundContent(text=text), parent_id=reply_to_id
            ),
        )

    async def send_media(
        self,
        to: str,
        text: Optional[str],
        media_url: Optional[str],
        account: ResolvedWebexAccount,
        reply_to_id: Optional[str] = None,
    ) -> OutboundSendResult:
        return await self.send(
            account,
            OutboundMessage(
                to=to,
                content=OutboundContent(
                    text=text, files=[media_url] if media_url else []
                ),
                parent_id=reply_to_id,
            ),
        )

    async def send(
        self, account: ResolvedWebexAccount, message: OutboundMessage
    ) -> OutboundSendResult:
        """Send one message for `account` with a short-lived client."""
        client = WebexClient(
            token=account.config.token,
            api_base_url=account.config.api_base_url,
            timeout=self.settings.webex_request_timeout_seconds,
            transport=self._transport,
        )
        sender = WebexSender(account.config, client=client, sleep=self._sleep)
        try:
            result = await sender.send(message)
        finally:
            await client.aclose()
        return OutboundSendResult(message_id=result.id, room_id=result.room_id)

    # -- gateway --------------------------------------------------------

    def webhook_path(self, account_id: str) -> str:
        prefix = self.settings.webex_webhook_path_prefix.rstrip("/")
        return f"{prefix}/{account_id}"

    async def start_account(self, account: ResolvedWebexAccount) -> StopCallback:
        """
        Bring one account online and return the callback that stops it.

        Initializes the channel (fetches the bot identity), registers the
        remote webhook, subscribes the host runtime and routes the account's
        webhook path. A failed remote registration is logged and start
        continues; the path still serves manually configured webhooks.
        """
        account_id = account.account_id
        status = self._status.setdefault(
            account_id, AccountRuntimeStatus(account_id=account_id)
        )
        if not account.configured:
            status.last_error = "Account not configured"
            raise ChannelConfigError(f"Webex account {account_id} is not configured")
        if account_id in self._accounts:
            raise RuntimeError(f"Webex account {account_id} is already running")

        logger.info("[%s] starting Webex provider (webhook mode)", account_id)
        channel = WebexChannel(
            transport=self._transport,
            sleep=self._sleep,
            timeout=self.settings.webex_request_timeout_seconds,
        )
        try:
            await channel.initialize(account.config)
        except Exception as e:
            status.last_error = str(e)
            raise

        try:
            await channel.register_webhooks()
            logger.info("[%s] webhooks registered", account_id)
        except WebexError as e:
            logger.warning("[%s] failed to register webhooks: %s", account_id, e)

        channel.on_message(partial(self._dispatch_to_runtime, account_id, channel))

        path = self.webhook_path(account_id)
        unregister = self.webhook_router.register(
            path,
            WebhookTarget(
                account_id=account_id,
                processor=channel.get_webhook_processor(),
                subscribers=channel.subscribers,
            ),
        )
        logger.info("[%s] HTTP webhook handler registered at %s", account_id, path)

        status.running = True
        status.last_start_at = _now()
        status.last_error = None

        async def stop() -> None:
            logger.info("[%s] stopping Webex provider", account_id)
            unregister()
            self._accounts.pop(account_id, None)
            await channel.shutdown()
            status.running = False
            status.last_stop_at = _now()

        self._accounts[account_id] = _AccountHandle(channel=channel, stop=stop)
        return stop

    async def stop_all(self) -> None:
        for handle in list(self._accounts.values()):
            await handle.stop()

    def get_channel(self, account_id: str) -> Optional[WebexChannel]:
        handle = self._accounts.get(account_id)
        return handle.channel if handle else None

    async def _dispatch_to_runtime(
        self, account_id: str, channel: WebexChannel, envelope: Envelope
    ) -> None:
        handler = self.runtime.inbound_handler
        if handler is None:
            logger.warning("[%s] no inbound handler in plugin runtime", account_id)
            return
        reply = await handler(envelope, build_host_context(envelope, account_id))
        if reply:
            await channel.send(
                OutboundMessage(
                    to=envelope.conversation_id,
                    content=OutboundContent(text=reply),
                    parent_id=envelope.metadata.parent_id,
                )
            )

    # -- status ---------------------------------------------------------

    async def probe_account(
        self, account: ResolvedWebexAccount, timeout: Optional[float] = None
    ) -> ProbeResult:
        """Lightweight authenticated GET /people/me reporting latency or error."""
        if not account.configured:
            return ProbeResult(ok=False, error="Account not configured", elapsed_ms=0)

        client = WebexClient(
            token=account.config.token,
            api_base_url=account.config.api_base_url,
            timeout=timeout or TIMEOUT_SECONDS,
            transport=self._transport,
        )
        start = time.monotonic()
        try:
            await client.execute("GET", "/people/me")
            result = ProbeResult(ok=True, elapsed_ms=_elapsed_ms(start))
        except WebexError as e:
            result = ProbeResult(ok=False, error=str(e), elapsed_ms=_elapsed_ms(start))
        finally:
            await client.aclose()

        status = self._status.setdefault(
            account.account_id, AccountRuntimeStatus(account_id=account.account_id)
        )
        status.last_probe_at = _now()
        return result

    def account_status(self, account_id: str) -> AccountRuntimeStatus:
        return self._status.get(account_id) or AccountRuntimeStatus(
            account_id=account_id
        )

    def account_snapshot(
        self, account: ResolvedWebexAccount, probe: Optional[ProbeResult] = None
    ) -> dict[str, Any]:
        status = self.account_status(account.account_id)
        return {
            **describe_account(account),
            "running": status.running,
            "last_start_at": status.last_start_at,
            "last_stop_at": status.last_stop_at,
            "last_error": status.last_error,
            "probe": probe,
            "last_probe_at": status.last_probe_at,
        }

    @staticmethod
    def collect_status_issues(snapshots: list[dict[str, Any]]) -> list[dict[str, Any]]:
        issues: list[dict[str, Any]] = []
        for snapshot in snapshots:
            last_error = (snapshot.get("last_error") or "").strip()
            if not last_error:
                continue
            issues.append(
                {
                    "channel": "webex",
                    "account_id": snapshot.get("account_id"),
                    "kind": "runtime",
                    "message": f"Channel error: {last_error}",
                }
            )
        return issues


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)
