from __future__ import annotations

import logging
from typing import Optional

import httpx

from webex_channel.channels.base import StopCallback
from webex_channel.channels.plugins.webex.plugin import WebexPlugin
from webex_channel.config import Settings, get_settings
from webex_channel.core.registry import PluginRegistry
from webex_channel.core.runtime import Runtime
from webex_channel.core.webhook_router import WebhookRouter

logger = logging.getLogger(__name__)


class AppState:
    """Per-process host state: channel registry, webhook router, runtime callbacks."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        runtime: Optional[Runtime] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.registry = PluginRegistry()
        self.webhook_router = WebhookRouter(
            max_body_bytes=self.settings.webex_max_body_bytes
        )
        self.runtime = runtime or Runtime()
        self.stop_callbacks: list[StopCallback] = []


def register(
    state: AppState, transport: Optional[httpx.AsyncBaseTransport] = None
) -> WebexPlugin:
    """Register the Webex channel with the host and return the plugin instance."""
    plugin = WebexPlugin(
        webhook_router=state.webhook_router,
        runtime=state.runtime,
        settings=state.settings,
        transport=transport,
    )
    state.registry.register_channel(plugin)
    return plugin


async def start_configured_accounts(state: AppState, plugin: WebexPlugin) -> None:
    """Start every enabled, configured account. One failing account does not stop the rest."""
    for account_id in plugin.list_account_ids():
        account = plugin.resolve_account(account_id)
        if not (account.enabled and account.configured):
            logger.info("Skipping Webex account %s (disabled or unconfigured)", account_id)
            continue
        try:
            stop = await plugin.start_account(account)
        except Exception:
            logger.exception("Failed to start Webex account %s", account_id)
            continue
        state.stop_callbacks.append(stop)


async def stop_accounts(state: AppState) -> None:
    while state.stop_callbacks:
        stop = state.stop_callbacks.pop()
        await stop()
