from __future__ import annotations

from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, Protocol

from .envelope import OutboundSendResult
from .plugins.webex.config import ResolvedWebexAccount

StopCallback = Callable[[], Awaitable[None]]


@dataclass(frozen=True)
class ChannelMeta:
    label: str
    docs: Optional[str] = None
    selection_label: Optional[str] = None
    blurb: Optional[str] = None
    aliases: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ChannelCapabilities:
    chat_types: list[str]
    supports_webhook: bool = False
    supports_polling: bool = False
    supports_threads: bool = False
    supports_media: bool = False


class ChannelPlugin(Protocol):
    id: str
    meta: ChannelMeta
    capabilities: ChannelCapabilities

    async def start_account(self, account: ResolvedWebexAccount) -> StopCallback: ...

    async def send_text(
        self,
        to: str,
        text: str,
        account: ResolvedWebexAccount,
        reply_to_id: Optional[str] = None,
    ) -> OutboundSendResult: ...
