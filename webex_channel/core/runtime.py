from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from webex_channel.channels.envelope import Envelope

# Receives the envelope and its host context; returns reply text, if any.
InboundHandler = Callable[[Envelope, dict[str, Any]], Awaitable[Optional[str]]]


@dataclass
class Runtime:
    inbound_handler: Optional[InboundHandler] = None
