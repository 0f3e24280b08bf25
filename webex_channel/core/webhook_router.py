"""
Path-based routing of inbound webhook requests to account processors.

The registration table is the only shared mutable structure. Writers swap in
a new read-only mapping under a lock; readers take the current mapping
without locking and never see a half-updated entry.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional

from pydantic import ValidationError

from webex_channel.adapters.signature import SIGNATURE_HEADER
from webex_channel.adapters.webex_webhook import WebexWebhookProcessor
from webex_channel.core.subscribers import SubscriberList
from webex_channel.errors import WebhookSignatureError

logger = logging.getLogger(__name__)

DEFAULT_MAX_BODY_BYTES = 1024 * 1024


def normalize_webhook_path(raw: str) -> str:
    """Leading slash, no trailing slash (except for the root path)."""
    trimmed = raw.strip()
    if not trimmed:
        return "/"
    with_slash = trimmed if trimmed.startswith("/") else f"/{trimmed}"
    if len(with_slash) > 1 and with_slash.endswith("/"):
        return with_slash[:-1]
    return with_slash


@dataclass(frozen=True)
class WebhookTarget:
    account_id: str
    processor: WebexWebhookProcessor
    subscribers: SubscriberList = field(default_factory=SubscriberList)


@dataclass(frozen=True)
class WebhookResponse:
    """Outcome of a dispatch. `handled=False` means the caller should fall through."""

    handled: bool
    status_code: int = 404
    body: Any = None
    headers: Mapping[str, str] = field(default_factory=dict)


NOT_HANDLED = WebhookResponse(handled=False)


class WebhookRouter:
    """Maps normalized paths to registered webhook targets."""

    def __init__(self, max_body_bytes: int = DEFAULT_MAX_BODY_BYTES) -> None:
        self.max_body_bytes = max_body_bytes
        self._lock = threading.Lock()
        self._targets: Mapping[str, WebhookTarget] = MappingProxyType({})

    def register(self, path: str, target: WebhookTarget) -> Callable[[], None]:
        """
        Register `target` at `path` and return its unregister function.

        The returned function only removes this registration; if the path has
        since been re-registered it leaves the newer target in place.
        """
        key = normalize_webhook_path(path)
        with self._lock:
            updated = dict(self._targets)
            if key in updated:
                logger.warning("Replacing webhook target at %s", key)
            updated[key] = target
            self._targets = MappingProxyType(updated)

        def unregister() -> None:
            with self._lock:
                if self._targets.get(key) is not target:
                    return
                updated = dict(self._targets)
                del updated[key]
                self._targets = MappingProxyType(updated)

        return unregister

    def get(self, path: str) -> Optional[WebhookTarget]:
        return self._targets.get(normalize_webhook_path(path))

    def paths(self) -> list[str]:
        return sorted(self._targets)

    async def dispatch(
        self,
        path: str,
        method: str,
        body: bytes,
        headers: Optional[Mapping[str, str]] = None,
    ) -> WebhookResponse:
        target = self.get(path)
        if target is None:
            return NOT_HANDLED

        if method.upper() != "POST":
            return WebhookResponse(
                handled=True,
                status_code=405,
                body="Method Not Allowed",
                headers={"Allow": "POST"},
            )

        if len(body) > self.max_body_bytes:
            return WebhookResponse(
                handled=True, status_code=413, body={"error": "payload too large"}
            )

        try:
            payload = json.loads(body)
        except (ValueError, UnicodeDecodeError):
            return WebhookResponse(
                handled=True, status_code=400, body={"error": "invalid json"}
            )
        if not isinstance(payload, dict):
            return WebhookResponse(
                handled=True, status_code=400, body={"error": "invalid payload"}
            )

        signature = _header(headers, SIGNATURE_HEADER)
        try:
            envelope = await target.processor.handle(
                payload, raw_body=body, signature=signature
            )
            if envelope is not None:
                await target.subscribers.notify(envelope)
        except WebhookSignatureError:
            return WebhookResponse(
                handled=True, status_code=403, body={"error": "Invalid signature"}
            )
        except ValidationError as e:
            logger.warning(
                "[webex:%s] malformed webhook payload: %s", target.account_id, e
            )
            return WebhookResponse(
                handled=True, status_code=400, body={"error": "invalid payload"}
            )
        except Exception:
            logger.exception("[webex:%s] webhook error", target.account_id)
            return WebhookResponse(
                handled=True, status_code=500, body={"error": "Internal error"}
            )

        return WebhookResponse(handled=True, status_code=200, body={"ok": True})


def _header(headers: Optional[Mapping[str, str]], name: str) -> Optional[str]:
    if not headers:
        return None
    lowered = name.lower()
    for key, value in headers.items():
        if key.lower() == lowered:
            return value
    return None
