"""Ordered envelope subscribers with per-subscriber failure isolation."""

from __future__ import annotations

import inspect
import logging
from typing import Awaitable, Callable, Union

from webex_channel.channels.envelope import Envelope

logger = logging.getLogger(__name__)

EnvelopeHandler = Callable[[Envelope], Union[Awaitable[None], None]]


class SubscriberList:
    """Handlers run in registration order; one failing does not stop the rest."""

    def __init__(self) -> None:
        self._handlers: list[EnvelopeHandler] = []

    def __len__(self) -> int:
        return len(self._handlers)

    def add(self, handler: EnvelopeHandler) -> None:
        self._handlers.append(handler)

    def remove(self, handler: EnvelopeHandler) -> None:
        try:
            self._handlers.remove(handler)
        except ValueError:
            pass

    def clear(self) -> None:
        self._handlers = []

    async def notify(self, envelope: Envelope) -> list[Exception]:
        """Invoke every handler with `envelope`. Returns the errors raised, if any."""
        errors: list[Exception] = []
        # Snapshot so handlers may unsubscribe themselves mid-notify
        for handler in list(self._handlers):
            try:
                result = handler(envelope)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.exception("Error in Webex message handler for %s", envelope.id)
                errors.append(e)
        return errors
