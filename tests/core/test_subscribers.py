from unittest.mock import AsyncMock, MagicMock

import pytest

from webex_channel.adapters.webex_webhook import normalize_message
from webex_channel.core.subscribers import SubscriberList
from webex_channel.schemas.webex import WebexMessage
from tests.fixtures.webex_fixtures import webex_message


@pytest.fixture
def envelope():
    return normalize_message(WebexMessage.model_validate(webex_message()))


@pytest.mark.asyncio
async def test_handlers_run_in_registration_order(envelope):
    calls = []
    subscribers = SubscriberList()
    subscribers.add(lambda e: calls.append("first"))

    async def second(e):
        calls.append("second")

    subscribers.add(second)

    errors = await subscribers.notify(envelope)

    assert calls == ["first", "second"]
    assert errors == []


@pytest.mark.asyncio
async def test_failing_handler_does_not_stop_the_rest(envelope):
    boom = RuntimeError("boom")
    failing = AsyncMock(side_effect=boom)
    healthy = MagicMock()
    subscribers = SubscriberList()
    subscribers.add(failing)
    subscribers.add(healthy)

    errors = await subscribers.notify(envelope)

    assert errors == [boom]
    failing.assert_awaited_once_with(envelope)
    healthy.assert_called_once_with(envelope)


@pytest.mark.asyncio
async def test_remove_and_clear(envelope):
    handler = MagicMock()
    subscribers = SubscriberList()
    subscribers.add(handler)
    subscribers.remove(handler)
    subscribers.remove(handler)  # unknown handler is ignored
    await subscribers.notify(envelope)
    handler.assert_not_called()

    subscribers.add(handler)
    subscribers.add(handler)
    assert len(subscribers) == 2
    subscribers.clear()
    assert len(subscribers) == 0


@pytest.mark.asyncio
async def test_handler_may_unsubscribe_during_notify(envelope):
    subscribers = SubscriberList()
    later = MagicMock()

    def once(e):
        subscribers.remove(once)

    subscribers.add(once)
    subscribers.add(later)

    await subscribers.notify(envelope)
    await subscribers.notify(envelope)

    assert len(subscribers) == 1
    assert later.call_count == 2
