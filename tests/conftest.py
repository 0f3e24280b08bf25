import pytest

from tests.fixtures.webex_fixtures import (
    FakeWebexApi,
    RecordingSleep,
    bot_person,
    config_kwargs,
)
from webex_channel.channels.plugins.webex.config import WebexConfig


@pytest.fixture
def webex_api() -> FakeWebexApi:
    """Fake Webex API that already knows the bot identity."""
    return FakeWebexApi().respond("GET", "/people/me", {"json": bot_person()})


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def webex_config() -> WebexConfig:
    return WebexConfig(**config_kwargs())
