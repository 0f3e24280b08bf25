import logging

import pytest

from webex_channel.channels.plugins.webex import plugin
from webex_channel.core import app_state
from webex_channel.infra.logging_config import LOGGER_NAME, setup_logging


@pytest.fixture
def restore_level():
    package_logger = logging.getLogger(LOGGER_NAME)
    level = package_logger.level
    yield
    package_logger.setLevel(level)


@pytest.mark.parametrize("module", [plugin, app_state])
def test_module_loggers_are_named_after_their_module(module):
    assert module.logger.name == module.__name__
    assert module.logger.name.startswith(f"{LOGGER_NAME}.")


def test_setup_logging_level_reaches_module_loggers(restore_level):
    setup_logging("debug")

    assert logging.getLogger(LOGGER_NAME).level == logging.DEBUG
    assert plugin.logger.getEffectiveLevel() == logging.DEBUG

    setup_logging("WARNING")

    assert plugin.logger.getEffectiveLevel() == logging.WARNING
