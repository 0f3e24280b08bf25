"""FastAPI application exposing the Webex webhook listener and outbound API."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI

from webex_channel.core.app_state import (
    AppState,
    register,
    start_configured_accounts,
    stop_accounts,
)
from webex_channel.infra.logging_config import setup_logging
from webex_channel.routers import outbound, webhooks


def create_app(testing: bool = False, app_state: Optional[AppState] = None) -> FastAPI:
    """
    Build the app. With `testing=True` no account is started at startup;
    tests start accounts themselves against a mocked Webex API.
    """
    state = app_state or AppState()
    if state.registry.get_channel("webex") is None:
        register(state)
    setup_logging(state.settings.log_level)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        plugin = state.registry.get_channel("webex")
        if not testing and state.settings.webex_enabled and plugin is not None:
            await start_configured_accounts(state, plugin)
        try:
            yield
        finally:
            await stop_accounts(state)

    app = FastAPI(title=state.settings.app_name, lifespan=lifespan)
    app.state.conversa = state
    app.include_router(webhooks.router)
    app.include_router(outbound.router)
    return app
