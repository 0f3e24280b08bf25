from fastapi import Depends, HTTPException, Request

from webex_channel.channels.plugins.webex.plugin import WebexPlugin
from webex_channel.core.app_state import AppState


def get_app_state(request: Request) -> AppState:
    """FastAPI dependency returning the host state attached in create_app."""
    return request.app.state.conversa


def get_webex_plugin(state: AppState = Depends(get_app_state)) -> WebexPlugin:
    """FastAPI dependency to get the registered Webex plugin."""
    plugin = state.registry.get_channel("webex")
    if not isinstance(plugin, WebexPlugin):
        raise HTTPException(
            status_code=503, detail="Webex integration is not registered"
        )
    return plugin
