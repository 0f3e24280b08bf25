"""
Outbound API: send messages to Webex through a configured account.

Internal consumers POST a generic outbound message; we resolve the account,
send with retry, and return {"data": {...}}.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query

from webex_channel.channels.envelope import OutboundMessage
from webex_channel.channels.plugins.webex.config import DEFAULT_ACCOUNT_ID
from webex_channel.channels.plugins.webex.plugin import WebexPlugin
from webex_channel.errors import (
    MessageValidationError,
    WebexApiError,
    WebexNetworkError,
)
from webex_channel.routers.utils.dependencies import get_webex_plugin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/outbound", tags=["outbound"])


@router.post("", response_model=dict[str, Any])
async def send_outbound(
    body: OutboundMessage,
    account_id: str = Query(default=DEFAULT_ACCOUNT_ID),
    plugin: WebexPlugin = Depends(get_webex_plugin),
) -> dict[str, Any]:
    """
    Send an outbound message through the given Webex account.

    Raises:
        HTTPException: 400 if the account is unknown, disabled or unconfigured,
            or the message is invalid; 502 if the Webex API failed.
    """
    account = plugin.resolve_account(account_id)
    if not (account.enabled and account.configured):
        raise HTTPException(
            status_code=400,
            detail=f"Webex account {account_id} is not enabled or not configured",
        )
    try:
        result = await plugin.send(account, body)
    except MessageValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except WebexApiError as e:
        logger.warning("Outbound send failed for %s: %r", account_id, e)
        raise HTTPException(
            status_code=502,
            detail={
                "message": "Webex API failed to send message",
                "status_code": e.status_code,
                "tracking_id": e.tracking_id,
            },
        ) from e
    except WebexNetworkError as e:
        logger.warning("Outbound send failed for %s: %s", account_id, e)
        raise HTTPException(
            status_code=502, detail="Webex API unreachable"
        ) from e
    return {"data": result.model_dump()}
