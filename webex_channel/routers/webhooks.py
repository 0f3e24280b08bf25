"""
Webhook routes for inbound Webex notifications.

Every path under /webhooks is offered to the WebhookRouter; paths no account
has registered fall through to 404. Webhooks are excluded from auth: they are
authenticated by signature when the account has a webhook secret.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse

from webex_channel.core.app_state import AppState
from webex_channel.routers.utils.dependencies import get_app_state

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


async def _read_body(request: Request, max_bytes: int) -> bytes:
    """Read the body, stopping once it is known to exceed `max_bytes`."""
    chunks: list[bytes] = []
    total = 0
    async for chunk in request.stream():
        chunks.append(chunk)
        total += len(chunk)
        if total > max_bytes:
            break
    return b"".join(chunks)


@router.api_route(
    "/{path:path}",
    methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    include_in_schema=False,
)
async def dispatch_webhook(
    path: str,
    request: Request,
    state: AppState = Depends(get_app_state),
) -> Response:
    """Dispatch a webhook request to the account registered at its path."""
    webhook_router = state.webhook_router
    body = b""
    if webhook_router.get(request.url.path) is not None and request.method == "POST":
        body = await _read_body(request, webhook_router.max_body_bytes)

    result = await webhook_router.dispatch(
        request.url.path, request.method, body, request.headers
    )
    if not result.handled:
        raise HTTPException(status_code=404, detail="Not Found")

    headers = dict(result.headers)
    if isinstance(result.body, str):
        return PlainTextResponse(
            result.body, status_code=result.status_code, headers=headers
        )
    return JSONResponse(result.body, status_code=result.status_code, headers=headers)
