import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from tests.fixtures.webex_fixtures import API_BASE_URL, WEBHOOK_URL, webex_message, webhook_payload
from webex_channel.adapters.webex_webhook import normalize_message
from webex_channel.config import Settings
from webex_channel.core.app_state import AppState
from webex_channel.core.webhook_router import WebhookTarget
from webex_channel.errors import WebhookSignatureError
from webex_channel.main import create_app
from webex_channel.schemas.webex import WebexMessage

PATH = "/webhooks/webex/default"


@pytest.fixture
def app_state():
    settings = Settings(
        webex_token="test-token",
        webex_webhook_url=WEBHOOK_URL,
        webex_api_base_url=API_BASE_URL,
        webex_max_body_bytes=4096,
    )
    return AppState(settings=settings)


@pytest.fixture
def client(app_state):
    return TestClient(create_app(testing=True, app_state=app_state))


def _register(app_state, result=None, side_effect=None):
    processor = MagicMock()
    processor.handle = AsyncMock(return_value=result, side_effect=side_effect)
    target = WebhookTarget(account_id="default", processor=processor)
    app_state.webhook_router.register(PATH, target)
    return target


def test_unregistered_path_is_404(client):
    response = client.post("/webhooks/webex/unknown", json=webhook_payload())
    assert response.status_code == 404


def test_post_is_acknowledged_and_subscribers_notified(client, app_state):
    envelope = normalize_message(WebexMessage.model_validate(webex_message()))
    target = _register(app_state, result=envelope)
    handler = MagicMock()
    target.subscribers.add(handler)
    body = json.dumps(webhook_payload()).encode()

    response = client.post(
        PATH,
        content=body,
        headers={"Content-Type": "application/json", "X-Spark-Signature": "sig"},
    )

    assert response.status_code == 200
    assert response.json() == {"ok": True}
    handler.assert_called_once_with(envelope)
    _, kwargs = target.processor.handle.await_args
    assert kwargs == {"raw_body": body, "signature": "sig"}


def test_trailing_slash_is_routed(client, app_state):
    _register(app_state)
    response = client.post(PATH + "/", json=webhook_payload())
    assert response.status_code == 200


def test_get_is_method_not_allowed(client, app_state):
    _register(app_state)

    response = client.get(PATH)

    assert response.status_code == 405
    assert response.headers["allow"] == "POST"
    assert response.text == "Method Not Allowed"


def test_oversized_body_is_413(client, app_state):
    target = _register(app_state)

    response = client.post(PATH, content=b"x" * 5000)

    assert response.status_code == 413
    target.processor.handle.assert_not_awaited()


def test_invalid_json_is_400(client, app_state):
    _register(app_state)
    response = client.post(PATH, content=b"{nope")
    assert response.status_code == 400
    assert response.json() == {"error": "invalid json"}


def test_invalid_signature_is_403(client, app_state):
    _register(app_state, side_effect=WebhookSignatureError("Invalid webhook signature"))

    response = client.post(PATH, json=webhook_payload(), headers={"X-Spark-Signature": "bad"})

    assert response.status_code == 403
    assert response.json() == {"error": "Invalid signature"}


def test_processing_error_is_500(client, app_state):
    _register(app_state, side_effect=RuntimeError("boom"))

    response = client.post(PATH, json=webhook_payload())

    assert response.status_code == 500
    assert response.json() == {"error": "Internal error"}
