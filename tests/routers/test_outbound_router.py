import httpx
import pytest
from fastapi.testclient import TestClient

from tests.fixtures.webex_fixtures import (
    API_BASE_URL,
    ROOM_ID,
    WEBHOOK_URL,
    FakeWebexApi,
    request_json,
    webex_message,
)
from webex_channel.config import Settings
from webex_channel.core.app_state import AppState, register
from webex_channel.main import create_app


def _client(api: FakeWebexApi, **overrides) -> TestClient:
    values = {
        "webex_token": "test-token",
        "webex_webhook_url": WEBHOOK_URL,
        "webex_api_base_url": API_BASE_URL,
        "webex_max_retries": 0,
        "webex_enabled": True,
    }
    values.update(overrides)
    state = AppState(settings=Settings(**values))
    register(state, transport=api.transport)
    return TestClient(create_app(testing=True, app_state=state))


def _message(**content):
    return {"to": "bob@example.com", "content": content or {"text": "hello"}}


def test_send_returns_created_message():
    api = FakeWebexApi().respond("POST", "/messages", {"json": webex_message()})
    client = _client(api)

    response = client.post("/outbound", json=_message())

    assert response.status_code == 200
    assert response.json() == {
        "data": {"channel": "webex", "message_id": "msg-1", "room_id": ROOM_ID}
    }
    assert request_json(api.calls("POST", "/messages")[0]) == {
        "toPersonEmail": "bob@example.com",
        "text": "hello",
    }


def test_unknown_account_is_400():
    client = _client(FakeWebexApi())
    response = client.post("/outbound", params={"account_id": "nope"}, json=_message())
    assert response.status_code == 400


def test_unconfigured_default_account_is_400():
    api = FakeWebexApi()
    client = _client(api, webex_token=None)

    response = client.post("/outbound", json=_message())

    assert response.status_code == 400
    assert api.requests == []


def test_message_without_content_is_400():
    api = FakeWebexApi()
    client = _client(api)

    response = client.post("/outbound", json={"to": "room-1"})

    assert response.status_code == 400
    assert "content" in response.json()["detail"]
    assert api.requests == []


def test_missing_target_field_is_422():
    response = _client(FakeWebexApi()).post("/outbound", json={"content": {"text": "x"}})
    assert response.status_code == 422


def test_api_failure_is_502_with_tracking_id():
    api = FakeWebexApi().respond(
        "POST", "/messages", {"status": 404, "json": {"message": "Room not found", "trackingId": "trk-9"}}
    )
    client = _client(api)

    response = client.post("/outbound", json=_message())

    assert response.status_code == 502
    assert response.json()["detail"] == {
        "message": "Webex API failed to send message",
        "status_code": 404,
        "tracking_id": "trk-9",
    }


@pytest.mark.parametrize(
    "error",
    [
        httpx.ConnectError("refused"),
        httpx.ReadTimeout("slow"),
        httpx.RemoteProtocolError("Server disconnected without sending a response."),
    ],
)
def test_network_failure_is_502(error):
    api = FakeWebexApi().respond("POST", "/messages", error)
    client = _client(api)

    response = client.post("/outbound", json=_message())

    assert response.status_code == 502
    assert response.json()["detail"] == "Webex API unreachable"


def test_success_with_non_json_body_is_502():
    api = FakeWebexApi().respond("POST", "/messages", {"status": 200, "text": "not json"})
    client = _client(api)

    response = client.post("/outbound", json=_message())

    assert response.status_code == 502
    assert response.json()["detail"]["status_code"] == 200
