from tests.fixtures.webex_fixtures import ROOM_ID, webex_message
from webex_channel.adapters.webex_webhook import normalize_message
from webex_channel.core.session_key import build_host_context, build_session_key
from webex_channel.schemas.webex import WebexMessage


def _envelope(**overrides):
    return normalize_message(WebexMessage.model_validate(webex_message(**overrides)))


def test_session_key_is_per_room():
    assert build_session_key(_envelope()) == f"agent:main:webex:{ROOM_ID}"
    assert build_session_key(_envelope(), agent="ops") == f"agent:ops:webex:{ROOM_ID}"


def test_thread_replies_share_the_room_session():
    assert build_session_key(_envelope(parentId="p-1")) == build_session_key(_envelope())


def test_host_context_for_group_message():
    context = build_host_context(_envelope(parentId="p-1"), "support")

    assert context["Body"] == "hello"
    assert context["From"] == "webex:person-1"
    assert context["To"] == f"webex:{ROOM_ID}"
    assert context["AccountId"] == "support"
    assert context["ChatType"] == "group"
    assert context["SenderName"] == "alice@example.com"
    assert context["MessageSid"] == "msg-1"
    assert context["MessageThreadId"] == "p-1"


def test_host_context_for_direct_message_without_text():
    context = build_host_context(_envelope(roomType="direct", text=None), "default")

    assert context["ChatType"] == "direct"
    assert context["Body"] == ""
