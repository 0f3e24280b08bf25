"""Tests for outbound target classification."""

import base64

import pytest

from tests.fixtures.webex_fixtures import PERSON_ID, ROOM_ID
from webex_channel.adapters.targets import (
    TargetKind,
    classify_target,
    decode_webex_id,
    looks_like_webex_id,
)


def _webex_id(inner: str) -> str:
    return base64.b64encode(inner.encode()).decode().rstrip("=")


@pytest.mark.parametrize(
    "to",
    ["alice@example.com", "weird@", "@handle", ROOM_ID + "@x"],
)
def test_anything_with_at_sign_is_email(to):
    assert classify_target(to) is TargetKind.PERSON_EMAIL


def test_room_id_decodes_to_room():
    assert classify_target(ROOM_ID) is TargetKind.ROOM


def test_person_id_decodes_to_person():
    assert classify_target(PERSON_ID) is TargetKind.PERSON_ID


def test_unknown_id_type_defaults_to_room():
    team_id = _webex_id("ciscospark://us/TEAM/5555")
    assert looks_like_webex_id(team_id)
    assert classify_target(team_id) is TargetKind.ROOM


def test_undecodable_id_defaults_to_room():
    garbage = "Y2lzY29zcGFyazovL3" + "éé"
    assert classify_target(garbage) is TargetKind.ROOM


@pytest.mark.parametrize("to", ["room-123", "general", "12345"])
def test_plain_strings_are_rooms(to):
    assert classify_target(to) is TargetKind.ROOM


def test_decode_handles_missing_padding():
    assert decode_webex_id(PERSON_ID) == "ciscospark://us/PEOPLE/3333-4444"
