"""
Outbound target classification.

Webex ids are base64 of `ciscospark://<region>/<TYPE>/<uuid>`. The type
segment tells rooms from people. Anything we cannot decode is sent as a
room id, which is what Webex does with unknown ids anyway.
"""

from __future__ import annotations

import base64
from enum import Enum

WEBEX_ID_PREFIX = "Y2lzY29zcGFyazovL3"  # base64("ciscospark://")
ROOM_MARKER = "/ROOM/"
PERSON_MARKER = "/PEOPLE/"


class TargetKind(str, Enum):
    ROOM = "room"
    PERSON_ID = "person_id"
    PERSON_EMAIL = "person_email"


def looks_like_webex_id(raw: str) -> bool:
    return raw.startswith(WEBEX_ID_PREFIX)


def decode_webex_id(raw: str) -> str:
    """Decode an opaque Webex id. Raises ValueError when it is not base64 text."""
    standard = raw.replace("-", "+").replace("_", "/")
    padded = standard + "=" * (-len(standard) % 4)
    try:
        return base64.b64decode(padded).decode("utf-8")
    except ValueError as e:
        raise ValueError(f"Not a decodable Webex id: {raw!r}") from e


def classify_target(to: str) -> TargetKind:
    """Pure classification of a `to` value into room, person id or email."""
    if "@" in to:
        return TargetKind.PERSON_EMAIL
    if not looks_like_webex_id(to):
        return TargetKind.ROOM
    try:
        decoded = decode_webex_id(to)
    except ValueError:
        return TargetKind.ROOM
    if ROOM_MARKER in decoded:
        return TargetKind.ROOM
    if PERSON_MARKER in decoded:
        return TargetKind.PERSON_ID
    return TargetKind.ROOM
