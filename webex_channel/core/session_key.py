"""Session key and host context derivation from an inbound Envelope."""

from __future__ import annotations

from typing import Any

from webex_channel.channels.envelope import Envelope

CHANNEL_ID = "webex"


def build_session_key(envelope: Envelope, agent: str = "main") -> str:
    """
    Build a deterministic session key from an envelope.

    One session per Webex room: agent:{agent}:webex:{room_id}. Threads share
    the room session; the thread id travels separately in the context.
    """
    return f"agent:{agent}:{CHANNEL_ID}:{envelope.conversation_id}"


def build_host_context(envelope: Envelope, account_id: str) -> dict[str, Any]:
    """Flat context the host message pipeline consumes for one inbound message."""
    text = envelope.content.text or ""
    author = envelope.author
    return {
        "Body": text,
        "RawBody": text,
        "CommandBody": text,
        "From": f"{CHANNEL_ID}:{author.id}",
        "To": f"{CHANNEL_ID}:{envelope.conversation_id}",
        "SessionKey": build_session_key(envelope),
        "AccountId": account_id,
        "ChatType": "direct" if envelope.metadata.room_type == "direct" else "group",
        "SenderName": author.display_name or author.email or author.id,
        "SenderId": author.id,
        "Provider": CHANNEL_ID,
        "Surface": CHANNEL_ID,
        "MessageSid": envelope.id,
        "Timestamp": envelope.metadata.timestamp,
        "OriginatingChannel": CHANNEL_ID,
        "OriginatingTo": f"{CHANNEL_ID}:{envelope.conversation_id}",
        "MessageThreadId": envelope.metadata.parent_id,
    }
