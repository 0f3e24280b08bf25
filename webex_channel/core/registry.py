from __future__ import annotations

import threading
from typing import Dict

from webex_channel.channels.base import ChannelPlugin


class PluginRegistry:
    """Channel plugins known to the host, addressable by id or alias."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._channels: Dict[str, ChannelPlugin] = {}
        self._aliases: Dict[str, str] = {}

    def register_channel(self, plugin: ChannelPlugin) -> None:
        with self._lock:
            if plugin.id in self._channels:
                raise ValueError(f"Channel plugin already registered: {plugin.id}")
            self._channels[plugin.id] = plugin
            for alias in plugin.meta.aliases:
                self._aliases[alias] = plugin.id

    def unregister_channel(self, channel_id: str) -> None:
        with self._lock:
            self._channels.pop(channel_id, None)
            self._aliases = {
                a: cid for a, cid in self._aliases.items() if cid != channel_id
            }

    def get_channel(self, channel_id: str) -> ChannelPlugin | None:
        key = channel_id.strip().lower()
        return self._channels.get(self._aliases.get(key, key))

    def list_channels(self) -> list[ChannelPlugin]:
        return list(self._channels.values())
