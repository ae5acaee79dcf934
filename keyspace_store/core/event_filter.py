# core/event_filter.py
import re
from typing import Optional, Pattern

from keyspace_store.util.constants import WILDCARD, Keyspace
from keyspace_store.util.errors import ConfigurationError
from keyspace_store.util.functions import to_str
from keyspace_store.util.types import RawField


def keyspace_channel(keyspace: str, db: int = 0) -> str:
    """'nsp:*:trigger' -> '__keyspace@0__:nsp:*:trigger'"""
    return Keyspace.CHANNEL_PREFIX.format(db=db) + keyspace


def compile_channel_pattern(channel: str) -> Pattern[str]:
    """
    Turn a single-wildcard pub/sub pattern into a regex that captures
    the wildcard segment. Everything else matches literally.
    """
    if not channel:
        raise ConfigurationError("keyspace pattern is required", field="keyspace")
    parts = channel.split(WILDCARD)
    if len(parts) != 2:
        raise ConfigurationError(
            f"keyspace pattern must contain exactly one '{WILDCARD}': {channel!r}",
            field="keyspace",
        )
    head, tail = parts
    return re.compile(re.escape(head) + "(.*)" + re.escape(tail), re.DOTALL)


class EventChannelFilter:
    """
    Decide whether a raw (pattern, channel, payload) triple is an "expired"
    notification for our subscription, and pull out the logical key.

    The pattern check keeps listeners that share a connection from reacting
    to each other's subscriptions.
    """

    def __init__(self, channel: str) -> None:
        self._channel = channel
        self._regex = compile_channel_pattern(channel)

    @property
    def channel(self) -> str:
        return self._channel

    def match(self, pattern: RawField, channel: RawField, payload: RawField) -> Optional[str]:
        if to_str(payload) != Keyspace.EXPIRED:
            return None
        if to_str(pattern) != self._channel:
            return None
        m = self._regex.fullmatch(to_str(channel))
        if m is None:
            return None
        return m.group(1) or None
