# util/constants.py
from typing import Final

NAMESPACE_SEP: Final[str] = ":"
WILDCARD: Final[str] = "*"


class Keyspace:
    CHANNEL_PREFIX = "__keyspace@{db}__:"
    EXPIRED = "expired"
    NOTIFY_CONFIG = "notify-keyspace-events"
    # K = keyspace channel, x = expired events, A = alias that includes x
    KEYSPACE_FLAG = "K"
    EXPIRED_FLAG = "x"
    ALL_FLAG = "A"


class Suffix:
    TRIGGER = NAMESPACE_SEP + "trigger"
    LEASE = NAMESPACE_SEP + "lease"
