# util/enums.py
from enum import Enum


class Environment(str, Enum):
    DEV = "dev"
    PROD = "prod"


class Color(str, Enum):
    RESET = "\033[0m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    WHITE = "\033[37m"
    BG_RED = "\033[41m"

    def __str__(self):
        return self.value


class ListenerState(str, Enum):
    IDLE = "idle"
    LISTENING = "listening"
    STOPPED = "stopped"


class NotificationStatus(str, Enum):
    """Outcome of ensure_keyspace_notifications()."""

    CONFIGURED = "configured"  # flags were already present
    UPDATED = "updated"  # flags were merged and written back
    NOT_CONFIGURED = "not_configured"  # server refused or cannot emit them
