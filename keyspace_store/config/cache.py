# config/cache.py
import logging
import re
from typing import Any, Optional

from redis.asyncio import Redis, from_url
from redis.asyncio.retry import Retry
from redis.backoff import ExponentialBackoff
from redis.exceptions import NoPermissionError, ReadOnlyError, ResponseError

from keyspace_store.config.settings import settings
from keyspace_store.util.constants import Keyspace
from keyspace_store.util.enums import NotificationStatus
from keyspace_store.util.functions import to_str

logger = logging.getLogger(__name__)

KEYSPACE_WARNING = (
    "keyspace.notifications.unconfigured could not check and "
    'set "notify-keyspace-events Kx". '
)
# ElastiCache and friends rename or disable CONFIG; ACLs answer NOPERM.
_RESTRICTED_RE = re.compile(r"unknown command [`'\"]?config\b", re.IGNORECASE)

READONLY_RETRIES = 3


def create_redis_client(url: Optional[str] = None, **options: Any) -> Redis:
    """
    Build a fresh client (own connection pool).

    - Replies stay raw bytes; callers decode.
    - A READONLY reply (the endpoint now points at a replica after failover)
      drops the connection and retries with backoff so the next attempt
      lands on the new primary. Callers may override `retry`/`retry_on_error`.
    """
    options.setdefault("decode_responses", False)
    options.setdefault("socket_keepalive", True)
    options.setdefault("health_check_interval", 30)
    options.setdefault("retry", Retry(ExponentialBackoff(), READONLY_RETRIES))
    options.setdefault("retry_on_error", [ReadOnlyError])
    return from_url(url or settings.REDIS_URL, **options)


async def ensure_keyspace_notifications(
    client: Redis, log: Optional[logging.Logger] = None
) -> NotificationStatus:
    """
    Make sure the server publishes keyspace (K) expiry (x) events.

    Degrades to a warning when CONFIG is restricted or the server is too old
    to know the setting; any other error propagates.
    """
    log = log or logger
    try:
        config = await client.config_get(Keyspace.NOTIFY_CONFIG)
    except ResponseError as err:
        if not _is_restricted(err):
            raise
        return _restricted(log)

    if not config:
        log.warning(KEYSPACE_WARNING + "This feature requires Redis >=2.8.0.")
        return NotificationStatus.NOT_CONFIGURED

    flags = _current_flags(config)
    has_keyspace = Keyspace.KEYSPACE_FLAG in flags
    has_expired = Keyspace.EXPIRED_FLAG in flags or Keyspace.ALL_FLAG in flags
    if has_keyspace and has_expired:
        return NotificationStatus.CONFIGURED

    if not has_keyspace:
        flags += Keyspace.KEYSPACE_FLAG
    if not has_expired:
        flags += Keyspace.EXPIRED_FLAG

    try:
        await client.config_set(Keyspace.NOTIFY_CONFIG, flags)
    except ResponseError as err:
        if not _is_restricted(err):
            raise
        return _restricted(log)
    log.info("keyspace.notifications.updated flags=%s", flags)
    return NotificationStatus.UPDATED


def _is_restricted(err: ResponseError) -> bool:
    return isinstance(err, NoPermissionError) or bool(_RESTRICTED_RE.search(str(err)))


def _restricted(log: logging.Logger) -> NotificationStatus:
    log.warning(
        KEYSPACE_WARNING
        + "You will need to configure it manually for this Redis instance."
    )
    return NotificationStatus.NOT_CONFIGURED


def _current_flags(config: Any) -> str:
    # redis-py answers CONFIG GET with a dict; raw pipelines give a flat list.
    if isinstance(config, dict):
        for k, v in config.items():
            if to_str(k) == Keyspace.NOTIFY_CONFIG:
                return to_str(v)
        return ""
    if isinstance(config, (list, tuple)) and len(config) >= 2:
        return to_str(config[1])
    return ""
