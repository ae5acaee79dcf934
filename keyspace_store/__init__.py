"""
keyspace-store: a namespaced Redis key-value facade with distributed leases
and keyspace-notification driven timeouts.

    store = await create_store({"namespace": "cache"})
    lease = store.create_lease(5_000)
    async with await lease("user:1"):
        ...

    timer = store.create_timer("refresh")
    timer.on_timeout(lambda key: print("stale:", key))
    await timer.wait_listening()
    await timer.set_timeout("user:1", 60_000)
"""

import logging
from typing import Any, Mapping, Optional, Union

from keyspace_store.core.event_filter import EventChannelFilter
from keyspace_store.core.expiry_listener import ExpiryListener
from keyspace_store.core.lease_manager import LeaseHandle, LeaseManager
from keyspace_store.core.trigger_timer import TriggerTimer
from keyspace_store.model.config import ListenerConfig, StoreConfig
from keyspace_store.repository.redis_store import RedisStore
from keyspace_store.util.errors import (
    AlreadyLeasedError,
    ConfigurationError,
    LeaseError,
    LeaseFailureError,
    StoreError,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "AlreadyLeasedError",
    "ConfigurationError",
    "EventChannelFilter",
    "ExpiryListener",
    "LeaseError",
    "LeaseFailureError",
    "LeaseHandle",
    "LeaseManager",
    "ListenerConfig",
    "RedisStore",
    "StoreConfig",
    "StoreError",
    "TriggerTimer",
    "create_store",
]


async def create_store(
    config: Union[StoreConfig, Mapping[str, Any], None] = None,
    *,
    log: Optional[logging.Logger] = None,
) -> RedisStore:
    """Build a RedisStore and run its startup checks."""
    store = RedisStore(config, log=log)
    return await store.connect()
