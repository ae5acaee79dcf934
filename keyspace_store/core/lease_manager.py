# core/lease_manager.py
"""
Distributed leases on top of redis-py's Lock (SET NX PX + Lua release).

A lease is a time-bounded, exclusive claim on a key. Acquisition retries a
bounded number of times; running out of retries while someone else holds the
key is contention (AlreadyLeasedError), anything else is an infrastructure
fault (LeaseFailureError).
"""

import logging
from types import TracebackType
from typing import Awaitable, Callable, Optional, Type

from redis.asyncio import Redis
from redis.asyncio.lock import Lock
from redis.exceptions import LockError

from keyspace_store.repository import namespaces
from keyspace_store.util.errors import AlreadyLeasedError, LeaseFailureError
from keyspace_store.util.functions import ms_to_seconds
from keyspace_store.util.timing import timed

logger = logging.getLogger(__name__)

LeaseFn = Callable[[str], Awaitable["LeaseHandle"]]


class LeaseHandle:
    """
    Release handle for one successful acquisition.

    release() is safe to call any number of times and never raises.
    """

    def __init__(self, key: str, lock: Lock, log: logging.Logger) -> None:
        self.key = key
        self._lock = lock
        self._logger = log
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    async def release(self) -> None:
        if self._released:
            return
        self._released = True
        try:
            await self._lock.release()
        except LockError as err:
            # Expired or taken over in the meantime; nothing left to drop.
            self._logger.info("lease.release.not_owned key=%s err=%r", self.key, err)
        except Exception as err:
            # The claim still lapses on its own TTL.
            self._logger.warning("lease.release.error key=%s err=%r", self.key, err)
        else:
            self._logger.debug("lease.released key=%s", self.key)

    async def __aenter__(self) -> "LeaseHandle":
        return self

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        await self.release()


class LeaseManager:
    """
    Holds only immutable settings; every acquire() call builds its own Lock,
    so concurrent calls for different keys share nothing mutable.
    """

    def __init__(
        self,
        client: Redis,
        namespace_prefix: str,
        ttl_ms: int,
        *,
        retry_count: int = 10,
        retry_delay_ms: int = 100,
        log: Optional[logging.Logger] = None,
    ) -> None:
        self._client = client
        self._prefix = namespace_prefix
        self._ttl_ms = int(ttl_ms)
        self._retry_count = max(0, int(retry_count))
        self._retry_delay_ms = max(1, int(retry_delay_ms))
        self._logger = log or logger

    @property
    def ttl_ms(self) -> int:
        return self._ttl_ms

    def _new_lock(self, key: str) -> Lock:
        return Lock(
            self._client,
            namespaces.lease_key(self._prefix, key),
            timeout=ms_to_seconds(self._ttl_ms),
            sleep=ms_to_seconds(self._retry_delay_ms),
            blocking=True,
            blocking_timeout=ms_to_seconds(self._retry_count * self._retry_delay_ms),
            thread_local=False,
        )

    async def acquire(self, key: str) -> LeaseHandle:
        lock = self._new_lock(key)
        with timed(self._logger, "lease.acquire", key=key):
            try:
                acquired = await lock.acquire()
            except Exception as err:
                self._logger.error("lease.acquire.error key=%s err=%r", key, err)
                raise LeaseFailureError(key, err) from err

        if not acquired:
            # Retries exhausted while another holder is active.
            self._logger.info("lease.contended key=%s retries=%d", key, self._retry_count)
            raise AlreadyLeasedError(key)

        self._logger.debug("lease.acquired key=%s ttl_ms=%d", key, self._ttl_ms)
        return LeaseHandle(key, lock, self._logger)
