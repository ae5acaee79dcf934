# core/trigger_timer.py
import asyncio
import logging
from typing import Optional, get_args

from redis.asyncio import Redis

from keyspace_store.config.cache import create_redis_client
from keyspace_store.core.expiry_listener import ExpiryListener
from keyspace_store.repository import namespaces
from keyspace_store.util.errors import ConfigurationError
from keyspace_store.util.events import EventEmitter, proxy_event
from keyspace_store.util.types import Handler, TimerEvent

logger = logging.getLogger(__name__)


class TriggerTimer:
    """
    Namespaced out-of-band timeouts.

    Flow:
    - set_timeout() writes an empty "<ns>:<key>:trigger" key with a TTL on the
      shared write client.
    - A dedicated subscriber client (subscribe mode cannot issue writes)
      watches "<ns>:*:trigger" and re-emits each expiry as "timeout"(key).
    - Listening starts at construction, so a running event loop is required.
      Await wait_listening() before arming if a timeout must not be missed
      during the subscribe handshake.
    """

    def __init__(
        self,
        pub_client: Redis,
        namespace: str,
        *,
        sub_client: Optional[Redis] = None,
        owns_sub_client: bool = False,
        db: int = 0,
        poll_timeout: float = 1.0,
        log: Optional[logging.Logger] = None,
    ) -> None:
        if not namespace:
            raise ConfigurationError("timer namespace must not be empty", field="namespace")
        # listen() below needs the loop; check before any client is built.
        asyncio.get_running_loop()
        self._namespace = namespaces.prefix(namespace)
        self._pub_client = pub_client
        self._owns_sub_client = sub_client is None or owns_sub_client
        self._sub_client = sub_client if sub_client is not None else create_redis_client()
        self._logger = log or logger

        self.events = EventEmitter(*get_args(TimerEvent), owner="trigger_timer")
        self._listener = ExpiryListener(
            self._sub_client,
            {"keyspace": namespaces.trigger_keyspace(self._namespace)},
            db=db,
            poll_timeout=poll_timeout,
            log=self._logger,
        )
        self._listener.events.on("error", proxy_event(self.events, "error"))
        self._listener.events.on("expired", proxy_event(self.events, "timeout"))
        self._listener.events.on("listen", proxy_event(self.events, "listen"))
        self._listener.listen()

    @property
    def namespace(self) -> str:
        return self._namespace

    @property
    def listener(self) -> ExpiryListener:
        return self._listener

    def on_timeout(self, handler: Handler) -> Handler:
        return self.events.on("timeout", handler)

    def on_error(self, handler: Handler) -> Handler:
        return self.events.on("error", handler)

    async def wait_listening(self) -> None:
        await self._listener.wait_listening()

    async def set_timeout(self, key: str, ttl_ms: int) -> None:
        """
        Arm (or re-arm) the timeout for `key`; re-arming resets the TTL.

        `ttl_ms` should be a positive integer. Zero or negative values are
        passed through and Redis decides (it rejects them with an error).
        """
        await self._pub_client.psetex(namespaces.trigger_key(self._namespace, key), ttl_ms, "")
        self._logger.debug("timer.armed ns=%s key=%s ttl_ms=%s", self._namespace, key, ttl_ms)

    async def close(self) -> None:
        await self._listener.stop_listening()
        if self._owns_sub_client:
            await self._sub_client.aclose()
