# repository/redis_store.py
import asyncio
import logging
from typing import Any, Callable, List, Mapping, Optional, Set, Union, get_args

from pydantic import ValidationError
from redis.asyncio import Redis
from redis.exceptions import RedisError

from keyspace_store.config.cache import create_redis_client, ensure_keyspace_notifications
from keyspace_store.core.lease_manager import LeaseFn, LeaseManager
from keyspace_store.core.trigger_timer import TriggerTimer
from keyspace_store.model.config import StoreConfig
from keyspace_store.repository import namespaces
from keyspace_store.util.errors import ConfigurationError
from keyspace_store.util.events import EventEmitter, proxy_event
from keyspace_store.util.types import Handler, StoreEvent

logger = logging.getLogger(__name__)

ClientFactory = Callable[[], Redis]


class RedisStore:
    """
    Namespaced hash-entry store with leases and timers.

    Flow:
    - One shared client carries CRUD, lease and trigger-arming commands.
    - Each timer gets its own subscriber client from `client_factory`.
    - Timer errors bubble up as this store's "error" event.
    - Call connect() once before use: it pings and, unless the server is
      preconfigured, enables keyspace expiry notifications.
    """

    def __init__(
        self,
        config: Union[StoreConfig, Mapping[str, Any], None] = None,
        *,
        client: Optional[Redis] = None,
        client_factory: Optional[ClientFactory] = None,
        log: Optional[logging.Logger] = None,
    ) -> None:
        self._config = _validate_config(config)
        self._namespace = namespaces.prefix(self._config.namespace)
        self._client_factory = client_factory or self._default_client
        self._client = client if client is not None else self._client_factory()
        self._logger = log or logger
        self._timers: List[TriggerTimer] = []
        self._closing: Set["asyncio.Task[Any]"] = set()
        self.events = EventEmitter(*get_args(StoreEvent), owner="redis_store")

    @property
    def config(self) -> StoreConfig:
        return self._config

    @property
    def client(self) -> Redis:
        return self._client

    @property
    def db(self) -> int:
        """DB index of the write client; timers watch its keyspace channel."""
        kwargs = getattr(getattr(self._client, "connection_pool", None), "connection_kwargs", {})
        return int(kwargs.get("db") or 0)

    def on_error(self, handler: Handler) -> Handler:
        return self.events.on("error", handler)

    def _default_client(self) -> Redis:
        return create_redis_client(self._config.redis_url, **self._config.redis_options)

    def _track(self, task: "asyncio.Task[Any]") -> None:
        self._closing.add(task)
        task.add_done_callback(self._closing.discard)

    def get_key(self, key: str) -> str:
        return namespaces.get_key(self._namespace, key)

    # ---------------- Lifecycle ----------------

    async def connect(self) -> "RedisStore":
        # Fail fast on startup if Redis is unreachable.
        await self._client.ping()
        if not self._config.is_preconfigured:
            try:
                await ensure_keyspace_notifications(self._client, self._logger)
            except RedisError as err:
                self._logger.error("keyspace.notifications.error err=%r", err)
        return self

    async def close(self) -> None:
        timers, self._timers = self._timers, []
        for timer in timers:
            await timer.close()
        if self._closing:
            await asyncio.gather(*self._closing, return_exceptions=True)
        await self._client.aclose()

    # ---------------- Coordination ----------------

    def create_lease(self, ttl_ms: int) -> LeaseFn:
        """
        Returns lease(key) -> LeaseHandle bound to `ttl_ms`.
        Raises AlreadyLeasedError on contention, LeaseFailureError otherwise.
        """
        manager = LeaseManager(
            self._client,
            self._namespace,
            ttl_ms,
            retry_count=self._config.lease_retry_count,
            retry_delay_ms=self._config.lease_retry_delay_ms,
            log=self._logger,
        )
        return manager.acquire

    def create_timer(self, namespace: str) -> TriggerTimer:
        """
        Timer for `<store ns><namespace>`, listening on its own subscriber
        client. Must be called with a running event loop: the timer starts
        listening right away.
        """
        nsp = self._namespace + namespace
        if not nsp:
            raise ConfigurationError("timer namespace must not be empty", field="namespace")
        loop = asyncio.get_running_loop()
        sub_client = self._client_factory()
        try:
            timer = TriggerTimer(
                self._client,
                nsp,
                sub_client=sub_client,
                owns_sub_client=True,
                db=self.db,
                poll_timeout=self._config.poll_timeout,
                log=self._logger,
            )
        except Exception:
            self._track(loop.create_task(sub_client.aclose()))
            raise
        timer.events.on("error", proxy_event(self.events, "error"))
        self._timers.append(timer)
        return timer

    # ---------------- Core CRUD ----------------

    async def delete(self, key: str) -> None:
        await self._client.delete(self.get_key(key))

    async def expire(self, key: str, ttl_ms: int) -> None:
        await self._client.pexpire(self.get_key(key), ttl_ms)

    async def get_prop(self, key: str, field: str) -> Optional[bytes]:
        # Raw bytes; callers decode.
        return await self._client.hget(self.get_key(key), field)

    async def set_prop(self, key: str, field: str, value: Any) -> None:
        await self._client.hset(self.get_key(key), field, value)

    async def incr_prop_by(self, key: str, field: str, by: int) -> int:
        return int(await self._client.hincrby(self.get_key(key), field, by))

    async def del_prop(self, key: str, field: str) -> None:
        await self._client.hdel(self.get_key(key), field)


def _validate_config(config: Union[StoreConfig, Mapping[str, Any], None]) -> StoreConfig:
    if isinstance(config, StoreConfig):
        return config
    try:
        return StoreConfig.model_validate(dict(config or {}))
    except ValidationError as e:
        raise ConfigurationError(f"invalid store config: {e}") from e
