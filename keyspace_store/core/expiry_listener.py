# core/expiry_listener.py
"""
Listen to expiring keys in Redis.

Events:
  - listen   the pattern subscription is active
  - expired  (key) a key matching the keyspace expired
  - stop     stopped listening
  - error    (err) subscribe/read/unsubscribe failure, passed on verbatim

Delivery is at-least-once: an "expired" message replayed after the client
reconnects is emitted again, so handlers must be idempotent.
"""

import asyncio
import contextlib
import logging
from typing import Any, Mapping, Optional, Union, get_args

from pydantic import ValidationError
from redis.asyncio import Redis
from redis.asyncio.client import PubSub

from keyspace_store.core.event_filter import EventChannelFilter, keyspace_channel
from keyspace_store.model.config import ListenerConfig
from keyspace_store.util.enums import ListenerState
from keyspace_store.util.errors import ConfigurationError
from keyspace_store.util.events import EventEmitter
from keyspace_store.util.types import Handler, ListenerEvent

logger = logging.getLogger(__name__)

PMESSAGE = "pmessage"


class ExpiryListener:
    def __init__(
        self,
        sub_client: Redis,
        config: Union[ListenerConfig, Mapping[str, Any], None] = None,
        *,
        db: int = 0,
        poll_timeout: float = 1.0,
        log: Optional[logging.Logger] = None,
    ) -> None:
        cfg = _validate_config(config)
        self._sub_client = sub_client
        self._filter = EventChannelFilter(keyspace_channel(cfg.keyspace, db))
        self._poll_timeout = poll_timeout
        self._logger = log or logger
        self._state = ListenerState.IDLE
        self._pubsub: Optional[PubSub] = None
        self._task: Optional["asyncio.Task[None]"] = None
        self._listening = asyncio.Event()
        self.events = EventEmitter(*get_args(ListenerEvent), owner="expiry_listener")

    @property
    def channel(self) -> str:
        return self._filter.channel

    @property
    def state(self) -> ListenerState:
        return self._state

    def on_expired(self, handler: Handler) -> Handler:
        return self.events.on("expired", handler)

    def on_error(self, handler: Handler) -> Handler:
        return self.events.on("error", handler)

    def listen(self) -> None:
        """
        Start the subscription in the background on the running loop.
        A listener listens once; construct a new one to listen again.
        """
        if self._state is not ListenerState.IDLE or self._task is not None:
            raise RuntimeError(f"listener is {self._state.value}; listen() is one-shot")
        self._task = asyncio.get_running_loop().create_task(self._run())
        self._task.add_done_callback(self._reader_done)

    async def wait_listening(self) -> None:
        """
        Resolve once PSUBSCRIBE has been acknowledged. A failed subscribe is
        reported on "error" only, so pair this with a timeout if that matters.
        """
        await self._listening.wait()

    async def stop_listening(self) -> None:
        """
        Unsubscribe. Never raises: success emits "stop", failure emits "error".
        """
        was = self._state
        self._state = ListenerState.STOPPED
        await self._cancel_reader()

        pubsub, self._pubsub = self._pubsub, None
        if pubsub is None:
            self.events.emit("stop")
            return
        try:
            if was is ListenerState.LISTENING:
                await pubsub.punsubscribe(self.channel)
        except Exception as err:
            self._logger.warning("expiry.unsubscribe.error channel=%s err=%r", self.channel, err)
            self.events.emit("error", err)
        else:
            self._logger.info("expiry.stopped channel=%s", self.channel)
            self.events.emit("stop")
        finally:
            await _close_quietly(pubsub, self._logger)

    # ---------------- Internals ----------------

    async def _run(self) -> None:
        pubsub = self._sub_client.pubsub(ignore_subscribe_messages=True)
        self._pubsub = pubsub
        try:
            await pubsub.psubscribe(self.channel)
        except Exception as err:
            self._logger.error("expiry.subscribe.error channel=%s err=%r", self.channel, err)
            self.events.emit("error", err)
            return

        self._state = ListenerState.LISTENING
        self._listening.set()
        self._logger.info("expiry.listening channel=%s", self.channel)
        self.events.emit("listen")

        while self._state is ListenerState.LISTENING:
            try:
                message = await pubsub.get_message(
                    ignore_subscribe_messages=True, timeout=self._poll_timeout
                )
            except Exception as err:
                # The client owns reconnection; we only report and keep reading.
                self._logger.warning("expiry.read.error channel=%s err=%r", self.channel, err)
                self.events.emit("error", err)
                await asyncio.sleep(self._poll_timeout)
                continue
            if message is None or message.get("type") != PMESSAGE:
                continue
            try:
                self._on_message(message.get("pattern"), message.get("channel"), message.get("data"))
            except Exception:
                self._logger.exception("expiry.message.error channel=%s", self.channel)

    def _on_message(self, pattern: Any, channel: Any, payload: Any) -> None:
        key = self._filter.match(pattern, channel, payload)
        if key is None:
            return
        self._logger.debug("expiry.expired key=%s", key)
        self.events.emit("expired", key)

    def _reader_done(self, task: "asyncio.Task[None]") -> None:
        if task.cancelled():
            return
        err = task.exception()
        if err is not None:
            self._state = ListenerState.STOPPED
            self._logger.error(
                "expiry.reader.crashed channel=%s err=%r", self.channel, err, exc_info=err
            )
            self.events.emit("error", err)

    async def _cancel_reader(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task


def _validate_config(
    config: Union[ListenerConfig, Mapping[str, Any], None]
) -> ListenerConfig:
    if isinstance(config, ListenerConfig):
        return config
    try:
        return ListenerConfig.model_validate(dict(config or {}))
    except ValidationError as e:
        details = "; ".join(
            f"{'.'.join(str(x) for x in err.get('loc', []))}: {err.get('msg', '')}"
            for err in e.errors()
        )
        raise ConfigurationError(f"invalid listener config: {details}", field="keyspace") from e


async def _close_quietly(pubsub: PubSub, log: logging.Logger) -> None:
    try:
        await pubsub.aclose()
    except Exception as err:
        log.debug("expiry.pubsub.close_failed err=%r", err)
