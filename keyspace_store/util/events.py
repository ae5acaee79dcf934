# util/events.py
import asyncio
import inspect
import logging
from typing import Any, Callable, Dict, List, Optional, Set

from keyspace_store.util.types import Handler

logger = logging.getLogger(__name__)


class EventEmitter:
    """
    Small observer registry.

    - Event names are declared up front; registering or emitting an
      undeclared name raises ValueError.
    - Handlers run synchronously in registration order. A handler that
      raises is logged and the remaining handlers still run; emit never
      raises on behalf of a handler.
    - A handler returning an awaitable is scheduled on the running loop;
      failures of such tasks are logged.
    - "error" with no registered handler is logged instead of dropped.
    """

    def __init__(self, *names: str, owner: Optional[str] = None) -> None:
        self._handlers: Dict[str, List[Handler]] = {n: [] for n in names}
        self._owner = owner or "emitter"
        self._pending: Set["asyncio.Future[Any]"] = set()
        self._logger = logger

    @property
    def names(self) -> tuple:
        return tuple(self._handlers)

    def on(self, name: str, handler: Handler) -> Handler:
        self._slot(name).append(handler)
        return handler

    def off(self, name: str, handler: Handler) -> None:
        handlers = self._slot(name)
        if handler in handlers:
            handlers.remove(handler)

    def listener_count(self, name: str) -> int:
        return len(self._slot(name))

    def emit(self, name: str, *args: Any) -> bool:
        handlers = list(self._slot(name))
        if not handlers:
            if name == "error":
                err = args[0] if args else None
                self._logger.error(
                    "%s.error.unhandled err=%r", self._owner, err, exc_info=_exc_info(err)
                )
            return False
        for handler in handlers:
            try:
                result = handler(*args)
            except Exception:
                self._logger.exception("%s.%s.handler_failed", self._owner, name)
                continue
            if inspect.isawaitable(result):
                self._schedule(name, result)
        return True

    def _slot(self, name: str) -> List[Handler]:
        try:
            return self._handlers[name]
        except KeyError:
            raise ValueError(
                f"unknown event {name!r} for {self._owner}; expected one of {self.names}"
            ) from None

    def _schedule(self, name: str, awaitable: Any) -> None:
        fut = asyncio.ensure_future(awaitable)
        self._pending.add(fut)

        def _done(f: "asyncio.Future[Any]") -> None:
            self._pending.discard(f)
            if f.cancelled():
                return
            exc = f.exception()
            if exc is not None:
                self._logger.error(
                    "%s.%s.handler_failed err=%r", self._owner, name, exc, exc_info=exc
                )

        fut.add_done_callback(_done)


def proxy_event(emitter: EventEmitter, name: str) -> Callable[..., None]:
    """Forward whatever arrives to `emitter` under `name`."""

    def _forward(*args: Any) -> None:
        emitter.emit(name, *args)

    return _forward


def _exc_info(err: Any):
    if isinstance(err, BaseException):
        return (type(err), err, err.__traceback__)
    return None
