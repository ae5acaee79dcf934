# util/types.py
from typing import Any, Awaitable, Callable, Literal, Union

# Flow: narrow event names per emitter.
ListenerEvent = Literal["listen", "expired", "stop", "error"]
TimerEvent = Literal["listen", "timeout", "error"]
StoreEvent = Literal["error"]

# Handlers may be plain callables or coroutine functions.
Handler = Callable[..., Union[None, Awaitable[Any]]]

# Raw pieces of a pub/sub message as redis-py hands them over.
RawField = Union[bytes, bytearray, str, None]
