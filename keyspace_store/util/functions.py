# util/functions.py
from keyspace_store.util.types import RawField


def to_str(value: RawField, default: str = "") -> str:
    """
    - Decode raw Redis replies (bytes) into text.
    - Undecodable bytes are kept via surrogateescape, so binary keys survive
      and compare unequal to any plain-text literal.
    """
    if value is None:
        return default
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="surrogateescape")
    return str(value)


def ms_to_seconds(ms: int) -> float:
    return ms / 1000.0
