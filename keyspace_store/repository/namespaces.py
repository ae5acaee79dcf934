# repository/namespaces.py
from typing import Final

from keyspace_store.util.constants import NAMESPACE_SEP, WILDCARD, Suffix

ROOT: Final[str] = ""


def prefix(namespace: str) -> str:
    """'n' -> 'n:', '' -> '' (root: no leading separator)."""
    return f"{namespace}{NAMESPACE_SEP}" if namespace else ROOT


def get_key(namespace_prefix: str, key: str) -> str:
    return f"{namespace_prefix}{key}"


def trigger_key(namespace_prefix: str, key: str) -> str:
    return f"{namespace_prefix}{key}{Suffix.TRIGGER}"


def trigger_keyspace(namespace_prefix: str) -> str:
    # e.g., "store:timers:*:trigger"
    return f"{namespace_prefix}{WILDCARD}{Suffix.TRIGGER}"


def lease_key(namespace_prefix: str, key: str) -> str:
    return f"{namespace_prefix}{key}{Suffix.LEASE}"
