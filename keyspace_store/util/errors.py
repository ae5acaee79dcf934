# util/errors.py
from typing import Optional


class StoreError(Exception):
    """Base for every error raised by the store and its subsystems."""


class ConfigurationError(StoreError, ValueError):
    # Flow: raised synchronously at construction, never recoverable.
    def __init__(self, message: str, *, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.field = field


class LeaseError(StoreError):
    def __init__(self, message: str, key: str) -> None:
        super().__init__(message)
        self.key = key


class AlreadyLeasedError(LeaseError):
    """Another process holds the lease. Expected contention, not a fault."""

    def __init__(self, key: str) -> None:
        super().__init__(f"lease for {key} acquired by another process", key)


class LeaseFailureError(LeaseError):
    """
    Acquisition failed for a reason other than contention
    (connection, protocol, unexpected). Keeps the underlying cause.
    """

    def __init__(self, key: str, cause: BaseException) -> None:
        super().__init__(f"could not acquire lease for: {key}", key)
        self.cause = cause
