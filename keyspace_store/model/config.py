# model/config.py
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field

from keyspace_store.config.settings import settings


class ListenerConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    keyspace: str = Field(min_length=1)


class StoreConfig(BaseModel):
    """
    Store wiring. Defaults come from the environment (see config/settings.py).
    `redis_options` is passed untouched to every client the store builds.
    The keyspace channel DB is the one selected by `redis_url`.
    """

    model_config = ConfigDict(extra="forbid")

    namespace: str = Field(default_factory=lambda: settings.STORE_NAMESPACE)
    is_preconfigured: bool = Field(
        default_factory=lambda: settings.STORE_IS_PRECONFIGURED
    )
    redis_url: str = Field(default_factory=lambda: settings.REDIS_URL)
    lease_retry_count: int = Field(
        default_factory=lambda: settings.LEASE_RETRY_COUNT, ge=0
    )
    lease_retry_delay_ms: int = Field(
        default_factory=lambda: settings.LEASE_RETRY_DELAY_MS, gt=0
    )
    poll_timeout: float = Field(
        default_factory=lambda: settings.LISTENER_POLL_TIMEOUT_SECONDS, gt=0
    )
    redis_options: Dict[str, Any] = Field(default_factory=dict)
