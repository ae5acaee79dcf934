# config/settings.py
import logging
import os
import sys

from dotenv import load_dotenv
from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings

from keyspace_store.util.enums import Environment
from keyspace_store.util.errors import ConfigurationError

if os.getenv("APP_ENV", Environment.DEV) == Environment.DEV:
    load_dotenv()

_log = logging.getLogger("keyspace_store.config.settings")


class Settings(BaseSettings):
    # App
    APP_ENV: str = Field(default=Environment.DEV.value, validation_alias="APP_ENV")
    REDIS_URL: str = Field(
        default="redis://localhost:6379/0", validation_alias="REDIS_URL"
    )

    # Store
    STORE_NAMESPACE: str = Field(default="", validation_alias="STORE_NAMESPACE")
    STORE_IS_PRECONFIGURED: bool = Field(
        default=False, validation_alias="STORE_IS_PRECONFIGURED"
    )

    # Leases
    LEASE_RETRY_COUNT: int = Field(default=10, ge=0, validation_alias="LEASE_RETRY_COUNT")
    LEASE_RETRY_DELAY_MS: int = Field(
        default=100, gt=0, validation_alias="LEASE_RETRY_DELAY_MS"
    )

    # Expiry listener
    LISTENER_POLL_TIMEOUT_SECONDS: float = Field(
        default=1.0, gt=0, validation_alias="LISTENER_POLL_TIMEOUT_SECONDS"
    )

    # Logging knobs
    LOGGER_NAME: str = "keyspace-store"
    LOG_LEVEL: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    LOG_TO_FILE: bool = Field(default=False, validation_alias="LOG_TO_FILE")
    LOG_DIR: str = Field(default="logs", validation_alias="LOG_DIR")
    LOG_FILE_NAME: str = Field(default="store.log", validation_alias="LOG_FILE_NAME")
    LOG_MAX_BYTES: int = Field(
        default=50 * 1024 * 1024, validation_alias="LOG_MAX_BYTES"
    )
    LOG_BACKUP_COUNT: int = Field(default=5, validation_alias="LOG_BACKUP_COUNT")


try:
    settings = Settings()
except ValidationError as e:
    print("❌ Missing/invalid environment variables:", file=sys.stderr)
    for err in e.errors():
        loc = ".".join(str(x) for x in err.get("loc", []))
        msg = err.get("msg", "")
        print(f" - {loc}: {msg}", file=sys.stderr)
    raise ConfigurationError("invalid store settings in environment") from e

_log.debug("settings.loaded env=%s", settings.APP_ENV)
