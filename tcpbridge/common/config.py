from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class BridgeSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=(".env", "tcpbridge/.env"), env_ignore_empty=True, extra="ignore"
    )

    # Watchdog cadence; values below the minimum are clamped by the bridge itself.
    BRIDGE_POLL_INTERVAL_SECONDS: int = 1
    BRIDGE_IDLE_LIMIT_SECONDS: int = 60

    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    LOG_DIR: str = "./"
    LOG_FILE: str = "tcpbridge.log"
    OTEL_SERVICE_NAME: str = "tcpbridge"

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def _upper_log_level(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().upper()
        return value
