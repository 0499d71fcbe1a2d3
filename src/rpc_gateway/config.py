"""Runtime configuration for the RPC gateway."""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_TIMEOUT_SECONDS = 10


class Settings(BaseSettings):
    """Service settings loaded from environment variables."""

    service_name: str = "rpc-gateway"
    service_version: str = "1.0.0"
    log_level: str = "INFO"
    metrics_enabled: bool = True

    rpc_url: str = "https://polygon-rpc.com/"
    timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS

    rate_limit_enabled: bool = True
    rate_limit_requests: int = 200
    rate_limit_window_seconds: int = 60

    model_config = SettingsConfigDict(
        env_prefix="RPC_GATEWAY_",
        extra="ignore",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    @field_validator("timeout_seconds", mode="before")
    @classmethod
    def _fallback_timeout(cls, value: object) -> int:
        try:
            seconds = int(str(value).strip())
        except (TypeError, ValueError):
            return DEFAULT_TIMEOUT_SECONDS
        if seconds <= 0:
            return DEFAULT_TIMEOUT_SECONDS
        return seconds


def get_settings() -> Settings:
    """Return settings object."""

    return Settings()
