from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="SWR_", env_file=".env", extra="ignore")

    app_name: str = "swr-cache"

    # Redis
    redis_url: str = Field(default="redis://localhost:6379/0", validation_alias="REDIS_URL")

    # Key namespace for staleness markers and revalidation claims.
    # The default keeps key names compatible with laravel-swr-cache.
    key_namespace: str = "laravel_swr_cache"

    # Lease on revalidation claims, in seconds
    lock_lease_seconds: int = Field(default=30, gt=0)

    # Task queue
    default_queue: str = "swr"
    job_ttl: int = 86400  # 24 hours
    result_ttl: int = 3600  # 1 hour
    worker_poll_interval: float = 1.0

    # Observability
    enable_metrics: bool = True
    log_level: str = "INFO"
    log_json: bool = True


settings = Settings()
