"""
Pydantic-based configuration for the range scanner.

All knobs are exposed via environment variables (RANGESCAN_ prefix) or a
.env file so the CLI and the API run with the same defaults.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(case_sensitive=False, env_file=".env", env_prefix="RANGESCAN_")

    # Concurrency
    concurrency: int = Field(1000, description="phase-1 connect probes in flight")
    banner_concurrency: int = Field(1, description="phase-2 banner grabs in flight")

    # Timeouts
    connect_timeout_s: float = 1.0
    banner_connect_timeout_s: float = 5.0
    banner_read_timeout_s: float = 5.0
    max_banner_line: int = 64 * 1024

    log_level: str = "INFO"

    # Elasticsearch
    elasticsearch_url: Optional[str] = None
    elasticsearch_user: Optional[str] = None
    elasticsearch_pass: Optional[str] = None
    elasticsearch_api_key: Optional[str] = None
    elasticsearch_verify_certs: bool = True
    elasticsearch_ca_cert: Optional[str] = None
    elasticsearch_index: str = "rangescan-hosts"
    bulk_batch_size: int = 500

    # Local state/cache
    json_cache_path: Optional[str] = None

    @field_validator("concurrency", "banner_concurrency", "max_banner_line", "bulk_batch_size")
    @classmethod
    def validate_positive_int(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be >= 1")
        return v

    @field_validator("connect_timeout_s", "banner_connect_timeout_s", "banner_read_timeout_s")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeout must be > 0")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = v.upper()
        if v not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError("unknown log level")
        return v


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
