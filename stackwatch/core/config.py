"""Watcher settings with Pydantic validation and environment loading."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Watcher settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Application
    debug: bool = Field(default=False, description="Enable debug mode")

    # Target
    stack_name: str = Field(default="", description="Name of the stack to watch")

    # Docker engine - the remote endpoint is DOCKER_HOST_ENDPOINT so the
    # CLI's own DOCKER_HOST does not switch on TLS staging
    docker_path: str = Field(default="docker", description="Docker CLI executable")
    docker_host: Optional[str] = Field(
        default=None,
        alias="DOCKER_HOST_ENDPOINT",
        description="Remote engine URL, e.g. tcp://swarm:2376",
    )
    docker_tls_ca_cert: Optional[str] = Field(default=None, description="CA certificate (PEM)")
    docker_tls_cert: Optional[str] = Field(default=None, description="Client certificate (PEM)")
    docker_tls_key: Optional[str] = Field(default=None, description="Client key (PEM)")
    docker_certs_dir: str = Field(
        default=".dockercerts", description="Where TLS material is staged for the CLI"
    )

    # Polling
    poll_interval: float = Field(
        default=0.1, gt=0, description="Delay between two status polls in seconds"
    )
    watch_timeout: Optional[float] = Field(
        default=None, gt=0, description="Abort the whole watch after this many seconds"
    )

    # Reporting
    result_format: Literal["azure", "log"] = Field(
        default="azure", description="Verdict reporting: azure or log"
    )

    # Logging
    log_level: str = Field(
        default="INFO", description="Log level: DEBUG, INFO, WARNING, ERROR"
    )
    log_format: str = Field(default="text", description="Log format: json or text")

    @field_validator("docker_host", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v):
        if isinstance(v, str):
            v = v.strip()
            if not v:
                return None
            if v.endswith("/"):
                return v[:-1]
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid:
            raise ValueError(f"log_level must be one of {valid}")
        return upper

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        lower = v.lower()
        if lower not in {"json", "text"}:
            raise ValueError("log_format must be json or text")
        return lower


@lru_cache
def get_settings() -> Settings:
    """Cached settings factory."""
    return Settings()


settings = get_settings()
