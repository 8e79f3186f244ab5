"""Settings read by the reclaim agent from its container environment."""

import logging
from typing import Optional

from pydantic import Field, validator
from pydantic_settings import BaseSettings


class ReclaimAgentSettings(BaseSettings):
    """Application settings."""

    stable_name: str = Field(
        ...,
        description="Value of the tag the VPN Elastic IP was created with",
    )
    tag_key: str = Field(
        "Name",
        description="Key of the tag holding the stable name",
    )
    region: Optional[str] = Field(
        None,
        description="AWS region of the Elastic IP, read from instance metadata if unset",
    )

    metadata_endpoint: str = Field(
        "http://169.254.169.254",
        description="Link-local address of the instance metadata service",
    )
    metadata_token_ttl_seconds: int = Field(
        21600,
        description="Lifetime requested for the IMDSv2 session token",
        gt=0,
        le=21600,
    )
    metadata_timeout_seconds: float = Field(
        2.0,
        description="Timeout of each instance metadata request",
        gt=0,
    )

    api_connect_timeout_seconds: float = Field(
        3.0,
        description="Connect timeout of EC2 API calls",
        gt=0,
    )
    api_read_timeout_seconds: float = Field(
        10.0,
        description="Read timeout of EC2 API calls",
        gt=0,
    )

    max_attempts: int = Field(
        5,
        description="Attempts per step (identify, lookup, associate)",
        ge=1,
    )
    retry_delay_seconds: float = Field(
        2.0,
        description="Delay after the first failed attempt",
        ge=0,
    )
    retry_delay_step_seconds: float = Field(
        2.0,
        description="Added to the delay after every further failed attempt",
        ge=0,
    )
    total_budget_seconds: float = Field(
        120.0,
        description="Wall-clock budget for the whole run, so boot is never stalled",
        gt=0,
    )

    log_level: str = Field("INFO", description="Python logging level")

    @validator("log_level", pre=True, always=True)
    def check_log_level(cls, value):
        """Convert to uppercase and reject unknown level names."""
        if isinstance(value, str):
            value = value.upper()
        if not isinstance(logging.getLevelName(value), int):
            raise ValueError(f"unknown log level {value!r}")
        return value

    class Config:
        """model config."""

        env_file = ".env"
        env_prefix = "WG_EIP_RECLAIM_"
        extra = "allow"
