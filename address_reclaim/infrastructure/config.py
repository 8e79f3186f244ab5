"""wireguard-vpn-eip address reclaim construct configuration."""

from pydantic import Field
from pydantic_settings import BaseSettings


class ReclaimSettings(BaseSettings):
    """Application settings."""

    max_attempts: int = Field(
        5,
        description="Attempts per step of the reclaim agent (identify, lookup, associate)",
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

    total_budget_seconds: int = Field(
        120,
        description="Wall-clock budget of the reclaim agent, so instance boot is never stalled",
        gt=0,
    )

    aws_cli_image: str = Field(
        "amazon/aws-cli:latest",
        description="Image used on the host to log in to the private ECR registry",
    )

    log_level: str = Field(
        "INFO",
        description="Log level of the reclaim agent",
    )

    class Config:
        """model config."""

        env_file = ".env"
        env_prefix = "WG_EIP_RECLAIM_"
        extra = "allow"
