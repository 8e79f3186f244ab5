"""wireguard-vpn-eip VPN appliance construct configuration."""

from typing import List, Optional

from aws_cdk import aws_ec2
from pydantic import Field, validator
from pydantic_settings import BaseSettings


class VpnSettings(BaseSettings):
    """Application settings."""

    udp_port: int = Field(
        51820,
        description="Port used for VPN connections",
    )
    tcp_port: int = Field(
        51821,
        description="Port used to access the wg-easy UI",
    )

    container_image: str = Field(
        "ghcr.io/wg-easy/wg-easy",
        description="wg-easy image to run",
    )

    instance_class: str = Field(
        aws_ec2.InstanceClass.BURSTABLE4_GRAVITON.value,
        description=(
            "The instance class of the VPN host, must be ARM "
            "https://docs.aws.amazon.com/cdk/api/v2/python/aws_cdk.aws_ec2/InstanceClass.html"
        ),
    )
    instance_size: str = Field(
        aws_ec2.InstanceSize.NANO.value,
        description=(
            "The size of the VPN host "
            "https://docs.aws.amazon.com/cdk/api/v2/python/aws_cdk.aws_ec2/InstanceSize.html"
        ),
    )

    admin_password_length: int = Field(
        64,
        description="Length of the generated wg-easy admin password",
        ge=8,
    )

    allowed_cidrs_to_ui: List[str] = Field(
        [],
        description=(
            "CIDRs allowed to reach the UI. Restrict it to your office/home IP, "
            "or only open it while you need the UI"
        ),
    )
    allowed_cidrs_to_vpn: List[str] = Field(
        ["0.0.0.0/0"],
        description="CIDRs allowed to connect to the VPN, all IPv4 by default",
    )

    stable_name: Optional[str] = Field(
        None,
        description=(
            "Value of the Name tag of the Elastic IP, used by instances to find it. "
            "Defaults to the unique id of the Elastic IP resource"
        ),
    )

    @validator("instance_class", "instance_size", pre=True, always=True)
    def convert_instance_type_to_uppercase(cls, value):
        """Convert to uppercase."""
        if isinstance(value, str):
            return value.upper()
        return value

    class Config:
        """model config."""

        env_file = ".env"
        env_prefix = "WG_VPN_"
        extra = "allow"
