"""Configuration options for the VPC."""

from pydantic_settings import BaseSettings


# The VPN is public: public subnets only, no NAT gateway to pay for
class VpcSettings(BaseSettings):
    """VPC settings"""

    cidr: str = "10.100.0.0/16"
    max_azs: int = 2
    public_mask: int = 24

    class Config:
        """model config."""

        env_prefix = "WG_VPC_"


vpc_settings = VpcSettings()
