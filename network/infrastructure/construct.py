"""CDK construct for the wireguard-vpn-eip VPC."""

from typing import Optional

from aws_cdk import aws_ec2
from constructs import Construct

from .config import vpc_settings


class VpcConstruct(Construct):
    """Looks up an existing VPC or creates one with public subnets only."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        vpc_id: Optional[str] = None,
    ) -> None:
        """."""
        super().__init__(scope, construct_id)

        if vpc_id:
            self.vpc = aws_ec2.Vpc.from_lookup(self, "VPC", vpc_id=vpc_id)
            return

        self.vpc = aws_ec2.Vpc(
            self,
            "VPC",
            ip_addresses=aws_ec2.IpAddresses.cidr(vpc_settings.cidr),
            max_azs=vpc_settings.max_azs,
            nat_gateways=0,
            subnet_configuration=[
                aws_ec2.SubnetConfiguration(
                    name="public-subnet",
                    subnet_type=aws_ec2.SubnetType.PUBLIC,
                    cidr_mask=vpc_settings.public_mask,
                )
            ],
        )
