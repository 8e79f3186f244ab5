from aws_cdk import (
    App,
    Stack,
    Tags,
)
from constructs import Construct

from config import wireguardAppSettings
from network.infrastructure.construct import VpcConstruct
from vpn.infrastructure.construct import WireguardVpnConstruct

app = App()
env_file = app.node.try_get_context("env_file")
if env_file:
    settings = wireguardAppSettings(_env_file=f"envs/{env_file}.env")
else:
    settings = wireguardAppSettings()


class WireguardVpnStack(Stack):
    """CDK stack for the wireguard-vpn-eip VPN appliance."""

    def __init__(
        self, scope: Construct, construct_id: str, vpc_id: str = None, **kwargs
    ) -> None:
        """."""
        super().__init__(scope, construct_id, **kwargs)

        network = VpcConstruct(self, "network", vpc_id=vpc_id)

        self.vpn = WireguardVpnConstruct(self, "vpn", vpc=network.vpc)


wireguard_stack = WireguardVpnStack(
    app,
    f"{settings.app_name}-{settings.stage_name()}",
    vpc_id=settings.vpc_id,
    env=settings.cdk_env(),
)

for key, value in {
    "Project": settings.app_name,
    "Stack": settings.stage_name(),
}.items():
    if value:
        Tags.of(app).add(key=key, value=value)

app.synth()
