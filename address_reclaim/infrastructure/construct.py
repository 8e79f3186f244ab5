"""
CDK construct for the wireguard-vpn-eip address reclaim agent.

Every instance launched by the autoscaling group runs the agent container from
its user data, which moves the VPN Elastic IP onto the new instance.
Inspired from: https://github.com/rajyan/low-cost-ecs/blob/bc62fa06a507fc45665d0f87f061a4f8e62e9424/src/low-cost-ecs.ts#L223
"""

import os

from aws_cdk import (
    Fn,
    Stack,
    aws_autoscaling,
    aws_ecr_assets,
    aws_iam,
)
from constructs import Construct

from .config import ReclaimSettings

RUNTIME_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), "runtime")


class AddressReclaimConstruct(Construct):
    """CDK construct wiring the reclaim agent into the VPN host boot sequence."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        auto_scaling_group: aws_autoscaling.AutoScalingGroup,
        stable_name: str,
        tag_key: str = "Name",
        code_dir: str = RUNTIME_DIR,
    ) -> None:
        """Initialized construct."""
        super().__init__(scope, construct_id)

        env_file = self.node.try_get_context("env_file")
        if env_file:
            reclaim_settings = ReclaimSettings(_env_file=f"envs/{env_file}.env")
        else:
            reclaim_settings = ReclaimSettings()

        region = Stack.of(self).region

        # t4g instances are ARM only
        self.image = aws_ecr_assets.DockerImageAsset(
            self,
            "AgentImage",
            directory=os.path.abspath(code_dir),
            file="Dockerfile",
            platform=aws_ecr_assets.Platform.LINUX_ARM64,
        )
        self.image.repository.grant_pull(auto_scaling_group.role)

        auto_scaling_group.role.add_to_principal_policy(
            aws_iam.PolicyStatement(
                sid="AllowElasticIpReclaim",
                effect=aws_iam.Effect.ALLOW,
                actions=["ec2:DescribeAddresses", "ec2:AssociateAddress"],
                resources=["*"],
            )
        )

        agent_env = {
            "WG_EIP_RECLAIM_STABLE_NAME": stable_name,
            "WG_EIP_RECLAIM_TAG_KEY": tag_key,
            "WG_EIP_RECLAIM_REGION": region,
            "WG_EIP_RECLAIM_MAX_ATTEMPTS": str(reclaim_settings.max_attempts),
            "WG_EIP_RECLAIM_RETRY_DELAY_SECONDS": str(
                reclaim_settings.retry_delay_seconds
            ),
            "WG_EIP_RECLAIM_RETRY_DELAY_STEP_SECONDS": str(
                reclaim_settings.retry_delay_step_seconds
            ),
            "WG_EIP_RECLAIM_TOTAL_BUDGET_SECONDS": str(
                reclaim_settings.total_budget_seconds
            ),
            "WG_EIP_RECLAIM_LOG_LEVEL": reclaim_settings.log_level,
        }
        env_flags = " ".join(f"-e {key}={value}" for key, value in agent_env.items())

        registry = Fn.select(0, Fn.split("/", self.image.image_uri))
        cli_image = reclaim_settings.aws_cli_image

        # A failed reclaim is logged and must not stop the rest of the user data
        auto_scaling_group.add_user_data(
            f"docker run --rm --net=host {cli_image} ecr get-login-password --region {region}"
            f" | docker login --username AWS --password-stdin {registry}",
            f"docker run --rm --net=host {env_flags} {self.image.image_uri}"
            ' || echo "Elastic IP reclaim exited with status $?"',
        )
