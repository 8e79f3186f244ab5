"""
CDK construct for the wireguard-vpn-eip VPN appliance.

wg-easy runs as an ECS service on a single ARM instance managed by an
autoscaling group. The WireGuard configuration lives on EFS and the public
endpoint is an Elastic IP that every replacement instance reclaims at boot.
"""

from aws_cdk import (
    CfnOutput,
    Duration,
    Names,
    Tags,
    aws_autoscaling,
    aws_ec2,
    aws_ecs,
    aws_efs,
    aws_iam,
    aws_secretsmanager,
)
from constructs import Construct

from address_reclaim.infrastructure.construct import AddressReclaimConstruct

from .config import VpnSettings

CONFIG_VOLUME = "confs"
CONFIG_PATH = "/etc/wireguard"


class WireguardVpnConstruct(Construct):
    """CDK construct for the wg-easy VPN host, its storage and its Elastic IP.

    Running wg-easy by hand would be:

        docker run -d --name=wg-easy \\
          -e WG_HOST=<server ip> -e PASSWORD=<admin password> \\
          -v ~/.wg-easy:/etc/wireguard \\
          -p 51820:51820/udp -p 51821:51821/tcp \\
          --cap-add=NET_ADMIN --cap-add=SYS_MODULE \\
          --sysctl="net.ipv4.conf.all.src_valid_mark=1" \\
          --sysctl="net.ipv4.ip_forward=1" \\
          --restart unless-stopped ghcr.io/wg-easy/wg-easy
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        vpc: aws_ec2.IVpc,
        settings: VpnSettings = None,
    ) -> None:
        """Initialized construct."""
        super().__init__(scope, construct_id)

        if settings is None:
            env_file = self.node.try_get_context("env_file")
            if env_file:
                settings = VpnSettings(_env_file=f"envs/{env_file}.env")
            else:
                settings = VpnSettings()
        self.settings = settings

        self.host_instance_ip = aws_ec2.CfnEIP(self, "HostInstanceIp")

        # instances find the Elastic IP through this tag when they boot
        self.stable_name = settings.stable_name or Names.unique_id(
            self.host_instance_ip
        )
        Tags.of(self.host_instance_ip).add("Name", self.stable_name)

        # persists the WireGuard configuration across instance replacements
        self.file_system = aws_efs.FileSystem(
            self,
            "Efs",
            vpc=vpc,
            encrypted=True,
        )

        self.admin_password = aws_secretsmanager.Secret(
            self,
            "AdminPassword",
            generate_secret_string=aws_secretsmanager.SecretStringGenerator(
                password_length=settings.admin_password_length,
            ),
        )

        self.cluster = aws_ecs.Cluster(self, "Cluster", vpc=vpc)

        self.auto_scaling_group = self.add_host_capacity()

        self.address_reclaim = AddressReclaimConstruct(
            self,
            "AddressReclaim",
            auto_scaling_group=self.auto_scaling_group,
            stable_name=self.stable_name,
        )

        self.task_definition = self.build_task_definition(
            self.host_instance_ip.attr_public_ip
        )

        self.service = aws_ecs.Ec2Service(
            self,
            "Service",
            cluster=self.cluster,
            task_definition=self.task_definition,
            desired_count=1,
            min_healthy_percent=0,
            max_healthy_percent=200,
            enable_execute_command=True,
        )

        self.file_system.add_to_resource_policy(
            aws_iam.PolicyStatement(
                actions=["elasticfilesystem:ClientMount"],
                principals=[self.task_definition.task_role],
                conditions={
                    "Bool": {"elasticfilesystem:AccessedViaMountTarget": "true"}
                },
            )
        )

        # bridge networking: the host security group is the one that matters
        for cidr in settings.allowed_cidrs_to_ui:
            self.auto_scaling_group.connections.allow_from(
                aws_ec2.Peer.ipv4(cidr),
                aws_ec2.Port.tcp(settings.tcp_port),
                "wg-easy UI",
            )
        for cidr in settings.allowed_cidrs_to_vpn:
            self.auto_scaling_group.connections.allow_from(
                aws_ec2.Peer.ipv4(cidr),
                aws_ec2.Port.udp(settings.udp_port),
                "WireGuard",
            )

        CfnOutput(
            self,
            "VpnIpAddress",
            value=self.host_instance_ip.attr_public_ip,
        )
        CfnOutput(
            self,
            "UiUrl",
            value=f"http://{self.host_instance_ip.attr_public_ip}:{settings.tcp_port}",
        )

    def add_host_capacity(self) -> aws_autoscaling.AutoScalingGroup:
        """
        Autoscaling group keeping exactly one VPN host running.

        Instances are public, the VPN is public anyway and the Elastic IP gets
        attached to them at boot. Shell access goes through SSM.
        """
        auto_scaling_group = self.cluster.add_capacity(
            "AutoScalingGroup",
            instance_type=aws_ec2.InstanceType.of(
                aws_ec2.InstanceClass[self.settings.instance_class],
                aws_ec2.InstanceSize[self.settings.instance_size],
            ),
            associate_public_ip_address=True,
            vpc_subnets=aws_ec2.SubnetSelection(
                subnet_type=aws_ec2.SubnetType.PUBLIC
            ),
            machine_image=aws_ecs.EcsOptimizedImage.amazon_linux2023(
                aws_ecs.AmiHardwareType.ARM
            ),
            min_capacity=1,
            max_capacity=1,
        )

        self.file_system.connections.allow_default_port_from(
            auto_scaling_group.connections
        )

        auto_scaling_group.role.add_managed_policy(
            aws_iam.ManagedPolicy.from_aws_managed_policy_name(
                "AmazonSSMManagedInstanceCore"
            )
        )

        return auto_scaling_group

    def build_task_definition(self, host_ip: str) -> aws_ecs.Ec2TaskDefinition:
        task_definition = aws_ecs.Ec2TaskDefinition(
            self,
            "TaskDef",
            volumes=[
                aws_ecs.Volume(
                    name=CONFIG_VOLUME,
                    efs_volume_configuration=aws_ecs.EfsVolumeConfiguration(
                        file_system_id=self.file_system.file_system_id,
                    ),
                )
            ],
        )

        linux_parameters = aws_ecs.LinuxParameters(self, "LinuxParam")
        linux_parameters.add_capabilities(
            aws_ecs.Capability.NET_ADMIN, aws_ecs.Capability.SYS_MODULE
        )

        container = task_definition.add_container(
            "Container",
            image=aws_ecs.ContainerImage.from_registry(self.settings.container_image),
            pseudo_terminal=True,
            start_timeout=Duration.seconds(300),
            privileged=False,
            memory_reservation_mib=100,
            cpu=1024,
            environment={"WG_HOST": host_ip},
            secrets={
                "PASSWORD": aws_ecs.Secret.from_secrets_manager(self.admin_password)
            },
            port_mappings=[
                aws_ecs.PortMapping(
                    container_port=self.settings.tcp_port,
                    host_port=self.settings.tcp_port,
                    protocol=aws_ecs.Protocol.TCP,
                ),
                aws_ecs.PortMapping(
                    container_port=self.settings.udp_port,
                    host_port=self.settings.udp_port,
                    protocol=aws_ecs.Protocol.UDP,
                ),
            ],
            system_controls=[
                aws_ecs.SystemControl(
                    namespace="net.ipv4.conf.all.src_valid_mark", value="1"
                ),
                aws_ecs.SystemControl(namespace="net.ipv4.ip_forward", value="1"),
            ],
            linux_parameters=linux_parameters,
        )

        container.add_mount_points(
            aws_ecs.MountPoint(
                source_volume=CONFIG_VOLUME,
                container_path=CONFIG_PATH,
                read_only=False,
            )
        )

        self.admin_password.grant_read(task_definition.task_role)
        self.file_system.grant_root_access(task_definition.task_role.grant_principal)

        return task_definition
