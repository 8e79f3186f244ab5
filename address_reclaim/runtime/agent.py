"""
Re-attaches the VPN Elastic IP to the instance that is booting.

The autoscaling group replaces the VPN host without warning, and the new
host comes up with an ephemeral public IP. Every boot runs this agent once:
identify the instance, find the Elastic IP by its stable tag and associate it
with reassociation allowed. Two hosts can overlap during a replacement, in
which case the last association wins. Nothing is persisted between boots.
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Protocol

from .directory import StableAddress
from .errors import AddressNotFound, ReclaimError
from .identity import IdentitySource, InstanceIdentity
from .retry import RetryPolicy, call_with_retry

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_MISCONFIGURED = 2


class ReclaimStage(str, Enum):
    START = "start"
    IDENTIFY = "identify"
    DISCOVER = "discover"
    ASSOCIATE = "associate"
    DONE = "done"


class ReclaimOutcome(str, Enum):
    ASSOCIATED = "associated"
    ALREADY_ASSOCIATED = "already_associated"
    FAILED = "failed"


class AddressPlatform(Protocol):
    def find(self, stable_name: str) -> StableAddress:
        ...

    def associate(self, address: StableAddress, instance_id: str) -> Optional[str]:
        ...


@dataclass(frozen=True)
class ReclaimResult:
    outcome: ReclaimOutcome
    stage: ReclaimStage
    instance_id: Optional[str] = None
    allocation_id: Optional[str] = None
    public_ip: Optional[str] = None
    association_id: Optional[str] = None
    error: Optional[ReclaimError] = None

    @property
    def ok(self) -> bool:
        return self.outcome is not ReclaimOutcome.FAILED

    @property
    def exit_code(self) -> int:
        """Advisory status for the boot script; never meant to abort it."""
        if self.ok:
            return EXIT_OK
        if isinstance(self.error, AddressNotFound):
            return EXIT_MISCONFIGURED
        return EXIT_FAILED


class AddressReclaimAgent:
    """
    Args:
        identity_source: where the instance id comes from (IMDSv2 in production).
        directory_factory: builds the address directory for a region. The region
            is ``region`` when given, otherwise the one reported by the identity.
        stable_name: value of the tag the Elastic IP was created with.
        policy: retry policy applied to each of the three steps.
        total_budget_seconds: wall-clock budget shared by all steps.
    """

    def __init__(
        self,
        identity_source: IdentitySource,
        directory_factory: Callable[[Optional[str]], AddressPlatform],
        stable_name: str,
        policy: Optional[RetryPolicy] = None,
        total_budget_seconds: float = 120.0,
        region: Optional[str] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.identity_source = identity_source
        self.directory_factory = directory_factory
        self.stable_name = stable_name
        self.policy = policy or RetryPolicy()
        self.total_budget_seconds = total_budget_seconds
        self.region = region
        self._sleep = sleep
        self._clock = clock

    def _retry(self, operation, deadline: float, description: str):
        return call_with_retry(
            operation,
            self.policy,
            deadline=deadline,
            description=description,
            sleep=self._sleep,
            clock=self._clock,
        )

    def run(self) -> ReclaimResult:
        deadline = self._clock() + self.total_budget_seconds
        stage = ReclaimStage.START
        identity: Optional[InstanceIdentity] = None
        address: Optional[StableAddress] = None

        try:
            stage = ReclaimStage.IDENTIFY
            identity = self._retry(
                self.identity_source.identify, deadline, "instance identification"
            )

            stage = ReclaimStage.DISCOVER
            directory = self.directory_factory(self.region or identity.region)
            address = self._retry(
                lambda: directory.find(self.stable_name),
                deadline,
                f"lookup of Elastic IP {self.stable_name}",
            )

            if address.instance_id == identity.instance_id:
                logger.info(
                    "Elastic IP %s is already associated with %s",
                    address.allocation_id,
                    identity.instance_id,
                )
                return ReclaimResult(
                    outcome=ReclaimOutcome.ALREADY_ASSOCIATED,
                    stage=ReclaimStage.DONE,
                    instance_id=identity.instance_id,
                    allocation_id=address.allocation_id,
                    public_ip=address.public_ip,
                    association_id=address.association_id,
                )

            if address.instance_id:
                logger.info(
                    "Taking Elastic IP %s over from %s",
                    address.allocation_id,
                    address.instance_id,
                )

            stage = ReclaimStage.ASSOCIATE
            association_id = self._retry(
                lambda: directory.associate(address, identity.instance_id),
                deadline,
                f"association of {address.allocation_id}",
            )
        except ReclaimError as e:
            logger.error("Elastic IP reclaim failed during %s: %s", stage.value, e)
            return ReclaimResult(
                outcome=ReclaimOutcome.FAILED,
                stage=stage,
                instance_id=identity.instance_id if identity else None,
                allocation_id=address.allocation_id if address else None,
                public_ip=address.public_ip if address else None,
                error=e,
            )

        return ReclaimResult(
            outcome=ReclaimOutcome.ASSOCIATED,
            stage=ReclaimStage.DONE,
            instance_id=identity.instance_id,
            allocation_id=address.allocation_id,
            public_ip=address.public_ip,
            association_id=association_id,
        )
