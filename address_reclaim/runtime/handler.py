"""
Entry point of the address reclaim container, run from the VPN host user data.

    docker run --rm --net=host -e WG_EIP_RECLAIM_STABLE_NAME=... <image>

The exit status is advisory. The user data logs it and carries on booting.
"""

import logging
import sys
from typing import Optional

from .agent import EXIT_FAILED, AddressReclaimAgent
from .config import ReclaimAgentSettings
from .directory import AddressDirectory
from .identity import InstanceMetadataIdentity
from .retry import RetryPolicy, linear_backoff

logger = logging.getLogger()
logger.setLevel(logging.INFO)


def build_agent(settings: ReclaimAgentSettings) -> AddressReclaimAgent:
    identity = InstanceMetadataIdentity(
        endpoint=settings.metadata_endpoint,
        token_ttl_seconds=settings.metadata_token_ttl_seconds,
        timeout=settings.metadata_timeout_seconds,
    )

    def directory_factory(region):
        return AddressDirectory.from_region(
            region,
            tag_key=settings.tag_key,
            connect_timeout=settings.api_connect_timeout_seconds,
            read_timeout=settings.api_read_timeout_seconds,
        )

    return AddressReclaimAgent(
        identity_source=identity,
        directory_factory=directory_factory,
        stable_name=settings.stable_name,
        policy=RetryPolicy(
            max_attempts=settings.max_attempts,
            backoff=linear_backoff(
                settings.retry_delay_seconds, settings.retry_delay_step_seconds
            ),
        ),
        total_budget_seconds=settings.total_budget_seconds,
        region=settings.region,
    )


def handler(settings: Optional[ReclaimAgentSettings] = None) -> int:
    """
    Reclaim the Elastic IP for this instance and return a process exit status
    """
    try:
        if settings is None:
            settings = ReclaimAgentSettings()
        logger.setLevel(settings.log_level)

        result = build_agent(settings).run()
    except Exception:
        logger.exception("Elastic IP reclaim crashed")
        return EXIT_FAILED

    if result.ok:
        logger.info(
            "Elastic IP %s (%s) %s on %s",
            result.allocation_id,
            result.public_ip,
            result.outcome.value,
            result.instance_id,
        )
    else:
        logger.error(
            "Elastic IP %s was not reclaimed (%s), exiting with status %d",
            settings.stable_name,
            type(result.error).__name__,
            result.exit_code,
        )
    return result.exit_code


def main() -> int:
    logging.basicConfig(
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        stream=sys.stdout,
    )
    return handler()


if __name__ == "__main__":
    sys.exit(main())
