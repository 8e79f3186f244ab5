"""Elastic IP lookup and association through the EC2 API."""

import logging
from dataclasses import dataclass
from typing import List, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)

from .errors import (
    AddressNotFound,
    AssociationRejected,
    DirectoryUnavailable,
    Timeout,
)

logger = logging.getLogger(__name__)

# ClientError codes worth another DescribeAddresses attempt
TRANSIENT_ERROR_CODES = {
    "RequestLimitExceeded",
    "Throttling",
    "ThrottlingException",
    "InternalError",
    "InternalFailure",
    "ServiceUnavailable",
    "Unavailable",
}

TRANSPORT_ERRORS = (ConnectTimeoutError, ReadTimeoutError, EndpointConnectionError)


@dataclass(frozen=True)
class StableAddress:
    allocation_id: str
    public_ip: Optional[str] = None
    stable_name: Optional[str] = None
    association_id: Optional[str] = None
    instance_id: Optional[str] = None

    @classmethod
    def from_description(cls, record: dict, tag_key: str = "Name") -> "StableAddress":
        """Build from one entry of a DescribeAddresses ``Addresses`` list."""
        tags = {tag["Key"]: tag["Value"] for tag in record.get("Tags", [])}
        return cls(
            allocation_id=record["AllocationId"],
            public_ip=record.get("PublicIp"),
            stable_name=tags.get(tag_key),
            association_id=record.get("AssociationId"),
            instance_id=record.get("InstanceId"),
        )


def _error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "Unknown")


class AddressDirectory:
    """Finds the address tagged with the stable name and binds it to an instance."""

    def __init__(self, client, tag_key: str = "Name") -> None:
        self.client = client
        self.tag_key = tag_key

    @classmethod
    def from_region(
        cls,
        region: Optional[str],
        tag_key: str = "Name",
        connect_timeout: float = 3.0,
        read_timeout: float = 10.0,
    ) -> "AddressDirectory":
        """EC2 client with bounded timeouts; retries are left to the agent."""
        try:
            client = boto3.client(
                "ec2",
                region_name=region,
                config=Config(
                    connect_timeout=connect_timeout,
                    read_timeout=read_timeout,
                    retries={"total_max_attempts": 1, "mode": "standard"},
                ),
            )
        except BotoCoreError as e:
            raise DirectoryUnavailable(
                f"cannot create EC2 client: {e}", code=type(e).__name__, retryable=False
            ) from e
        return cls(client, tag_key=tag_key)

    def describe(self, stable_name: str) -> List[StableAddress]:
        try:
            response = self.client.describe_addresses(
                Filters=[{"Name": f"tag:{self.tag_key}", "Values": [stable_name]}]
            )
        except ClientError as e:
            code = _error_code(e)
            raise DirectoryUnavailable(
                f"DescribeAddresses failed: {e}",
                code=code,
                retryable=code in TRANSIENT_ERROR_CODES,
            ) from e
        except TRANSPORT_ERRORS as e:
            raise Timeout(f"DescribeAddresses did not complete: {e}") from e
        except BotoCoreError as e:
            raise DirectoryUnavailable(
                f"DescribeAddresses failed: {e}", code=type(e).__name__
            ) from e

        return [
            StableAddress.from_description(record, tag_key=self.tag_key)
            for record in response.get("Addresses", [])
        ]

    def find(self, stable_name: str) -> StableAddress:
        """
        Return the address tagged ``stable_name``.

        Several matches mean the tagging is ambiguous. The lowest allocation
        id wins so that every instance makes the same choice.
        """
        addresses = self.describe(stable_name)
        if not addresses:
            raise AddressNotFound(
                f"no Elastic IP tagged {self.tag_key}={stable_name}"
            )

        addresses.sort(key=lambda address: address.allocation_id)
        if len(addresses) > 1:
            logger.warning(
                "%d Elastic IPs tagged %s=%s, using %s",
                len(addresses),
                self.tag_key,
                stable_name,
                addresses[0].allocation_id,
            )

        address = addresses[0]
        logger.info(
            "Found Elastic IP %s (%s), currently on %s",
            address.allocation_id,
            address.public_ip,
            address.instance_id or "no instance",
        )
        return address

    def associate(self, address: StableAddress, instance_id: str) -> Optional[str]:
        """Bind ``address`` to ``instance_id``, taking it from any previous holder."""
        try:
            response = self.client.associate_address(
                AllocationId=address.allocation_id,
                InstanceId=instance_id,
                AllowReassociation=True,
            )
        except ClientError as e:
            raise AssociationRejected(
                f"AssociateAddress {address.allocation_id} -> {instance_id} failed: {e}",
                code=_error_code(e),
            ) from e
        except TRANSPORT_ERRORS as e:
            raise Timeout(f"AssociateAddress did not complete: {e}") from e
        except BotoCoreError as e:
            raise AssociationRejected(
                f"AssociateAddress {address.allocation_id} -> {instance_id} failed: {e}",
                code=type(e).__name__,
            ) from e

        association_id = response.get("AssociationId")
        logger.info(
            "Associated %s with %s (%s)",
            address.allocation_id,
            instance_id,
            association_id,
        )
        return association_id
