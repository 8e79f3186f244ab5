import threading
from typing import Dict, List, Optional

import pytest
from botocore.exceptions import ClientError

from address_reclaim.runtime.identity import InstanceIdentity


def client_error(code: str, operation: str = "AssociateAddress") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


class FakeClock:
    """Monotonic clock advanced only by sleep()."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeIdentity:
    """Identity source failing with the queued errors before answering."""

    def __init__(self, instance_id: str, region: str = "eu-west-1", failures=()):
        self.instance_id = instance_id
        self.region = region
        self.failures = list(failures)
        self.calls = 0

    def identify(self) -> InstanceIdentity:
        self.calls += 1
        if self.failures:
            raise self.failures.pop(0)
        return InstanceIdentity(
            instance_id=self.instance_id, token="token", region=self.region
        )


class FakeEc2:
    """In-memory stand-in for the EC2 address API, last association wins."""

    def __init__(self, addresses: List[Dict]) -> None:
        self.addresses = {record["AllocationId"]: dict(record) for record in addresses}
        self.failures: Dict[str, List[Exception]] = {
            "describe_addresses": [],
            "associate_address": [],
        }
        self.calls: List[tuple] = []
        self._associations = 0
        self._lock = threading.Lock()

    def fail(self, operation: str, *errors: Exception) -> None:
        self.failures[operation].extend(errors)

    def _maybe_fail(self, operation: str) -> None:
        if self.failures[operation]:
            raise self.failures[operation].pop(0)

    def describe_addresses(self, Filters):
        with self._lock:
            self.calls.append(("describe_addresses", Filters))
            self._maybe_fail("describe_addresses")
            (tag_filter,) = Filters
            key = tag_filter["Name"][len("tag:"):]
            matches = [
                dict(record)
                for record in self.addresses.values()
                if any(
                    tag["Key"] == key and tag["Value"] in tag_filter["Values"]
                    for tag in record.get("Tags", [])
                )
            ]
            return {"Addresses": matches}

    def associate_address(self, AllocationId, InstanceId, AllowReassociation=False):
        with self._lock:
            self.calls.append(("associate_address", AllocationId, InstanceId))
            self._maybe_fail("associate_address")
            record = self.addresses[AllocationId]
            if record.get("InstanceId") not in (None, InstanceId) and not AllowReassociation:
                raise client_error("Resource.AlreadyAssociated")
            self._associations += 1
            record["InstanceId"] = InstanceId
            record["AssociationId"] = f"eipassoc-{self._associations:04d}"
            return {"AssociationId": record["AssociationId"]}

    def holder(self, allocation_id: str) -> Optional[str]:
        return self.addresses[allocation_id].get("InstanceId")

    def holders(self) -> List[str]:
        return [r["InstanceId"] for r in self.addresses.values() if r.get("InstanceId")]


def eip(allocation_id: str, name: str, public_ip: str = "203.0.113.10", instance_id=None):
    record = {
        "AllocationId": allocation_id,
        "PublicIp": public_ip,
        "Domain": "vpc",
        "Tags": [{"Key": "Name", "Value": name}],
    }
    if instance_id:
        record["InstanceId"] = instance_id
        record["AssociationId"] = "eipassoc-initial"
    return record


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def ec2():
    return FakeEc2([eip("eipalloc-0001", "vpn-eip")])
