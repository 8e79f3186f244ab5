"""Who am I: the instance identity read from the EC2 instance metadata service (IMDSv2)."""

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

import requests

from .errors import IdentityUnavailable, Timeout

logger = logging.getLogger(__name__)

METADATA_ENDPOINT = "http://169.254.169.254"
TOKEN_PATH = "/latest/api/token"
INSTANCE_ID_PATH = "/latest/meta-data/instance-id"
REGION_PATH = "/latest/meta-data/placement/region"

TOKEN_TTL_HEADER = "X-aws-ec2-metadata-token-ttl-seconds"
TOKEN_HEADER = "X-aws-ec2-metadata-token"


@dataclass(frozen=True)
class InstanceIdentity:
    instance_id: str
    token: str
    region: Optional[str] = None


class IdentitySource(Protocol):
    """Anything able to tell the agent which instance it runs on."""

    def identify(self) -> InstanceIdentity:
        ...


class InstanceMetadataIdentity:
    """
    Reads the instance id through an authenticated IMDSv2 session.

    A session token is requested with PUT first and every metadata read
    carries it, so plain unauthenticated GETs are never issued.
    """

    def __init__(
        self,
        endpoint: str = METADATA_ENDPOINT,
        token_ttl_seconds: int = 21600,
        timeout: float = 2.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.endpoint = endpoint.rstrip("/")
        self.token_ttl_seconds = token_ttl_seconds
        self.timeout = timeout
        self.session = session or requests.Session()

    def identify(self) -> InstanceIdentity:
        token = self._request(
            "PUT",
            TOKEN_PATH,
            headers={TOKEN_TTL_HEADER: str(self.token_ttl_seconds)},
        )
        headers = {TOKEN_HEADER: token}
        instance_id = self._request("GET", INSTANCE_ID_PATH, headers=headers)
        region = self._request("GET", REGION_PATH, headers=headers)

        logger.info("Running on instance %s in %s", instance_id, region)
        return InstanceIdentity(instance_id=instance_id, token=token, region=region)

    def _request(self, method: str, path: str, headers: dict) -> str:
        url = f"{self.endpoint}{path}"
        try:
            response = self.session.request(
                method, url, headers=headers, timeout=self.timeout
            )
            response.raise_for_status()
        except requests.Timeout as exc:
            raise Timeout(f"instance metadata {method} {path} timed out") from exc
        except requests.RequestException as exc:
            raise IdentityUnavailable(
                f"instance metadata {method} {path} failed: {exc}"
            ) from exc

        value = response.text.strip()
        if not value:
            raise IdentityUnavailable(f"instance metadata {path} returned nothing")
        return value
