import pytest
import requests

from address_reclaim.runtime.errors import IdentityUnavailable, Timeout
from address_reclaim.runtime.identity import (
    TOKEN_HEADER,
    TOKEN_TTL_HEADER,
    InstanceMetadataIdentity,
)


class FakeResponse:
    def __init__(self, text="", status_code=200):
        self.text = text
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


class FakeSession:
    """Records requests and answers from a (method, path) table."""

    def __init__(self, routes):
        self.routes = routes
        self.requests = []

    def request(self, method, url, headers=None, timeout=None):
        self.requests.append((method, url, headers, timeout))
        path = url.split("169.254.169.254", 1)[1]
        answer = self.routes[(method, path)]
        if isinstance(answer, Exception):
            raise answer
        return answer


def metadata_routes(overrides=None):
    routes = {
        ("PUT", "/latest/api/token"): FakeResponse("secret-token"),
        ("GET", "/latest/meta-data/instance-id"): FakeResponse("i-0001\n"),
        ("GET", "/latest/meta-data/placement/region"): FakeResponse("eu-west-1"),
    }
    routes.update(overrides or {})
    return routes


def test_identify_uses_session_token():
    session = FakeSession(metadata_routes())
    source = InstanceMetadataIdentity(token_ttl_seconds=300, timeout=1.5, session=session)

    identity = source.identify()

    assert identity.instance_id == "i-0001"
    assert identity.token == "secret-token"
    assert identity.region == "eu-west-1"

    token_request, *reads = session.requests
    assert token_request[0] == "PUT"
    assert token_request[2] == {TOKEN_TTL_HEADER: "300"}
    for method, _, headers, timeout in reads:
        assert method == "GET"
        assert headers == {TOKEN_HEADER: "secret-token"}
        assert timeout == 1.5


def test_timeout_is_reported_as_timeout():
    session = FakeSession(
        metadata_routes({("PUT", "/latest/api/token"): requests.ConnectTimeout()})
    )

    with pytest.raises(Timeout) as excinfo:
        InstanceMetadataIdentity(session=session).identify()

    assert excinfo.value.retryable


def test_connection_failure_is_identity_unavailable():
    session = FakeSession(
        metadata_routes({("PUT", "/latest/api/token"): requests.ConnectionError()})
    )

    with pytest.raises(IdentityUnavailable) as excinfo:
        InstanceMetadataIdentity(session=session).identify()

    assert excinfo.value.retryable


def test_http_error_is_identity_unavailable():
    session = FakeSession(
        metadata_routes(
            {("GET", "/latest/meta-data/instance-id"): FakeResponse("", 401)}
        )
    )

    with pytest.raises(IdentityUnavailable):
        InstanceMetadataIdentity(session=session).identify()


def test_empty_instance_id_is_identity_unavailable():
    session = FakeSession(
        metadata_routes({("GET", "/latest/meta-data/instance-id"): FakeResponse("  ")})
    )

    with pytest.raises(IdentityUnavailable):
        InstanceMetadataIdentity(session=session).identify()
