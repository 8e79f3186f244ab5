"""Errors raised while reclaiming the VPN Elastic IP."""

from typing import Optional


class ReclaimError(Exception):
    """Base class for every failure the reclaim agent knows how to report."""

    retryable = False

    def __init__(self, message: str, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.code = code


class IdentityUnavailable(ReclaimError):
    """The instance metadata service did not return a usable identity."""

    retryable = True


class AddressNotFound(ReclaimError):
    """No Elastic IP carries the configured stable tag."""


class AssociationRejected(ReclaimError):
    """EC2 refused to associate the address (throttling, transient conflict)."""

    retryable = True


class Timeout(ReclaimError):
    """A call to the metadata service or the EC2 API timed out."""

    retryable = True


class DirectoryUnavailable(ReclaimError):
    """DescribeAddresses failed. Retryable only for throttling and server errors."""

    def __init__(
        self, message: str, code: Optional[str] = None, retryable: bool = True
    ) -> None:
        super().__init__(message, code=code)
        self.retryable = retryable


def is_retryable(error: Exception) -> bool:
    """Retry predicate used by the agent: only retryable reclaim errors."""
    return isinstance(error, ReclaimError) and error.retryable
