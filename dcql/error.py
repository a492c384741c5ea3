"""DCQL engine exceptions."""

from acapy_agent.core.error import BaseError


class DcqlError(BaseError):
    """Base class for DCQL engine errors."""


class DcqlCredentialQueryError(DcqlError):
    """Raised when a required credential query or credential set cannot be satisfied."""


class ClaimsPathError(DcqlError, ValueError):
    """Raised when a claims path cannot be applied to the shape of a credential."""


class ClaimValueComparisonError(DcqlError):
    """Raised when a claim value cannot be compared against a values constraint."""
