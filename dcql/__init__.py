"""DCQL credential selection for OpenID4VP wallets."""

from .config import Config, ConfigError
from .credential import (
    Credential,
    JsonClaim,
    JsonClaimValue,
    MdocClaim,
    MdocClaimValue,
)
from .error import (
    ClaimsPathError,
    ClaimValueComparisonError,
    DcqlCredentialQueryError,
    DcqlError,
)
from .evaluator import DcqlQueryEvaluator
from .models.dcql_query import (
    DcqlClaim,
    DcqlClaimSet,
    DcqlCredentialQuery,
    DcqlCredentialSetOption,
    DcqlCredentialSetQuery,
    DcqlQuery,
)
from .response import CredentialResponse, CredentialResponseMatch, pretty_print

__all__ = [
    "ClaimValueComparisonError",
    "ClaimsPathError",
    "Config",
    "ConfigError",
    "Credential",
    "CredentialResponse",
    "CredentialResponseMatch",
    "DcqlClaim",
    "DcqlClaimSet",
    "DcqlCredentialQuery",
    "DcqlCredentialQueryError",
    "DcqlCredentialSetOption",
    "DcqlCredentialSetQuery",
    "DcqlError",
    "DcqlQuery",
    "DcqlQueryEvaluator",
    "JsonClaim",
    "JsonClaimValue",
    "MdocClaim",
    "MdocClaimValue",
    "pretty_print",
]
