"""Results of executing a DCQL query."""

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from . import cbor
from .credential import ClaimValue, Credential, JsonClaimValue, MdocClaimValue
from .models.dcql_query import DcqlClaim, DcqlCredentialQuery, DcqlCredentialSetQuery
from .pretty_printer import PrettyPrinter, compact_json


def render_claim_value(value: ClaimValue) -> str:
    """Render a claim value: compact JSON, or CBOR diagnostic notation for mdocs."""
    if isinstance(value, JsonClaimValue):
        return compact_json(value.json_value)
    if isinstance(value, MdocClaimValue):
        return cbor.to_diagnostics(value.cbor_value)
    raise TypeError(f"Unexpected claim value {value!r}")


@dataclass(frozen=True)
class CredentialResponseMatch:
    """A credential satisfying a credential query, with the matched claim values."""

    credential: Credential
    claim_values: Tuple[Tuple[DcqlClaim, ClaimValue], ...]

    def print(self, pp: PrettyPrinter):
        """Print the match."""
        pp.append("match:")
        pp.push_indent()
        pp.append(f"credential: {self.credential.id}")
        pp.append("claims:")
        pp.push_indent()
        for request_claim, claim_value in self.claim_values:
            pp.append("claim:")
            pp.push_indent()
            pp.append(f"path: {compact_json(request_claim.path)}")
            pp.append(f"value: {render_claim_value(claim_value)}")
            pp.pop_indent()
        pp.pop_indent()
        pp.pop_indent()


@dataclass(frozen=True)
class CredentialResponse:
    """The credentials matching one credential query."""

    credential_query: DcqlCredentialQuery
    credential_set_query: Optional[DcqlCredentialSetQuery]
    matches: Tuple[CredentialResponseMatch, ...]

    def print(self, pp: PrettyPrinter):
        """Print the response."""
        pp.append("response:")
        pp.push_indent()
        pp.append("credentialQuery:")
        pp.push_indent()
        pp.append(f"id: {self.credential_query.credential_query_id}")
        pp.pop_indent()
        if self.credential_set_query is not None:
            pp.append("credentialSetQuery:")
            pp.push_indent()
            pp.append(f"purpose: {compact_json(self.credential_set_query.purpose)}")
            pp.append(f"required: {compact_json(self.credential_set_query.required)}")
            pp.pop_indent()
        pp.append("matches:")
        pp.push_indent()
        if not self.matches:
            pp.append("<empty>")
        for match in self.matches:
            match.print(pp)
        pp.pop_indent()
        pp.pop_indent()


def pretty_print(responses: Sequence[CredentialResponse]) -> str:
    """Render responses as indented text."""
    pp = PrettyPrinter()
    pp.append("responses:")
    pp.push_indent()
    if not responses:
        pp.append("<empty>")
    for response in responses:
        response.print(pp)
    pp.pop_indent()
    return str(pp)
