"""Holder credentials as seen by the DCQL engine."""

import json
import logging
import re
from dataclasses import dataclass
from typing import (
    TYPE_CHECKING,
    Any,
    Iterable,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Union,
)

from . import cbor
from .claims_path import Absent, ClaimsPathPointer
from .error import ClaimsPathError, ClaimValueComparisonError

if TYPE_CHECKING:
    from .models.dcql_query import DcqlClaim

LOGGER = logging.getLogger(__name__)

_INTEGER = re.compile(r"[+-]?[0-9]+")


@dataclass(frozen=True)
class MdocClaimValue:
    """A decoded CBOR data item held by an mdoc."""

    cbor_value: Any

    @classmethod
    def from_cbor(cls, encoded: bytes) -> "MdocClaimValue":
        """Decode a CBOR encoded data element value."""
        return cls(cbor.loads(encoded))

    def to_cbor(self) -> bytes:
        """Encode the data item to CBOR."""
        return cbor.dumps(self.cbor_value)


@dataclass(frozen=True)
class JsonClaimValue:
    """A JSON value held by a JSON-based credential."""

    json_value: Any


ClaimValue = Union[MdocClaimValue, JsonClaimValue]


@dataclass(frozen=True)
class MdocClaim:
    """A data element of an mdoc, addressed by namespace and element name."""

    namespace_name: str
    data_element_name: str
    value: MdocClaimValue


@dataclass(frozen=True)
class JsonClaim:
    """A top-level claim of a JSON-based credential."""

    claim_name: str
    value: JsonClaimValue


Claim = Union[MdocClaim, JsonClaim]


def _candidate_content(candidate: Any) -> str:
    """Return the content of a JSON primitive from a values constraint."""
    if isinstance(candidate, (dict, list)):
        raise ClaimValueComparisonError(
            f"Values constraint entry {json.dumps(candidate)} is not a primitive"
        )
    if isinstance(candidate, str):
        return candidate
    return json.dumps(candidate)


def _candidate_as_boolean(content: str) -> Optional[bool]:
    return {"true": True, "false": False}.get(content)


def _candidate_as_integer(content: str) -> Optional[int]:
    if _INTEGER.fullmatch(content):
        return int(content)
    return None


def _data_item_matches(item: Any, candidate: Any) -> bool:
    """Compare an mdoc data item against one entry of a values constraint."""
    content = _candidate_content(candidate)
    if cbor.is_text(item):
        return item == content
    if cbor.is_boolean(item):
        return item == _candidate_as_boolean(content)
    if cbor.is_integer(item):
        return item == _candidate_as_integer(content)
    raise ClaimValueComparisonError(
        f"Error comparing on CBOR value {cbor.to_diagnostics(item)}"
    )


@dataclass(frozen=True)
class Credential:
    """A holder credential, either an ISO mdoc or a JSON-based (SD-JWT VC) one.

    Exactly one of `mdoc_doc_type` and `vct` is set. All claims are `MdocClaim`
    for an mdoc and `JsonClaim` otherwise, in insertion order.
    """

    id: str
    claims: Tuple[Claim, ...] = ()
    mdoc_doc_type: Optional[str] = None
    vct: Optional[str] = None

    def __post_init__(self):
        """Check the credential is either an mdoc or JSON-based."""
        object.__setattr__(self, "claims", tuple(self.claims))
        if self.mdoc_doc_type is not None:
            if self.vct is not None:
                raise ValueError("mdoc_doc_type and vct cannot be set at the same time")
            expected = MdocClaim
        elif self.vct is None:
            raise ValueError("Either mdoc_doc_type or vct must be set")
        else:
            expected = JsonClaim
        for claim in self.claims:
            if not isinstance(claim, expected):
                raise ValueError(
                    f"Credential {self.id} only accepts {expected.__name__} claims"
                )

    @property
    def is_mdoc(self) -> bool:
        """Whether this is an ISO mdoc credential."""
        return self.mdoc_doc_type is not None

    def _find_mdoc_claim_value(self, claim: "DcqlClaim") -> Optional[ClaimValue]:
        if len(claim.path) != 2:
            LOGGER.debug(
                "Claims path %s of length %d never matches mdoc %s",
                claim.path,
                len(claim.path),
                self.id,
            )
            return None
        namespace_name, data_element_name = claim.path
        for credential_claim in self.claims:
            if (
                credential_claim.namespace_name != namespace_name
                or credential_claim.data_element_name != data_element_name
            ):
                continue
            if claim.values is not None and not any(
                _data_item_matches(credential_claim.value.cbor_value, candidate)
                for candidate in claim.values
            ):
                return None
            return credential_claim.value
        return None

    def _find_json_claim_value(self, claim: "DcqlClaim") -> Optional[ClaimValue]:
        pointer = ClaimsPathPointer(claim.path)
        claim_name = pointer.path[0]
        if not isinstance(claim_name, str):
            raise ClaimsPathError(
                "First component of a claims path must be a claim name, "
                f"got {type(claim_name).__name__}"
            )
        current = Absent
        for credential_claim in self.claims:
            if credential_claim.claim_name == claim_name:
                current = credential_claim.value.json_value
                break
        if current is Absent:
            return None

        current = pointer.walk(current, start=1)
        if current is Absent:
            return None
        return JsonClaimValue(current)

    def find_matching_claim_value(self, claim: "DcqlClaim") -> Optional[ClaimValue]:
        """Find the value this credential holds for a requested claim.

        See https://openid.net/specs/openid-4-verifiable-presentations-1_0.html
        section "Claims Path Pointer" for the path semantics.

        Args:
            claim: the requested claim

        Returns:
            The matching value, or None if the credential does not hold the claim
            or its value is not among the requested values.

        Raises:
            ClaimsPathError: the path does not fit the shape of the credential
            ClaimValueComparisonError: the value cannot be compared against the
                values constraint
        """
        if self.is_mdoc:
            return self._find_mdoc_claim_value(claim)
        return self._find_json_claim_value(claim)

    @classmethod
    def for_mdoc(
        cls,
        id: str,
        doc_type: str,
        data: Mapping[str, Union[Mapping[str, Any], Iterable[Tuple[str, Any]]]],
    ) -> "Credential":
        """Create an mdoc credential from decoded data elements per namespace."""
        claims = []
        for namespace_name, data_elements in data.items():
            if isinstance(data_elements, Mapping):
                data_elements = data_elements.items()
            for data_element_name, data_element_value in data_elements:
                claims.append(
                    MdocClaim(
                        namespace_name=namespace_name,
                        data_element_name=data_element_name,
                        value=MdocClaimValue(data_element_value),
                    )
                )
        return cls(id=id, claims=tuple(claims), mdoc_doc_type=doc_type)

    @classmethod
    def from_issuer_signed_namespaces(
        cls,
        id: str,
        doc_type: str,
        namespaces: Mapping[str, Mapping[str, bytes]],
    ) -> "Credential":
        """Create an mdoc credential from CBOR encoded data element values."""
        return cls(
            id=id,
            claims=tuple(
                MdocClaim(
                    namespace_name=namespace_name,
                    data_element_name=data_element_name,
                    value=MdocClaimValue.from_cbor(encoded),
                )
                for namespace_name, data_elements in namespaces.items()
                for data_element_name, encoded in data_elements.items()
            ),
            mdoc_doc_type=doc_type,
        )

    @classmethod
    def for_json_based_credential(
        cls,
        id: str,
        vct: str,
        data: Union[Mapping[str, Any], Sequence[Tuple[str, Any]]],
    ) -> "Credential":
        """Create a JSON-based credential from its top-level claims."""
        if isinstance(data, Mapping):
            data = list(data.items())
        return cls(
            id=id,
            claims=tuple(
                JsonClaim(claim_name=claim_name, value=JsonClaimValue(value))
                for claim_name, value in data
            ),
            vct=vct,
        )
