"""Digital Credentials Query Language (DCQL) query models.

OpenID4VP 1.0 § 6: Digital Credentials Query Language (DCQL)
https://openid.net/specs/openid-4-verifiable-presentations-1_0.html#section-6
"""

import logging
from dataclasses import dataclass
from typing import (
    TYPE_CHECKING,
    Any,
    Dict,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Union,
)

from acapy_agent.messaging.models.base import (
    BaseModel,
    BaseModelError,
    BaseModelSchema,
)
from marshmallow import EXCLUDE, ValidationError, fields
from marshmallow.validate import Length

from ..config import DEFAULT_CONFIG, Config
from ..pretty_printer import PrettyPrinter, bracketed, compact_json

if TYPE_CHECKING:
    from ..credential import Credential
    from ..response import CredentialResponse

LOGGER = logging.getLogger(__name__)

ClaimsPath = List[Union[str, int, None]]


class DcqlClaim(BaseModel):
    """Claims query: one requested claim of a credential query."""

    class Meta:
        """DcqlClaim metadata."""

        schema_class = "DcqlClaimSchema"

    def __init__(
        self,
        *,
        path: ClaimsPath,
        id: Optional[str] = None,
        values: Optional[List[Any]] = None,
        intent_to_retain: Optional[bool] = None,
    ):
        """Initialize a claims query.

        Args:
            path: claims path pointer; [namespace, data element] for mdocs
            id: identifier used to reference the claim from claim sets
            values: acceptable values of the claim
            intent_to_retain: ISO mdoc specific, carried through
        """
        super().__init__()
        self.id = id
        self.path = list(path)
        self.values = list(values) if values is not None else None
        self.intent_to_retain = intent_to_retain

    def __eq__(self, other: object) -> bool:
        """Compare by value."""
        if not isinstance(other, DcqlClaim):
            return NotImplemented
        return (
            self.id == other.id
            and self.path == other.path
            and self.values == other.values
            and self.intent_to_retain == other.intent_to_retain
        )

    def __hash__(self) -> int:
        """Hash the fields compared by __eq__, leaving out values."""
        return hash((self.id, tuple(self.path), self.intent_to_retain))

    def print(self, pp: PrettyPrinter):
        """Print the claims query."""
        if self.id is not None:
            pp.append(f"id: {self.id}")
        pp.append(f"path: {compact_json(self.path)}")
        if self.values is not None:
            pp.append(f"values: {compact_json(self.values)}")
        if self.intent_to_retain:
            pp.append("mdocIntentToRetain: true")


class DcqlClaimSchema(BaseModelSchema):
    """Claims query schema."""

    class Meta:
        """DcqlClaimSchema metadata."""

        model_class = "DcqlClaim"
        unknown = EXCLUDE

    id = fields.Str(
        required=False,
        metadata={"description": "Identifier of the claims query", "example": "a"},
    )
    path = fields.List(
        fields.Raw(allow_none=True),
        required=True,
        validate=Length(min=1),
        metadata={
            "description": "Claims path pointer",
            "example": ["org.iso.18013.5.1", "given_name"],
        },
    )
    values = fields.List(
        fields.Raw(allow_none=True),
        required=False,
        metadata={"description": "Acceptable values", "example": ["90210"]},
    )
    intent_to_retain = fields.Bool(
        required=False,
        metadata={"description": "Verifier intends to retain the mdoc data element"},
    )


@dataclass(frozen=True)
class DcqlClaimSet:
    """One acceptable combination of claims, by claim id."""

    claim_identifiers: Tuple[str, ...]

    def print(self, pp: PrettyPrinter):
        """Print the claim set."""
        pp.append(f"ids: {bracketed(self.claim_identifiers)}")


@dataclass(frozen=True)
class DcqlCredentialSetOption:
    """One acceptable combination of credential queries, by query id."""

    credential_ids: Tuple[str, ...]

    def is_satisfied(self, responses: Sequence["CredentialResponse"]) -> bool:
        """Check every referenced credential query has at least one match."""
        return all(
            any(
                response.credential_query.credential_query_id == credential_id
                and response.matches
                for response in responses
            )
            for credential_id in self.credential_ids
        )

    def print(self, pp: PrettyPrinter):
        """Print the option."""
        pp.append(bracketed(self.credential_ids))


class _IdListField(fields.Field):
    """A JSON array of string identifiers, loaded into a value object."""

    value_class: type = None
    attr_name: str = None

    def _serialize(self, value, attr, obj, **kwargs):
        if value is None:
            return None
        return list(getattr(value, self.attr_name))

    def _deserialize(self, value, attr, data, **kwargs):
        if not isinstance(value, list) or not all(
            isinstance(item, str) for item in value
        ):
            raise ValidationError("Expected a list of identifiers")
        return self.value_class(tuple(value))


class ClaimSetField(_IdListField):
    """Claim set field."""

    value_class = DcqlClaimSet
    attr_name = "claim_identifiers"


class CredentialSetOptionField(_IdListField):
    """Credential set option field."""

    value_class = DcqlCredentialSetOption
    attr_name = "credential_ids"


class CredentialMeta(BaseModel):
    """Format specific metadata constraints of a credential query."""

    class Meta:
        """CredentialMeta metadata."""

        schema_class = "CredentialMetaSchema"

    def __init__(
        self,
        *,
        doctype_value: Optional[str] = None,
        vct_values: Optional[List[str]] = None,
    ):
        """Initialize the metadata."""
        super().__init__()
        self.doctype_value = doctype_value
        self.vct_values = list(vct_values) if vct_values is not None else None


class CredentialMetaSchema(BaseModelSchema):
    """Credential query metadata schema."""

    class Meta:
        """CredentialMetaSchema metadata."""

        model_class = "CredentialMeta"
        unknown = EXCLUDE

    doctype_value = fields.Str(
        required=False,
        metadata={
            "description": "Doctype of the requested mdoc",
            "example": "org.iso.18013.5.1.mDL",
        },
    )
    vct_values = fields.List(
        fields.Str(),
        required=False,
        metadata={
            "description": "Acceptable SD-JWT VC types",
            "example": ["https://credentials.example.com/identity_credential"],
        },
    )


class DcqlCredentialQuery(BaseModel):
    """Credential query: a request for one credential."""

    class Meta:
        """DcqlCredentialQuery metadata."""

        schema_class = "DcqlCredentialQuerySchema"

    def __init__(
        self,
        *,
        credential_query_id: str,
        format: str,
        claims: Sequence[Union[DcqlClaim, Mapping[str, Any]]],
        meta: Optional[Union[CredentialMeta, Mapping[str, Any]]] = None,
        claim_sets: Optional[Sequence[DcqlClaimSet]] = None,
    ):
        """Initialize a credential query.

        Args:
            credential_query_id: the `id` of the query, unique within a DCQL query
            format: requested credential format, e.g. mso_mdoc or dc+sd-jwt
            claims: requested claims
            meta: format specific metadata (doctype or vct values)
            claim_sets: acceptable combinations of claims, most preferred first
        """
        super().__init__()
        self.credential_query_id = credential_query_id
        self.format = format
        if isinstance(meta, Mapping):
            meta = CredentialMeta.deserialize(dict(meta))
        self.meta = meta
        self.claims = [
            DcqlClaim.deserialize(dict(claim)) if isinstance(claim, Mapping) else claim
            for claim in claims
        ]
        self.claim_sets = [
            claim_set
            if isinstance(claim_set, DcqlClaimSet)
            else DcqlClaimSet(tuple(claim_set))
            for claim_set in claim_sets or []
        ]

        self.claim_id_to_claim: Dict[str, DcqlClaim] = {}
        for claim in self.claims:
            if claim.id is None:
                continue
            if claim.id in self.claim_id_to_claim:
                LOGGER.debug(
                    "Duplicate claim id %s in credential query %s; last one wins",
                    claim.id,
                    credential_query_id,
                )
            self.claim_id_to_claim[claim.id] = claim

    @property
    def mdoc_doc_type(self) -> Optional[str]:
        """Doctype requested by an mdoc query."""
        return self.meta.doctype_value if self.meta else None

    @property
    def vct_values(self) -> Optional[List[str]]:
        """VCT values accepted by an SD-JWT VC query."""
        return self.meta.vct_values if self.meta else None

    def print(self, pp: PrettyPrinter):
        """Print the credential query."""
        pp.append(f"id: {self.credential_query_id}")
        pp.append(f"format: {self.format}")
        if self.mdoc_doc_type is not None:
            pp.append(f"mdocDocType: {self.mdoc_doc_type}")
        if self.vct_values is not None:
            pp.append(f"vctValues: {bracketed(self.vct_values)}")
        pp.append("claims:")
        pp.push_indent()
        for claim in self.claims:
            pp.append("claim:")
            pp.push_indent()
            claim.print(pp)
            pp.pop_indent()
        pp.pop_indent()
        pp.append("claimSets:")
        pp.push_indent()
        if self.claim_sets:
            for claim_set in self.claim_sets:
                pp.append("claimset:")
                pp.push_indent()
                claim_set.print(pp)
                pp.pop_indent()
        else:
            pp.append("<empty>")
        pp.pop_indent()


class DcqlCredentialQuerySchema(BaseModelSchema):
    """Credential query schema."""

    class Meta:
        """DcqlCredentialQuerySchema metadata."""

        model_class = "DcqlCredentialQuery"
        unknown = EXCLUDE

    credential_query_id = fields.Str(
        required=True,
        data_key="id",
        metadata={"description": "Identifier of the credential query"},
    )
    format = fields.Str(
        required=True,
        metadata={"description": "Requested credential format", "example": "mso_mdoc"},
    )
    meta = fields.Nested(
        CredentialMetaSchema(),
        required=True,
        metadata={"description": "Format specific metadata"},
    )
    claims = fields.List(
        fields.Nested(DcqlClaimSchema()),
        required=True,
        validate=Length(min=1),
        metadata={"description": "Requested claims"},
    )
    claim_sets = fields.List(
        ClaimSetField(),
        required=False,
        metadata={
            "description": "Acceptable combinations of claim ids",
            "example": [["a", "b"], ["a", "c"]],
        },
    )


class DcqlCredentialSetQuery(BaseModel):
    """Credential set query: alternatives of credential query combinations."""

    class Meta:
        """DcqlCredentialSetQuery metadata."""

        schema_class = "DcqlCredentialSetQuerySchema"

    def __init__(
        self,
        *,
        options: Sequence[DcqlCredentialSetOption],
        required: bool = True,
        purpose: Any = None,
    ):
        """Initialize a credential set query.

        Args:
            options: acceptable combinations of credential queries, most
                preferred first
            required: whether the verifier requires the credential set
            purpose: opaque purpose shown to the holder
        """
        super().__init__()
        self.options = [
            option
            if isinstance(option, DcqlCredentialSetOption)
            else DcqlCredentialSetOption(tuple(option))
            for option in options
        ]
        self.required = required
        self.purpose = purpose

    def print(self, pp: PrettyPrinter):
        """Print the credential set query."""
        pp.append(f"purpose: {compact_json(self.purpose)}")
        pp.append(f"required: {compact_json(self.required)}")
        pp.append("options:")
        pp.push_indent()
        for option in self.options:
            option.print(pp)
        pp.pop_indent()


class DcqlCredentialSetQuerySchema(BaseModelSchema):
    """Credential set query schema."""

    class Meta:
        """DcqlCredentialSetQuerySchema metadata."""

        model_class = "DcqlCredentialSetQuery"
        unknown = EXCLUDE

    options = fields.List(
        CredentialSetOptionField(),
        required=True,
        metadata={
            "description": "Acceptable combinations of credential query ids",
            "example": [["pid"], ["pid_reduced_cred_1", "pid_reduced_cred_2"]],
        },
    )
    required = fields.Bool(
        required=False,
        metadata={"description": "Whether the credential set is required"},
    )
    purpose = fields.Raw(
        required=False,
        metadata={"description": "Purpose of the request", "example": "Identification"},
    )


class DcqlQuery(BaseModel):
    """DCQL query."""

    class Meta:
        """DcqlQuery metadata."""

        schema_class = "DcqlQuerySchema"

    def __init__(
        self,
        *,
        credentials: Sequence[Union[DcqlCredentialQuery, Mapping[str, Any]]],
        credential_sets: Optional[
            Sequence[Union[DcqlCredentialSetQuery, Mapping[str, Any]]]
        ] = None,
    ):
        """Initialize a DCQL query.

        Args:
            credentials: credential queries
            credential_sets: credential set queries; when absent every credential
                query is required
        """
        super().__init__()
        self.credentials = [
            DcqlCredentialQuery.deserialize(dict(cred))
            if isinstance(cred, Mapping)
            else cred
            for cred in credentials
        ]
        self.credential_sets = [
            DcqlCredentialSetQuery.deserialize(dict(cred_set))
            if isinstance(cred_set, Mapping)
            else cred_set
            for cred_set in credential_sets or []
        ]

    @classmethod
    def from_json(
        cls, value: Union[str, bytes, Mapping[str, Any]], config: Optional[Config] = None
    ) -> "DcqlQuery":
        """Parse a DCQL query received from a verifier.

        Args:
            value: the query, as a JSON string or a parsed JSON object
            config: format identifiers; defaults to mso_mdoc and dc+sd-jwt

        Raises:
            BaseModelError: the query is malformed
        """
        if isinstance(value, (str, bytes)):
            query = super().from_json(value)
        else:
            query = cls.deserialize(dict(value))
        query.check_meta(config or DEFAULT_CONFIG)
        return query

    def check_meta(self, config: Config):
        """Check each credential query carries the metadata its format needs."""
        for cred in self.credentials:
            if config.is_mdoc(cred.format) and cred.mdoc_doc_type is None:
                raise BaseModelError(
                    f"Credential query {cred.credential_query_id} of format "
                    f"{cred.format} is missing meta.doctype_value"
                )
            if config.is_sd_jwt(cred.format) and cred.vct_values is None:
                raise BaseModelError(
                    f"Credential query {cred.credential_query_id} of format "
                    f"{cred.format} is missing meta.vct_values"
                )

    def execute(
        self, credentials: Sequence["Credential"], config: Optional[Config] = None
    ) -> List["CredentialResponse"]:
        """Select the holder credentials satisfying this query.

        Raises:
            DcqlCredentialQueryError: a required credential query or credential
                set cannot be satisfied
        """
        from ..evaluator import DcqlQueryEvaluator

        return DcqlQueryEvaluator(self, config).execute(credentials)

    def pretty_print(self) -> str:
        """Render the query for diagnostics."""
        pp = PrettyPrinter()
        pp.append("credentials:")
        pp.push_indent()
        for cred in self.credentials:
            pp.append("credential:")
            pp.push_indent()
            cred.print(pp)
            pp.pop_indent()
        pp.pop_indent()

        pp.append("credentialSets:")
        pp.push_indent()
        if self.credential_sets:
            for cred_set in self.credential_sets:
                pp.append("credentialSet:")
                pp.push_indent()
                cred_set.print(pp)
                pp.pop_indent()
        else:
            pp.append("<empty>")
        pp.pop_indent()
        return str(pp)

    def __str__(self) -> str:
        """Return the rendered query."""
        return self.pretty_print()


class DcqlQuerySchema(BaseModelSchema):
    """DCQL query schema."""

    class Meta:
        """DcqlQuerySchema metadata."""

        model_class = "DcqlQuery"
        unknown = EXCLUDE

    credentials = fields.List(
        fields.Nested(DcqlCredentialQuerySchema()),
        required=True,
        metadata={"description": "Credential queries"},
    )
    credential_sets = fields.List(
        fields.Nested(DcqlCredentialSetQuerySchema()),
        required=False,
        metadata={"description": "Credential set queries"},
    )
