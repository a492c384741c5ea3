"""Digital Credentials Query Language evaluator.

Selects holder credentials for a DCQL query following OpenID4VP 1.0
§ 6.3.1.2 "Selecting Credentials".
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .config import DEFAULT_CONFIG, Config
from .credential import ClaimValue, Credential
from .error import DcqlCredentialQueryError
from .models.dcql_query import DcqlClaim, DcqlCredentialQuery, DcqlQuery
from .pretty_printer import compact_json
from .response import CredentialResponse, CredentialResponseMatch

LOGGER = logging.getLogger(__name__)

ClaimValues = Tuple[Tuple[DcqlClaim, ClaimValue], ...]


def _resolve_all(
    credential: Credential, claims: Sequence[DcqlClaim]
) -> Optional[ClaimValues]:
    """Resolve every claim in order, stopping at the first one that is missing."""
    claim_values = []
    for claim in claims:
        value = credential.find_matching_claim_value(claim)
        if value is None:
            return None
        claim_values.append((claim, value))
    return tuple(claim_values)


class DcqlQueryEvaluator:
    """Evaluate a query against the credentials held by a wallet."""

    def __init__(self, query: DcqlQuery, config: Optional[Config] = None):
        """Init the evaluator."""
        self.query: DcqlQuery = query
        self.config: Config = config or DEFAULT_CONFIG

    @classmethod
    def compile(
        cls, query: Dict[str, Any] | DcqlQuery, config: Optional[Config] = None
    ) -> "DcqlQueryEvaluator":
        """Compile an evaluator."""
        if isinstance(query, dict):
            query = DcqlQuery.from_json(query, config)

        return cls(query, config)

    def candidates(
        self, cred_query: DcqlCredentialQuery, credentials: Sequence[Credential]
    ) -> List[Credential]:
        """Return the credentials satisfying the meta of a credential query."""
        if self.config.is_mdoc(cred_query.format):
            return [
                cred
                for cred in credentials
                if cred.mdoc_doc_type is not None
                and cred.mdoc_doc_type == cred_query.mdoc_doc_type
            ]
        if self.config.is_sd_jwt(cred_query.format):
            vct_values = cred_query.vct_values or []
            return [
                cred
                for cred in credentials
                if cred.vct is not None and cred.vct in vct_values
            ]
        LOGGER.debug(
            "Credential query %s has unsupported format %s",
            cred_query.credential_query_id,
            cred_query.format,
        )
        return []

    @staticmethod
    def match_credential(
        cred_query: DcqlCredentialQuery, credential: Credential
    ) -> Optional[CredentialResponseMatch]:
        """Match one credential against a credential query.

        Without claim sets every claim must resolve. With claim sets, the first
        claim set whose claims all resolve is used.
        """
        if not cred_query.claim_sets:
            claim_values = _resolve_all(credential, cred_query.claims)
            if claim_values is None:
                return None
            return CredentialResponseMatch(credential, claim_values)

        for claim_set in cred_query.claim_sets:
            claims = [
                cred_query.claim_id_to_claim.get(claim_id)
                for claim_id in claim_set.claim_identifiers
            ]
            if any(claim is None for claim in claims):
                LOGGER.debug(
                    "Claim set %s of credential query %s references an unknown claim",
                    list(claim_set.claim_identifiers),
                    cred_query.credential_query_id,
                )
                continue
            claim_values = _resolve_all(credential, claims)
            if claim_values is not None:
                return CredentialResponseMatch(credential, claim_values)
        return None

    def respond(
        self, cred_query: DcqlCredentialQuery, credentials: Sequence[Credential]
    ) -> CredentialResponse:
        """Collect every credential matching a credential query."""
        matches = []
        for credential in self.candidates(cred_query, credentials):
            match = self.match_credential(cred_query, credential)
            if match is None:
                LOGGER.debug(
                    "Credential %s does not match credential query %s",
                    credential.id,
                    cred_query.credential_query_id,
                )
                continue
            matches.append(match)
        return CredentialResponse(
            credential_query=cred_query,
            credential_set_query=None,
            matches=tuple(matches),
        )

    def execute(self, credentials: Sequence[Credential]) -> List[CredentialResponse]:
        """Select credentials satisfying the query.

        Args:
            credentials: the credentials held by the wallet

        Returns:
            One response per selected credential query, in declaration order

        Raises:
            DcqlCredentialQueryError: a required credential query or credential
                set cannot be satisfied
        """
        result = [
            self.respond(cred_query, credentials)
            for cred_query in self.query.credentials
        ]

        # If credential_sets is not provided, the Verifier requests presentations
        # for all Credentials in credentials to be returned.
        if not self.query.credential_sets:
            for response in result:
                if not response.matches:
                    query_id = response.credential_query.credential_query_id
                    LOGGER.info("No matches for credential query %s", query_id)
                    raise DcqlCredentialQueryError(
                        f"No matches for credential query with id {query_id}"
                    )
            LOGGER.info(
                "Matched %d credential queries against %d credentials",
                len(result),
                len(credentials),
            )
            return result

        # Otherwise every required credential set must be satisfied, optional
        # ones are included when satisfied. Options are tried in order.
        by_id = {
            response.credential_query.credential_query_id: response
            for response in reversed(result)
        }
        selected = []
        for cred_set in self.query.credential_sets:
            option = next(
                (option for option in cred_set.options if option.is_satisfied(result)),
                None,
            )
            if option is None:
                if cred_set.required:
                    purpose = compact_json(cred_set.purpose)
                    LOGGER.info("Required credential set %s is not satisfied", purpose)
                    raise DcqlCredentialQueryError(
                        "No credentials match required credential_set query "
                        f"with purpose {purpose}"
                    )
                LOGGER.debug(
                    "Optional credential set %s is not satisfied",
                    compact_json(cred_set.purpose),
                )
                continue
            for credential_id in option.credential_ids:
                response = by_id[credential_id]
                selected.append(
                    CredentialResponse(
                        credential_query=response.credential_query,
                        credential_set_query=cred_set,
                        matches=response.matches,
                    )
                )
        LOGGER.info(
            "Selected %d credential queries from %d credential sets",
            len(selected),
            len(self.query.credential_sets),
        )
        return selected
