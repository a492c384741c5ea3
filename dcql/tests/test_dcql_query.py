"""Tests for parsing DCQL queries."""

import json
from textwrap import dedent

import pytest
from acapy_agent.messaging.models.base import BaseModelError

from dcql.config import Config
from dcql.models.dcql_query import (
    DcqlClaim,
    DcqlClaimSet,
    DcqlCredentialQuery,
    DcqlCredentialSetOption,
    DcqlQuery,
)

AGE_QUERY = {
    "credentials": [
        {
            "id": "my_credential",
            "format": "mso_mdoc",
            "meta": {"doctype_value": "org.iso.18013.5.1.mDL"},
            "claims": [
                {"id": "a", "path": ["org.iso.18013.5.1", "given_name"]},
                {
                    "id": "b",
                    "path": ["org.iso.18013.5.1", "age_over_18"],
                    "values": [True],
                    "intent_to_retain": True,
                },
                {"id": "c", "path": ["org.iso.18013.5.1", "age_in_years"]},
            ],
            "claim_sets": [["a", "b"], ["a", "c"]],
        },
        {
            "id": "pid",
            "format": "dc+sd-jwt",
            "meta": {
                "vct_values": ["https://credentials.example.com/identity_credential"]
            },
            "claims": [{"path": ["degrees", None, "type"]}],
        },
    ],
    "credential_sets": [
        {"purpose": "Identification", "options": [["my_credential"], ["pid"]]},
        {"purpose": {"en": "Rewards"}, "required": False, "options": [["pid"]]},
    ],
}


class TestDcqlQueryParsing:
    """Test DcqlQuery.from_json."""

    def test_parse(self):
        """Test every part of the query is read."""
        query = DcqlQuery.from_json(AGE_QUERY)

        assert len(query.credentials) == 2
        mdl = query.credentials[0]
        assert isinstance(mdl, DcqlCredentialQuery)
        assert mdl.credential_query_id == "my_credential"
        assert mdl.format == "mso_mdoc"
        assert mdl.mdoc_doc_type == "org.iso.18013.5.1.mDL"
        assert mdl.vct_values is None
        assert [claim.id for claim in mdl.claims] == ["a", "b", "c"]
        assert mdl.claims[1].values == [True]
        assert mdl.claims[1].intent_to_retain is True
        assert mdl.claims[0].values is None
        assert mdl.claim_sets == [DcqlClaimSet(("a", "b")), DcqlClaimSet(("a", "c"))]
        assert mdl.claim_id_to_claim["b"] is mdl.claims[1]

        pid = query.credentials[1]
        assert pid.vct_values == [
            "https://credentials.example.com/identity_credential"
        ]
        assert pid.mdoc_doc_type is None
        assert pid.claims[0].path == ["degrees", None, "type"]
        assert pid.claim_sets == []
        assert pid.claim_id_to_claim == {}

        identification, rewards = query.credential_sets
        assert identification.purpose == "Identification"
        assert identification.required is True
        assert identification.options == [
            DcqlCredentialSetOption(("my_credential",)),
            DcqlCredentialSetOption(("pid",)),
        ]
        assert rewards.purpose == {"en": "Rewards"}
        assert rewards.required is False

    def test_parse_json_string(self):
        """Test a JSON string is accepted."""
        query = DcqlQuery.from_json(json.dumps(AGE_QUERY))
        assert [cred.credential_query_id for cred in query.credentials] == [
            "my_credential",
            "pid",
        ]

    def test_no_credential_sets(self):
        """Test credential_sets is optional."""
        query = DcqlQuery.from_json({"credentials": AGE_QUERY["credentials"][1:]})
        assert query.credential_sets == []

    def test_duplicate_claim_ids_last_wins(self):
        """Test the later of two claims sharing an id is used by claim sets."""
        query = DcqlQuery.from_json(
            {
                "credentials": [
                    {
                        "id": "q",
                        "format": "dc+sd-jwt",
                        "meta": {"vct_values": ["x"]},
                        "claims": [
                            {"id": "a", "path": ["first"]},
                            {"id": "a", "path": ["second"]},
                        ],
                    }
                ]
            }
        )
        assert query.credentials[0].claim_id_to_claim["a"].path == ["second"]

    def test_other_formats_accepted(self):
        """Test unknown formats parse with any meta."""
        query = DcqlQuery.from_json(
            {
                "credentials": [
                    {
                        "id": "ldp",
                        "format": "ldp_vc",
                        "meta": {"type_values": [["VerifiableCredential"]]},
                        "claims": [{"path": ["credentialSubject", "name"]}],
                    }
                ]
            }
        )
        assert query.credentials[0].format == "ldp_vc"

    def test_configured_mdoc_format_needs_doctype(self):
        """Test configured mdoc format identifiers require a doctype."""
        query = {
            "credentials": [
                {
                    "id": "legacy",
                    "format": "mdoc",
                    "meta": {},
                    "claims": [{"path": ["ns", "element"]}],
                }
            ]
        }
        DcqlQuery.from_json(query)
        with pytest.raises(BaseModelError, match="doctype_value"):
            DcqlQuery.from_json(
                query, Config(mdoc_formats=("mso_mdoc", "mdoc"))
            )

    def test_construct_from_dicts(self):
        """Test models can be built directly from JSON objects."""
        query = DcqlQuery(
            credentials=[
                {
                    "id": "pid",
                    "format": "dc+sd-jwt",
                    "meta": {"vct_values": ["x"]},
                    "claims": [{"id": "a", "path": ["given_name"]}],
                }
            ],
            credential_sets=[{"options": [["pid"]]}],
        )
        assert query.credentials[0].claims[0] == DcqlClaim(id="a", path=["given_name"])
        assert query.credential_sets[0].required is True
        assert query.credential_sets[0].purpose is None

    def test_claim_hash(self):
        """Test equal claims queries hash equally and are usable as keys."""
        claim = DcqlClaim(id="a", path=["address", None, 0], values=["x"])
        same = DcqlClaim(id="a", path=["address", None, 0], values=["x"])
        assert hash(claim) == hash(same)
        assert {claim: 1}[same] == 1
        assert claim != DcqlClaim(id="a", path=["address", None, 0])


class TestDcqlQueryParsingErrors:
    """Test malformed queries are rejected."""

    @pytest.mark.parametrize(
        "mutate",
        [
            lambda q: q.pop("credentials"),
            lambda q: q["credentials"][0].pop("id"),
            lambda q: q["credentials"][0].pop("format"),
            lambda q: q["credentials"][0].pop("meta"),
            lambda q: q["credentials"][0].pop("claims"),
            lambda q: q["credentials"][0].update(claims=[]),
            lambda q: q["credentials"][0]["claims"][0].pop("path"),
            lambda q: q["credentials"][0]["claims"][0].update(path=[]),
            lambda q: q["credentials"][0]["meta"].pop("doctype_value"),
            lambda q: q["credentials"][1]["meta"].pop("vct_values"),
            lambda q: q["credentials"][0].update(claim_sets=[["a", 1]]),
            lambda q: q["credential_sets"][0].pop("options"),
            lambda q: q["credential_sets"][0].update(options=[[{"id": "pid"}]]),
        ],
    )
    def test_malformed(self, mutate):
        """Test missing required members fail parsing."""
        query = json.loads(json.dumps(AGE_QUERY))
        mutate(query)
        with pytest.raises(BaseModelError):
            DcqlQuery.from_json(query)

    def test_invalid_json_string(self):
        """Test a string that is not JSON fails parsing."""
        with pytest.raises(BaseModelError):
            DcqlQuery.from_json("{not json")


class TestDcqlQuerySerialization:
    """Test queries serialize back to DCQL JSON."""

    def test_serialize(self):
        """Test the serialized query parses to an equivalent query."""
        query = DcqlQuery.from_json(AGE_QUERY)
        serialized = query.serialize()

        assert serialized["credentials"][0]["id"] == "my_credential"
        assert serialized["credentials"][0]["claim_sets"] == [["a", "b"], ["a", "c"]]
        assert serialized["credentials"][1]["claims"][0]["path"] == [
            "degrees",
            None,
            "type",
        ]
        assert serialized["credential_sets"][1] == {
            "options": [["pid"]],
            "required": False,
            "purpose": {"en": "Rewards"},
        }
        reparsed = DcqlQuery.from_json(serialized)
        assert reparsed.pretty_print() == query.pretty_print()


class TestDcqlQueryPrettyPrint:
    """Test rendering of parsed queries."""

    def test_pretty_print(self):
        """Test the rendered query."""
        expected = dedent(
            """\
            credentials:
              credential:
                id: my_credential
                format: mso_mdoc
                mdocDocType: org.iso.18013.5.1.mDL
                claims:
                  claim:
                    id: a
                    path: ["org.iso.18013.5.1","given_name"]
                  claim:
                    id: b
                    path: ["org.iso.18013.5.1","age_over_18"]
                    values: [true]
                    mdocIntentToRetain: true
                  claim:
                    id: c
                    path: ["org.iso.18013.5.1","age_in_years"]
                claimSets:
                  claimset:
                    ids: [a, b]
                  claimset:
                    ids: [a, c]
              credential:
                id: pid
                format: dc+sd-jwt
                vctValues: [https://credentials.example.com/identity_credential]
                claims:
                  claim:
                    path: ["degrees",null,"type"]
                claimSets:
                  <empty>
            credentialSets:
              credentialSet:
                purpose: "Identification"
                required: true
                options:
                  [my_credential]
                  [pid]
              credentialSet:
                purpose: {"en":"Rewards"}
                required: false
                options:
                  [pid]
            """
        )
        query = DcqlQuery.from_json(AGE_QUERY)
        assert query.pretty_print() == expected
        assert str(query) == expected

    def test_pretty_print_without_credential_sets(self):
        """Test an absent credential_sets renders as empty."""
        query = DcqlQuery.from_json({"credentials": AGE_QUERY["credentials"][1:]})
        assert query.pretty_print().endswith("credentialSets:\n  <empty>\n")
