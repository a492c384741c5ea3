"""CBOR helpers for mdoc data elements.

Data items are kept in the form ``cbor2`` decodes them to: ``str``, ``int``,
``bool``, ``None``, ``bytes``, ``float``, ``list``, ``dict``, ``CBORTag``,
``CBORSimpleValue``, ``undefined``, ``datetime.date`` (tags 100 and 1004) and
``datetime.datetime`` (tags 0 and 1).

Diagnostic notation writes every ``date`` as a tag 1004 full-date, since the
source tag is gone once decoded.
"""

import json
import math
from datetime import date, datetime
from typing import Any

import cbor2
from cbor2 import CBORSimpleValue, CBORTag, undefined

# RFC 8943 full-date, used by ISO 18013-5 for birth_date, issue_date, ...
TAG_FULL_DATE = 1004
TAG_EPOCH_DATE = 100
TAG_DATE_TIME = 0


def loads(encoded: bytes) -> Any:
    """Decode a single CBOR data item."""
    return cbor2.loads(encoded)


def dumps(item: Any) -> bytes:
    """Encode a data item to CBOR."""
    return cbor2.dumps(item)


def is_text(item: Any) -> bool:
    """Check for a text string data item."""
    return isinstance(item, str)


def is_boolean(item: Any) -> bool:
    """Check for a true/false simple value."""
    return isinstance(item, bool)


def is_integer(item: Any) -> bool:
    """Check for an unsigned or negative integer data item."""
    return isinstance(item, int) and not isinstance(item, (bool, CBORSimpleValue))


def _float_diagnostics(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    return repr(value)


def to_diagnostics(item: Any) -> str:
    """Render a data item in CBOR diagnostic notation (RFC 8949 §8)."""
    if item is None:
        return "null"
    if item is undefined:
        return "undefined"
    if isinstance(item, bool):
        return "true" if item else "false"
    if isinstance(item, CBORSimpleValue):
        return f"simple({item.value})"
    if isinstance(item, int):
        return str(item)
    if isinstance(item, float):
        return _float_diagnostics(item)
    if isinstance(item, str):
        return json.dumps(item, ensure_ascii=False)
    if isinstance(item, (bytes, bytearray)):
        return f"h'{bytes(item).hex()}'"
    if isinstance(item, CBORTag):
        return f"{item.tag}({to_diagnostics(item.value)})"
    # datetime is a subclass of date, check it first
    if isinstance(item, datetime):
        return f'{TAG_DATE_TIME}("{item.isoformat().replace("+00:00", "Z")}")'
    if isinstance(item, date):
        return f'{TAG_FULL_DATE}("{item.isoformat()}")'
    if isinstance(item, (list, tuple)):
        return "[" + ", ".join(to_diagnostics(element) for element in item) + "]"
    if isinstance(item, dict):
        return (
            "{"
            + ", ".join(
                f"{to_diagnostics(key)}: {to_diagnostics(value)}"
                for key, value in item.items()
            )
            + "}"
        )
    raise TypeError(f"Unsupported CBOR data item of type {type(item).__name__}")
