"""json-web3 constants: reserved tag keys, tag order, and numeric limits.

The tag strings are the wire contract.  They must match other
implementations of the protocol byte-for-byte and never change between
releases; everything else in this module is an implementation detail.
"""

from __future__ import annotations

from typing import Dict, Tuple

__protocol_version__ = "1"

# ── Reserved tag keys ─────────────────────────────────────────
# Every tag shares the "__@json." prefix so an ordinary user object is
# very unlikely to carry one by accident.

BIGINT_TAG: str = "__@json.bigint__"
NUMBER_TAG: str = "__@json.number__"
TYPEDARRAY_TAG: str = "__@json.typedarray__"
BYTES_TAG: str = "__@json.bytes__"          # legacy, decode only
DATE_TAG: str = "__@json.date__"
MAP_TAG: str = "__@json.map__"
SET_TAG: str = "__@json.set__"
REGEXP_TAG: str = "__@json.regexp__"
URL_TAG: str = "__@json.url__"
FUNCTION_TAG: str = "__@json.function__"

# Checking order on decode: index 0 wins when a dict carries several
# reserved keys.  This ordering is part of the protocol.
TAG_ORDER: Tuple[str, ...] = (
    BIGINT_TAG,
    NUMBER_TAG,
    TYPEDARRAY_TAG,
    BYTES_TAG,
    DATE_TAG,
    MAP_TAG,
    SET_TAG,
    REGEXP_TAG,
    URL_TAG,
    FUNCTION_TAG,
)

RESERVED_TAGS = frozenset(TAG_ORDER)

# Payload objects whose own keys belong to the protocol, not to the user.
# An allow-list replacer must never filter these.
STRUCTURED_PAYLOAD_TAGS = frozenset([TYPEDARRAY_TAG, BYTES_TAG, REGEXP_TAG])

# ── Non-finite number sentinels ───────────────────────────────

NAN_TEXT: str = "NaN"
POS_INF_TEXT: str = "Infinity"
NEG_INF_TEXT: str = "-Infinity"

# ── Integer range ─────────────────────────────────────────────
# Integers inside +/-(2**53 - 1) survive a trip through an IEEE-754
# double, which is what most JSON peers parse numbers into.  Anything
# outside that range travels as a big-integer marker.
MAX_SAFE_INTEGER: int = 2**53 - 1
MIN_SAFE_INTEGER: int = -(2**53 - 1)

# ── Typed-array element kinds ─────────────────────────────────
# name -> (struct format char, element size in bytes).  Element bytes
# are little-endian on the wire.
TYPED_ARRAY_KINDS: Dict[str, Tuple[str, int]] = {
    "Int8Array": ("b", 1),
    "Uint8Array": ("B", 1),
    "Uint8ClampedArray": ("B", 1),
    "Int16Array": ("h", 2),
    "Uint16Array": ("H", 2),
    "Int32Array": ("i", 4),
    "Uint32Array": ("I", 4),
    "BigInt64Array": ("q", 8),
    "BigUint64Array": ("Q", 8),
    "Float16Array": ("e", 2),
    "Float32Array": ("f", 4),
    "Float64Array": ("d", 8),
}

UINT8_ARRAY: str = "Uint8Array"

# ── Formatting ────────────────────────────────────────────────
# Indent widths and indent strings are capped at 10, as JSON
# serializers in other languages do.
MAX_INDENT: int = 10


# ── Absent sentinel ───────────────────────────────────────────
# None is JSON null, so omission needs its own marker.  A replacer or
# reviver returning ABSENT drops the member from its dict; in a list the
# slot becomes null.

class _Absent:
    """Placeholder for "no value": the member is omitted from its container."""
    __slots__ = ()

    def __repr__(self) -> str:
        return "ABSENT"

    def __bool__(self) -> bool:
        return False


ABSENT = _Absent()
