"""json-web3 codecs: type predicates, payload codecs, and the tag registry.

Each extended type has three pieces:

    predicate   is_T(value) -> bool, pure and total
    encoder     Python value -> JSON-safe payload
    decoder     payload -> Python value, raising on a malformed payload

and one row in CODECS tying them to a tag.  Adding a type means adding
those three functions and a row; the encoder and decoder walks never
change.

Type mapping:

    int outside +/-(2**53-1)      bigint       "123..."
    float nan / inf / -inf        number       "NaN" | "Infinity" | "-Infinity"
    bytes-like, array.array       typedarray   {"type": kind, "bytes": "0x.."}
    (legacy)                      bytes        "0x.."           decode only
    datetime.datetime             date         epoch milliseconds
    collections.OrderedDict       map          [[key, value], ...]
    set / frozenset               set          [item, ...]
    re.Pattern (str)              regexp       {"source": .., "flags": ..}
    urllib.parse.SplitResult      url          "scheme://..."
    function (unsafe only)        function     "def f(...): ..."

Patterns carry only the i, m, s and x flags; re.ASCII is lost in transit.
"""

from __future__ import annotations

import array
import datetime as dt
import logging
import math
import re
import struct
import sys
from collections import OrderedDict
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Tuple
from urllib.parse import ParseResult, SplitResult, urlsplit

from ._constants import (
    ABSENT,
    BIGINT_TAG,
    BYTES_TAG,
    DATE_TAG,
    FUNCTION_TAG,
    MAP_TAG,
    MAX_SAFE_INTEGER,
    MIN_SAFE_INTEGER,
    NAN_TEXT,
    NEG_INF_TEXT,
    NUMBER_TAG,
    POS_INF_TEXT,
    REGEXP_TAG,
    SET_TAG,
    TAG_ORDER,
    TYPED_ARRAY_KINDS,
    TYPEDARRAY_TAG,
    UINT8_ARRAY,
    URL_TAG,
)
from ._errors import FormatError, decode_error, parse_error
from ._functions import function_from_source, function_source, is_function

logger = logging.getLogger(__name__)

_BIG_ENDIAN_HOST = sys.byteorder == "big"


# ── Hex codec ─────────────────────────────────────────────────
# Capability probe, evaluated once.  bytes.fromhex() is the fast path;
# the byte-pair loop below is the portable one and must stay in sync.

_NATIVE_FROMHEX: bool = callable(getattr(bytes, "fromhex", None))
_HEX_DIGITS = re.compile(r"\A[0-9a-fA-F]*\Z")


def to_hex(data: Any) -> str:
    """Lowercase hex with a 0x prefix.  Empty input gives "0x"."""
    return "0x" + bytes(data).hex()


def _from_hex_portable(digits: str) -> bytes:
    return bytes(int(digits[i:i + 2], 16) for i in range(0, len(digits), 2))


def from_hex(text: str) -> bytes:
    """Decode hex with or without the 0x prefix."""
    digits = text[2:] if text.startswith("0x") else text
    # bytes.fromhex() tolerates whitespace; the wire format does not.
    if len(digits) % 2 != 0 or not _HEX_DIGITS.match(digits):
        raise FormatError("Invalid hex string for bytes")
    if _NATIVE_FROMHEX:
        return bytes.fromhex(digits)
    return _from_hex_portable(digits)


# ── Predicates ────────────────────────────────────────────────
# bool is a subclass of int in Python; every integer check below has to
# exclude it first or True would travel as a number.

def is_big_integer(value: Any) -> bool:
    return (isinstance(value, int) and not isinstance(value, bool)
            and not MIN_SAFE_INTEGER <= value <= MAX_SAFE_INTEGER)


def is_non_finite(value: Any) -> bool:
    return isinstance(value, float) and not math.isfinite(value)


def is_byte_buffer(value: Any) -> bool:
    return isinstance(value, (bytes, bytearray, memoryview))


def _is_byte(entry: Any) -> bool:
    return isinstance(entry, int) and not isinstance(entry, bool) and 0 <= entry <= 255


def is_buffer_like(value: Any) -> bool:
    """Exactly {"type": "Buffer", "data": [0..255, ...]}, nothing more."""
    return (isinstance(value, dict)
            and len(value) == 2
            and value.get("type") == "Buffer"
            and isinstance(value.get("data"), list)
            and all(_is_byte(b) for b in value["data"]))


def is_timestamp(value: Any) -> bool:
    return isinstance(value, dt.datetime)


def is_ordered_map(value: Any) -> bool:
    return isinstance(value, OrderedDict)


def is_set(value: Any) -> bool:
    return isinstance(value, (set, frozenset))


def is_pattern(value: Any) -> bool:
    return isinstance(value, re.Pattern) and isinstance(value.pattern, str)


def is_url(value: Any) -> bool:
    return isinstance(value, (SplitResult, ParseResult))


# ── Typed arrays ──────────────────────────────────────────────
# array.array typecodes have platform-dependent sizes ('l' is 4 bytes on
# Windows, 8 elsewhere), so both directions are resolved by item size.

_SIGNED_NAMES = {1: "Int8Array", 2: "Int16Array", 4: "Int32Array", 8: "BigInt64Array"}
_UNSIGNED_NAMES = {1: "Uint8Array", 2: "Uint16Array", 4: "Uint32Array", 8: "BigUint64Array"}
_FLOAT_NAMES = {4: "Float32Array", 8: "Float64Array"}


def _build_typecode_names() -> Dict[str, str]:
    names: Dict[str, str] = {}
    for codes, table in (("bhilq", _SIGNED_NAMES), ("BHILQ", _UNSIGNED_NAMES),
                         ("fd", _FLOAT_NAMES)):
        for code in codes:
            name = table.get(array.array(code).itemsize)
            if name is not None:
                names[code] = name
    return names


def _build_kind_typecodes() -> Dict[str, str]:
    by_name: Dict[str, str] = {}
    # Reverse order so the plain C type ('i' over 'l') wins on ties.
    for code, name in reversed(list(_TYPECODE_NAMES.items())):
        by_name[name] = code
    by_name["Uint8ClampedArray"] = by_name["Uint8Array"]
    return by_name


_TYPECODE_NAMES = _build_typecode_names()
_KIND_TYPECODES = _build_kind_typecodes()


def typed_array_name(value: Any) -> Optional[str]:
    """Element-kind name for a byte buffer or numeric array, else None."""
    if is_byte_buffer(value):
        return UINT8_ARRAY
    if isinstance(value, array.array):
        return _TYPECODE_NAMES.get(value.typecode)
    return None


def is_typed_array(value: Any) -> bool:
    return isinstance(value, array.array) and value.typecode in _TYPECODE_NAMES


def _little_endian_bytes(arr: array.array) -> bytes:
    if _BIG_ENDIAN_HOST and arr.itemsize > 1:
        arr = array.array(arr.typecode, arr)
        arr.byteswap()
    return arr.tobytes()


def encode_typed_array(value: Any) -> Dict[str, str]:
    if is_buffer_like(value):
        return {"type": UINT8_ARRAY, "bytes": to_hex(bytes(value["data"]))}
    if isinstance(value, array.array):
        return {"type": _TYPECODE_NAMES[value.typecode],
                "bytes": to_hex(_little_endian_bytes(value))}
    return {"type": UINT8_ARRAY, "bytes": to_hex(value)}


def decode_typed_array(payload: Any) -> Any:
    if not isinstance(payload, dict):
        raise decode_error(TYPEDARRAY_TAG, "expected object")
    hex_text = payload.get("bytes")
    if not isinstance(hex_text, str):
        raise decode_error(TYPEDARRAY_TAG, "bytes must be a hex string")
    raw = from_hex(hex_text)

    kind = payload.get("type")
    spec = TYPED_ARRAY_KINDS.get(kind) if isinstance(kind, str) else None
    if spec is None:
        logger.debug("unknown typed array kind %r, returning raw bytes", kind)
        return raw
    if kind == UINT8_ARRAY:
        return raw

    fmt, size = spec
    if len(raw) % size != 0:
        raise decode_error(TYPEDARRAY_TAG, "{} bytes is not a whole number of {} elements".format(
            len(raw), kind))
    if fmt == "e":
        # No half-float typecode in array; widen to float32.
        return array.array("f", struct.unpack("<{}e".format(len(raw) // size), raw))
    out = array.array(_KIND_TYPECODES[kind])
    out.frombytes(raw)
    if _BIG_ENDIAN_HOST and size > 1:
        out.byteswap()
    return out


def decode_legacy_bytes(payload: Any) -> bytes:
    if not isinstance(payload, str):
        raise decode_error(BYTES_TAG, "expected hex string")
    return from_hex(payload)


def decode_buffer_like(value: Dict[str, Any]) -> bytes:
    return bytes(value["data"])


# ── Big integers ──────────────────────────────────────────────

_INTEGER_LITERAL = re.compile(r"\A-?[0-9]+\Z")

# Conversions go through fixed-size digit chunks so that values past the
# interpreter's int/str digit limit (sys.get_int_max_str_digits) still work.
_CHUNK_DIGITS = 1000
_CHUNK_BASE = 10 ** _CHUNK_DIGITS


def _int_to_decimal(value: int) -> str:
    if -_CHUNK_BASE < value < _CHUNK_BASE:
        return str(value)
    n = abs(value)
    chunks: List[int] = []
    while n:
        n, low = divmod(n, _CHUNK_BASE)
        chunks.append(low)
    digits = [str(chunks[-1])]
    digits.extend(str(c).zfill(_CHUNK_DIGITS) for c in reversed(chunks[:-1]))
    return ("-" if value < 0 else "") + "".join(digits)


def _decimal_to_int(text: str) -> int:
    negative = text.startswith("-")
    digits = text[1:] if negative else text
    if len(digits) <= _CHUNK_DIGITS:
        return int(text)
    head = len(digits) % _CHUNK_DIGITS or _CHUNK_DIGITS
    n = int(digits[:head])
    for i in range(head, len(digits), _CHUNK_DIGITS):
        n = n * _CHUNK_BASE + int(digits[i:i + _CHUNK_DIGITS])
    return -n if negative else n


def encode_big_integer(value: int) -> str:
    return _int_to_decimal(value)


def decode_big_integer(payload: Any) -> int:
    if isinstance(payload, int) and not isinstance(payload, bool):
        return payload
    if not isinstance(payload, str):
        raise decode_error(BIGINT_TAG, "expected decimal string, got {}".format(
            type(payload).__name__))
    if not _INTEGER_LITERAL.match(payload):
        raise parse_error(BIGINT_TAG, "not an integer literal: {!r}".format(payload))
    return _decimal_to_int(payload)


# ── Non-finite numbers ────────────────────────────────────────

_NON_FINITE = {
    NAN_TEXT: math.nan,
    POS_INF_TEXT: math.inf,
    NEG_INF_TEXT: -math.inf,
}


def encode_non_finite(value: float) -> str:
    if math.isnan(value):
        return NAN_TEXT
    return POS_INF_TEXT if value > 0 else NEG_INF_TEXT


def decode_non_finite(payload: Any) -> float:
    if not isinstance(payload, str) or payload not in _NON_FINITE:
        raise decode_error(NUMBER_TAG, "expected one of NaN, Infinity, -Infinity, got {!r}".format(
            payload))
    return _NON_FINITE[payload]


# ── Timestamps ────────────────────────────────────────────────
# Naive datetimes are read as UTC.  Sub-millisecond precision is dropped
# (floor), matching the millisecond resolution of the wire format.

_EPOCH = dt.datetime(1970, 1, 1, tzinfo=dt.timezone.utc)
_ONE_MS = dt.timedelta(milliseconds=1)


def encode_timestamp(value: dt.datetime) -> int:
    if value.tzinfo is None or value.utcoffset() is None:
        value = value.replace(tzinfo=dt.timezone.utc)
    return (value - _EPOCH) // _ONE_MS


def decode_timestamp(payload: Any) -> dt.datetime:
    if isinstance(payload, bool) or not isinstance(payload, (int, float)) \
            or not math.isfinite(payload):
        raise decode_error(DATE_TAG, "expected epoch milliseconds")
    try:
        return _EPOCH + dt.timedelta(milliseconds=payload)
    except OverflowError as e:
        raise parse_error(DATE_TAG, "timestamp out of range: {}".format(payload)) from e


# ── Ordered maps and sets ─────────────────────────────────────
# Tuples and frozensets travel as arrays and sets, so map keys and set
# items are frozen again on the way in: lists become tuples and sets
# become frozensets, recursively.

def _frozen(value: Any) -> Any:
    if isinstance(value, list):
        return tuple(_frozen(v) for v in value)
    if isinstance(value, (set, frozenset)):
        return frozenset(_frozen(v) for v in value)
    return value


def encode_ordered_map(value: OrderedDict) -> List[List[Any]]:
    return [[k, v] for k, v in value.items()]


def decode_ordered_map(payload: Any) -> OrderedDict:
    if not isinstance(payload, list):
        raise decode_error(MAP_TAG, "expected array of [key, value] pairs")
    out: OrderedDict = OrderedDict()
    for entry in payload:
        if not isinstance(entry, list) or len(entry) != 2:
            raise decode_error(MAP_TAG, "entry is not a [key, value] pair")
        key, value = entry
        key = _frozen(key)
        try:
            out[key] = value
        except TypeError as e:
            raise decode_error(MAP_TAG, "unhashable key of type {}".format(
                type(key).__name__)) from e
    return out


def encode_set(value: Any) -> List[Any]:
    return list(value)


def decode_set(payload: Any) -> set:
    if not isinstance(payload, list):
        raise decode_error(SET_TAG, "expected array")
    try:
        return {_frozen(item) for item in payload}
    except TypeError as e:
        raise decode_error(SET_TAG, "unhashable item: {}".format(e)) from e


# ── Patterns ──────────────────────────────────────────────────
# Flags travel as the usual regex flag letters.  Letters with no re
# counterpart (global, sticky, indices, unicode modes) are accepted and
# dropped; str patterns are always unicode in Python.  re.ASCII, re.LOCALE
# and re.DEBUG have no letter and do not survive a round trip.

_PATTERN_FLAGS: Tuple[Tuple[str, int], ...] = (
    ("i", re.IGNORECASE),
    ("m", re.MULTILINE),
    ("s", re.DOTALL),
    ("x", re.VERBOSE),
)
_FLAG_BITS = dict(_PATTERN_FLAGS)
_IGNORED_FLAGS = frozenset("dguvy")


def encode_pattern(value: re.Pattern) -> Dict[str, str]:
    flags = "".join(letter for letter, bit in _PATTERN_FLAGS if value.flags & bit)
    return {"source": value.pattern, "flags": flags}


def decode_pattern(payload: Any) -> re.Pattern:
    if not isinstance(payload, dict):
        raise decode_error(REGEXP_TAG, "expected object with source and flags")
    source = payload.get("source")
    flags = payload.get("flags")
    if not isinstance(source, str) or not isinstance(flags, str):
        raise decode_error(REGEXP_TAG, "source and flags must be strings")

    bits = 0
    if len(set(flags)) != len(flags):
        raise parse_error(REGEXP_TAG, "duplicate flag in {!r}".format(flags))
    for letter in flags:
        if letter in _FLAG_BITS:
            bits |= _FLAG_BITS[letter]
        elif letter not in _IGNORED_FLAGS:
            raise parse_error(REGEXP_TAG, "unknown flag {!r}".format(letter))
    try:
        return re.compile(source, bits)
    except re.error as e:
        raise parse_error(REGEXP_TAG, str(e)) from e


# ── URLs ──────────────────────────────────────────────────────

def encode_url(value: Any) -> str:
    return value.geturl()


def decode_url(payload: Any) -> SplitResult:
    if not isinstance(payload, str):
        raise decode_error(URL_TAG, "expected URL string")
    try:
        parts = urlsplit(payload)
    except ValueError as e:
        raise parse_error(URL_TAG, "Invalid URL: {}".format(e)) from e
    if not parts.scheme:
        raise parse_error(URL_TAG, "Invalid URL: {!r}".format(payload))
    return parts


# ── Functions ─────────────────────────────────────────────────

def encode_function(value: Any) -> Any:
    source = function_source(value)
    return ABSENT if source is None else source


# ── Registry ──────────────────────────────────────────────────

class Codec(NamedTuple):
    tag: str
    matches: Optional[Callable[[Any], bool]]   # None: decode-only tag
    encode: Optional[Callable[[Any], Any]]
    decode: Callable[[Any], Any]
    unsafe: bool = False


def _is_typed_array_like(value: Any) -> bool:
    return is_byte_buffer(value) or is_typed_array(value) or is_buffer_like(value)


# Rows are in TAG_ORDER.  The encode predicates are disjoint, so the same
# order serves both directions.
CODECS: Tuple[Codec, ...] = (
    Codec(BIGINT_TAG, is_big_integer, encode_big_integer, decode_big_integer),
    Codec(NUMBER_TAG, is_non_finite, encode_non_finite, decode_non_finite),
    Codec(TYPEDARRAY_TAG, _is_typed_array_like, encode_typed_array, decode_typed_array),
    Codec(BYTES_TAG, None, None, decode_legacy_bytes),
    Codec(DATE_TAG, is_timestamp, encode_timestamp, decode_timestamp),
    Codec(MAP_TAG, is_ordered_map, encode_ordered_map, decode_ordered_map),
    Codec(SET_TAG, is_set, encode_set, decode_set),
    Codec(REGEXP_TAG, is_pattern, encode_pattern, decode_pattern),
    Codec(URL_TAG, is_url, encode_url, decode_url),
    Codec(FUNCTION_TAG, is_function, encode_function, function_from_source, unsafe=True),
)

CODECS_BY_TAG: Dict[str, Codec] = {c.tag: c for c in CODECS}


def to_marker(value: Any, unsafe: bool = False) -> Any:
    """Replace a recognized extended value with its marker dict.

    Unrecognized values come back unchanged.  A function whose source
    cannot be captured comes back as ABSENT.
    """
    for codec in CODECS:
        if codec.matches is None or (codec.unsafe and not unsafe):
            continue
        if codec.matches(value):
            payload = codec.encode(value)
            if payload is ABSENT:
                return ABSENT
            return {codec.tag: payload}
    return value


def from_marker(obj: Dict[str, Any], unsafe: bool = False) -> Any:
    """Reconstruct the native value for a parsed JSON object.

    Tags are checked in TAG_ORDER; the first present wins even if a later
    one is also there.  A function marker outside unsafe mode is returned
    as-is, unexecuted.
    """
    for tag in TAG_ORDER:
        if tag in obj:
            codec = CODECS_BY_TAG[tag]
            if codec.unsafe and not unsafe:
                return obj
            return codec.decode(obj[tag])
    if is_buffer_like(obj):
        return decode_buffer_like(obj)
    return obj
