"""json_web3: JSON that round-trips big integers, bytes, dates and friends.

A drop-in pair for JSON encode/decode that keeps type identity for values
plain JSON cannot express, by embedding single-key marker objects:

    >>> from json_web3 import encode, decode
    >>> text = encode({"balance": 123456789012345678901234567890, "data": b"\\x01\\x02"})
    >>> text
    '{"balance":{"__@json.bigint__":"123456789012345678901234567890"},"data":{"__@json.typedarray__":{"type":"Uint8Array","bytes":"0x0102"}}}'
    >>> decode(text)
    {'balance': 123456789012345678901234567890, 'data': b'\\x01\\x02'}

Functions are only ever serialized by encode_unsafe() and only ever
executed by decode_unsafe().  The safe pair drops functions on the way
out and hands function markers back untouched on the way in.
"""

from __future__ import annotations

from typing import Any, Callable, Optional, Union

from ._codecs import from_hex, to_hex, typed_array_name
from ._constants import (
    ABSENT,
    BIGINT_TAG,
    BYTES_TAG,
    DATE_TAG,
    FUNCTION_TAG,
    MAP_TAG,
    MAX_SAFE_INTEGER,
    MIN_SAFE_INTEGER,
    NUMBER_TAG,
    REGEXP_TAG,
    SET_TAG,
    TAG_ORDER,
    TYPEDARRAY_TAG,
    URL_TAG,
)
from ._decoder import Reviver, decode_text
from ._encoder import Indent, Replacer, encode_value
from ._errors import (
    ERR_DECODE,
    ERR_FORMAT,
    ERR_PARSE,
    ERR_UNSAFE_INTEGER,
    DecodeError,
    FormatError,
    JsonWeb3Error,
    ParseError,
    UnsafeIntegerError,
)

__version__ = "0.3.0"

__all__ = [
    # Public API functions
    "encode",
    "decode",
    "encode_unsafe",
    "decode_unsafe",
    "stringify",
    "parse",
    "stringify_unsafe",
    "parse_unsafe",
    # Helpers
    "ABSENT",
    "to_hex",
    "from_hex",
    "typed_array_name",
    # Tags
    "BIGINT_TAG",
    "NUMBER_TAG",
    "TYPEDARRAY_TAG",
    "BYTES_TAG",
    "DATE_TAG",
    "MAP_TAG",
    "SET_TAG",
    "REGEXP_TAG",
    "URL_TAG",
    "FUNCTION_TAG",
    "TAG_ORDER",
    "MAX_SAFE_INTEGER",
    "MIN_SAFE_INTEGER",
    # Exceptions
    "JsonWeb3Error",
    "FormatError",
    "DecodeError",
    "ParseError",
    "UnsafeIntegerError",
    # Error codes
    "ERR_FORMAT",
    "ERR_DECODE",
    "ERR_PARSE",
    "ERR_UNSAFE_INTEGER",
]


# ── Encode ────────────────────────────────────────────────────

def encode(value: Any,
           replacer: Replacer = None,
           indent: Indent = None,
           *,
           default: Optional[Callable[[Any], Any]] = None,
           sort_keys: bool = False,
           ensure_ascii: bool = True,
           strict_integers: bool = False) -> Optional[str]:
    """Serialize value to JSON text, tagging extended types.

    replacer is either a callable ``replacer(key, value)`` whose result
    replaces each node (return ABSENT to drop a member), or a list of keys
    to keep in every dict.  Reserved tag keys are never filtered.

    indent is None (compact), a number of spaces (capped at 10) or an
    indent string (first 10 characters).

    default, sort_keys and ensure_ascii behave as in json.dumps().

    strict_integers=True raises UnsafeIntegerError for integral floats
    beyond +/-(2**53 - 1).  Large ints are tagged as big integers either
    way.

    Functions are dropped (null inside lists).  Returns None when the root
    value itself is dropped.

    Datetimes travel as UTC epoch milliseconds, so a naive datetime comes
    back from decode() as an aware UTC datetime, which compares unequal to
    the naive original.
    """
    return encode_value(value, replacer, indent, unsafe=False, default=default,
                        sort_keys=sort_keys, ensure_ascii=ensure_ascii,
                        strict_integers=strict_integers)


def encode_unsafe(value: Any,
                  replacer: Replacer = None,
                  indent: Indent = None,
                  *,
                  default: Optional[Callable[[Any], Any]] = None,
                  sort_keys: bool = False,
                  ensure_ascii: bool = True,
                  strict_integers: bool = False) -> Optional[str]:
    """Like encode(), but functions travel as source-text markers.

    Only functions whose source can be found on disk are captured; others
    are dropped as encode() would drop them.
    """
    return encode_value(value, replacer, indent, unsafe=True, default=default,
                        sort_keys=sort_keys, ensure_ascii=ensure_ascii,
                        strict_integers=strict_integers)


# ── Decode ────────────────────────────────────────────────────

def decode(text: Union[str, bytes, bytearray], reviver: Reviver = None) -> Any:
    """Parse JSON text, rebuilding tagged values.  Never executes code.

    reviver, if given, is called as ``reviver(key, value)`` bottom-up with
    the already-rebuilt value; its result replaces the node (ABSENT
    removes it).
    """
    return decode_text(text, reviver, unsafe=False)


def decode_unsafe(text: Union[str, bytes, bytearray], reviver: Reviver = None) -> Any:
    """Like decode(), but function markers are compiled and returned as functions.

    Only use this on text you would be willing to exec().
    """
    return decode_text(text, reviver, unsafe=True)


# Names used by other implementations of the protocol.
stringify = encode
parse = decode
stringify_unsafe = encode_unsafe
parse_unsafe = decode_unsafe
