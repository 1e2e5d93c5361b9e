"""json-web3 error codes and exception classes.

Every failure the library raises on its own is a JsonWeb3Error carrying
one of the ERR_* codes below.  The subclasses exist so callers can catch
one failure family without comparing codes; the `.code` attribute is what
cross-language tests compare against.

Two conditions are deliberately NOT errors:
  - a typed-array marker naming an unknown element kind decodes to the
    raw bytes;
  - a {"type": "Buffer", "data": [...]} object that is not exactly the
    legacy shape passes through untouched.
"""

from __future__ import annotations

from typing import Optional

# ── Error codes ──────────────────────────────────────────────

ERR_FORMAT: str = "ERR_FORMAT"                  # malformed hex
ERR_DECODE: str = "ERR_DECODE"                  # payload shape wrong for its tag
ERR_PARSE: str = "ERR_PARSE"                    # payload is not a valid literal
ERR_UNSAFE_INTEGER: str = "ERR_UNSAFE_INTEGER"  # opt-in safe-integer check


class JsonWeb3Error(ValueError):
    """Base exception for json-web3 encoding and decoding errors."""

    code: str = ""

    def __init__(self, msg: str = "", *, tag: Optional[str] = None) -> None:
        super().__init__(msg or self.code)
        self.tag = tag


class FormatError(JsonWeb3Error):
    """Low-level encoding is malformed (odd-length or non-hex bytes)."""

    code = ERR_FORMAT


class DecodeError(JsonWeb3Error):
    """A marker's payload has the wrong shape for its tag.

    `.tag` names the offending tag so nested failures stay traceable.
    """

    code = ERR_DECODE


class ParseError(JsonWeb3Error):
    """A payload string is not a valid literal for its target type."""

    code = ERR_PARSE


class UnsafeIntegerError(JsonWeb3Error):
    """An integral float lies outside the IEEE-754 safe-integer range."""

    code = ERR_UNSAFE_INTEGER


def decode_error(tag: str, detail: str) -> DecodeError:
    return DecodeError("Invalid {} payload: {}".format(tag, detail), tag=tag)


def parse_error(tag: str, detail: str) -> ParseError:
    return ParseError("Invalid {} payload: {}".format(tag, detail), tag=tag)
