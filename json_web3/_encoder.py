"""json-web3 encoder: value tree -> JSON text.

json.dumps() has no per-node key/value callback, so the walk lives here
and json.dumps() only ever sees a tree of plain dicts, lists, strings,
numbers, booleans and None.

Per node, in order:
  1. the caller's replacer (callable form) sees (key, value);
  2. the tag transform swaps a recognized extended value for its marker;
  3. containers are walked member by member, keys first converted to
     strings the way json.dumps converts them.

Keys are strings throughout: "" for the root, the member name inside a
dict, the decimal index inside a list.  A marker dict is walked like any
other dict, so map and set payloads get their own items tagged.

Allow-list replacers filter dict members only, and never filter a
reserved tag key or a member of a typedarray/bytes/regexp payload
object.  Without that exemption ["keep"] would strip every marker.
"""

from __future__ import annotations

import json
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Sequence, Union

from ._codecs import to_marker
from ._constants import (
    ABSENT,
    MAX_INDENT,
    MAX_SAFE_INTEGER,
    RESERVED_TAGS,
    STRUCTURED_PAYLOAD_TAGS,
)
from ._errors import UnsafeIntegerError
from ._functions import is_function

Replacer = Union[Callable[[str, Any], Any], Sequence[Union[str, int]], None]
Indent = Union[int, str, None]


def _key_to_str(key: Any) -> str:
    """Convert a dict key exactly as json.dumps does."""
    if isinstance(key, str):
        return key
    # bool before int: True is an int in Python.
    if key is True:
        return "true"
    if key is False:
        return "false"
    if key is None:
        return "null"
    if isinstance(key, float):
        return json.dumps(key)
    if isinstance(key, int):
        return int.__repr__(key)
    raise TypeError("keys must be str, int, float, bool or None, not {}".format(
        type(key).__name__))


def _allow_list(keys: Sequence[Any]) -> FrozenSet[str]:
    allowed = set()
    for k in keys:
        if isinstance(k, str):
            allowed.add(k)
        elif isinstance(k, int) and not isinstance(k, bool):
            allowed.add(str(k))
        # Other entries are ignored, as JSON serializers do.
    return frozenset(allowed)


def normalize_indent(indent: Indent) -> Optional[str]:
    """Map the indent argument to a json.dumps indent string, or None for compact."""
    if indent is None or isinstance(indent, bool):
        return None
    if isinstance(indent, int):
        width = min(indent, MAX_INDENT)
        return " " * width if width >= 1 else None
    if isinstance(indent, str):
        return indent[:MAX_INDENT] or None
    raise TypeError("indent must be None, an int or a str, not {}".format(type(indent).__name__))


class _Walker:
    """One encode pass.  Holds the per-call options; no state survives the call."""

    def __init__(self,
                 replacer: Replacer,
                 unsafe: bool,
                 default: Optional[Callable[[Any], Any]],
                 strict_integers: bool) -> None:
        self.replace: Optional[Callable[[str, Any], Any]] = None
        self.allowed: Optional[FrozenSet[str]] = None
        if callable(replacer):
            self.replace = replacer
        elif isinstance(replacer, (list, tuple)):
            self.allowed = _allow_list(replacer)
        elif replacer is not None:
            raise TypeError("replacer must be a callable, a list of keys, or None")
        self.unsafe = unsafe
        self.default = default
        self.strict_integers = strict_integers
        self._active: set = set()

    # ── per node ─────────────────────────────────────────────

    def visit(self, key: str, value: Any) -> Any:
        if self.replace is not None:
            value = self.replace(key, value)
        value = self.tag(value)
        if value is ABSENT:
            return ABSENT
        return self.serialize(key, value)

    def tag(self, value: Any) -> Any:
        if value is ABSENT:
            return ABSENT
        if self.strict_integers and isinstance(value, float) and value.is_integer() \
                and abs(value) > MAX_SAFE_INTEGER:
            raise UnsafeIntegerError("{!r} is outside the safe integer range".format(value))
        value = to_marker(value, self.unsafe)
        # Functions that were not turned into markers are dropped.
        if value is not ABSENT and is_function(value):
            return ABSENT
        return value

    # ── containers ───────────────────────────────────────────

    def serialize(self, key: str, value: Any) -> Any:
        if value is None or isinstance(value, (str, bool, int, float)):
            return value
        if isinstance(value, dict):
            return self._guarded(value, lambda: self._serialize_dict(key, value))
        if isinstance(value, (list, tuple)):
            return self._guarded(value, lambda: self._serialize_list(value))
        if self.default is not None:
            replacement = self.tag(self.default(value))
            if replacement is ABSENT:
                return ABSENT
            return self._guarded(value, lambda: self.serialize(key, replacement))
        raise TypeError("Object of type {} is not JSON serializable".format(
            type(value).__name__))

    def _guarded(self, container: Any, build: Callable[[], Any]) -> Any:
        marker = id(container)
        if marker in self._active:
            raise ValueError("Circular reference detected")
        self._active.add(marker)
        try:
            return build()
        finally:
            self._active.discard(marker)

    def _keep_member(self, holder_key: str, key: str) -> bool:
        if self.allowed is None:
            return True
        return (key in self.allowed
                or key in RESERVED_TAGS
                or holder_key in STRUCTURED_PAYLOAD_TAGS)

    def _serialize_dict(self, holder_key: str, value: Dict[Any, Any]) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for k, v in value.items():
            skey = _key_to_str(k)
            if not self._keep_member(holder_key, skey):
                continue
            child = self.visit(skey, v)
            if child is not ABSENT:
                out[skey] = child
        return out

    def _serialize_list(self, value: Sequence[Any]) -> List[Any]:
        out: List[Any] = []
        for index, item in enumerate(value):
            child = self.visit(str(index), item)
            out.append(None if child is ABSENT else child)
        return out


def encode_value(value: Any,
                 replacer: Replacer = None,
                 indent: Indent = None,
                 *,
                 unsafe: bool = False,
                 default: Optional[Callable[[Any], Any]] = None,
                 sort_keys: bool = False,
                 ensure_ascii: bool = True,
                 strict_integers: bool = False) -> Optional[str]:
    """Walk, tag, and serialize value.  Returns None if the root is omitted."""
    walker = _Walker(replacer, unsafe, default, strict_integers)
    tree = walker.visit("", value)
    if tree is ABSENT:
        return None

    indent_text = normalize_indent(indent)
    separators = (",", ":") if indent_text is None else (",", ": ")
    # The walk already rejected cycles and tagged every non-finite float.
    return json.dumps(
        tree,
        indent=indent_text,
        separators=separators,
        sort_keys=sort_keys,
        ensure_ascii=ensure_ascii,
        check_circular=False,
        allow_nan=False,
    )
