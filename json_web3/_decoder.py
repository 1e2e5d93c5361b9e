"""json-web3 decoder: JSON text -> value tree.

json.loads() does the tokenizing; this module does the post-order walk a
JSON reviver expects.  Children are finished before their parent, so a
marker nested in another marker's payload (a big integer inside a map
entry, say) is already a native value when the outer tag is decoded.

For every dict, in order:
  1. reserved tags, checked in TAG_ORDER (first present wins);
  2. the legacy {"type": "Buffer", "data": [...]} shape;
  3. otherwise the dict is left as parsed.
The caller's reviver then sees the reconstructed value, never the marker.

Any codec error aborts the whole decode; there is no partial result.
"""

from __future__ import annotations

import json
from typing import Any, Callable, Optional, Union

from ._codecs import from_marker
from ._constants import ABSENT

Reviver = Optional[Callable[[str, Any], Any]]


def decode_text(text: Union[str, bytes, bytearray],
                reviver: Reviver = None,
                *,
                unsafe: bool = False) -> Any:
    """Parse text and rebuild every extended value in it.

    A reviver returning ABSENT removes the member from its dict, leaves
    None in a list slot, and makes the whole result None at the root.
    """
    if reviver is not None and not callable(reviver):
        raise TypeError("reviver must be callable or None")

    def walk(key: str, value: Any) -> Any:
        if isinstance(value, dict):
            for k in list(value):
                child = walk(k, value[k])
                if child is ABSENT:
                    del value[k]
                else:
                    value[k] = child
            value = from_marker(value, unsafe)
        elif isinstance(value, list):
            for index, item in enumerate(value):
                child = walk(str(index), item)
                value[index] = None if child is ABSENT else child
        if reviver is not None:
            return reviver(key, value)
        return value

    # json.loads builds fresh containers, so the walk rewrites them in place.
    result = walk("", json.loads(text))
    return None if result is ABSENT else result
