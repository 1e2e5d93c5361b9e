"""Unit tests for json_web3 codecs: hex, predicates, and payload validation.

These go below the public API to pin the behavior of each codec on its
own, including the graceful-degradation paths that never raise.
"""

from __future__ import annotations

import array
import datetime as dt
import math
import os
import re
import sys
import unittest
from collections import OrderedDict
from unittest import mock
from urllib.parse import urlparse, urlsplit

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from json_web3 import (
    BIGINT_TAG,
    DATE_TAG,
    ERR_DECODE,
    ERR_FORMAT,
    ERR_PARSE,
    MAP_TAG,
    TYPEDARRAY_TAG,
    DecodeError,
    FormatError,
    ParseError,
    decode,
    from_hex,
    to_hex,
    typed_array_name,
)
from json_web3 import _codecs

_HEX_SHAPE = re.compile(r"0x([0-9a-f]{2})*")


# ── Hex codec ─────────────────────────────────────────────────

class TestHex(unittest.TestCase):
    def test_empty(self):
        self.assertEqual(to_hex(b""), "0x")
        self.assertEqual(from_hex("0x"), b"")
        self.assertEqual(from_hex(""), b"")

    def test_output_shape(self):
        for data in (b"", b"\x00", b"\xab\xcd\xef", bytes(range(256))):
            with self.subTest(data=data[:4]):
                self.assertIsNotNone(_HEX_SHAPE.fullmatch(to_hex(data)))

    def test_lowercase(self):
        self.assertEqual(to_hex(b"\xAB"), "0xab")

    def test_prefix_optional(self):
        self.assertEqual(from_hex("0x0102ff"), b"\x01\x02\xff")
        self.assertEqual(from_hex("0102ff"), b"\x01\x02\xff")

    def test_uppercase_digits_accepted(self):
        self.assertEqual(from_hex("0x0A0B"), b"\x0a\x0b")

    def test_odd_length(self):
        with self.assertRaises(FormatError) as ctx:
            from_hex("0xabc")
        self.assertEqual(ctx.exception.code, ERR_FORMAT)

    def test_non_hex_digits(self):
        for text in ("0xzz", "0x0a 0", "0x+1"):
            with self.subTest(text=text):
                with self.assertRaises(FormatError):
                    from_hex(text)

    def test_portable_fallback(self):
        """Same results when the native fromhex fast path is unavailable."""
        with mock.patch.object(_codecs, "_NATIVE_FROMHEX", False):
            self.assertEqual(from_hex("0x0a0b"), b"\x0a\x0b")
            self.assertEqual(from_hex("ff00"), b"\xff\x00")
            self.assertEqual(from_hex("0x"), b"")
            with self.assertRaises(FormatError):
                from_hex("0xabc")
        with mock.patch.object(_codecs, "_NATIVE_FROMHEX", False):
            out = decode('{"data":{"__@json.typedarray__":{"type":"Uint8Array","bytes":"0x0a0b"}}}')
        self.assertEqual(out["data"], b"\x0a\x0b")


# ── Predicates ────────────────────────────────────────────────

class TestPredicates(unittest.TestCase):
    def test_big_integer_boundary(self):
        self.assertFalse(_codecs.is_big_integer(2**53 - 1))
        self.assertTrue(_codecs.is_big_integer(2**53))
        self.assertFalse(_codecs.is_big_integer(-(2**53 - 1)))
        self.assertTrue(_codecs.is_big_integer(-(2**53)))

    def test_big_integer_rejects_bool_and_float(self):
        self.assertFalse(_codecs.is_big_integer(True))
        self.assertFalse(_codecs.is_big_integer(1e300))

    def test_non_finite(self):
        self.assertTrue(_codecs.is_non_finite(math.nan))
        self.assertTrue(_codecs.is_non_finite(-math.inf))
        self.assertFalse(_codecs.is_non_finite(1.0))
        self.assertFalse(_codecs.is_non_finite("NaN"))

    def test_buffer_like_strict(self):
        self.assertTrue(_codecs.is_buffer_like({"type": "Buffer", "data": []}))
        self.assertTrue(_codecs.is_buffer_like({"type": "Buffer", "data": [0, 255]}))
        self.assertFalse(_codecs.is_buffer_like({"type": "Buffer", "data": [256]}))
        self.assertFalse(_codecs.is_buffer_like({"type": "Buffer", "data": [False]}))
        self.assertFalse(_codecs.is_buffer_like({"type": "Buffer", "data": "0102"}))
        self.assertFalse(_codecs.is_buffer_like({"type": "Blob", "data": [1]}))
        self.assertFalse(_codecs.is_buffer_like({"type": "Buffer", "data": [1], "x": 1}))

    def test_url(self):
        self.assertTrue(_codecs.is_url(urlsplit("https://example.com/")))
        self.assertTrue(_codecs.is_url(urlparse("https://example.com/")))
        self.assertFalse(_codecs.is_url("https://example.com/"))
        self.assertFalse(_codecs.is_url(("https", "example.com", "/", "", "")))

    def test_pattern_str_only(self):
        self.assertTrue(_codecs.is_pattern(re.compile("a")))
        self.assertFalse(_codecs.is_pattern(re.compile(b"a")))

    def test_ordered_map_vs_dict(self):
        self.assertTrue(_codecs.is_ordered_map(OrderedDict()))
        self.assertFalse(_codecs.is_ordered_map({}))

    def test_typed_array_name(self):
        self.assertEqual(typed_array_name(b""), "Uint8Array")
        self.assertEqual(typed_array_name(bytearray()), "Uint8Array")
        self.assertEqual(typed_array_name(array.array("h")), "Int16Array")
        self.assertEqual(typed_array_name(array.array("d")), "Float64Array")
        self.assertIsNone(typed_array_name(None))
        self.assertIsNone(typed_array_name([1, 2]))


# ── Marker dispatch ───────────────────────────────────────────

class TestMarkers(unittest.TestCase):
    def test_unrecognized_values_unchanged(self):
        for value in ("s", 1, 1.5, None, True, [1], {"a": 1}):
            with self.subTest(value=value):
                self.assertIs(_codecs.to_marker(value), value)

    def test_function_only_tagged_when_unsafe(self):
        def local(x):
            return x
        self.assertIs(_codecs.to_marker(local), local)
        marker = _codecs.to_marker(local, unsafe=True)
        self.assertEqual(list(marker), ["__@json.function__"])

    def test_plain_dict_unchanged(self):
        obj = {"a": 1}
        self.assertIs(_codecs.from_marker(obj), obj)

    def test_function_marker_safe_mode(self):
        obj = {"__@json.function__": "lambda: 1"}
        self.assertIs(_codecs.from_marker(obj), obj)

    def test_codec_table_order(self):
        from json_web3 import TAG_ORDER
        self.assertEqual(tuple(c.tag for c in _codecs.CODECS), TAG_ORDER)
        self.assertEqual(TAG_ORDER[0], BIGINT_TAG)


# ── Payload validation ───────────────────────────────────────

class TestBigIntegerPayload(unittest.TestCase):
    def test_json_integer_payload(self):
        self.assertEqual(_codecs.decode_big_integer(12), 12)

    def test_rejects_non_decimal_text(self):
        for text in ("", "-", "1.5", "0x10", " 12", "1_000", "١٢"):
            with self.subTest(text=text):
                with self.assertRaises(ParseError) as ctx:
                    _codecs.decode_big_integer(text)
                self.assertEqual(ctx.exception.code, ERR_PARSE)
                self.assertEqual(ctx.exception.tag, BIGINT_TAG)

    def test_rejects_wrong_type(self):
        for payload in (None, True, 1.5, [1]):
            with self.subTest(payload=payload):
                with self.assertRaises(DecodeError):
                    _codecs.decode_big_integer(payload)


class TestTypedArrayPayload(unittest.TestCase):
    def test_not_an_object(self):
        with self.assertRaises(DecodeError):
            _codecs.decode_typed_array("0x01")

    def test_bytes_not_a_string(self):
        with self.assertRaises(DecodeError) as ctx:
            decode('{"data":{"__@json.typedarray__":{"type":"Uint8Array","bytes":123}}}')
        self.assertEqual(ctx.exception.code, ERR_DECODE)
        self.assertEqual(ctx.exception.tag, TYPEDARRAY_TAG)

    def test_partial_element(self):
        with self.assertRaises(DecodeError):
            _codecs.decode_typed_array({"type": "Int16Array", "bytes": "0x010203"})

    def test_unknown_kind_logs_and_returns_bytes(self):
        with self.assertLogs("json_web3._codecs", level="DEBUG"):
            out = _codecs.decode_typed_array({"type": "UnknownArray", "bytes": "0x01"})
        self.assertEqual(out, b"\x01")

    def test_missing_kind_returns_bytes(self):
        self.assertEqual(_codecs.decode_typed_array({"bytes": "0x0102"}), b"\x01\x02")

    def test_little_endian_wire(self):
        out = _codecs.decode_typed_array({"type": "Uint16Array", "bytes": "0x01000001"})
        self.assertEqual(list(out), [1, 256])

    def test_clamped_kind(self):
        out = _codecs.decode_typed_array({"type": "Uint8ClampedArray", "bytes": "0x00ff80"})
        self.assertEqual(out.typecode, "B")
        self.assertEqual(list(out), [0, 255, 128])

    def test_float16_widened(self):
        # 0x3e00 is 1.5 and 0xc080 is -2.25 in IEEE half precision.
        out = _codecs.decode_typed_array({"type": "Float16Array", "bytes": "0x003e80c0"})
        self.assertEqual(out.typecode, "f")
        self.assertEqual(list(out), [1.5, -2.25])

    def test_legacy_bytes_not_a_string(self):
        with self.assertRaises(DecodeError):
            decode('{"__@json.bytes__":[1,2]}')


class TestTimestampPayload(unittest.TestCase):
    def test_epoch(self):
        self.assertEqual(_codecs.decode_timestamp(0),
                         dt.datetime(1970, 1, 1, tzinfo=dt.timezone.utc))

    def test_known_instant(self):
        d = dt.datetime(2020, 1, 2, 3, 4, 5, 6000, tzinfo=dt.timezone.utc)
        self.assertEqual(_codecs.encode_timestamp(d), 1577934245006)

    def test_wrong_type(self):
        for payload in ("2020-01-01", True, None, math.nan, math.inf):
            with self.subTest(payload=payload):
                with self.assertRaises(DecodeError) as ctx:
                    _codecs.decode_timestamp(payload)
                self.assertEqual(ctx.exception.tag, DATE_TAG)

    def test_out_of_range(self):
        with self.assertRaises(ParseError):
            _codecs.decode_timestamp(1e20)


class TestCollectionPayloads(unittest.TestCase):
    def test_map_entry_shape(self):
        for payload in ([["a"]], [["a", 1, 2]], ["ab"], [{"a": 1}]):
            with self.subTest(payload=payload):
                with self.assertRaises(DecodeError) as ctx:
                    _codecs.decode_ordered_map(payload)
                self.assertEqual(ctx.exception.tag, MAP_TAG)

    def test_map_unhashable_key(self):
        with self.assertRaises(DecodeError):
            decode('{"__@json.map__":[[{"a":1},2]]}')

    def test_map_array_key_becomes_tuple(self):
        out = _codecs.decode_ordered_map([[[1, [2, 3]], "a"]])
        self.assertEqual(list(out), [(1, (2, 3))])

    def test_map_order(self):
        out = _codecs.decode_ordered_map([["b", 1], ["a", 2]])
        self.assertEqual(list(out), ["b", "a"])

    def test_set_unhashable_item(self):
        with self.assertRaises(DecodeError):
            decode('{"__@json.set__":[{"a":1}]}')

    def test_set_items_frozen(self):
        out = _codecs.decode_set([[1, 2], {3}])
        self.assertEqual(out, {(1, 2), frozenset([3])})

    def test_set_duplicates_collapse(self):
        self.assertEqual(_codecs.decode_set([1, 1, 2]), {1, 2})


class TestPatternPayload(unittest.TestCase):
    def test_flag_letters(self):
        encoded = _codecs.encode_pattern(re.compile("a", re.I | re.M | re.S))
        self.assertEqual(encoded, {"source": "a", "flags": "ims"})

    def test_js_only_flags_ignored(self):
        out = _codecs.decode_pattern({"source": "a+", "flags": "gyi"})
        self.assertTrue(out.flags & re.IGNORECASE)
        self.assertEqual(out.findall("aAb"), ["aA"])

    def test_unknown_flag(self):
        with self.assertRaises(ParseError):
            _codecs.decode_pattern({"source": "a", "flags": "q"})

    def test_ascii_flag_not_carried(self):
        encoded = _codecs.encode_pattern(re.compile(r"\w", re.ASCII | re.IGNORECASE))
        self.assertEqual(encoded, {"source": r"\w", "flags": "i"})
        self.assertFalse(_codecs.decode_pattern(encoded).flags & re.ASCII)

    def test_duplicate_flag(self):
        with self.assertRaises(ParseError):
            _codecs.decode_pattern({"source": "a", "flags": "ii"})

    def test_bad_source(self):
        with self.assertRaises(ParseError):
            _codecs.decode_pattern({"source": "(", "flags": ""})

    def test_missing_fields(self):
        for payload in ({"source": "a"}, {"flags": ""}, "a", None):
            with self.subTest(payload=payload):
                with self.assertRaises(DecodeError):
                    _codecs.decode_pattern(payload)


class TestUrlPayload(unittest.TestCase):
    def test_relative_rejected(self):
        for payload in ("/path/only", "example.com", ""):
            with self.subTest(payload=payload):
                with self.assertRaises(ParseError):
                    _codecs.decode_url(payload)

    def test_malformed_netloc(self):
        with self.assertRaises(ParseError):
            _codecs.decode_url("http://[::1")

    def test_parse_result_round_trips_as_text(self):
        url = urlparse("https://example.com/a;p?b=1#c")
        self.assertEqual(_codecs.decode_url(_codecs.encode_url(url)).geturl(), url.geturl())


if __name__ == "__main__":
    unittest.main()
