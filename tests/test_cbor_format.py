import io
from datetime import datetime, timezone

import cbor2
import pytest

from humakit.cbor_format import (
    CBOR_FORMATS,
    DEFAULT_CBOR_FORMAT,
    cbor_marshal,
    cbor_unmarshal,
)


def _encode(value):
    buf = io.BytesIO()
    cbor_marshal(buf, value)
    return buf.getvalue()


def test_round_trip():
    data = {"hello": "world"}
    buf = io.BytesIO()
    DEFAULT_CBOR_FORMAT.marshal(buf, data)
    assert DEFAULT_CBOR_FORMAT.unmarshal(buf.getvalue()) == data


def test_encoded_bytes_pinned():
    assert _encode({"hello": "world"}) == bytes.fromhex("a16568656c6c6f65776f726c64")


def test_keys_sorted_canonically():
    assert _encode({"bb": 1, "a": 2}) == bytes.fromhex("a2616102626262" + "01")


def test_shortest_float():
    assert _encode(1.5) == bytes.fromhex("f93e00")


def test_nan_encoding():
    assert _encode(float("nan")) == bytes.fromhex("f97e00")


def test_datetime_as_tagged_timestamp():
    encoded = _encode(datetime(1970, 1, 1, 0, 0, 1, tzinfo=timezone.utc))
    assert encoded == bytes.fromhex("c101")
    assert cbor_unmarshal(encoded) == datetime(1970, 1, 1, 0, 0, 1, tzinfo=timezone.utc)


def test_formats_registered():
    assert CBOR_FORMATS["application/cbor"] is DEFAULT_CBOR_FORMAT
    assert CBOR_FORMATS["cbor"] is DEFAULT_CBOR_FORMAT

    buf = io.BytesIO()
    CBOR_FORMATS["cbor"].marshal(buf, {"hello": "world"})
    assert buf.getvalue() == bytes.fromhex("a16568656c6c6f65776f726c64")
    assert CBOR_FORMATS["application/cbor"].unmarshal(buf.getvalue()) == {"hello": "world"}


def test_unmarshal_empty_fails():
    with pytest.raises(cbor2.CBORDecodeError):
        cbor_unmarshal(b"")