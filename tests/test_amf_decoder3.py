import datetime
import io
import struct

import pytest

from livecast.amf.core import AmfError, read_byte
from livecast.amf.decoder3 import Amf3Decoder

U29_CASES = [
    (1, b"\x01"),
    (2, b"\x02"),
    (127, b"\x7f"),
    (128, b"\x81\x00"),
    (255, b"\x81\x7f"),
    (256, b"\x82\x00"),
    (0x3FFF, b"\xff\x7f"),
    (0x4000, b"\x81\x80\x00"),
    (0x7FFF, b"\x81\xff\x7f"),
    (0x8000, b"\x82\x80\x00"),
    (0x1FFFFF, b"\xff\xff\x7f"),
    (0x200000, b"\x80\xc0\x80\x00"),
    (0x3FFFFF, b"\x80\xff\xff\xff"),
    (0x400000, b"\x81\x80\x80\x00"),
    (0x0FFFFFFF, b"\xbf\xff\xff\xff"),
]

ASCLASS_OBJECT = bytes(
    [0x0A, 0x23, 0x1F]
    + list(b"org.amf.ASClass")
    + [0x07]
    + list(b"baz")
    + [0x07]
    + list(b"foo")
    + [0x01, 0x06, 0x07]
    + list(b"bar")
)


def test_decode_undefined():
    assert Amf3Decoder().decode_amf3(io.BytesIO(b"\x00")) is None


def test_decode_null():
    assert Amf3Decoder().decode_amf3(io.BytesIO(b"\x01")) is None


def test_decode_false():
    assert Amf3Decoder().decode_amf3(io.BytesIO(b"\x02")) is False


def test_decode_true():
    assert Amf3Decoder().decode_amf3(io.BytesIO(b"\x03")) is True


@pytest.mark.parametrize("value, encoded", U29_CASES)
def test_decode_u29(value, encoded):
    assert Amf3Decoder().decode_u29(io.BytesIO(encoded)) == value


def test_decode_integer_all_interfaces():
    buf = io.BytesIO(b"\x04\xff\xff\x7f")
    dec = Amf3Decoder()
    assert dec.decode_amf3(buf) == 2097151
    buf.seek(0)
    assert dec.decode_amf3_integer(buf, True) == 2097151
    buf.seek(1)
    assert dec.decode_amf3_integer(buf, False) == 2097151


def test_decode_negative_integer():
    assert Amf3Decoder().decode_amf3(io.BytesIO(b"\x04\xff\xff\xff\xff")) == -1


def test_decode_double():
    buf = io.BytesIO(b"\x05\x3f\xf3\x33\x33\x33\x33\x33\x33")
    assert Amf3Decoder().decode_amf3(buf) == 1.2


def test_decode_string():
    assert Amf3Decoder().decode_amf3(io.BytesIO(b"\x06\x07foo")) == "foo"


def test_decode_string_reference():
    dec = Amf3Decoder()
    buf = io.BytesIO(b"\x06\x07foo\x06\x00")
    assert dec.decode_amf3(buf) == "foo"
    assert dec.decode_amf3(buf) == "foo"


def test_bad_string_reference_raises():
    with pytest.raises(AmfError):
        Amf3Decoder().decode_amf3(io.BytesIO(b"\x06\x02"))


def test_decode_array():
    data = b"\x09\x13\x01" + b"".join(b"\x06\x03" + str(i).encode() for i in range(1, 10))
    got = Amf3Decoder().decode_amf3_array(io.BytesIO(data), True)
    assert got == ["1", "2", "3", "4", "5", "6", "7", "8", "9"]


def test_associative_array_rejected():
    with pytest.raises(AmfError, match="associative"):
        Amf3Decoder().decode_amf3(io.BytesIO(b"\x09\x03\x03k\x04\x01"))


def test_decode_object():
    got = Amf3Decoder().decode_amf3(io.BytesIO(ASCLASS_OBJECT))
    assert got == {"foo": "bar", "baz": None}


def test_decode_object_with_trait_reference():
    dec = Amf3Decoder()
    buf = io.BytesIO(ASCLASS_OBJECT + b"\x0a\x01\x04\x01\x02")
    assert dec.decode_amf3(buf) == {"foo": "bar", "baz": None}
    assert dec.decode_amf3(buf) == {"baz": 1, "foo": False}


def test_decode_object_reference():
    dec = Amf3Decoder()
    buf = io.BytesIO(ASCLASS_OBJECT + b"\x0a\x00")
    first = dec.decode_amf3(buf)
    assert dec.decode_amf3(buf) is first


def test_decode_dynamic_object():
    buf = io.BytesIO(b"\x0a\x0b\x01\x03a\x04\x05\x01")
    assert Amf3Decoder().decode_amf3(buf) == {"a": 5}


def test_decode_date_and_reference():
    dec = Amf3Decoder()
    buf = io.BytesIO(b"\x08\x01" + struct.pack(">d", 1_000_500.0) + b"\x08\x00")
    expected = datetime.datetime(1970, 1, 1, 0, 16, 40, tzinfo=datetime.timezone.utc)
    assert dec.decode_amf3(buf) == expected
    assert dec.decode_amf3(buf) == expected


def test_decode_byte_array():
    expect = b"\x01\x02\x03\x04\x05\x00"
    got = Amf3Decoder().decode_amf3_byte_array(io.BytesIO(b"\x0c\x0d" + expect), True)
    assert got == expect


def test_decode_xml_string():
    assert Amf3Decoder().decode_amf3(io.BytesIO(b"\x0b\x07abc")) == "abc"


def test_decode_xml_wrong_marker():
    with pytest.raises(AmfError, match="expected 7 or 11"):
        Amf3Decoder().decode_amf3_xml(io.BytesIO(b"\x06\x07abc"), True)


def test_external_handler():
    dec = Amf3Decoder()
    dec.register_external_handler("ext", lambda d, stream: read_byte(stream))
    assert dec.decode_amf3(io.BytesIO(b"\x0a\x07\x07ext\x2a")) == 42


def test_external_without_handler_raises():
    with pytest.raises(AmfError, match="no handler"):
        Amf3Decoder().decode_amf3(io.BytesIO(b"\x0a\x07\x07ext\x2a"))


def test_array_collection():
    name = b"flex.messaging.io.ArrayCollection"
    data = b"\x0a\x07" + bytes([(len(name) << 1) | 1]) + name + b"\x09\x03\x01\x04\x05"
    assert Amf3Decoder().decode_amf3(io.BytesIO(data)) == [5]


def test_acknowledge_message():
    data = b"\x0a\x07\x07DSK" + b"\x01\x06\x05hi" + b"\x00" + b"\x01\x03"
    got = Amf3Decoder().decode_amf3(io.BytesIO(data))
    assert got == {"body": "hi", "extra_0_0": True}


def test_async_message():
    data = b"\x0a\x07\x07DSA" + b"\x00" + b"\x01\x06\x07cid"
    got = Amf3Decoder().decode_amf3(io.BytesIO(data))
    assert got == {"correlationId": "cid"}


def test_unsupported_marker():
    with pytest.raises(AmfError, match="unsupported type 13"):
        Amf3Decoder().decode_amf3(io.BytesIO(b"\x0d"))


def test_truncated_double():
    with pytest.raises(AmfError):
        Amf3Decoder().decode_amf3(io.BytesIO(b"\x05\x3f\xf3"))


def test_marker_mismatch():
    with pytest.raises(AmfError, match="expected 4 got 5"):
        Amf3Decoder().decode_amf3_integer(io.BytesIO(b"\x05\x01"), True)