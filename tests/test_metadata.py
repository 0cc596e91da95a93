import io

import pytest

from livecast.amf.core import AMF0, AmfError
from livecast.amf.decoder import Decoder
from livecast.amf.encoder import Encoder
from livecast.amf.metadata import ADD, DEL, ON_METADATA, SET_DATA_FRAME, metadata_reform


def _payload():
    buf = io.BytesIO()
    Encoder().encode_batch(buf, AMF0, ON_METADATA, {"width": 640.0, "height": 480.0})
    return buf.getvalue()


def test_add_prepends_set_data_frame_bytes():
    payload = _payload()
    assert metadata_reform(payload, ADD) == b"\x02\x00\x0d@setDataFrame" + payload


def test_added_payload_decodes_in_order():
    result = metadata_reform(_payload(), ADD)
    values = Decoder().decode_batch(io.BytesIO(result), AMF0)
    assert values == [SET_DATA_FRAME, ON_METADATA, {"width": 640.0, "height": 480.0}]


def test_add_is_idempotent():
    once = metadata_reform(_payload(), ADD)
    assert metadata_reform(once, ADD) == once


def test_delete_reverses_add():
    payload = _payload()
    assert metadata_reform(metadata_reform(payload, ADD), DEL) == payload


def test_delete_without_prefix_is_unchanged():
    payload = _payload()
    assert metadata_reform(payload, DEL) == payload


@pytest.mark.parametrize("flag", [ADD, DEL])
def test_non_string_first_value_raises(flag):
    buf = io.BytesIO()
    Encoder().encode(buf, 1.0, AMF0)
    with pytest.raises(AmfError):
        metadata_reform(buf.getvalue(), flag)


@pytest.mark.parametrize("flag", [ADD, DEL])
def test_empty_data_raises(flag):
    with pytest.raises(AmfError):
        metadata_reform(b"", flag)


def test_invalid_flag_raises():
    with pytest.raises(ValueError, match="invalid flag"):
        metadata_reform(_payload(), 1)