"""Adding and removing the @setDataFrame prefix of script-data metadata."""

from __future__ import annotations

import io

from livecast.amf.core import AMF0, AmfError
from livecast.amf.decoder import Decoder
from livecast.amf.encoder import Encoder

ADD = 0x0
DEL = 0x3

SET_DATA_FRAME = "@setDataFrame"
ON_METADATA = "onMetaData"


def _encoded_set_data_frame() -> bytes:
    buf = io.BytesIO()
    Encoder().encode(buf, SET_DATA_FRAME, AMF0)
    return buf.getvalue()


_SET_DATA_FRAME_BYTES = _encoded_set_data_frame()


def metadata_reform(data: bytes, flag: int) -> bytes:
    """Prepend (``ADD``) or strip (``DEL``) the encoded @setDataFrame string."""
    if flag not in (ADD, DEL):
        raise ValueError(f"invalid flag:{flag}")
    data = bytes(data)
    first = Decoder().decode(io.BytesIO(data), AMF0)
    if not isinstance(first, str):
        raise AmfError("setFrameFrame error" if flag == ADD else "metadata error")
    if flag == ADD:
        if first == SET_DATA_FRAME:
            return data
        return _SET_DATA_FRAME_BYTES + data
    if first == SET_DATA_FRAME:
        return data[len(_SET_DATA_FRAME_BYTES):]
    return data