import io
import threading

import pytest

from livecast.amf.core import AMF0
from livecast.amf.encoder import Encoder
from livecast.av import TAG_AUDIO, TAG_SCRIPTDATAAMF0, TAG_VIDEO, Info, Packet
from livecast.flv.writer import FLV_HEADER, FlvWriter, write_flv

FILE_START = b"FLV\x01\x05\x00\x00\x00\x09\x00\x00\x00\x00"


class _KeepOpen(io.BytesIO):
    def close(self):
        self.was_closed = True


def _tags(raw):
    pos = len(FILE_START)
    tags = []
    while pos < len(raw):
        head = raw[pos : pos + 11]
        size = int.from_bytes(head[1:4], "big")
        ts = int.from_bytes(head[4:7], "big") | (head[7] << 24)
        payload = raw[pos + 11 : pos + 11 + size]
        prev = int.from_bytes(raw[pos + 11 + size : pos + 15 + size], "big")
        tags.append((head[0], ts, head[8:11], payload, prev))
        pos += 15 + size
    return tags


def _writer(buf=None):
    buf = buf if buf is not None else _KeepOpen()
    return FlvWriter("live", "room", "rtmp://localhost/live/room", buf), buf


def test_file_starts_with_header_and_zero_previous_size():
    _, buf = _writer()
    assert buf.getvalue() == FILE_START
    assert buf.getvalue()[:9] == FLV_HEADER


def test_video_tag_layout():
    writer, buf = _writer()
    data = b"\x17\x01\x00\x00\x00\x01\x02"
    writer.write(Packet(is_video=True, timestamp=0x01020304, data=data))
    (tag,) = _tags(buf.getvalue())
    type_id, ts, stream_id, payload, prev = tag
    assert type_id == TAG_VIDEO
    assert ts == 0x01020304
    assert stream_id == b"\x00\x00\x00"
    assert payload == data
    assert prev == len(data) + 11
    assert writer.last_video_timestamp == 0x01020304


def test_audio_tag_and_base_timestamp():
    writer, buf = _writer()
    writer.base_timestamp = 100
    writer.write(Packet(is_audio=True, timestamp=5, data=b"\xaf\x01\x21"))
    (tag,) = _tags(buf.getvalue())
    assert tag[0] == TAG_AUDIO
    assert tag[1] == 105
    assert writer.last_audio_timestamp == 105
    writer.calc_base_timestamp()
    assert writer.base_timestamp == 105


def test_metadata_loses_set_data_frame_prefix():
    enc = Encoder()
    body = io.BytesIO()
    enc.encode(body, "onMetaData", AMF0)
    enc.encode(body, {"width": 640.0}, AMF0)
    full = io.BytesIO()
    enc.encode(full, "@setDataFrame", AMF0)
    full.write(body.getvalue())

    writer, buf = _writer()
    packet = Packet(is_metadata=True, data=full.getvalue())
    writer.write(packet)
    (tag,) = _tags(buf.getvalue())
    assert tag[0] == TAG_SCRIPTDATAAMF0
    assert tag[3] == body.getvalue()
    assert packet.data == body.getvalue()


def test_several_tags_in_order():
    writer, buf = _writer()
    for ts in (0, 40, 80):
        writer.write(Packet(is_video=True, timestamp=ts, data=b"\x27\x01\x00\x00\x00"))
    assert [t[1] for t in _tags(buf.getvalue())] == [0, 40, 80]


def test_info_and_alive():
    writer, _ = _writer()
    info = writer.info()
    assert info.key == "live/room"
    assert info.url == "rtmp://localhost/live/room"
    assert info.uid == writer.uid
    assert writer.alive() is True


def test_wait_times_out_then_returns_after_close():
    writer, buf = _writer()
    assert writer.wait(0.01) is False
    threading.Timer(0.05, writer.close, args=(None,)).start()
    assert writer.wait(5) is True
    assert buf.was_closed is True


def test_write_flv_records_into_file(tmp_path):
    target = tmp_path / "out.flv"
    data = b"\x17\x01\x00\x00\x00\xaa"

    class Handler:
        def handle_writer(self, writer):
            writer.write(Packet(is_video=True, timestamp=5, data=data))
            writer.close(None)

    write_flv(Handler(), Info(key="live/room", url="rtmp://localhost/live/room"), target)
    raw = target.read_bytes()
    assert raw[: len(FILE_START)] == FILE_START
    tags = _tags(raw)
    assert [(t[0], t[1], t[3]) for t in tags] == [(TAG_VIDEO, 5, data)]


def test_write_flv_rejects_key_without_slash(tmp_path):
    class Handler:
        def handle_writer(self, writer):
            raise AssertionError("must not be called")

    with pytest.raises(ValueError):
        write_flv(Handler(), Info(key="noslash"), tmp_path / "out.flv")
    assert not (tmp_path / "out.flv").exists()