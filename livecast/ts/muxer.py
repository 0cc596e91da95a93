"""Packing audio/video packets into 188-byte MPEG-TS packets."""

from __future__ import annotations

from typing import BinaryIO

from livecast.av import Packet
from livecast.ts.crc import gen_crc32

TS_DEFAULT_DATA_LEN = 184
TS_PACKET_LEN = 188
H264_DEFAULT_HZ = 90

VIDEO_PID = 0x100
AUDIO_PID = 0x101
VIDEO_SID = 0xE0
AUDIO_SID = 0xC0


def _write_ts(fb: int, ts: int) -> bytes:
    if ts > 0x1FFFFFFFF:
        ts -= 0x1FFFFFFFF
    first = ((fb << 4) | (((ts >> 30) & 0x07) << 1) | 1) & 0xFF
    middle = (((ts >> 15) & 0x7FFF) << 1) | 1
    last = ((ts & 0x7FFF) << 1) | 1
    return bytes((first, (middle >> 8) & 0xFF, middle & 0xFF, (last >> 8) & 0xFF, last & 0xFF))


def _pes_header(is_video: bool, data_len: int, pts: int, dts: int) -> bytes:
    with_dts = is_video and pts != dts
    flag = 0x80 | (0x40 if with_dts else 0)
    header_size = 10 if with_dts else 5
    size = data_len + header_size + 3
    if size > 0xFFFF:
        size = 0
    sid = VIDEO_SID if is_video else AUDIO_SID
    out = bytearray((0x00, 0x00, 0x01, sid, size >> 8, size & 0xFF, 0x80, flag, header_size))
    out += _write_ts(flag >> 6, pts)
    if with_dts:
        out += _write_ts(1, dts)
    return bytes(out)


def _pcr_bytes(pcr: int) -> bytes:
    return bytes(
        (
            (pcr >> 25) & 0xFF,
            (pcr >> 17) & 0xFF,
            (pcr >> 9) & 0xFF,
            (pcr >> 1) & 0xFF,
            (((pcr & 0x1) << 7) | 0x7E) & 0xFF,
            0x00,
        )
    )


def _put(buf: bytearray, offset: int, data: bytes) -> None:
    """Copy as much of ``data`` as fits into ``buf`` at ``offset``."""
    if offset >= len(buf):
        return
    n = min(len(data), len(buf) - offset)
    buf[offset : offset + n] = data[:n]


def _adaptation_init(buf: bytearray, start: int, remain: int) -> None:
    _put(buf, start, bytes(((remain - 1) & 0xFF,)))
    if remain != 1:
        _put(buf, start + 1, b"\x00")
        if start + 2 < len(buf):
            buf[start + 2 :] = b"\xff" * (len(buf) - start - 2)


def _with_crc(section: bytes) -> bytes:
    return section + gen_crc32(section).to_bytes(4, "big")


def _pad(data: bytes) -> bytes:
    return data + b"\xff" * (TS_PACKET_LEN - len(data))


class Muxer:
    """Stateful TS muxer tracking a continuity counter per stream and table."""

    def __init__(self) -> None:
        self._video_cc = 0
        self._audio_cc = 0
        self._pat_cc = 0
        self._pmt_cc = 0
        self._ts_packet = bytearray(TS_PACKET_LEN)

    def mux(self, packet: Packet, writer: BinaryIO | None = None) -> int:
        """Split one packet into TS packets written to ``writer``; return their count."""
        data = bytes(packet.data)
        first = True
        w_bytes = 0
        pes_index = 0
        dts = packet.timestamp * H264_DEFAULT_HZ
        pts = dts
        pid = AUDIO_PID
        header = None
        if packet.is_video:
            pid = VIDEO_PID
            header = packet.header
            pts = dts + header.composition_time * H264_DEFAULT_HZ
        pes = _pes_header(packet.is_video, len(data), pts, dts)
        pes_header_len = len(pes)
        remaining = len(data) + pes_header_len
        pkt = self._ts_packet
        count = 0

        while remaining > 0:
            before = remaining
            if packet.is_video:
                self._video_cc = (self._video_cc + 1) & 0x0F
                cc = self._video_cc
            else:
                self._audio_cc = (self._audio_cc + 1) & 0x0F
                cc = self._audio_cc

            pkt[0] = 0x47
            pkt[1] = ((pid >> 8) | (0x40 if first else 0)) & 0xFF
            pkt[2] = pid & 0xFF
            pkt[3] = 0x10 | cc
            i = 4

            # A key frame carries the PCR in its first packet.
            if first and packet.is_video and header.is_key_frame():
                pkt[3] |= 0x20
                pkt[4] = 7
                pkt[5] = 0x50
                i = 6
                _put(pkt, i, _pcr_bytes(dts))
                i += 6

            if remaining >= TS_DEFAULT_DATA_LEN:
                data_len = TS_DEFAULT_DATA_LEN
                if first:
                    data_len = (data_len - (i - 4)) & 0xFF
            else:
                pkt[3] |= 0x20
                data_len = remaining & 0xFF
                if first:
                    remain = (TS_DEFAULT_DATA_LEN - data_len - (i - 4)) & 0xFF
                else:
                    remain = (TS_DEFAULT_DATA_LEN - data_len) & 0xFF
                _adaptation_init(pkt, i, remain)
                i = (i + remain) & 0xFF

            if first and i < TS_PACKET_LEN and pes_header_len > 0:
                tmp = min(TS_PACKET_LEN - i, pes_header_len)
                _put(pkt, i, pes[pes_index : pes_index + tmp])
                i = (i + tmp) & 0xFF
                remaining -= tmp
                data_len = (data_len - tmp) & 0xFF
                pes_header_len -= tmp
                pes_index += tmp

            if i < TS_PACKET_LEN:
                data_len = min(data_len, TS_PACKET_LEN - i)
                if w_bytes + data_len > len(data):
                    raise ValueError("ts mux: payload layout runs past the packet data")
                _put(pkt, i, data[w_bytes : w_bytes + data_len])
                w_bytes += data_len
                remaining -= data_len

            if remaining >= before:
                raise ValueError("ts mux: no payload fits into the transport packet")
            if writer is not None:
                writer.write(bytes(pkt))
            count += 1
            first = False
        return count

    def pat(self) -> bytes:
        """Return the next Program Association Table packet."""
        ts_header = bytearray((0x47, 0x40, 0x00, 0x10, 0x00))
        pat_header = bytes((0x00, 0xB0, 0x0D, 0x00, 0x01, 0xC1, 0x00, 0x00, 0x00, 0x01, 0xF0, 0x01))
        if self._pat_cc > 0x0F:
            self._pat_cc = 0
        ts_header[3] |= self._pat_cc & 0x0F
        self._pat_cc += 1
        return _pad(bytes(ts_header) + _with_crc(pat_header))

    def pmt(self, sound_format: int, has_video: bool) -> bytes:
        """Return the next Program Map Table packet for the given streams."""
        ts_header = bytearray((0x47, 0x50, 0x01, 0x10, 0x00))
        pmt_header = bytearray((0x02, 0xB0, 0xFF, 0x00, 0x01, 0xC1, 0x00, 0x00, 0xE1, 0x00, 0xF0, 0x00))
        if has_video:
            prog_info = bytearray(
                (0x1B, 0xE1, 0x00, 0xF0, 0x00, 0x0F, 0xE1, 0x01, 0xF0, 0x00)
            )
        else:
            pmt_header[9] = 0x01
            prog_info = bytearray((0x0F, 0xE1, 0x01, 0xF0, 0x00))
        pmt_header[2] = (len(prog_info) + 9 + 4) & 0xFF

        if self._pmt_cc > 0x0F:
            self._pmt_cc = 0
        ts_header[3] |= self._pmt_cc & 0x0F
        self._pmt_cc += 1

        # MP3 streams use stream type 0x04 instead of AAC's 0x0f.
        if sound_format in (2, 14):
            prog_info[5 if has_video else 0] = 0x04

        return _pad(bytes(ts_header) + _with_crc(bytes(pmt_header) + bytes(prog_info)))