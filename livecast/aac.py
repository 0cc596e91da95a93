"""AAC audio: reads the AudioSpecificConfig and wraps raw frames in ADTS."""

from __future__ import annotations

from typing import BinaryIO

from livecast.av import AAC_RAW, AAC_SEQHDR

_AAC_RATES = (96000, 88200, 64000, 48000, 44100, 32000, 24000, 22050, 16000, 12000, 11025, 8000, 7350)
_ADTS_HEADER_LEN = 7


class AacError(ValueError):
    """Malformed AAC input."""


class AacParser:
    """Turns FLV AAC payloads into an ADTS stream."""

    def __init__(self) -> None:
        self._have_specific = False
        self.object_type = 0
        self.sample_rate_index = 0
        self.channel = 0

    def _specific_info(self, data: bytes) -> None:
        if len(data) < 2:
            raise AacError("audio mpegspecific error")
        self._have_specific = True
        self.object_type = data[0] >> 3
        self.sample_rate_index = ((data[0] & 0x07) << 1) | (data[1] >> 7)
        self.channel = (data[1] >> 3) & 0x0F

    def _adts_header(self, payload_len: int) -> bytes:
        frame_len = (payload_len + _ADTS_HEADER_LEN) & 0xFFFF
        return bytes(
            (
                0xFF,
                0xF1,
                ((((self.object_type - 1) & 0xFF) << 6) | (self.sample_rate_index << 2)) & 0xFF,
                ((self.channel << 6) & 0xFF) | (((frame_len << 3) & 0xFFFF) >> 14),
                ((frame_len << 5) & 0xFFFF) >> 8,
                ((frame_len & 0x07) << 5) | 0x1F,
                0xFC,
            )
        )

    def _adts(self, data: bytes, writer: BinaryIO) -> None:
        if not data or not self._have_specific:
            raise AacError("audiodata  invalid")
        writer.write(self._adts_header(len(data)))
        writer.write(data)

    def parse(self, data: bytes, packet_type: int, writer: BinaryIO) -> None:
        """Handle a sequence header or write a raw frame as ADTS to ``writer``."""
        if packet_type == AAC_SEQHDR:
            self._specific_info(data)
        elif packet_type == AAC_RAW:
            self._adts(data, writer)

    def sample_rate(self) -> int:
        if self.sample_rate_index < len(_AAC_RATES):
            return _AAC_RATES[self.sample_rate_index]
        return 44100