"""FLV audio/video tag headers and the demuxer that strips them."""

from __future__ import annotations

from dataclasses import dataclass

from livecast.av import AVC_SEQHDR, FRAME_INTER, FRAME_KEY, SOUND_AAC, VIDEO_H264, Packet


class AvcEndSequence(Exception):
    """The packet is an AVC end-of-sequence marker."""

    def __init__(self) -> None:
        super().__init__("avc end sequence")


@dataclass
class Tag:
    """Fields of an FLV audio or video data header."""

    sound_format: int = 0
    sound_rate: int = 0
    sound_size: int = 0
    sound_type: int = 0
    aac_packet_type: int = 0
    frame_type: int = 0
    codec_id: int = 0
    avc_packet_type: int = 0
    composition_time: int = 0

    def is_key_frame(self) -> bool:
        return self.frame_type == FRAME_KEY

    def is_seq(self) -> bool:
        """True for an AVC sequence header."""
        return self.frame_type == FRAME_KEY and self.avc_packet_type == AVC_SEQHDR

    def parse_media_tag_header(self, data: bytes, is_video: bool) -> int:
        """Parse the header at the start of ``data``; return its length in bytes."""
        if is_video:
            return self._parse_video_header(data)
        return self._parse_audio_header(data)

    def _parse_audio_header(self, data: bytes) -> int:
        if len(data) < 1:
            raise ValueError(f"invalid audiodata len={len(data)}")
        flags = data[0]
        self.sound_format = flags >> 4
        self.sound_rate = (flags >> 2) & 0x3
        self.sound_size = (flags >> 1) & 0x1
        self.sound_type = flags & 0x1
        if self.sound_format != SOUND_AAC:
            return 1
        if len(data) < 2:
            raise ValueError(f"invalid audiodata len={len(data)}")
        self.aac_packet_type = data[1]
        return 2

    def _parse_video_header(self, data: bytes) -> int:
        if len(data) < 5:
            raise ValueError(f"invalid videodata len={len(data)}")
        flags = data[0]
        self.frame_type = flags >> 4
        self.codec_id = flags & 0xF
        if self.frame_type not in (FRAME_INTER, FRAME_KEY):
            return 1
        self.avc_packet_type = data[1]
        self.composition_time = int.from_bytes(data[2:5], "big")
        return 5


class Demuxer:
    """Parses FLV media headers into ``Packet.header``."""

    def demux_header(self, packet: Packet) -> None:
        """Attach the parsed header, leaving the payload untouched."""
        tag = Tag()
        tag.parse_media_tag_header(packet.data, packet.is_video)
        packet.header = tag

    def demux(self, packet: Packet) -> None:
        """Attach the parsed header and strip it from the payload."""
        tag = Tag()
        n = tag.parse_media_tag_header(packet.data, packet.is_video)
        if tag.codec_id == VIDEO_H264 and packet.data[0] == 0x17 and packet.data[1] == 0x02:
            raise AvcEndSequence()
        packet.header = tag
        packet.data = packet.data[n:]