"""Media packet model, stream info and the read/write timestamp base."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Any

TAG_AUDIO = 8
TAG_VIDEO = 9
TAG_SCRIPTDATAAMF0 = 18
TAG_SCRIPTDATAAMF3 = 0xF

METADATA_AMF0 = 0x12
METADATA_AMF3 = 0xF

SOUND_MP3 = 2
SOUND_NELLYMOSER_16KHZ_MONO = 4
SOUND_NELLYMOSER_8KHZ_MONO = 5
SOUND_NELLYMOSER = 6
SOUND_ALAW = 7
SOUND_MULAW = 8
SOUND_AAC = 10
SOUND_SPEEX = 11

SOUND_5_5KHZ = 0
SOUND_11KHZ = 1
SOUND_22KHZ = 2
SOUND_44KHZ = 3

SOUND_8BIT = 0
SOUND_16BIT = 1

SOUND_MONO = 0
SOUND_STEREO = 1

AAC_SEQHDR = 0
AAC_RAW = 1

AVC_SEQHDR = 0
AVC_NALU = 1
AVC_EOS = 2

FRAME_KEY = 1
FRAME_INTER = 2

VIDEO_H264 = 7

PUBLISH = "publish"
PLAY = "play"


@dataclass
class Packet:
    """One audio, video or metadata packet; ``timestamp`` is the DTS."""

    is_audio: bool = False
    is_video: bool = False
    is_metadata: bool = False
    timestamp: int = 0
    stream_id: int = 0
    header: Any = None
    data: bytes = b""


@dataclass
class Info:
    """Identity of a stream reader or writer."""

    key: str = ""
    url: str = ""
    uid: str = ""
    inter: bool = False

    def is_interval(self) -> bool:
        return self.inter

    def __str__(self) -> str:
        inter = "true" if self.inter else "false"
        return f"<key: {self.key}, URL: {self.url}, UID: {self.uid}, Inter: {inter}>"


class RWBase:
    """Timestamp bookkeeping and liveness tracking shared by readers and writers.

    ``timeout`` is given in seconds.
    """

    def __init__(self, timeout: float) -> None:
        self._lock = threading.Lock()
        self.timeout = timeout
        self.pre_time = time.monotonic()
        self.base_timestamp = 0
        self.last_video_timestamp = 0
        self.last_audio_timestamp = 0

    def calc_base_timestamp(self) -> None:
        """Make the later of the last audio and video timestamps the new base."""
        self.base_timestamp = max(self.last_audio_timestamp, self.last_video_timestamp)

    def rec_timestamp(self, timestamp: int, type_id: int) -> None:
        """Remember the last timestamp seen for a video or audio tag."""
        if type_id == TAG_VIDEO:
            self.last_video_timestamp = timestamp
        elif type_id == TAG_AUDIO:
            self.last_audio_timestamp = timestamp

    def set_pre_time(self) -> None:
        with self._lock:
            self.pre_time = time.monotonic()

    def alive(self) -> bool:
        with self._lock:
            return not (time.monotonic() - self.pre_time >= self.timeout)