"""MP3 audio: picks the sampling frequency out of the frame header."""

from __future__ import annotations

_MP3_RATES = (44100, 48000, 32000)


class Mp3Error(ValueError):
    """Malformed MP3 input."""


class Mp3Parser:
    """Tracks the sampling frequency of an MP3 stream."""

    def __init__(self) -> None:
        self._sampling_frequency = 0

    def parse(self, data: bytes) -> None:
        if len(data) < 3:
            raise Mp3Error("mp3data  invalid")
        index = (data[2] >> 2) & 0x3
        if index >= len(_MP3_RATES):
            raise Mp3Error("invalid rate index")
        self._sampling_frequency = _MP3_RATES[index]

    def sample_rate(self) -> int:
        if self._sampling_frequency == 0:
            self._sampling_frequency = 44100
        return self._sampling_frequency