"""Writing a live stream out as an FLV file."""

from __future__ import annotations

import logging
import os
import threading
import uuid
from pathlib import Path
from typing import BinaryIO, Protocol

from livecast.amf.metadata import DEL, metadata_reform
from livecast.av import TAG_AUDIO, TAG_SCRIPTDATAAMF0, TAG_VIDEO, Info, Packet, RWBase

log = logging.getLogger(__name__)

FLV_HEADER = bytes((0x46, 0x4C, 0x56, 0x01, 0x05, 0x00, 0x00, 0x00, 0x09))
_TAG_HEADER_LEN = 11
_WRITER_TIMEOUT = 10.0
DEFAULT_FLV_PATH = "./out.flv"


class WriterHandler(Protocol):
    """Something that takes over a writer and feeds it packets."""

    def handle_writer(self, writer: FlvWriter) -> None: ...


class FlvWriter(RWBase):
    """Writes packets as FLV tags to a binary file object."""

    def __init__(self, app: str, title: str, url: str, file: BinaryIO) -> None:
        super().__init__(_WRITER_TIMEOUT)
        self.uid = uuid.uuid4().hex
        self.app = app
        self.title = title
        self.url = url
        self.file = file
        self._closed = threading.Event()
        file.write(FLV_HEADER)
        file.write((0).to_bytes(4, "big"))

    def write(self, packet: Packet) -> None:
        """Write one packet as a tag; metadata loses its @setDataFrame prefix."""
        self.set_pre_time()
        type_id = TAG_VIDEO
        if not packet.is_video:
            if packet.is_metadata:
                type_id = TAG_SCRIPTDATAAMF0
                packet.data = metadata_reform(packet.data, DEL)
            else:
                type_id = TAG_AUDIO
        data = bytes(packet.data)
        data_len = len(data)
        timestamp = (packet.timestamp + self.base_timestamp) & 0xFFFFFFFF
        self.rec_timestamp(timestamp, type_id)

        header = bytearray(_TAG_HEADER_LEN)
        header[0] = type_id
        header[1:4] = (data_len & 0xFFFFFF).to_bytes(3, "big")
        header[4:7] = (timestamp & 0xFFFFFF).to_bytes(3, "big")
        header[7] = (timestamp >> 24) & 0xFF

        self.file.write(bytes(header))
        self.file.write(data)
        self.file.write(((data_len + _TAG_HEADER_LEN) & 0xFFFFFFFF).to_bytes(4, "big"))

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the writer is closed; False if ``timeout`` ran out first."""
        return self._closed.wait(timeout)

    def close(self, error: BaseException | None = None) -> None:
        """Close the file and wake anyone waiting on this writer."""
        self.file.close()
        self._closed.set()

    def info(self) -> Info:
        return Info(key=f"{self.app}/{self.title}", url=self.url, uid=self.uid)


def write_flv(handler: WriterHandler, info: Info, path: str | Path = DEFAULT_FLV_PATH) -> None:
    """Record the stream named by ``info`` into ``path`` until the writer closes."""
    parts = info.key.split("/", 1)
    if len(parts) != 2:
        raise ValueError("invalid info")
    fd = os.open(path, os.O_CREAT | os.O_RDWR, 0o755)
    file = os.fdopen(fd, "r+b")
    writer = FlvWriter(parts[0], parts[1], info.url, file)
    handler.handle_writer(writer)
    writer.wait()
    log.info("close flv file")
    file.close()