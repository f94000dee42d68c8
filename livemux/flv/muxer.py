"""Writing packets out as an FLV file, and recording streams to disk."""

from __future__ import annotations

import logging
import os
import threading
import time
import uuid
from typing import BinaryIO, Callable

from livemux.amf.metadata import DEL, metadata_reform
from livemux.av import TAG_AUDIO, TAG_SCRIPTDATAAMF0, TAG_VIDEO, Info, Packet, RWBase
from livemux.configure import Config

log = logging.getLogger("livemux")

FLV_HEADER = bytes((0x46, 0x4C, 0x56, 0x01, 0x05, 0x00, 0x00, 0x00, 0x09))
HEADER_LEN = 11
WRITER_TIMEOUT = 10.0
DEFAULT_FLV_DIR = "tmp"


class FlvWriter(RWBase):
    """Writes packets as FLV tags to a binary file object."""

    def __init__(
        self,
        app: str,
        title: str,
        url: str,
        ctx: BinaryIO,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__(WRITER_TIMEOUT, clock)
        self.uid = uuid.uuid4().hex
        self.app = app
        self.title = title
        self.url = url
        self._ctx = ctx
        self._closed = threading.Event()
        self._closed_writer = False
        ctx.write(FLV_HEADER)
        ctx.write(bytes(4))

    def write(self, packet: Packet) -> None:
        """Write one packet as an FLV tag followed by the previous-tag size."""
        self.set_pre_time()
        type_id = TAG_VIDEO
        if not packet.is_video:
            if packet.is_metadata:
                type_id = TAG_SCRIPTDATAAMF0
                packet.data = metadata_reform(packet.data, DEL)
            else:
                type_id = TAG_AUDIO
        data = bytes(packet.data)
        timestamp = (packet.timestamp + self.base_timestamp) & 0xFFFFFFFF
        self.rec_timestamp(timestamp, type_id)

        header = (
            bytes((type_id,))
            + (len(data) & 0xFFFFFF).to_bytes(3, "big")
            + (timestamp & 0xFFFFFF).to_bytes(3, "big")
            + bytes(((timestamp >> 24) & 0xFF,))
            + bytes(3)
        )
        self._ctx.write(header)
        self._ctx.write(data)
        self._ctx.write(((len(data) + HEADER_LEN) & 0xFFFFFFFF).to_bytes(4, "big"))

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the writer is closed; return False if ``timeout`` ran out first."""
        return self._closed.wait(timeout)

    def close(self, error: BaseException | None = None) -> None:
        """Close the underlying file once; later calls do nothing."""
        if self._closed_writer:
            return
        self._closed_writer = True
        self._ctx.close()
        self._closed.set()

    def info(self) -> Info:
        return Info(key=f"{self.app}/{self.title}", url=self.url, uid=self.uid)


class FlvDvr:
    """Creates FLV writers that record streams under the configured directory."""

    def __init__(self, config: Config | None = None) -> None:
        self._config = config

    def _flv_dir(self) -> str:
        if self._config is None:
            return DEFAULT_FLV_DIR
        value = self._config.get("flv_dir", DEFAULT_FLV_DIR)
        return DEFAULT_FLV_DIR if value is None else str(value)

    def get_writer(self, info: Info) -> FlvWriter | None:
        """Open ``<flv_dir>/<app>/<name>_<unix time>.flv``; return None on failure."""
        paths = info.key.split("/", 1)
        if len(paths) != 2:
            log.warning("invalid info")
            return None

        flv_dir = self._flv_dir()
        try:
            os.makedirs(os.path.join(flv_dir, paths[0]), mode=0o755, exist_ok=True)
        except OSError as exc:
            log.error("mkdir error: %s", exc)
            return None

        file_name = f"{os.path.join(flv_dir, info.key)}_{int(time.time())}.flv"
        log.debug("flv dvr save stream to: %s", file_name)
        try:
            fd = os.open(file_name, os.O_CREAT | os.O_RDWR, 0o755)
            ctx = os.fdopen(fd, "r+b")
        except OSError as exc:
            log.error("open file error: %s", exc)
            return None

        writer = FlvWriter(paths[0], paths[1], info.url, ctx)
        log.debug("new flv dvr: %s", writer.info())
        return writer