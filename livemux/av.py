"""Media packet model, stream identity and the read/write timestamp base."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Protocol, runtime_checkable

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


@runtime_checkable
class AudioPacketHeader(Protocol):
    """Header fields of an audio tag."""

    def sound_format(self) -> int: ...

    def aac_packet_type(self) -> int: ...


@runtime_checkable
class VideoPacketHeader(Protocol):
    """Header fields of a video tag."""

    def is_key_frame(self) -> bool: ...

    def is_seq(self) -> bool: ...

    def codec_id(self) -> int: ...

    def composition_time(self) -> int: ...


@dataclass
class Packet:
    """One audio, video or metadata unit; ``timestamp`` is the decoding time in ms."""

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
        """Return whether the stream is an internal one."""
        return self.inter

    def __str__(self) -> str:
        inter = "true" if self.inter else "false"
        return f"<key: {self.key}, URL: {self.url}, UID: {self.uid}, Inter: {inter}>"


class RWBase:
    """Tracks last audio/video timestamps and liveness of a stream endpoint.

    ``timeout`` is in seconds; ``clock`` returns the current time in seconds.
    """

    def __init__(self, timeout: float, clock: Callable[[], float] = time.monotonic) -> None:
        self._lock = threading.Lock()
        self._clock = clock
        self.timeout = timeout
        self.pre_time = clock()
        self.base_timestamp = 0
        self.last_video_timestamp = 0
        self.last_audio_timestamp = 0

    def calc_base_timestamp(self) -> None:
        """Make the later of the last audio and video timestamps the new base."""
        if self.last_audio_timestamp > self.last_video_timestamp:
            self.base_timestamp = self.last_audio_timestamp
        else:
            self.base_timestamp = self.last_video_timestamp

    def rec_timestamp(self, timestamp: int, type_id: int) -> None:
        """Remember ``timestamp`` as the last one of a video or audio tag."""
        if type_id == TAG_VIDEO:
            self.last_video_timestamp = timestamp
        elif type_id == TAG_AUDIO:
            self.last_audio_timestamp = timestamp

    def set_pre_time(self) -> None:
        """Mark the endpoint as active now."""
        with self._lock:
            self.pre_time = self._clock()

    def alive(self) -> bool:
        """Return whether the endpoint was active within the timeout."""
        with self._lock:
            return self._clock() - self.pre_time < self.timeout