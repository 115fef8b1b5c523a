"""Nintendo Opus container: header parsing, packet iteration and file building.

Handles the plain Switch Opus layout (a 'basic info' chunk followed by a
'data info' chunk of length-prefixed packets) and the Capcom variant that
wraps it in a 0x30-byte header.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Iterable, Iterator, Sequence

from .common import NxOpusError, warn

CHUNK_HEADER_ID = 0x80000001
CHUNK_DATA_ID = 0x80000004
OPUS_VERSION = 0
OGG_MAGIC = b"OggS"

ALLOWED_SAMPLE_RATES = (48000, 24000, 16000, 12000, 8000)
ALLOWED_CHANNEL_COUNTS = (1, 2)

CAPCOM_HEADER_SIZE = 0x30
CAPCOM_PRE_SKIP = 312
CAPCOM_FRAME_SIZE = 2880
CAPCOM_FIRST_FINAL_RANGE = 0xF0000000

DEFAULT_CONFIG_DATA = bytes(
    [0x00, 0x77, 0xC1, 0x02, 0x04, 0x00, 0x00, 0x00,
     0xE6, 0x07, 0x0C, 0x0E, 0x0D, 0x10, 0x23, 0x00]
)
DEFAULT_CRITICAL_BYTES = bytes([0x00, 0x02, 0xF8, 0x00, 0x80, 0xBB, 0x00, 0x00])

_HEADER = struct.Struct("<IIBBHIIIIHH")
_CHUNK = struct.Struct("<II")
_PACKET = struct.Struct(">II")
_U32 = struct.Struct("<I")


@dataclass
class OpusHeader:
    """The 'basic info' chunk at the start of a Nintendo Opus file."""

    channel_count: int
    sample_rate: int
    data_offset: int = _HEADER.size
    frame_size: int = 0
    pre_skip: int = 0
    context_offset: int = 0
    unk14: int = 0
    pad: int = 0
    version: int = OPUS_VERSION
    chunk_id: int = CHUNK_HEADER_ID
    chunk_size: int = _HEADER.size - 8

    SIZE = _HEADER.size

    @classmethod
    def parse(cls, data: bytes) -> "OpusHeader":
        """Read a header from the start of ``data``."""
        if len(data) < _HEADER.size:
            raise NxOpusError("OPUS file is too short to hold a header")
        (chunk_id, chunk_size, version, channels, frame_size, rate,
         data_offset, unk14, context_offset, pre_skip, pad) = _HEADER.unpack_from(data, 0)
        return cls(
            channel_count=channels,
            sample_rate=rate,
            data_offset=data_offset,
            frame_size=frame_size,
            pre_skip=pre_skip,
            context_offset=context_offset,
            unk14=unk14,
            pad=pad,
            version=version,
            chunk_id=chunk_id,
            chunk_size=chunk_size,
        )

    def pack(self) -> bytes:
        """Serialise the header to its 32-byte wire form."""
        try:
            return _HEADER.pack(
                self.chunk_id, self.chunk_size, self.version, self.channel_count,
                self.frame_size, self.sample_rate, self.data_offset, self.unk14,
                self.context_offset, self.pre_skip, self.pad,
            )
        except struct.error as exc:
            raise ValueError(f"header field out of range: {exc}") from exc


@dataclass(frozen=True)
class OpusPacket:
    """One encoded Opus packet with the encoder's final range."""

    data: bytes
    final_range: int = 0


def check_sample_rate(sample_rate: int) -> None:
    """Raise unless ``sample_rate`` is one Opus supports."""
    if sample_rate not in ALLOWED_SAMPLE_RATES:
        raise NxOpusError(
            f"Invalid OPUS sample rate ({sample_rate}hz); "
            "allowed sample rates are: 48000, 24000, 16000, 12000, and 8000"
        )


def check_channel_count(channel_count: int) -> None:
    """Raise unless ``channel_count`` is one or two."""
    if channel_count not in ALLOWED_CHANNEL_COUNTS:
        raise NxOpusError(
            f"Invalid OPUS channel count ({channel_count}); "
            "only one or two channels are allowed"
        )


def _data_chunk(data: bytes, header: OpusHeader) -> tuple[int, int]:
    start = header.data_offset
    if start + _CHUNK.size > len(data):
        raise NxOpusError("OPUS data chunk lies outside the file")
    chunk_id, chunk_size = _CHUNK.unpack_from(data, start)
    if chunk_id != CHUNK_DATA_ID:
        raise NxOpusError("OPUS data chunk ID is nonmatching")
    return start + _CHUNK.size, chunk_size


def validate_opus(data: bytes) -> OpusHeader:
    """Check a Nintendo Opus file and return its header."""
    if bytes(data[:4]) == OGG_MAGIC:
        raise NxOpusError("A Ogg Opus file was passed; please pass in a Nintendo Opus file.")
    header = OpusHeader.parse(data)
    if header.chunk_id != CHUNK_HEADER_ID:
        raise NxOpusError("OPUS file header ID is nonmatching")
    if header.context_offset != 0:
        warn("OPUS context is present but will be ignored")
    check_sample_rate(header.sample_rate)
    check_channel_count(header.channel_count)
    _data_chunk(data, header)
    return header


def iter_packets(data: bytes) -> Iterator[OpusPacket]:
    """Yield the packets stored in the data chunk of a Nintendo Opus file."""
    header = OpusHeader.parse(data)
    start, size = _data_chunk(data, header)
    offset = 0
    while offset < size:
        pos = start + offset
        if pos + _PACKET.size > len(data):
            raise NxOpusError("OPUS packet header is truncated")
        packet_size, final_range = _PACKET.unpack_from(data, pos)
        body_start = pos + _PACKET.size
        body = bytes(data[body_start:body_start + packet_size])
        if len(body) < packet_size:
            raise NxOpusError("OPUS packet data is truncated")
        offset += _PACKET.size + packet_size
        yield OpusPacket(body, final_range)


def split_frames(
    samples: Sequence[int], frame_size: int, channel_count: int
) -> Iterator[Sequence[int]]:
    """Yield complete interleaved frames; a trailing partial frame is dropped."""
    if frame_size <= 0 or channel_count <= 0:
        raise ValueError("frame size and channel count must be positive")
    step = frame_size * channel_count
    for start in range(0, len(samples) - step + 1, step):
        yield samples[start:start + step]


def _packet_bytes(packet: OpusPacket) -> bytes:
    return _PACKET.pack(len(packet.data), packet.final_range) + bytes(packet.data)


def build_opus(
    packets: Iterable[OpusPacket], sample_rate: int, channel_count: int, pre_skip: int
) -> bytes:
    """Build a variable-bitrate Nintendo Opus file from encoded packets."""
    check_sample_rate(sample_rate)
    check_channel_count(channel_count)
    if not 0 <= pre_skip <= 0xFFFF:
        raise ValueError(f"pre-skip must fit in 16 bits, got {pre_skip}")

    payload = b"".join(_packet_bytes(p) for p in packets)
    header = OpusHeader(
        channel_count=channel_count,
        sample_rate=sample_rate,
        data_offset=OpusHeader.SIZE,
        frame_size=0,
        pre_skip=pre_skip,
    )
    return header.pack() + _CHUNK.pack(CHUNK_DATA_ID, len(payload)) + payload


def clamp_loop(loop_start: int, loop_end: int, samples_per_channel: int) -> tuple[int, int]:
    """Clamp loop points to the stream; ``(0, 0)`` means no loop."""
    if loop_end > samples_per_channel:
        warn("OpusBuildCapcom: loop_end exceeds sample count, clamping to sample count")
        loop_end = samples_per_channel
    if loop_start >= loop_end:
        warn("OpusBuildCapcom: loop_start >= loop_end, disabling loops")
        return 0, 0
    return loop_start, loop_end


def build_capcom_opus(
    packets: Iterable[OpusPacket],
    sample_count: int,
    sample_rate: int,
    channel_count: int,
    loop_start: int,
    loop_end: int,
    config_data: bytes = DEFAULT_CONFIG_DATA,
    critical_bytes: bytes = DEFAULT_CRITICAL_BYTES,
) -> bytes:
    """Build a Capcom-wrapped Opus file.

    ``sample_count`` counts interleaved samples across all channels.  The
    first packet carries a fixed final-range marker, as Capcom files do.
    """
    check_sample_rate(sample_rate)
    check_channel_count(channel_count)
    config_data = bytes(config_data)
    critical_bytes = bytes(critical_bytes)
    if len(config_data) != 16:
        raise ValueError(f"config data must be 16 bytes, got {len(config_data)}")
    if len(critical_bytes) != 8:
        raise ValueError(f"critical bytes must be 8 bytes, got {len(critical_bytes)}")

    samples_per_channel = sample_count // channel_count
    loop_start, loop_end = clamp_loop(loop_start, loop_end, samples_per_channel)

    parts = []
    for index, packet in enumerate(packets):
        parts.append(struct.pack(">I", len(packet.data)))
        if index == 0:
            parts.append(_U32.pack(CAPCOM_FIRST_FINAL_RANGE))
        else:
            parts.append(struct.pack(">I", packet.final_range))
        parts.append(bytes(packet.data))
    payload = b"".join(parts)

    if loop_start == 0 and loop_end == 0:
        loop_info = b"\xff" * 8
    else:
        loop_info = struct.pack("<II", loop_start, loop_end)

    capcom = (
        struct.pack("<II", samples_per_channel, channel_count)
        + loop_info
        + struct.pack("<IIII", 0xF8, 0, 0, CAPCOM_HEADER_SIZE)
        + config_data
    )
    nintendo = (
        struct.pack("<II", CHUNK_HEADER_ID, 0x18)
        + critical_bytes
        + struct.pack("<BBHI", OPUS_VERSION, channel_count, 0, sample_rate)
    )
    data_chunk = struct.pack("<III", 0, len(payload), CHUNK_DATA_ID)
    return capcom + nintendo + data_chunk + payload