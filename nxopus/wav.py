"""RIFF/WAVE parsing and 16-bit PCM WAV building."""

from __future__ import annotations

import math
import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import Sequence

from .common import NxOpusError

_HEADER_SIZE = 12
_CHUNK_HEADER = struct.Struct("<4sI")
_FMT_BODY = struct.Struct("<HHIIHH")


class WavFormat(IntEnum):
    """Sample formats understood by the reader."""

    PCM = 0x0001
    FLOAT = 0x0003


@dataclass(frozen=True)
class WavFmt:
    """Contents of a WAV 'fmt ' chunk."""

    format: int
    channel_count: int
    sample_rate: int
    data_rate: int
    block_size: int
    bits_per_sample: int


def _magic_bytes(magic: str | bytes) -> bytes:
    raw = magic.encode("latin-1") if isinstance(magic, str) else bytes(magic)
    if len(raw) != 4:
        raise ValueError(f"chunk magic must be 4 characters, got {magic!r}")
    return raw


def find_chunk(data: bytes, magic: str | bytes) -> int:
    """Return the offset of the first chunk with ``magic`` after the RIFF header."""
    target = _magic_bytes(magic)
    end = len(data)
    pos = _HEADER_SIZE
    while pos + _CHUNK_HEADER.size <= end:
        chunk_magic, chunk_size = _CHUNK_HEADER.unpack_from(data, pos)
        if chunk_magic == target:
            return pos
        pos += _CHUNK_HEADER.size + chunk_size
        if chunk_size % 2:
            pos += 1
    raise NxOpusError(f"WAV '{target.decode('latin-1')}' chunk not found")


def read_fmt(data: bytes) -> WavFmt:
    """Parse the 'fmt ' chunk."""
    offset = find_chunk(data, b"fmt ") + _CHUNK_HEADER.size
    if offset + _FMT_BODY.size > len(data):
        raise NxOpusError("WAV 'fmt ' chunk is truncated")
    return WavFmt(*_FMT_BODY.unpack_from(data, offset))


def validate_wav(data: bytes) -> None:
    """Check that ``data`` is a WAV file whose sample format can be converted."""
    if not data:
        raise NxOpusError("WAV data is empty")
    if len(data) < _HEADER_SIZE:
        raise NxOpusError("WAV data is too short")
    if bytes(data[0:4]) != b"RIFF":
        raise NxOpusError("WAV RIFF magic is nonmatching")
    if bytes(data[8:12]) != b"WAVE":
        raise NxOpusError("WAV WAVE magic is nonmatching")

    fmt = read_fmt(data)
    if fmt.format not in (WavFormat.PCM, WavFormat.FLOAT):
        raise NxOpusError(f"WAV format is unsupported: {fmt.format}")
    expected = "(expected 32-bit FLOAT, 16-bit PCM, or 24-bit PCM)"
    if fmt.format == WavFormat.PCM and fmt.bits_per_sample not in (16, 24):
        raise NxOpusError(f"{fmt.bits_per_sample}-bit PCM isn't supported {expected}")
    if fmt.format == WavFormat.FLOAT and fmt.bits_per_sample != 32:
        raise NxOpusError(f"{fmt.bits_per_sample}-bit FLOAT isn't supported {expected}")


def sample_rate(data: bytes) -> int:
    """Sample rate in Hz."""
    return read_fmt(data).sample_rate


def channel_count(data: bytes) -> int:
    """Number of interleaved channels."""
    return read_fmt(data).channel_count


def samples_are_float(data: bytes) -> bool:
    """Whether samples are stored as IEEE floats."""
    return read_fmt(data).format == WavFormat.FLOAT


def sample_size(data: bytes) -> int:
    """Size of one sample in bytes."""
    return read_fmt(data).bits_per_sample // 8


def wav_data(data: bytes) -> bytes:
    """Raw payload of the 'data' chunk."""
    offset = find_chunk(data, b"data")
    _, size = _CHUNK_HEADER.unpack_from(data, offset)
    start = offset + _CHUNK_HEADER.size
    return bytes(data[start:start + size])


def wav_data_size(data: bytes) -> int:
    """Declared size of the 'data' chunk in bytes."""
    offset = find_chunk(data, b"data")
    return _CHUNK_HEADER.unpack_from(data, offset)[1]


def _sample_width(fmt: WavFmt) -> int:
    width = fmt.bits_per_sample // 8
    if width == 0:
        raise NxOpusError(f"invalid WAV sample size ({fmt.bits_per_sample} bits)")
    return width


def sample_count(data: bytes) -> int:
    """Total number of samples across all channels."""
    return wav_data_size(data) // _sample_width(read_fmt(data))


def _round_half_away(value: float) -> int:
    if math.isnan(value):
        return 0
    magnitude = math.floor(abs(value) + 0.5)
    return -magnitude if value < 0 else magnitude


def _float_to_pcm16(value: float) -> int:
    scaled = value * 32768.0
    if scaled > 32767.0:
        scaled = 32767.0
    elif scaled < -32768.0:
        scaled = -32768.0
    return _round_half_away(scaled)


def _pcm24_to_pcm16(raw: bytes) -> int:
    value = int.from_bytes(raw, "little", signed=True)
    return max(-32768, min(32767, value))


def pcm16_samples(data: bytes) -> list[int]:
    """Convert the 'data' chunk to interleaved signed 16-bit samples."""
    fmt = read_fmt(data)
    width = _sample_width(fmt)
    count = wav_data_size(data) // width
    payload = wav_data(data)
    if len(payload) < count * width:
        raise NxOpusError("WAV 'data' chunk is truncated")
    payload = payload[:count * width]

    if fmt.format == WavFormat.FLOAT:
        return [_float_to_pcm16(v) for (v,) in struct.iter_unpack("<f", payload)]
    if fmt.format == WavFormat.PCM and fmt.bits_per_sample == 16:
        return list(struct.unpack(f"<{count}h", payload))
    if fmt.format == WavFormat.PCM and fmt.bits_per_sample == 24:
        return [_pcm24_to_pcm16(payload[i:i + 3]) for i in range(0, len(payload), 3)]
    raise NxOpusError("no conversion available for this WAV sample format")


def build_wav(samples: Sequence[int], sample_rate: int, channel_count: int) -> bytes:
    """Build a 16-bit PCM WAV file from interleaved samples."""
    try:
        payload = struct.pack(f"<{len(samples)}h", *samples)
    except struct.error as exc:
        raise ValueError(f"samples must be signed 16-bit integers: {exc}") from exc

    block_size = 2 * channel_count
    fmt_chunk = _CHUNK_HEADER.pack(b"fmt ", _FMT_BODY.size) + _FMT_BODY.pack(
        WavFormat.PCM,
        channel_count,
        sample_rate,
        sample_rate * block_size,
        block_size,
        16,
    )
    data_chunk = _CHUNK_HEADER.pack(b"data", len(payload)) + payload
    body = b"WAVE" + fmt_chunk + data_chunk
    return _CHUNK_HEADER.pack(b"RIFF", len(body)) + body