"""Command-line tool that wraps a 16-bit WAV payload in a Capcom Opus header.

The payload is a raw Nintendo Opus container holding the PCM data without
real Opus encoding. It is useful for checking container layouts.
"""

from __future__ import annotations

import struct
import sys
from dataclasses import dataclass
from typing import Sequence

from .common import NxOpusError
from .files import read_file, write_file
from .loops import _atoi

CAPCOM_HEADER_SIZE = 0x30
_OPUS_HEADER_SIZE = 0x38
_NO_LOOP = 0xFFFFFFFFFFFFFFFF
_CONFIG_WORDS = (0x0077C102, 0x04000000, 0xE107070C)


@dataclass(frozen=True)
class WavSamples:
    """Interleaved 16-bit samples and the format fields read from a WAV file."""

    samples: tuple[int, ...]
    channel_count: int
    sample_rate: int

    @property
    def sample_count(self) -> int:
        """Total number of samples across all channels."""
        return len(self.samples)


def extract_wav_samples(data: bytes) -> WavSamples:
    """Read the format fields and the 'data' chunk of a WAV file.

    The format fields are taken from their usual fixed offsets, and the
    samples are read as signed 16-bit little-endian values.
    """
    size = len(data)
    if size < 44 or bytes(data[0:4]) != b"RIFF" or bytes(data[8:12]) != b"WAVE":
        raise NxOpusError("not a valid WAV file")

    channel_count = struct.unpack_from("<H", data, 22)[0]
    sample_rate = struct.unpack_from("<I", data, 24)[0]

    pos = 12
    while pos + 8 < size:
        magic, chunk_size = struct.unpack_from("<4sI", data, pos)
        if magic == b"data":
            count = chunk_size // 2
            start = pos + 8
            payload = bytes(data[start:start + count * 2])
            if len(payload) < count * 2:
                raise NxOpusError("WAV 'data' chunk is truncated")
            samples = struct.unpack(f"<{count}h", payload)
            return WavSamples(samples, channel_count, sample_rate)
        pos += 8 + chunk_size
        pos = (pos + 1) & ~1

    raise NxOpusError("WAV 'data' chunk not found")


def simple_opus_encoding(samples: Sequence[int], channel_count: int) -> bytes:
    """Build a Nintendo Opus container that carries the raw PCM as its data."""
    try:
        payload = struct.pack(f"<{len(samples)}h", *samples)
    except struct.error as exc:
        raise ValueError(f"samples must be signed 16-bit integers: {exc}") from exc

    header = bytearray(_OPUS_HEADER_SIZE)
    struct.pack_into("<IIIIIII", header, 0, 0x80000001, 0x24, 0, 48000, 0x30, 0, 0)
    header[9] = channel_count & 0xFF
    struct.pack_into("<II", header, 0x30, 0x80000004, (len(samples) * 2) & 0xFFFFFFFF)
    return bytes(header) + payload


def build_capcom_file(wav: WavSamples, loop_start: int, loop_end: int) -> bytes:
    """Wrap the samples of ``wav`` in a Capcom header followed by the container."""
    if wav.channel_count == 0:
        raise NxOpusError("WAV channel count is zero")

    opus = simple_opus_encoding(wav.samples, wav.channel_count)

    if loop_start >= 0 and loop_end > loop_start:
        loop_info = ((loop_start << 32) | loop_end) & _NO_LOOP
    else:
        loop_info = _NO_LOOP

    # The configuration block runs past the header; its last word is
    # overwritten by the container that follows, so only three words remain.
    header = struct.pack(
        "<IIQIIIII",
        (wav.sample_count // wav.channel_count) & 0xFFFFFFFF,
        wav.channel_count & 0xFFFFFFFF,
        loop_info,
        0xF8000000,
        0x0960,
        0,
        0,
        CAPCOM_HEADER_SIZE,
    ) + struct.pack("<III", *_CONFIG_WORDS)
    return header + opus


def main(argv: Sequence[str] | None = None) -> int:
    """Run the tool: ``<input.wav> <output.opus> <loop_start> <loop_end>``."""
    args = list(sys.argv[1:] if argv is None else argv)
    if len(args) < 4:
        print("usage: create_capcom_opus <input.wav> <output.opus> <loop_start> <loop_end>")
        return 1

    input_file, output_file = args[0], args[1]
    loop_start = _atoi(args[2])
    loop_end = _atoi(args[3])

    print("Creating Capcom format Opus file using:")
    print(f"Input: {input_file}")
    print(f"Output: {output_file}")
    print(f"Loop start: {loop_start}")
    print(f"Loop end: {loop_end}")

    try:
        raw = read_file(input_file)
    except NxOpusError as exc:
        print(f"Error: could not read the input file ({exc})")
        return 1

    try:
        wav = extract_wav_samples(raw)
    except NxOpusError as exc:
        print(f"Error: could not process the WAV file ({exc})")
        return 1

    print(
        f"WAV file: Samples: {wav.sample_count}, Channels: {wav.channel_count}, "
        f"Sample rate: {wav.sample_rate}"
    )

    try:
        result = build_capcom_file(wav, loop_start, loop_end)
    except (NxOpusError, ValueError) as exc:
        print(f"Error: could not encode to Opus ({exc})")
        return 1

    try:
        write_file(result, output_file)
    except NxOpusError as exc:
        print(f"Error: could not create the output file ({exc})")
        return 1

    print(f"Capcom format Opus file created successfully: {output_file}")
    print(f"Total size: {len(result)} bytes")
    return 0