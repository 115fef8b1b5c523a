"""Recognition of the container variants that wrap Nintendo Opus streams.

Each ``parse_*`` function checks one wrapper layout (and the file extension it
is found with), pulls any sample and loop information out of the wrapper and
then reads the inner Nintendo Opus header with :func:`parse_core`.  A layout
that does not match raises :class:`VariantError`.
"""

from __future__ import annotations

import os
import struct
from dataclasses import dataclass, replace
from typing import Callable, Optional

from .common import NxOpusError
from .files import read_file

HEADER_CHUNK_ID = 0x80000001
CONTEXT_CHUNK_ID = 0x80000003
DATA_CHUNK_ID = 0x80000004
MULTISTREAM_CHUNK_ID = 0x80000005

OPUS_OUTPUT_RATE = 48000
_HEADER_ID_BE = 0x01000080


class VariantError(NxOpusError):
    """Raised when data does not match the layout a parser expects."""


@dataclass(frozen=True)
class StreamInfo:
    """What a wrapper and its inner Nintendo Opus header say about a stream.

    ``num_samples`` is 0 when neither the wrapper nor the header gives a count.
    ``start_offset`` is the absolute offset of the first packet.
    """

    channels: int
    sample_rate: int
    header_sample_rate: int
    num_samples: int
    loop_flag: bool
    loop_start: int
    loop_end: int
    pre_skip: int
    start_offset: int
    data_size: int
    stream_count: Optional[int] = None
    coupled_count: Optional[int] = None
    channel_mapping: tuple[int, ...] = ()
    variant: str = ""


def _read(fmt: str, data: bytes, pos: int) -> int:
    size = struct.calcsize(fmt)
    if pos < 0 or pos + size > len(data):
        raise VariantError(f"read of {size} bytes at 0x{pos:x} is outside the data")
    return struct.unpack_from(fmt, data, pos)[0]


def _u8(data: bytes, pos: int) -> int:
    return _read("<B", data, pos)


def _s8(data: bytes, pos: int) -> int:
    return _read("<b", data, pos)


def _u16le(data: bytes, pos: int) -> int:
    return _read("<H", data, pos)


def _u32le(data: bytes, pos: int) -> int:
    return _read("<I", data, pos)


def _s32le(data: bytes, pos: int) -> int:
    return _read("<i", data, pos)


def _u32be(data: bytes, pos: int) -> int:
    return _read(">I", data, pos)


def _s32be(data: bytes, pos: int) -> int:
    return _read(">i", data, pos)


def _maybe_u32le(data: bytes, pos: int) -> Optional[int]:
    try:
        return _u32le(data, pos)
    except VariantError:
        return None


def _is_id(data: bytes, pos: int, ident: bytes) -> bool:
    return pos >= 0 and bytes(data[pos:pos + len(ident)]) == ident


def _check_extension(path: str | os.PathLike[str], allowed: str) -> None:
    ext = os.path.splitext(os.fspath(path))[1].lstrip(".").lower()
    if ext not in allowed.split(","):
        raise VariantError(f"extension '{ext}' is not one of: {allowed}")


def _f32(value: float) -> float:
    return struct.unpack("<f", struct.pack("<f", value))[0]


def parse_core(
    data: bytes, offset: int, num_samples: int, loop_start: int, loop_end: int
) -> StreamInfo:
    """Read the Nintendo Opus header at ``offset``.

    Loop values from a context chunk in the header take priority over the
    ones passed in; otherwise looping is on when ``loop_end`` is positive.
    """
    if _u32le(data, offset) != HEADER_CHUNK_ID:
        raise VariantError("Nintendo Opus header chunk ID is nonmatching")

    channels = _u8(data, offset + 0x09)
    header_rate = _u32le(data, offset + 0x0C)
    data_offset = _u32le(data, offset + 0x10)
    context_offset = _u32le(data, offset + 0x18)
    pre_skip = _u16le(data, offset + 0x1C)

    if context_offset and _maybe_u32le(data, offset + context_offset) == CONTEXT_CHUNK_ID:
        context = offset + context_offset
        loop_flag = _u8(data, context + 0x09) != 0
        num_samples = _s32le(data, context + 0x0C)
        loop_start = _s32le(data, context + 0x10)
        loop_end = _s32le(data, context + 0x14)
    else:
        loop_flag = loop_end > 0

    multistream_offset = None
    if _maybe_u32le(data, offset + 0x20) == MULTISTREAM_CHUNK_ID:
        multistream_offset = offset + 0x20

    data_offset += offset
    if _u32le(data, data_offset) != DATA_CHUNK_ID:
        raise VariantError("Nintendo Opus data chunk ID is nonmatching")
    data_size = _u32le(data, data_offset + 0x04)

    if channels < 1:
        raise VariantError(f"invalid channel count ({channels})")

    stream_count = coupled_count = None
    mapping: tuple[int, ...] = ()
    if multistream_offset is not None and channels <= 8:
        stream_count = _u8(data, multistream_offset + 0x08)
        coupled_count = _u8(data, multistream_offset + 0x09)
        mapping = tuple(
            _u8(data, multistream_offset + 0x0A + channel) for channel in range(channels)
        )

    return StreamInfo(
        channels=channels,
        sample_rate=OPUS_OUTPUT_RATE,
        header_sample_rate=header_rate,
        num_samples=max(num_samples, 0),
        loop_flag=loop_flag,
        loop_start=loop_start,
        loop_end=loop_end,
        pre_skip=pre_skip,
        start_offset=data_offset + 0x08,
        data_size=data_size,
        stream_count=stream_count,
        coupled_count=coupled_count,
        channel_mapping=mapping,
    )


def _finish(variant: str, data: bytes, offset: int, num_samples: int,
            loop_start: int, loop_end: int) -> StreamInfo:
    info = parse_core(data, offset, num_samples, loop_start, loop_end)
    return replace(info, variant=variant)


def parse_std(data: bytes, path: str | os.PathLike[str]) -> StreamInfo:
    """Plain Switch Opus, optionally with loop data in a companion ``.psi`` file."""
    if _u32le(data, 0x00) != HEADER_CHUNK_ID:
        raise VariantError("not a standard Nintendo Opus file")
    _check_extension(path, "opus,lopus,bgm,opu,ogg,logg,opusnx")

    num_samples = loop_start = loop_end = 0
    psi_path = os.path.splitext(os.fspath(path))[0] + ".psi"
    if os.path.isfile(psi_path):
        psi = read_file(psi_path)
        num_samples = _s32le(psi, 0x8C)
        loop_start = _s32le(psi, 0x84)
        loop_end = _s32le(psi, 0x88)

    return _finish("std", data, 0x00, num_samples, loop_start, loop_end)


def parse_n1(data: bytes, path: str | os.PathLike[str]) -> StreamInfo:
    """Nippon Ichi wrapper: loop points before the header at 0x10."""
    zeros = _u32be(data, 0x04) == 0 and _u32be(data, 0x0C) == 0
    ones = _u32be(data, 0x04) == 0xFFFFFFFF and _u32be(data, 0x0C) == 0xFFFFFFFF
    if not (zeros or ones):
        raise VariantError("not a Nippon Ichi Opus file")
    _check_extension(path, "opus,lopus")

    return _finish("n1", data, 0x10, 0, _s32le(data, 0x00), _s32le(data, 0x08))


def parse_capcom(data: bytes, path: str | os.PathLike[str]) -> StreamInfo:
    """Capcom wrapper: a 0x30-byte header with sample count and loop points."""
    _check_extension(path, "opus,lopus")
    channels = _s32le(data, 0x04)
    if channels not in (1, 2, 6):
        raise VariantError(f"unknown Capcom stream layout ({channels} channels)")
    if channels == 6:
        raise VariantError("interleaved 6-channel Capcom streams are not supported")

    num_samples = _s32le(data, 0x00)
    loop_start = _s32le(data, 0x08)
    loop_end = _s32le(data, 0x0C)
    offset = _s32le(data, 0x1C)
    return _finish("capcom", data, offset, num_samples, loop_start, loop_end)


def parse_nop(data: bytes, path: str | os.PathLike[str]) -> StreamInfo:
    """Procyon Studio 'sadf' wrapper."""
    if not (_is_id(data, 0x00, b"sadf") and _is_id(data, 0x08, b"opus")):
        raise VariantError("not a sadf Opus file")
    _check_extension(path, "nop")

    offset = _s32le(data, 0x1C)
    num_samples = _s32le(data, 0x28)
    loop_start = loop_end = 0
    if _s8(data, 0x19):
        loop_start = _s32le(data, 0x2C)
        loop_end = _s32le(data, 0x30)
    return _finish("nop", data, offset, num_samples, loop_start, loop_end)


def parse_shinen(data: bytes, path: str | os.PathLike[str]) -> StreamInfo:
    """Shin'en wrapper: two loop values before the header at 0x08."""
    if _u32be(data, 0x08) != _HEADER_ID_BE:
        raise VariantError("not a Shin'en Opus file")
    _check_extension(path, "opus,lopus")

    loop_start = _s32le(data, 0x00)
    loop_end = _s32le(data, 0x04)
    if loop_start > loop_end:
        raise VariantError("loop start lies after loop end")
    return _finish("shinen", data, 0x08, -1, loop_start, loop_end)


def parse_nus3(data: bytes, path: str | os.PathLike[str]) -> StreamInfo:
    """Bandai Namco 'OPUS' wrapper with big-endian fields."""
    if not _is_id(data, 0x00, b"OPUS"):
        raise VariantError("not a NUS3 Opus file")
    _check_extension(path, "opus,lopus")

    offset = _s32be(data, 0x20)
    num_samples = _s32be(data, 0x08)
    loop_start = loop_end = 0
    if _s32be(data, 0x18):
        loop_start = _s32be(data, 0x14)
        loop_end = _s32be(data, 0x18)
    return _finish("nus3", data, offset, num_samples, loop_start, loop_end)


def parse_sps_n1(data: bytes, path: str | os.PathLike[str]) -> StreamInfo:
    """Nippon Ichi SPS wrapper, in its older and newer loop layouts."""
    if _u32be(data, 0x00) != 0x09000000:
        raise VariantError("not a Nippon Ichi SPS file")
    _check_extension(path, "sps,nlsd,at9,opus,lopus")

    num_samples = _s32le(data, 0x0C)
    if _s32be(data, 0x1C) == _HEADER_ID_BE:
        offset = 0x1C
        loop_start = _s32le(data, 0x10)
        loop_end = loop_start + _s32le(data, 0x14)
        loop_flag = _s32le(data, 0x18) != 0
    else:
        offset = 0x18
        loop_start = _s32le(data, 0x10)
        loop_end = _s32le(data, 0x14)
        loop_flag = loop_start != loop_end

    if not loop_flag:
        loop_start = loop_end = 0
    return _finish("sps_n1", data, offset, num_samples, loop_start, loop_end)


def parse_opusx(data: bytes, path: str | os.PathLike[str]) -> StreamInfo:
    """AQUASTYLE wrapper: loop points given at 44100 Hz, rescaled to 48000 Hz."""
    if not _is_id(data, 0x00, b"OPUS"):
        raise VariantError("not an OPUSX file")
    _check_extension(path, "opusx")

    modifier = _f32(48000.0 / 44100.0)
    loop_start = int(_f32(_f32(_s32le(data, 0x08)) * modifier))
    loop_end = int(_f32(_f32(_s32le(data, 0x0C)) * modifier))
    if loop_start >= 120:
        loop_start -= 128
        loop_end -= 128
    else:
        loop_end = 0
    return _finish("opusx", data, 0x10, 0, loop_start, loop_end)


def parse_prototype(data: bytes, path: str | os.PathLike[str]) -> StreamInfo:
    """Prototype 'OPUS' wrapper with the header at 0x18."""
    if not _is_id(data, 0x00, b"OPUS"):
        raise VariantError("not a prototype Opus file")
    _check_extension(path, "opus,lopus")
    if _s32be(data, 0x18) != _HEADER_ID_BE:
        raise VariantError("no Nintendo Opus header at 0x18")

    num_samples = _s32le(data, 0x08)
    loop_start = loop_end = 0
    if _s32le(data, 0x10):
        loop_start = _s32le(data, 0x0C)
        loop_end = _s32le(data, 0x10)
    return _finish("prototype", data, 0x18, num_samples, loop_start, loop_end)


def parse_opusnx(data: bytes, path: str | os.PathLike[str]) -> StreamInfo:
    """Edelweiss 'OPUSNX' wrapper."""
    if not _is_id(data, 0x00, b"OPUSNX\0\0"):
        raise VariantError("not an OPUSNX file")
    _check_extension(path, "opus,lopus")
    if _s32le(data, 0x0C) != 0:
        raise VariantError("unexpected value at 0x0c in OPUSNX header")
    return _finish("opusnx", data, 0x10, 0, 0, 0)


def parse_nsopus(data: bytes, path: str | os.PathLike[str]) -> StreamInfo:
    """Edelweiss 'EWNO' wrapper."""
    if not _is_id(data, 0x00, b"EWNO"):
        raise VariantError("not an EWNO file")
    _check_extension(path, "nsopus")
    return _finish("nsopus", data, 0x08, 0, 0, 0)


def parse_sqex(data: bytes, path: str | os.PathLike[str]) -> StreamInfo:
    """Square Enix wrapper stored with a .wav extension."""
    if _u32be(data, 0x00) != 0x01000000:
        raise VariantError("not a Square Enix Opus file")
    _check_extension(path, "wav,lwav")

    offset = _s32le(data, 0x0C)
    num_samples = _s32le(data, 0x1C)
    loop_start = loop_end = 0
    if _s32le(data, 0x18):
        loop_start = _s32le(data, 0x14)
        loop_end = _s32le(data, 0x18)
    return _finish("sqex", data, offset, num_samples, loop_start, loop_end)


def parse_rsnd(data: bytes, path: str | os.PathLike[str]) -> StreamInfo:
    """'RSND' wrapper."""
    if not _is_id(data, 0x00, b"RSND"):
        raise VariantError("not an RSND file")
    _check_extension(path, "rsnd")

    loop_start = loop_end = 0
    if _u8(data, 0x07):
        loop_start = _s32le(data, 0x08)
        loop_end = _s32le(data, 0x0C)
    offset = _u32le(data, 0x10)
    return _finish("rsnd", data, offset, 0, loop_start, loop_end)


_PARSERS: tuple[Callable[[bytes, str | os.PathLike[str]], StreamInfo], ...] = (
    parse_std,
    parse_n1,
    parse_capcom,
    parse_nop,
    parse_shinen,
    parse_nus3,
    parse_sps_n1,
    parse_opusx,
    parse_prototype,
    parse_opusnx,
    parse_nsopus,
    parse_sqex,
    parse_rsnd,
)


def detect(data: bytes, path: str | os.PathLike[str]) -> StreamInfo:
    """Return the result of the first variant parser that accepts ``data``."""
    for parser in _PARSERS:
        try:
            return parser(data, path)
        except VariantError:
            continue
    raise VariantError("data matches no known Nintendo Opus variant")