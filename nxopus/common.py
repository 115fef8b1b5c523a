"""Shared helpers: the package error type, warnings and bit/identifier utilities."""

from __future__ import annotations

import sys


class NxOpusError(Exception):
    """Raised when input data or a requested operation is invalid."""


def warn(message: str) -> None:
    """Print a non-fatal warning to standard output."""
    print(f"\nWARN: {message}\n", file=sys.stdout, flush=True)


def extract_bits(value: int, pos: int, width: int) -> int:
    """Return ``width`` bits of ``value`` starting at bit ``pos``."""
    if pos < 0 or width < 0:
        raise ValueError("bit position and width must be non-negative")
    return (value >> pos) & ((1 << width) - 1)


def _check_alignment(alignment: int) -> None:
    if alignment <= 0 or alignment & (alignment - 1):
        raise ValueError(f"alignment must be a positive power of two, got {alignment}")


def align_down(value: int, alignment: int) -> int:
    """Round ``value`` down to a multiple of the power-of-two ``alignment``."""
    _check_alignment(alignment)
    return value & ~(alignment - 1)


def align_up(value: int, alignment: int) -> int:
    """Round ``value`` up to a multiple of the power-of-two ``alignment``."""
    _check_alignment(alignment)
    return (value + alignment - 1) & ~(alignment - 1)


def _identifier_bytes(text: str | bytes, length: int) -> bytes:
    raw = text.encode("latin-1") if isinstance(text, str) else bytes(text)
    if len(raw) != length:
        raise ValueError(f"identifier must be exactly {length} characters, got {text!r}")
    return raw


def fourcc(text: str | bytes) -> int:
    """Pack a four-character identifier into a little-endian 32-bit integer."""
    return int.from_bytes(_identifier_bytes(text, 4), "little")


def fourcc16(text: str | bytes) -> int:
    """Pack a two-character identifier into a little-endian 16-bit integer."""
    return int.from_bytes(_identifier_bytes(text, 2), "little")