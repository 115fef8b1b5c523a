"""Loop-point arguments for the Capcom Opus conversion and path helpers."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import Sequence

_U32_MASK = 0xFFFFFFFF
_INT_PREFIX = re.compile(r"[ \t\n\v\f\r]*([+-]?\d+)")


def _atoi(text: str) -> int:
    """Parse a leading decimal integer as C's atoi does; 0 when there is none."""
    match = _INT_PREFIX.match(text)
    return int(match.group(1)) if match else 0


class LoopMode(Enum):
    """How loop points were requested."""

    NONE = "none"
    AUTO = "auto"
    MANUAL = "manual"


@dataclass(frozen=True)
class LoopRequest:
    """Loop points as given on the command line."""

    mode: LoopMode = LoopMode.NONE
    start: int = 0
    end: int = 0


@dataclass(frozen=True)
class LoopPoints:
    """Validated loop points in samples per channel; (0, 0) when disabled."""

    start: int = 0
    end: int = 0
    enabled: bool = False


def parse_loop_args(args: Sequence[str]) -> LoopRequest:
    """Interpret the optional ``loop_start loop_end`` or ``auto`` arguments."""
    if not args:
        return LoopRequest()
    if args[0] == "auto":
        print("Auto loop points will be used (0 to end of sample)")
        return LoopRequest(LoopMode.AUTO)
    if len(args) >= 2:
        start = _atoi(args[0]) & _U32_MASK
        end = _atoi(args[1]) & _U32_MASK
        print(f"Loop points: start={start} end={end}")
        return LoopRequest(LoopMode.MANUAL, start, end)
    print("Warning: Both loop_start and loop_end must be provided. Using no loop points.")
    return LoopRequest()


def _seconds(samples: int, sample_rate: int) -> float:
    if sample_rate:
        return samples / sample_rate
    return math.nan if samples == 0 else math.inf


def resolve_loop_points(
    request: LoopRequest, samples_per_channel: int, sample_rate: int
) -> LoopPoints:
    """Turn a request into loop points that fit a stream of the given length."""
    if request.mode is LoopMode.AUTO:
        print(
            f"Using auto loop points: start=0 end={samples_per_channel} samples "
            f"({_seconds(samples_per_channel, sample_rate):0.3f} seconds)"
        )
        return LoopPoints(0, samples_per_channel, True)

    if request.mode is LoopMode.MANUAL:
        start, end = request.start, request.end
        if end > samples_per_channel:
            print(
                "Warning: Loop end exceeds sample count. "
                f"Clamping to {samples_per_channel} samples."
            )
            end = samples_per_channel
        if start >= end:
            print("Warning: Loop start must be less than loop end. Disabling loops.")
            return LoopPoints()
        print(
            f"Validated loop points: start={start} end={end} samples "
            f"({_seconds(start, sample_rate):0.3f} to "
            f"{_seconds(end, sample_rate):0.3f} seconds)"
        )
        return LoopPoints(start, end, True)

    return LoopPoints()


def base_name(path: str) -> str:
    """Final path component with its last extension removed."""
    text = path[:255]
    stripped = text.rstrip("/")
    if not text:
        base = "."
    elif not stripped:
        base = "/"
    else:
        base = stripped.rsplit("/", 1)[-1]
    dot = base.rfind(".")
    return base[:dot] if dot >= 0 else base