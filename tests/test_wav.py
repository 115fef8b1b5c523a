import struct

import pytest

from nxopus.common import NxOpusError
from nxopus.wav import (
    WavFmt,
    WavFormat,
    build_wav,
    channel_count,
    find_chunk,
    pcm16_samples,
    read_fmt,
    sample_count,
    sample_rate,
    sample_size,
    samples_are_float,
    validate_wav,
    wav_data,
    wav_data_size,
)


def make_wav(fmt_code, channels, rate, bits, payload, extra=b""):
    block = channels * bits // 8
    fmt = struct.pack(
        "<4sIHHIIHH", b"fmt ", 16, fmt_code, channels, rate, rate * block, block, bits
    )
    data = b"data" + struct.pack("<I", len(payload)) + payload
    body = b"WAVE" + extra + fmt + data
    return b"RIFF" + struct.pack("<I", len(body)) + body


SAMPLES = [0, 1, -1, 32767, -32768, 1234, -4321, 7]


def test_build_wav_layout():
    wav = build_wav(SAMPLES, 48000, 2)
    assert wav[:4] == b"RIFF"
    assert wav[8:12] == b"WAVE"
    assert len(wav) == 44 + 2 * len(SAMPLES)
    assert struct.unpack_from("<I", wav, 4)[0] == len(wav) - 8


def test_build_wav_round_trip():
    wav = build_wav(SAMPLES, 48000, 2)
    validate_wav(wav)
    assert pcm16_samples(wav) == SAMPLES
    assert sample_rate(wav) == 48000
    assert channel_count(wav) == 2
    assert sample_count(wav) == len(SAMPLES)
    assert sample_size(wav) == 2
    assert samples_are_float(wav) is False
    assert wav_data_size(wav) == 2 * len(SAMPLES)
    assert wav_data(wav) == struct.pack(f"<{len(SAMPLES)}h", *SAMPLES)


def test_read_fmt_fields():
    fmt = read_fmt(build_wav(SAMPLES, 24000, 1))
    assert fmt == WavFmt(
        format=WavFormat.PCM,
        channel_count=1,
        sample_rate=24000,
        data_rate=24000 * 2,
        block_size=2,
        bits_per_sample=16,
    )


def test_build_wav_rejects_out_of_range():
    with pytest.raises(ValueError):
        build_wav([40000], 48000, 1)


def test_build_wav_empty():
    wav = build_wav([], 8000, 1)
    assert pcm16_samples(wav) == []
    assert sample_count(wav) == 0


def test_find_chunk_skips_odd_sized_chunk():
    extra = b"LIST" + struct.pack("<I", 3) + b"abc" + b"\x00"
    wav = make_wav(1, 1, 16000, 16, struct.pack("<2h", 5, -5), extra=extra)
    assert find_chunk(wav, "LIST") == 12
    assert find_chunk(wav, b"fmt ") == 12 + 8 + 4
    assert pcm16_samples(wav) == [5, -5]


def test_find_chunk_missing():
    wav = build_wav(SAMPLES, 48000, 1)
    with pytest.raises(NxOpusError, match="'cue '"):
        find_chunk(wav, "cue ")


def test_missing_data_chunk():
    fmt = struct.pack("<4sIHHIIHH", b"fmt ", 16, 1, 1, 8000, 16000, 2, 16)
    body = b"WAVE" + fmt
    wav = b"RIFF" + struct.pack("<I", len(body)) + body
    validate_wav(wav)
    with pytest.raises(NxOpusError, match="'data'"):
        pcm16_samples(wav)


def test_float_samples_scale_and_clamp():
    payload = struct.pack("<3f", 0.5, -1.0, 2.0)
    wav = make_wav(3, 1, 48000, 32, payload)
    validate_wav(wav)
    assert samples_are_float(wav) is True
    assert sample_count(wav) == 3
    assert pcm16_samples(wav) == [16384, -32768, 32767]


def test_float_zero_is_zero():
    wav = make_wav(3, 1, 48000, 32, struct.pack("<2f", 0.0, -0.0))
    assert pcm16_samples(wav) == [0, 0]


def test_pcm24_samples_sign_extend_and_clamp():
    payload = b"\x05\x00\x00" + b"\xfb\xff\xff" + b"\x00\x00\x80" + b"\xff\xff\x7f"
    wav = make_wav(1, 2, 48000, 24, payload)
    validate_wav(wav)
    assert sample_count(wav) == 4
    assert sample_size(wav) == 3
    assert pcm16_samples(wav) == [5, -5, -32768, 32767]


def test_truncated_data_chunk():
    wav = make_wav(1, 1, 48000, 16, struct.pack("<2h", 1, 2))
    with pytest.raises(NxOpusError, match="truncated"):
        pcm16_samples(wav[:-2])


def test_bad_riff_magic():
    wav = b"RIFX" + build_wav(SAMPLES, 48000, 1)[4:]
    with pytest.raises(NxOpusError, match="RIFF"):
        validate_wav(wav)


def test_bad_wave_magic():
    wav = bytearray(build_wav(SAMPLES, 48000, 1))
    wav[8:12] = b"AVI "
    with pytest.raises(NxOpusError, match="WAVE"):
        validate_wav(bytes(wav))


def test_empty_data_rejected():
    with pytest.raises(NxOpusError):
        validate_wav(b"")


def test_unsupported_format():
    wav = make_wav(6, 1, 8000, 8, b"\x00\x01")
    with pytest.raises(NxOpusError, match="unsupported"):
        validate_wav(wav)


def test_unsupported_pcm_depth():
    wav = make_wav(1, 1, 8000, 8, b"\x00\x01")
    with pytest.raises(NxOpusError, match="8-bit PCM"):
        validate_wav(wav)


def test_unsupported_float_depth():
    wav = make_wav(3, 1, 8000, 64, b"\x00" * 8)
    with pytest.raises(NxOpusError, match="64-bit FLOAT"):
        validate_wav(wav)


def test_zero_bit_samples_rejected():
    wav = make_wav(1, 1, 8000, 0, b"")
    with pytest.raises(NxOpusError):
        sample_count(wav)