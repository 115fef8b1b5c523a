import struct

import pytest

from nxopus.capcom_tool import (
    WavSamples,
    build_capcom_file,
    extract_wav_samples,
    main,
    simple_opus_encoding,
)
from nxopus.common import NxOpusError
from nxopus.wav import build_wav

SAMPLES = [0, 1, -1, 32767, -32768, 1234, -4321, 7]


def test_extract_round_trip():
    wav = extract_wav_samples(build_wav(SAMPLES, 48000, 2))
    assert list(wav.samples) == SAMPLES
    assert wav.channel_count == 2
    assert wav.sample_rate == 48000
    assert wav.sample_count == len(SAMPLES)


def test_extract_rejects_short_data():
    with pytest.raises(NxOpusError):
        extract_wav_samples(b"RIFF\x00\x00\x00\x00WAVE")


def test_extract_rejects_wrong_magic():
    data = bytearray(build_wav(SAMPLES, 48000, 1))
    data[8:12] = b"WAVX"
    with pytest.raises(NxOpusError):
        extract_wav_samples(bytes(data))


def test_extract_without_data_chunk():
    data = bytearray(build_wav(SAMPLES, 48000, 1))
    data[36:40] = b"junk"
    with pytest.raises(NxOpusError):
        extract_wav_samples(bytes(data))


def test_simple_encoding_layout():
    encoded = simple_opus_encoding(SAMPLES, 2)
    assert len(encoded) == len(SAMPLES) * 2 + 0x38
    assert encoded[0:4] == struct.pack("<I", 0x80000001)
    assert encoded[9] == 2
    assert struct.unpack_from("<I", encoded, 12)[0] == 48000
    assert struct.unpack_from("<I", encoded, 16)[0] == 0x30
    assert struct.unpack_from("<II", encoded, 0x30) == (0x80000004, len(SAMPLES) * 2)
    assert list(struct.unpack(f"<{len(SAMPLES)}h", encoded[0x38:])) == SAMPLES


def test_build_capcom_with_loop():
    wav = WavSamples(tuple(SAMPLES), 2, 48000)
    result = build_capcom_file(wav, 1, 3)
    assert struct.unpack_from("<I", result, 0)[0] == len(SAMPLES) // 2
    assert struct.unpack_from("<I", result, 4)[0] == 2
    assert struct.unpack_from("<Q", result, 8)[0] == (1 << 32) | 3
    assert struct.unpack_from("<I", result, 0x10)[0] == 0xF8000000
    assert struct.unpack_from("<I", result, 0x14)[0] == 0x0960
    assert struct.unpack_from("<I", result, 0x20)[0] == 0x30
    assert struct.unpack_from("<III", result, 0x24) == (0x0077C102, 0x04000000, 0xE107070C)
    assert result[0x30:] == simple_opus_encoding(SAMPLES, 2)


def test_build_capcom_without_loop():
    wav = WavSamples(tuple(SAMPLES), 1, 48000)
    assert build_capcom_file(wav, 5, 5)[8:16] == b"\xff" * 8
    assert build_capcom_file(wav, -1, 5)[8:16] == b"\xff" * 8


def test_build_capcom_zero_channels():
    with pytest.raises(NxOpusError):
        build_capcom_file(WavSamples(tuple(SAMPLES), 0, 48000), 0, 0)


def test_main_writes_file(tmp_path):
    source = tmp_path / "in.wav"
    target = tmp_path / "out.opus"
    source.write_bytes(build_wav(SAMPLES, 48000, 2))
    assert main([str(source), str(target), "2", "4"]) == 0
    expected = build_capcom_file(WavSamples(tuple(SAMPLES), 2, 48000), 2, 4)
    assert target.read_bytes() == expected


def test_main_usage():
    assert main(["a.wav", "b.opus"]) == 1


def test_main_missing_input(tmp_path):
    assert main([str(tmp_path / "missing.wav"), str(tmp_path / "o.opus"), "0", "0"]) == 1
    assert not (tmp_path / "o.opus").exists()