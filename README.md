# nxopus

nxopus reads, checks and builds the Opus container that Nintendo Switch
games use. It also handles the Capcom form of that container, reads the
wrapper headers that many games put around it, and reads and writes the
WAV files that such audio is usually converted to and from.

The package needs only the standard library.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Modules

- `nxopus.common` holds `NxOpusError`, the error that every module raises
  for bad input. It also holds `warn`, which prints a `WARN:` line to
  standard output, and some small helpers: `extract_bits`, `align_down`,
  `align_up`, `fourcc` and `fourcc16`.
- `nxopus.files` holds `read_file`, `write_file` and `resolve_path`. You can
  give each one a `base_path`, which is put in front of a path that does
  not start with `/`. On an I/O failure they raise `NxOpusError`.
- `nxopus.wav` reads RIFF/WAVE data.
  - `validate_wav` checks the `RIFF`/`WAVE` magic and the sample format.
    The formats it accepts are 16-bit PCM, 24-bit PCM and 32-bit float.
  - `find_chunk` finds a chunk. `read_fmt` returns the `fmt ` chunk as a
    `WavFmt`. `WavFormat` lists the accepted formats.
  - `sample_rate`, `channel_count`, `samples_are_float`, `sample_size`,
    `wav_data`, `wav_data_size` and `sample_count` each return one fact
    about the file.
  - `pcm16_samples` turns the data into interleaved signed 16-bit samples.
    Float samples are scaled, clamped and rounded. 24-bit samples keep
    their top 16 bits.
  - `build_wav` writes a 16-bit PCM WAV file from interleaved samples.
- `nxopus.container` works with the Nintendo Opus container.
  - `OpusHeader` is the 32-byte basic-info chunk, with `parse` and `pack`.
    `OpusPacket` is one encoded packet together with its final range.
  - `validate_opus` checks the header. It rejects Ogg Opus input, wrong
    chunk IDs, and sample rates or channel counts outside the ones Opus
    supports. It then checks the data chunk and returns the header.
  - `iter_packets` yields the length-prefixed packets from the data chunk.
  - `split_frames` cuts interleaved samples into whole frames. It drops a
    trailing partial frame.
  - `build_opus` builds a variable-bitrate file from encoded packets.
  - `build_capcom_opus` builds a Capcom-wrapped file from encoded packets.
    The file has a 0x30-byte Capcom header, a Nintendo header and a data
    chunk. The first packet carries the fixed final range `0xF0000000`.
  - `clamp_loop` applies the builder's loop rules. A loop end past the
    stream is clamped to the end of the stream. A start that is not before
    the end turns looping off, and `(0, 0)` is returned.
- `nxopus.variants` reads game-specific wrappers around a Nintendo Opus
  stream.
  - There is one parser for each wrapper: `parse_std`, `parse_n1`,
    `parse_capcom`, `parse_nop`, `parse_shinen`, `parse_nus3`,
    `parse_sps_n1`, `parse_opusx`, `parse_prototype`, `parse_opusnx`,
    `parse_nsopus`, `parse_sqex` and `parse_rsnd`.
  - Each parser checks the wrapper's magic and the file extension.
    `parse_core` then reads the inner header, and the parser returns a
    `StreamInfo`. A layout that does not match raises `VariantError`.
  - `parse_std` also reads loop data from a `.psi` file with the same name
    and a `.psi` extension, if there is one.
  - `detect` tries every parser in turn and returns the first match.
- `nxopus.loops` works with loop arguments.
  - `parse_loop_args` reads `loop_start loop_end` or `auto` and returns a
    `LoopRequest`.
  - `resolve_loop_points` checks a request against the stream length and
    returns `LoopPoints`.
  - `base_name` returns the last path component without its extension.
- `nxopus.capcom_tool` provides the `create-capcom-opus` command,
  described below.

## Examples

Read a WAV file:

```python
from pathlib import Path
from nxopus import wav

data = Path("music.wav").read_bytes()
wav.validate_wav(data)
print(wav.sample_rate(data), wav.channel_count(data), wav.sample_count(data))
samples = wav.pcm16_samples(data)
Path("copy.wav").write_bytes(wav.build_wav(samples, wav.sample_rate(data), wav.channel_count(data)))
```

List the packets in a Nintendo Opus file:

```python
from pathlib import Path
from nxopus import container

data = Path("bgm.opus").read_bytes()
header = container.validate_opus(data)
for packet in container.iter_packets(data):
    print(len(packet.data), hex(packet.final_range))
```

Find out which wrapper a game's file uses:

```python
from pathlib import Path
from nxopus import variants

path = Path("bgm_001.opus")
info = variants.detect(path.read_bytes(), path)
print(info.variant, info.channels, info.num_samples, info.loop_start, info.loop_end)
```

## Command line

```
create-capcom-opus input.wav output.opus LOOP_START LOOP_END
```

The command reads the channel count and sample rate of `input.wav` from
their usual fixed offsets. It reads the `data` chunk as signed 16-bit
samples. It then writes a file with this layout:

- a Capcom header: the samples per channel, the channel count, a loop
  field, fixed values and three configuration words;
- a basic-info chunk;
- a data chunk that holds the samples unchanged. They are not encoded.

The file is for checking how tools handle the container layout.

If `LOOP_START` is at least 0 and `LOOP_END` is greater than `LOOP_START`,
the loop field is one 64-bit value: the start in its upper half and the
end in its lower half. Otherwise the loop field is all `FF` bytes, which
means no loop. The command returns 0 on success and 1 on any error.

## What it does not do

nxopus has no Opus codec.

- It does not decode packets into samples.
- It does not encode samples into packets.
- `build_opus` and `build_capcom_opus` expect packets that an Opus encoder
  has already produced.
- There is no command that converts between WAV and Opus audio.
- Interleaved 6-channel Capcom streams are recognised but rejected.