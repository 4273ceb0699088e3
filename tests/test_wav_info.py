import struct

import pytest

from epkit import Chunk, FormatError, build_riff, read_wav_info, read_wav_info_file


def _fmt(channels, sample_rate, bits):
    block_align = channels * bits // 8
    return Chunk(
        b"fmt ",
        struct.pack("<HHIIHH", 1, channels, sample_rate, sample_rate * block_align, block_align, bits),
    )


@pytest.mark.parametrize(
    "channels,sample_rate,sampwidth",
    [(1, 44100, 2), (2, 48000, 2), (2, 22050, 3), (1, 8000, 1)],
)
def test_recovers_written_format(make_wav, channels, sample_rate, sampwidth):
    frames = sample_rate // 2
    info = read_wav_info(make_wav(frames, channels, sample_rate, sampwidth))

    assert info.channels == channels
    assert info.sample_rate == sample_rate
    assert info.bits_per_sample == sampwidth * 8
    assert info.data_bytes == frames * channels * sampwidth
    assert info.duration_sec == pytest.approx(0.5)


def test_rejects_short_buffer():
    with pytest.raises(FormatError):
        read_wav_info(b"RIFF\x00\x00")


@pytest.mark.parametrize("header", [b"RIFX\x04\x00\x00\x00WAVE", b"RIFF\x04\x00\x00\x00AVI "])
def test_rejects_bad_magic(header):
    with pytest.raises(FormatError):
        read_wav_info(header + b"\x00" * 32)


def test_missing_data_chunk():
    with pytest.raises(FormatError, match="missing fmt or data"):
        read_wav_info(build_riff([_fmt(1, 44100, 16)]))


def test_short_fmt_chunk_is_ignored():
    data = build_riff([Chunk(b"fmt ", b"\x01\x00\x01\x00"), Chunk(b"data", b"\x00" * 8)])
    with pytest.raises(FormatError):
        read_wav_info(data)


def test_skips_unknown_odd_sized_chunks():
    data = build_riff(
        [
            Chunk(b"junk", b"abc"),
            _fmt(2, 44100, 16),
            Chunk(b"LIST", b"INFOx"),
            Chunk(b"data", b"\x00" * 4 * 441),
        ]
    )
    info = read_wav_info(data)

    assert info.channels == 2
    assert info.data_bytes == 1764
    assert info.duration_sec == pytest.approx(0.01)


def test_truncated_trailing_chunk_keeps_what_was_found(make_wav):
    data = make_wav(100) + b"smpl" + struct.pack("<I", 1000) + b"abc"
    info = read_wav_info(data)

    assert info.sample_rate == 44100
    assert info.data_bytes == 200


def test_truncated_data_chunk_is_missing():
    data = build_riff([_fmt(1, 44100, 16)]) + b"data" + struct.pack("<I", 1000) + b"\x00" * 10
    with pytest.raises(FormatError):
        read_wav_info(data)


def test_read_from_file(tmp_path, make_wav):
    path = tmp_path / "a.wav"
    path.write_bytes(make_wav(22050, 2, 22050))

    info = read_wav_info_file(path)

    assert info.channels == 2
    assert info.duration_sec == pytest.approx(1.0)
