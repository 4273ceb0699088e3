import json
import struct

import pytest

from epkit import (
    Chunk,
    Region,
    build_data_chunk,
    build_fmt_chunk,
    build_list_tnge_chunk,
    build_riff,
    build_smpl_chunk,
)


def test_odd_payload_gets_one_pad_byte():
    raw = Chunk(b"abcd", b"xyz").to_bytes()

    assert raw == b"abcd" + struct.pack("<I", 3) + b"xyz\x00"


def test_even_payload_is_not_padded():
    raw = Chunk(b"abcd", b"wxyz").to_bytes()

    assert len(raw) == 12
    assert struct.unpack_from("<I", raw, 4)[0] == 4


def test_chunk_id_must_be_four_bytes():
    with pytest.raises(ValueError):
        Chunk(b"fmt", b"")


def test_fmt_chunk_fields():
    raw = build_fmt_chunk(2, 22050).to_bytes()

    assert len(raw) == 24
    assert raw[:4] == b"fmt "
    assert struct.unpack("<IHHIIHH", raw[4:]) == (16, 1, 2, 22050, 88200, 4, 16)


def test_smpl_chunk_fields():
    raw = build_smpl_chunk(22050).to_bytes()

    assert len(raw) == 44
    assert raw[:4] == b"smpl"
    fields = struct.unpack("<I9I", raw[4:])
    assert fields == (36, 0, 0, 45351, 60, 0, 0, 0, 0, 0)


def test_smpl_period_zero_rate():
    assert struct.unpack_from("<I", build_smpl_chunk(0).payload, 8)[0] == 0


def test_data_chunk_size_excludes_pad():
    raw = build_data_chunk(b"\x01\x02\x03").to_bytes()

    assert struct.unpack_from("<I", raw, 4)[0] == 3
    assert raw[-1:] == b"\x00"
    assert len(raw) == 12


def test_list_tnge_chunk_layout():
    regions = [Region(0, 100, 0, 62, 60), Region(100, 150, 62, 127, 64)]
    chunk = build_list_tnge_chunk(regions)
    payload = chunk.payload

    assert chunk.chunk_id == b"LIST"
    assert len(payload) % 2 == 0
    assert payload[:8] == b"INFOTNGE"

    json_len = struct.unpack_from("<I", payload, 8)[0]
    body = payload[12 : 12 + json_len]
    assert body.endswith(b"\x00")
    assert len(payload) == 12 + json_len + json_len % 2

    meta = json.loads(body[:-1])
    assert list(meta)[:9] == [
        "sound.playmode",
        "sound.rootnote",
        "sound.pitch",
        "sound.pan",
        "sound.amplitude",
        "envelope.attack",
        "envelope.release",
        "time.mode",
        "sample.mode",
    ]
    assert meta["sound.playmode"] == "key"
    assert meta["sample.mode"] == "multi"
    assert meta["regions"][1] == {
        "sample.start": 100,
        "sample.end": 150,
        "sample.lokey": 62,
        "sample.hikey": 127,
        "sound.rootnote": 64,
        "sound.loopstart": -1,
        "sound.loopend": -1,
    }


def test_tnge_json_is_compact():
    payload = build_list_tnge_chunk([]).payload
    assert b'{"sound.playmode":"key","sound.rootnote":60,' in payload
    assert b'"regions":[]}\x00' in payload


def test_riff_size_counts_padding():
    chunks = [Chunk(b"aaaa", b"x"), Chunk(b"bbbb", b"yy")]
    wav = build_riff(chunks)

    assert wav[:4] == b"RIFF"
    assert wav[8:12] == b"WAVE"
    assert struct.unpack_from("<I", wav, 4)[0] == 4 + 10 + 10
    assert len(wav) == 8 + 4 + 20
