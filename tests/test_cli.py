import pytest

from epkit import (
    EP40_NOTES,
    ValidationError,
    assign_ep40_notes,
    default_output_name,
    ExportOptions,
    main,
    midi_to_note_name,
    parse_note,
    read_tnge,
    read_wav_info,
)


@pytest.mark.parametrize(
    "text,expected",
    [
        ("60", 60),
        ("C4", 60),
        ("c#4", 61),
        ("Bb2", 46),
        ("C-1", 0),
        ("G9", 127),
        (" 72 ", 72),
        ("H4", None),
        ("128", None),
        ("C4x", None),
    ],
)
def test_parse_note(text, expected):
    assert parse_note(text) == expected


def test_midi_to_note_name():
    assert midi_to_note_name(60) == "C4"
    assert midi_to_note_name(61) == "C#4"
    assert midi_to_note_name(0) == "C-1"


def test_assign_ep40_notes_skips_taken_slots():
    assert assign_ep40_notes(["a", "b"], taken=[60]) == [(62, "a"), (64, "b")]


def test_assign_ep40_notes_too_many():
    with pytest.raises(ValidationError):
        assign_ep40_notes([str(i) for i in range(len(EP40_NOTES) + 1)])


def test_default_output_name():
    assert default_output_name(ExportOptions(22050, 2)) == "epkit_kit_22050hz_stereo.wav"
    assert default_output_name(ExportOptions(46875, 1), flat=True) == "epkit_flat_46875hz_mono.wav"


def test_cli_builds_kit(tmp_path, write_wav, capsys):
    low = write_wav("low.wav")
    high = write_wav("high.wav", seconds=0.5, channels=2)
    out = tmp_path / "out" / "kit.wav"

    code = main([f"G4={high}", f"60={low}", "-o", str(out), "-c", "1"])

    assert code == 0
    wav = out.read_bytes()
    info = read_wav_info(wav)
    assert (info.channels, info.sample_rate) == (1, 22050)
    regions = read_tnge(wav)["regions"]
    assert [r["sound.rootnote"] for r in regions] == [60, 67]
    assert regions[1]["sample.start"] == 22050
    assert "EXPORT SUMMARY" in capsys.readouterr().out


def test_cli_bare_files_take_ep40_slots(tmp_path, write_wav):
    a = write_wav("a.wav", seconds=0.1)
    b = write_wav("b.wav", seconds=0.1)
    out = tmp_path / "kit.wav"

    assert main([str(a), str(b), "-o", str(out)]) == 0

    regions = read_tnge(out.read_bytes())["regions"]
    assert [r["sound.rootnote"] for r in regions] == [60, 62]


def test_cli_flat_export(tmp_path, write_wav):
    a = write_wav("a.wav", seconds=0.25)
    b = write_wav("b.wav", seconds=0.25)
    out = tmp_path / "flat.wav"

    assert main([str(b), str(a), "--flat", "-o", str(out), "-r", "46875"]) == 0

    wav = out.read_bytes()
    assert read_tnge(wav) is None
    assert read_wav_info(wav).sample_rate == 46875


def test_cli_refuses_over_limit(tmp_path, write_wav, capsys):
    a = write_wav("a.wav")
    b = write_wav("b.wav")
    out = tmp_path / "kit.wav"

    code = main([f"C4={a}", f"D4={b}", "-o", str(out), "--max-duration", "1.5"])

    assert code == 1
    assert not out.exists()
    assert "exceeds" in capsys.readouterr().out


def test_cli_rejects_bad_note(tmp_path, write_wav, capsys):
    a = write_wav("a.wav")

    assert main([f"H4={a}", "-o", str(tmp_path / "kit.wav")]) == 1
    assert "Invalid note" in capsys.readouterr().out


def test_cli_rejects_non_wav(tmp_path, capsys):
    bogus = tmp_path / "bogus.wav"
    bogus.write_bytes(b"not a wav")

    assert main([f"C4={bogus}", "-o", str(tmp_path / "kit.wav")]) == 1
    assert "Error:" in capsys.readouterr().out
