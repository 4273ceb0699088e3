import asyncio

import pytest

pytest.importorskip("flet")

from epkit import read_tnge  # noqa: E402
from gui.components.options_panel import KitOptions  # noqa: E402
from gui.export_bridge import ExportBridge  # noqa: E402


class LogCollector:
    def __init__(self):
        self.lines = []

    def __call__(self, message, level="info"):
        self.lines.append((level, message))


def test_bridge_exports_kit_in_selection_order(tmp_path, write_wav):
    paths = [str(write_wav(f"{name}.wav", seconds=0.2)) for name in ("kick", "snare", "hat")]
    out = tmp_path / "kit.wav"
    log = LogCollector()
    bridge = ExportBridge(log)

    result = asyncio.run(bridge.export_files(paths, str(out), KitOptions(channels=1)))

    assert result is not None
    regions = read_tnge(out.read_bytes())["regions"]
    assert [r["sound.rootnote"] for r in regions] == [60, 62, 64]
    assert ("info", "  D4 <- snare.wav") in log.lines
    assert log.lines[-1][0] == "success"
    assert "Checking 3 sample(s)" in bridge.get_debug_log()


def test_bridge_flat_export(tmp_path, write_wav):
    paths = [str(write_wav("a.wav", seconds=0.1)), str(write_wav("b.wav", seconds=0.1))]
    out = tmp_path / "flat.wav"

    result = asyncio.run(
        ExportBridge(LogCollector()).export_files(paths, str(out), KitOptions(flat=True))
    )

    assert result.num_frames == 2 * 2205
    assert read_tnge(out.read_bytes()) is None


def test_bridge_reports_errors(tmp_path):
    bogus = tmp_path / "bogus.wav"
    bogus.write_bytes(b"junk")
    log = LogCollector()

    result = asyncio.run(
        ExportBridge(log).export_files([str(bogus)], str(tmp_path / "kit.wav"), KitOptions())
    )

    assert result is None
    assert log.lines[-1][0] == "error"
    assert not (tmp_path / "kit.wav").exists()


def test_kit_options_limit():
    assert KitOptions().max_duration == 20
    assert KitOptions(limit_duration=False).max_duration is None
    assert KitOptions(sample_rate=46875, channels=1).to_export_options().sample_rate == 46875


def test_bridge_reports_write_failures(tmp_path, write_wav):
    source = str(write_wav("a.wav", seconds=0.1))
    taken = tmp_path / "taken"
    taken.mkdir()
    log = LogCollector()

    result = asyncio.run(ExportBridge(log).export_files([source], str(taken), KitOptions()))

    assert result is None
    assert log.lines[-1][0] == "error"
    assert "Unexpected error" in log.lines[-1][1]
