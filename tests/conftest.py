import io
import wave

import numpy as np
import pytest

from epkit import AudioBackend, DecodedAudio


def _wav_bytes(frames, channels=1, sample_rate=44100, sampwidth=2, value=0):
    buf = io.BytesIO()
    with wave.open(buf, "wb") as w:
        w.setnchannels(channels)
        w.setsampwidth(sampwidth)
        w.setframerate(sample_rate)
        sample = int(value).to_bytes(sampwidth, "little", signed=sampwidth > 1)
        w.writeframes(sample * (frames * channels))
    return buf.getvalue()


class FakeBackend(AudioBackend):
    """Returns pre-built audio keyed by the source bytes."""

    name = "fake"

    def __init__(self, audio_by_data):
        self.audio_by_data = audio_by_data
        self.decoded = []

    def decode(self, data):
        self.decoded.append(data)
        return self.audio_by_data[data]


@pytest.fixture
def make_wav():
    """Build an in-memory WAV file with constant samples."""
    return _wav_bytes


@pytest.fixture
def write_wav(tmp_path):
    """Write a WAV file under tmp_path and return its path."""

    def _write(name, seconds=1.0, channels=1, sample_rate=44100, value=0):
        path = tmp_path / name
        path.write_bytes(_wav_bytes(int(seconds * sample_rate), channels, sample_rate, 2, value))
        return path

    return _write


@pytest.fixture
def constant_audio():
    """Build DecodedAudio filled with one value."""

    def _make(frames, channels=1, sample_rate=22050, value=0.0):
        samples = np.full((channels, frames), value, dtype=np.float32)
        return DecodedAudio(samples, sample_rate)

    return _make


@pytest.fixture
def fake_backend():
    return FakeBackend
