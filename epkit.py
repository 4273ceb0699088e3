#!/usr/bin/env python3
"""EP-40 kit builder.

Builds multi-region "kit" WAV files for the EP-40 sampler from a set of
WAV samples bound to MIDI notes, or a flat concatenated WAV.

Usage: epkit.py NOTE=FILE [NOTE=FILE ...] -o OUTPUT [--sample-rate RATE] [--channels N]

Copyright (c) 2025, epkit contributors
"""

import argparse
import asyncio
import glob
import io
import json
import logging
import math
import os
import re
import struct
import subprocess
import sys
from dataclasses import dataclass, field

import numpy as np
import soundfile as sf
from scipy.signal import resample_poly

__version__ = "1.0.0"

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

NOTE_NAMES = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]

# EP-40 keyboard slots: C4, D4, E4, F4, G4, A4, B4, C5
EP40_NOTES = (60, 62, 64, 65, 67, 69, 71, 72)

DEFAULT_SAMPLE_RATE = 22050
SUPPORTED_SAMPLE_RATES = (22050, 46875)
DEFAULT_CHANNELS = 2
MAX_TOTAL_SECONDS = 20

PCM16_NEG_SCALE = 32768
PCM16_POS_SCALE = 32767

SMPL_UNITY_NOTE = 60
TNGE_ROOT_NOTE = 60
NO_LOOP = -1

# Small tolerance on the duration limit so exactly 20.0s passes
DURATION_EPSILON = 1e-6


# =============================================================================
# Errors
# =============================================================================


class EpkitError(Exception):
    """Base class for all epkit errors."""


class FormatError(EpkitError):
    """Buffer is not a usable RIFF/WAVE file."""


class DecodeError(EpkitError):
    """Audio backend could not decode the given bytes."""


class ValidationError(EpkitError):
    """Invalid export options, notes or arguments."""


class ConversionError(EpkitError):
    """Export refused by caller policy (duration limit, no input...)."""


# =============================================================================
# Export Statistics
# =============================================================================


class ExportStats:
    """Collects statistics and warnings during export."""

    def __init__(self):
        self.reset()

    def reset(self):
        """Reset all statistics."""
        self.files_written = 0

        # Source counts
        self.sources_decoded = 0
        self.sources_resampled = 0
        self.sources_dropped = 0

        self.total_frames = 0
        self.total_duration = 0.0

        # Warnings: list of (name, message)
        self.warnings = []

    def add_warning(self, name, message):
        """Add a warning with associated source name."""
        self.warnings.append((name, message))

    def record_sources(self, names, source_rates, rendered, target_rate):
        """Record per-source results of one export."""
        for name, rate, audio in zip(names, source_rates, rendered):
            self.sources_decoded += 1
            if rate != target_rate:
                self.sources_resampled += 1
            if audio.num_frames == 0:
                self.sources_dropped += 1
                self.add_warning(name, "no audio frames, dropped from export")

    def print_summary(self, settings=None):
        """Print export summary."""
        print("\n" + "=" * 50)
        print("EXPORT SUMMARY")
        print("=" * 50)

        if settings:
            print("\n--- Settings ---")
            print(f"Mode: {'flat' if settings.get('flat') else 'kit'}")
            print(f"Sample rate: {settings.get('sample_rate')} Hz")
            channels = settings.get("channels")
            print(f"Channels: {channels} ({'stereo' if channels == 2 else 'mono'})")
            print(f"Backend: {settings.get('backend', 'soundfile')}")
            print(f"Max duration: {settings.get('max_duration')} s")

        print("\n--- Statistics ---")
        print(f"Files written: {self.files_written}")
        print(f"Sources decoded: {self.sources_decoded}", end="")
        if self.sources_resampled > 0:
            print(f" (resampled: {self.sources_resampled})")
        else:
            print()
        if self.sources_dropped > 0:
            print(f"Sources dropped (empty): {self.sources_dropped}")
        print(f"Total frames: {self.total_frames}")
        print(f"Total duration: {self.total_duration:.3f} s")

        if self.warnings:
            print(f"\n--- Warnings ({len(self.warnings)}) ---")
            for name, message in self.warnings:
                print(f"  - {name}: {message}")
        else:
            print("\n--- No warnings ---")

        print("=" * 50)


# Global stats instance
export_stats = ExportStats()


# =============================================================================
# Utility Functions
# =============================================================================


def check_ffmpeg():
    """Check if ffmpeg is available and built with the soxr resampler.

    Returns:
        tuple: (ffmpeg_ok, soxr_ok)
    """
    try:
        result = subprocess.run(["ffmpeg", "-version"], capture_output=True, text=True)
    except FileNotFoundError:
        return False, False
    if result.returncode != 0:
        return False, False
    return True, "--enable-libsoxr" in result.stdout


def get_ffmpeg_error_message(ffmpeg_ok, soxr_ok):
    """Build a user-facing message for a missing ffmpeg.

    soxr is optional: without it the ffmpeg backend falls back to the
    default swr resampler, so only a missing ffmpeg is an error.

    Returns:
        str: Error message, or "" when ffmpeg is usable
    """
    if ffmpeg_ok:
        return ""
    return (
        "ffmpeg is not installed or not found in PATH.\n"
        "\n"
        "Please install ffmpeg:\n"
        "  macOS:   brew install ffmpeg\n"
        "  Ubuntu:  sudo apt install ffmpeg\n"
        "  Windows: Download from https://ffmpeg.org/download.html"
    )


def midi_to_note_name(midi_note):
    """Convert MIDI note number to note name (e.g., 60 -> 'C4')."""
    octave = (midi_note // 12) - 1
    return f"{NOTE_NAMES[midi_note % 12]}{octave}"


def parse_note(note_str):
    """Parse a note given as MIDI number or scientific pitch name.

    Args:
        note_str: Note as MIDI number (e.g., "60") or name (e.g., "C4", "F#3", "Bb2")

    Returns:
        int: MIDI note number (0-127), or None if invalid
    """
    note_str = str(note_str).strip()

    try:
        midi = int(note_str)
    except ValueError:
        match = re.fullmatch(r"([A-Ga-g])([#b]?)(-?\d+)", note_str)
        if not match:
            return None
        note_map = {"C": 0, "D": 2, "E": 4, "F": 5, "G": 7, "A": 9, "B": 11}
        midi = note_map[match.group(1).upper()] + (int(match.group(3)) + 1) * 12
        if match.group(2) == "#":
            midi += 1
        elif match.group(2) == "b":
            midi -= 1

    if 0 <= midi <= 127:
        return midi
    return None


def _round_half_up(value):
    return int(math.floor(value + 0.5))


# =============================================================================
# WAV Header Parsing
# =============================================================================


@dataclass(frozen=True)
class WavInfo:
    """Minimal RIFF/WAVE metadata, read without decoding samples."""

    channels: int
    sample_rate: int
    bits_per_sample: int
    data_bytes: int
    duration_sec: float


def read_wav_info(data):
    """Parse minimal RIFF/WAVE info from a byte buffer.

    Works for PCM, IEEE float and WAVE_FORMAT_EXTENSIBLE as long as the fmt
    chunk provides channels/sample rate/bits per sample and a data chunk
    exists. A chunk running past the end of the buffer stops the scan; what
    was found before it is still used.

    Args:
        data: bytes-like buffer holding the whole file

    Returns:
        WavInfo

    Raises:
        FormatError: Bad header, missing fmt/data chunk or invalid byte rate
    """
    end = len(data)
    if end < 12:
        raise FormatError("File too small to be a WAV")
    if bytes(data[0:4]) != b"RIFF" or bytes(data[8:12]) != b"WAVE":
        raise FormatError("Invalid RIFF/WAVE header")

    offset = 12
    channels = 0
    sample_rate = 0
    bits_per_sample = 0
    data_bytes = 0

    while offset + 8 <= end:
        chunk_id = bytes(data[offset : offset + 4])
        chunk_size = struct.unpack_from("<I", data, offset + 4)[0]
        body = offset + 8

        if body + chunk_size > end:
            logger.debug(
                "Truncated %r chunk at offset %d (size %d, buffer %d)",
                chunk_id,
                offset,
                chunk_size,
                end,
            )
            break

        if chunk_id == b"fmt ":
            # WAVEFORMATEX (min 16 bytes)
            if chunk_size >= 16:
                channels, sample_rate = struct.unpack_from("<HI", data, body + 2)
                bits_per_sample = struct.unpack_from("<H", data, body + 14)[0]
        elif chunk_id == b"data":
            data_bytes = chunk_size

        # Next chunk (word aligned)
        offset = body + chunk_size + (chunk_size % 2)

    if not (channels and sample_rate and bits_per_sample and data_bytes):
        raise FormatError("Cannot read WAV info (missing fmt or data chunk)")

    byte_rate = sample_rate * channels * (bits_per_sample / 8)
    if not math.isfinite(byte_rate) or byte_rate <= 0:
        raise FormatError("Invalid WAV (byte rate)")

    return WavInfo(
        channels=channels,
        sample_rate=sample_rate,
        bits_per_sample=bits_per_sample,
        data_bytes=data_bytes,
        duration_sec=data_bytes / byte_rate,
    )


def read_wav_info_file(filepath):
    """Read a WAV file from disk and parse its header info."""
    with open(filepath, "rb") as f:
        return read_wav_info(f.read())


def read_chunks(data):
    """List top-level RIFF chunks of a WAV buffer.

    Args:
        data: bytes-like buffer holding the whole file

    Returns:
        list: (chunk_id, payload) tuples, payload without pad byte
    """
    if len(data) < 12 or bytes(data[0:4]) != b"RIFF" or bytes(data[8:12]) != b"WAVE":
        raise FormatError("Invalid RIFF/WAVE header")

    chunks = []
    offset = 12
    while offset + 8 <= len(data):
        chunk_id = bytes(data[offset : offset + 4])
        chunk_size = struct.unpack_from("<I", data, offset + 4)[0]
        body = offset + 8
        if body + chunk_size > len(data):
            break
        chunks.append((chunk_id, bytes(data[body : body + chunk_size])))
        offset = body + chunk_size + (chunk_size % 2)
    return chunks


def read_tnge(data):
    """Extract the TNGE kit metadata from a kit WAV buffer.

    Returns:
        dict: Decoded TNGE JSON object, or None if the file has none
    """
    for chunk_id, payload in read_chunks(data):
        if chunk_id != b"LIST" or payload[0:4] != b"INFO":
            continue
        offset = 4
        while offset + 8 <= len(payload):
            sub_id = payload[offset : offset + 4]
            sub_size = struct.unpack_from("<I", payload, offset + 4)[0]
            body = payload[offset + 8 : offset + 8 + sub_size]
            if sub_id == b"TNGE":
                return json.loads(body.rstrip(b"\x00").decode("utf-8"))
            offset += 8 + sub_size + (sub_size % 2)
    return None


# =============================================================================
# Audio Backends
# =============================================================================


@dataclass(frozen=True, eq=False)
class DecodedAudio:
    """Floating-point audio, shaped (channels, frames)."""

    samples: np.ndarray
    sample_rate: int

    @property
    def num_channels(self):
        return self.samples.shape[0]

    @property
    def num_frames(self):
        return self.samples.shape[1]

    @property
    def duration(self):
        return self.num_frames / self.sample_rate


def _fit_length(samples, frames):
    """Trim or zero-pad (channels, n) samples to exactly `frames` columns."""
    if samples.shape[1] >= frames:
        return samples[:, :frames]
    pad = np.zeros((samples.shape[0], frames - samples.shape[1]), dtype=samples.dtype)
    return np.concatenate([samples, pad], axis=1)


class AudioBackend:
    """Decode/resample capability used by the exporters.

    Subclasses implement `decode` and `_resample`. Any resources a decode
    needs must be acquired and released within the call.
    """

    name = None

    def decode(self, data):
        """Decode raw file bytes to DecodedAudio at the native sample rate.

        Raises:
            DecodeError: The bytes cannot be decoded
        """
        raise NotImplementedError

    def resample(self, audio, sample_rate):
        """Resample to `sample_rate`, keeping pitch and duration.

        Returns the input unchanged when the rate already matches. The
        result has round(duration * sample_rate) frames.
        """
        if audio.sample_rate == sample_rate:
            return audio
        frames = _round_half_up(audio.duration * sample_rate)
        if audio.num_frames == 0 or frames == 0:
            empty = np.zeros((audio.num_channels, frames), dtype=np.float32)
            return DecodedAudio(empty, sample_rate)
        out = self._resample(audio, sample_rate)
        return DecodedAudio(
            _fit_length(out, frames).astype(np.float32, copy=False), sample_rate
        )

    def _resample(self, audio, sample_rate):
        raise NotImplementedError


class SoundfileBackend(AudioBackend):
    """libsndfile decoding with polyphase resampling."""

    name = "soundfile"

    def decode(self, data):
        try:
            with sf.SoundFile(io.BytesIO(data)) as f:
                sample_rate = f.samplerate
                frames = f.read(dtype="float32", always_2d=True)
        except (RuntimeError, TypeError) as e:
            raise DecodeError(f"Cannot decode audio: {e}") from e
        return DecodedAudio(np.ascontiguousarray(frames.T), int(sample_rate))

    def _resample(self, audio, sample_rate):
        g = math.gcd(audio.sample_rate, sample_rate)
        up = sample_rate // g
        down = audio.sample_rate // g
        logger.debug("resample_poly %d -> %d (up=%d, down=%d)",
                     audio.sample_rate, sample_rate, up, down)
        return resample_poly(audio.samples, up=up, down=down, axis=1)


class FfmpegBackend(AudioBackend):
    """Decoding and resampling through ffmpeg/ffprobe subprocesses.

    Each call runs its own process, so no decoder state outlives a call.
    """

    name = "ffmpeg"

    def __init__(self, use_soxr=None):
        if use_soxr is None:
            _, use_soxr = check_ffmpeg()
        self.use_soxr = use_soxr

    def _run(self, cmd, data):
        try:
            result = subprocess.run(cmd, input=data, capture_output=True)
        except FileNotFoundError as e:
            raise DecodeError(f"{cmd[0]} not found. Please install ffmpeg.") from e
        if result.returncode != 0:
            message = result.stderr.decode("utf-8", errors="replace").strip()
            raise DecodeError(f"{cmd[0]} failed: {message or result.returncode}")
        return result.stdout

    def _probe(self, data):
        out = self._run(
            [
                "ffprobe",
                "-v",
                "error",
                "-select_streams",
                "a:0",
                "-show_entries",
                "stream=sample_rate,channels",
                "-of",
                "json",
                "-i",
                "pipe:0",
            ],
            data,
        )
        try:
            stream = json.loads(out)["streams"][0]
            sample_rate, channels = int(stream["sample_rate"]), int(stream["channels"])
        except (ValueError, KeyError, IndexError) as e:
            raise DecodeError("ffprobe found no audio stream") from e
        if sample_rate <= 0 or channels <= 0:
            raise DecodeError("ffprobe found no audio stream")
        return sample_rate, channels

    def decode(self, data):
        sample_rate, channels = self._probe(data)
        raw = self._run(
            ["ffmpeg", "-v", "error", "-i", "pipe:0", "-f", "f32le", "-acodec", "pcm_f32le", "pipe:1"],
            data,
        )
        interleaved = np.frombuffer(raw, dtype="<f4")
        frames = len(interleaved) // channels
        samples = interleaved[: frames * channels].reshape(frames, channels).T
        return DecodedAudio(np.ascontiguousarray(samples, dtype=np.float32), sample_rate)

    def _resample(self, audio, sample_rate):
        cmd = [
            "ffmpeg",
            "-v",
            "error",
            "-f",
            "f32le",
            "-ar",
            str(audio.sample_rate),
            "-ac",
            str(audio.num_channels),
            "-i",
            "pipe:0",
        ]
        if self.use_soxr:
            cmd.extend(["-af", "aresample=resampler=soxr"])
        cmd.extend(["-ar", str(sample_rate), "-f", "f32le", "pipe:1"])

        raw = self._run(cmd, audio.samples.T.astype("<f4").tobytes())
        interleaved = np.frombuffer(raw, dtype="<f4")
        frames = len(interleaved) // audio.num_channels
        return interleaved[: frames * audio.num_channels].reshape(frames, audio.num_channels).T


BACKENDS = {
    SoundfileBackend.name: SoundfileBackend,
    FfmpegBackend.name: FfmpegBackend,
}


def get_backend(name):
    """Create an audio backend by name ("soundfile" or "ffmpeg")."""
    try:
        return BACKENDS[name]()
    except KeyError:
        raise ValidationError(
            f"Unknown backend: {name} (supported: {', '.join(BACKENDS)})"
        ) from None


# =============================================================================
# PCM Conditioning
# =============================================================================


def remix_channels(audio, channels):
    """Map decoded audio to exactly 1 or 2 channels.

    Mono target averages all source channels. Stereo target duplicates a
    mono source, or keeps channels 0 and 1 and drops the rest.

    Args:
        audio: DecodedAudio with any channel count
        channels: Target channel count (1 or 2)

    Returns:
        DecodedAudio: Same frame count and sample rate
    """
    if channels not in (1, 2):
        raise ValidationError(f"Unsupported channel count: {channels}")

    src = audio.samples
    if channels == 1:
        mixed = src.sum(axis=0, keepdims=True) / src.shape[0]
    elif src.shape[0] == 1:
        mixed = np.repeat(src, 2, axis=0)
    else:
        mixed = src[:2].copy()
    return DecodedAudio(mixed.astype(np.float32, copy=False), audio.sample_rate)


def quantize_pcm16(x):
    """Convert one float sample in [-1, 1] to a signed 16-bit value.

    Negative values scale by 32768 and positive by 32767, then truncate
    toward zero, so -1.0 -> -32768 and 1.0 -> 32767.
    """
    x = float(x)
    if math.isnan(x):
        return 0
    x = min(1.0, max(-1.0, x))
    if x < 0:
        return int(x * PCM16_NEG_SCALE)
    return int(x * PCM16_POS_SCALE)


def quantize_pcm16_array(samples):
    """Vectorised `quantize_pcm16`; returns an int16 array of the same shape."""
    x = np.clip(np.nan_to_num(np.asarray(samples, dtype=np.float64), nan=0.0), -1.0, 1.0)
    scaled = np.where(x < 0, x * PCM16_NEG_SCALE, x * PCM16_POS_SCALE)
    return np.trunc(scaled).astype(np.int16)


def interleave_pcm16(audio):
    """Quantize and interleave audio frames as little-endian PCM16 bytes."""
    return quantize_pcm16_array(audio.samples.T).astype("<i2").tobytes()


# =============================================================================
# Key Regions
# =============================================================================


@dataclass(frozen=True)
class Region:
    """One kit region: frame span in the data chunk plus its key range."""

    sample_start: int
    sample_end: int
    lo_key: int
    hi_key: int
    root_note: int


def key_boundaries(notes):
    """Compute key-range boundaries for ascending notes.

    Boundaries are [0, midpoints..., 127], each midpoint rounding the upper
    half up: (prev + cur + 1) // 2.

    Example:
        [60, 64, 67] -> [0, 62, 66, 127]
    """
    if not notes:
        return []
    boundaries = [0]
    for prev, cur in zip(notes, notes[1:]):
        boundaries.append((prev + cur + 1) // 2)
    boundaries.append(127)
    return boundaries


def build_regions(notes, frame_counts):
    """Build kit regions from sorted notes and their rendered frame counts.

    Items with no frames produce no region, but their note still takes part
    in the boundary computation of their neighbours.

    Args:
        notes: Ascending MIDI notes
        frame_counts: Frame count of each note's audio

    Returns:
        list: Region objects with cumulative frame offsets
    """
    if len(notes) != len(frame_counts):
        raise ValidationError(
            f"{len(notes)} notes but {len(frame_counts)} frame counts"
        )

    boundaries = key_boundaries(notes)
    regions = []
    current = 0
    for i, (note, frames) in enumerate(zip(notes, frame_counts)):
        if frames <= 0:
            continue
        regions.append(
            Region(
                sample_start=current,
                sample_end=current + frames,
                lo_key=boundaries[i],
                hi_key=boundaries[i + 1],
                root_note=note,
            )
        )
        current += frames
    return regions


# =============================================================================
# RIFF Chunks
# =============================================================================
#
# Serialized chunk: id (4) + size (u32le) + payload + pad byte if size is odd.
# The size field never counts the pad byte.
#
# =============================================================================


@dataclass(frozen=True)
class Chunk:
    """A RIFF subchunk."""

    chunk_id: bytes
    payload: bytes

    def __post_init__(self):
        if len(self.chunk_id) != 4:
            raise ValueError(f"Chunk id must be 4 bytes: {self.chunk_id!r}")

    @property
    def size(self):
        return len(self.payload)

    def to_bytes(self):
        pad = b"\x00" if self.size % 2 else b""
        return self.chunk_id + struct.pack("<I", self.size) + self.payload + pad


def build_fmt_chunk(channels, sample_rate):
    """Build a 16-bit PCM `fmt ` chunk."""
    block_align = channels * 2
    return Chunk(
        b"fmt ",
        struct.pack(
            "<HHIIHH",
            1,  # PCM
            channels,
            sample_rate,
            sample_rate * block_align,  # byte rate
            block_align,
            16,  # bits per sample
        ),
    )


def tnge_metadata(regions):
    """Build the TNGE metadata object for a list of regions."""
    return {
        "sound.playmode": "key",
        "sound.rootnote": TNGE_ROOT_NOTE,
        "sound.pitch": 0,
        "sound.pan": 0,
        "sound.amplitude": 100,
        "envelope.attack": 0,
        "envelope.release": 0,
        "time.mode": "off",
        "sample.mode": "multi",
        "regions": [
            {
                "sample.start": r.sample_start,
                "sample.end": r.sample_end,
                "sample.lokey": r.lo_key,
                "sample.hikey": r.hi_key,
                "sound.rootnote": r.root_note,
                "sound.loopstart": NO_LOOP,
                "sound.loopend": NO_LOOP,
            }
            for r in regions
        ],
    }


def build_list_tnge_chunk(regions):
    """Build the LIST/INFO chunk holding the TNGE JSON (NUL terminated)."""
    tnge_json = json.dumps(tnge_metadata(regions), separators=(",", ":"))
    tnge = Chunk(b"TNGE", tnge_json.encode("utf-8") + b"\x00")
    return Chunk(b"LIST", b"INFO" + tnge.to_bytes())


def build_smpl_chunk(sample_rate):
    """Build a `smpl` chunk with no loops and unity note 60."""
    # https://www.recordingblogs.com/wiki/sample-chunk-of-a-wave-file
    sample_period = int(1e9 / sample_rate) if sample_rate > 0 else 0
    return Chunk(
        b"smpl",
        struct.pack(
            "<IIIIIIIII",
            0,  # manufacturer
            0,  # product
            sample_period,  # nanoseconds
            SMPL_UNITY_NOTE,
            0,  # midi_pitch_fraction
            0,  # smpte_format
            0,  # smpte_offset
            0,  # num_sample_loops
            0,  # sampler_data
        ),
    )


def build_data_chunk(pcm):
    """Build a `data` chunk from raw PCM bytes."""
    return Chunk(b"data", bytes(pcm))


def build_riff(chunks):
    """Wrap chunks in a RIFF/WAVE envelope."""
    body = b"".join(chunk.to_bytes() for chunk in chunks)
    return b"RIFF" + struct.pack("<I", 4 + len(body)) + b"WAVE" + body


# =============================================================================
# Export
# =============================================================================


@dataclass(frozen=True)
class ExportOptions:
    """Target format of an export."""

    sample_rate: int = DEFAULT_SAMPLE_RATE
    channels: int = DEFAULT_CHANNELS

    def validate(self):
        if self.channels not in (1, 2):
            raise ValidationError(f"Channels must be 1 or 2, got {self.channels}")
        if not isinstance(self.sample_rate, int) or self.sample_rate <= 0:
            raise ValidationError(f"Invalid sample rate: {self.sample_rate}")


@dataclass(frozen=True)
class KitItem:
    """One source file bound to a MIDI note."""

    note: int
    data: bytes
    name: str = ""


@dataclass(frozen=True)
class ExportResult:
    """Finished WAV bytes and what went into them."""

    wav_bytes: bytes
    duration_sec: float
    num_frames: int
    regions: list = field(default_factory=list)


def _render(data, options, backend):
    """Decode, resample and remix one source (runs in a worker thread)."""
    decoded = backend.decode(data)
    resampled = backend.resample(decoded, options.sample_rate)
    return remix_channels(resampled, options.channels), decoded.sample_rate


async def _render_all(sources, options, backend):
    """Render all sources concurrently; results keep the order of `sources`."""
    results = await asyncio.gather(
        *(asyncio.to_thread(_render, data, options, backend) for data in sources)
    )
    rendered = [audio for audio, _ in results]
    source_rates = [rate for _, rate in results]
    return rendered, source_rates


async def export_kit(items, options=None, backend=None, stats=None):
    """Export a kit WAV (fmt, LIST/TNGE, smpl, data) from note-bound sources.

    Items are stable-sorted by note. Each is decoded, resampled and remixed;
    items ending with no frames are left out of the data chunk but still
    count in the key-range boundaries.

    Args:
        items: Iterable of KitItem
        options: ExportOptions (default: 22050 Hz stereo)
        backend: AudioBackend (default: SoundfileBackend)
        stats: Optional ExportStats to update

    Returns:
        ExportResult
    """
    options = options or ExportOptions()
    options.validate()
    backend = backend or SoundfileBackend()

    items = list(items)
    for item in items:
        if not isinstance(item.note, int) or not 0 <= item.note <= 127:
            raise ValidationError(f"Invalid MIDI note: {item.note}")
    items.sort(key=lambda item: item.note)

    rendered, source_rates = await _render_all(
        [item.data for item in items], options, backend
    )

    notes = [item.note for item in items]
    frame_counts = [audio.num_frames for audio in rendered]
    for item, audio in zip(items, rendered):
        if audio.num_frames == 0:
            logger.warning(
                "Dropping %s (%s): no audio frames",
                item.name or "item",
                midi_to_note_name(item.note),
            )

    pcm = b"".join(interleave_pcm16(audio) for audio in rendered if audio.num_frames)
    regions = build_regions(notes, frame_counts)
    wav_bytes = build_riff(
        [
            build_fmt_chunk(options.channels, options.sample_rate),
            build_list_tnge_chunk(regions),
            build_smpl_chunk(options.sample_rate),
            build_data_chunk(pcm),
        ]
    )

    total_frames = sum(frame_counts)
    if stats is not None:
        names = [item.name or midi_to_note_name(item.note) for item in items]
        stats.record_sources(names, source_rates, rendered, options.sample_rate)

    return ExportResult(
        wav_bytes=wav_bytes,
        duration_sec=total_frames / options.sample_rate,
        num_frames=total_frames,
        regions=regions,
    )


async def export_concatenated(sources, options=None, backend=None, stats=None, names=None):
    """Export a flat PCM16 WAV: sources concatenated in input order.

    Same pipeline as `export_kit` without note sorting or metadata; the
    header is the plain 44-byte fmt + data layout.

    Args:
        sources: Sequence of raw file bytes, in playback order
        options: ExportOptions (default: 22050 Hz stereo)
        backend: AudioBackend (default: SoundfileBackend)
        stats: Optional ExportStats to update
        names: Optional source names for stats warnings

    Returns:
        ExportResult
    """
    options = options or ExportOptions()
    options.validate()
    backend = backend or SoundfileBackend()
    sources = list(sources)

    rendered, source_rates = await _render_all(sources, options, backend)

    pcm = b"".join(interleave_pcm16(audio) for audio in rendered)
    wav_bytes = build_riff(
        [
            build_fmt_chunk(options.channels, options.sample_rate),
            build_data_chunk(pcm),
        ]
    )

    total_frames = sum(audio.num_frames for audio in rendered)
    if stats is not None:
        names = names or [f"source {i}" for i in range(1, len(sources) + 1)]
        stats.record_sources(names, source_rates, rendered, options.sample_rate)

    return ExportResult(
        wav_bytes=wav_bytes,
        duration_sec=total_frames / options.sample_rate,
        num_frames=total_frames,
    )


def assign_ep40_notes(paths, taken=()):
    """Assign free EP-40 slots (C4..C5) to paths, in order.

    Args:
        paths: Source paths needing a note
        taken: Notes already used by explicit assignments

    Returns:
        list: (note, path) tuples
    """
    free = [note for note in EP40_NOTES if note not in set(taken)]
    if len(paths) > len(free):
        raise ValidationError(
            f"{len(paths)} samples without a note but only {len(free)} free EP-40 slots"
        )
    return list(zip(free, paths))


def probe_sources(paths, max_duration=MAX_TOTAL_SECONDS):
    """Read WAV headers of all sources and check the summed duration.

    Returns:
        list: WavInfo per path

    Raises:
        FormatError: A source is not a readable WAV
        ConversionError: Summed duration exceeds max_duration
    """
    infos = []
    for path in paths:
        info = read_wav_info_file(path)
        print(
            f"  [OK] {os.path.basename(path)}: {info.channels} ch, "
            f"{info.sample_rate} Hz, {info.bits_per_sample} bit, {info.duration_sec:.2f}s"
        )
        infos.append(info)

    total = sum(info.duration_sec for info in infos)
    if max_duration is not None and total > max_duration + DURATION_EPSILON:
        raise ConversionError(
            f"Total duration {total:.2f}s exceeds the {max_duration}s limit"
        )
    return infos


def _read_file(path):
    with open(path, "rb") as f:
        return f.read()


def _finish_export(result, output_path, max_duration, stats):
    if max_duration is not None and result.duration_sec > max_duration + DURATION_EPSILON:
        raise ConversionError(
            f"Exported WAV is {result.duration_sec:.2f}s, over the {max_duration}s limit"
        )

    out_dir = os.path.dirname(os.path.abspath(output_path))
    os.makedirs(out_dir, exist_ok=True)
    with open(output_path, "wb") as f:
        f.write(result.wav_bytes)

    stats.files_written += 1
    stats.total_frames += result.num_frames
    stats.total_duration += result.duration_sec
    print(f"\nOutput: {output_path} ({len(result.wav_bytes)} bytes, {result.duration_sec:.3f}s)")


def build_kit_file(
    note_paths,
    output_path,
    options=None,
    backend=None,
    max_duration=MAX_TOTAL_SECONDS,
    stats=None,
):
    """Export a kit WAV file from (note, path) pairs.

    Args:
        note_paths: List of (midi_note, path) tuples
        output_path: Destination WAV path
        options: ExportOptions
        backend: AudioBackend
        max_duration: Duration limit in seconds (None = no limit)
        stats: ExportStats to update (default: global export_stats)

    Returns:
        ExportResult
    """
    stats = stats if stats is not None else export_stats
    if not note_paths:
        raise ConversionError("No input files")

    print(f"Checking {len(note_paths)} sample(s)...")
    probe_sources([path for _, path in note_paths], max_duration)

    items = [
        KitItem(note=note, data=_read_file(path), name=os.path.basename(path))
        for note, path in note_paths
    ]

    print("\nDecoding and resampling...")
    result = asyncio.run(export_kit(items, options, backend, stats))

    print("\nRegions:")
    for region in result.regions:
        print(
            f"  {midi_to_note_name(region.root_note):>4}  keys "
            f"{region.lo_key:3d}-{region.hi_key:3d}  frames "
            f"{region.sample_start}-{region.sample_end}"
        )

    _finish_export(result, output_path, max_duration, stats)
    return result


def build_flat_file(
    paths,
    output_path,
    options=None,
    backend=None,
    max_duration=MAX_TOTAL_SECONDS,
    stats=None,
):
    """Export a flat concatenated WAV file, keeping the order of `paths`.

    Returns:
        ExportResult
    """
    stats = stats if stats is not None else export_stats
    if not paths:
        raise ConversionError("No input files")

    print(f"Checking {len(paths)} sample(s)...")
    probe_sources(paths, max_duration)

    sources = [_read_file(path) for path in paths]
    names = [os.path.basename(path) for path in paths]

    print("\nDecoding and resampling...")
    result = asyncio.run(export_concatenated(sources, options, backend, stats, names))

    _finish_export(result, output_path, max_duration, stats)
    return result


def default_output_name(options, flat=False):
    """Default output file name, e.g. 'epkit_kit_22050hz_stereo.wav'."""
    mode = "stereo" if options.channels == 2 else "mono"
    kind = "flat" if flat else "kit"
    return f"epkit_{kind}_{options.sample_rate}hz_{mode}.wav"


# =============================================================================
# Main Entry Point
# =============================================================================


def parse_inputs(args_inputs, flat=False):
    """Split CLI inputs into explicit (note, path) pairs and bare paths.

    Bare paths may be glob patterns. In flat mode notes are ignored and the
    argument order is kept.

    Returns:
        list: (note or None, path) tuples in argument order
    """
    parsed = []
    for arg in args_inputs:
        note = None
        path = arg
        if "=" in arg:
            note_str, path = arg.split("=", 1)
            note = parse_note(note_str)
            if note is None:
                raise ValidationError(f"Invalid note: {note_str}")

        if note is None:
            expanded = sorted(glob.glob(path))
            if expanded:
                parsed.extend((None, p) for p in expanded)
                continue
            if any(c in path for c in "*?[]"):
                print(f"Warning: No files matched pattern: {path}")
                continue

        if not os.path.isfile(path):
            raise ConversionError(f"File not found: {path}")
        parsed.append((None if flat else note, path))
    return parsed


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Build EP-40 kit WAV files from samples bound to MIDI notes.",
        epilog="Inputs are NOTE=FILE (NOTE as 60 or C4). Bare FILEs take free "
        "EP-40 slots C4..C5 in order.",
    )
    parser.add_argument(
        "inputs",
        metavar="NOTE=FILE",
        nargs="+",
        help="Sample bound to a note, or a bare file/glob pattern",
    )
    parser.add_argument(
        "--output",
        "-o",
        metavar="OUTPUT",
        default=None,
        help="Output WAV path (default: epkit_<mode>_<rate>hz_<stereo|mono>.wav)",
    )
    parser.add_argument(
        "--sample-rate",
        "-r",
        type=int,
        default=DEFAULT_SAMPLE_RATE,
        metavar="RATE",
        help=f"Output sample rate in Hz (default: {DEFAULT_SAMPLE_RATE}; "
        f"EP-40 uses {' or '.join(str(r) for r in SUPPORTED_SAMPLE_RATES)})",
    )
    parser.add_argument(
        "--channels",
        "-c",
        type=int,
        choices=(1, 2),
        default=DEFAULT_CHANNELS,
        help=f"Output channels (default: {DEFAULT_CHANNELS})",
    )
    parser.add_argument(
        "--flat",
        action="store_true",
        help="Export a flat concatenated WAV in argument order (no kit metadata)",
    )
    parser.add_argument(
        "--backend",
        choices=tuple(BACKENDS),
        default=SoundfileBackend.name,
        help="Audio decode/resample backend (default: soundfile)",
    )
    parser.add_argument(
        "--max-duration",
        type=float,
        default=MAX_TOTAL_SECONDS,
        metavar="SECONDS",
        help=f"Refuse exports longer than this (default: {MAX_TOTAL_SECONDS}, 0 to disable)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Print debug logging",
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.sample_rate not in SUPPORTED_SAMPLE_RATES:
        print(
            f"Warning: {args.sample_rate} Hz is not an EP-40 rate "
            f"({', '.join(str(r) for r in SUPPORTED_SAMPLE_RATES)})"
        )

    if args.backend == FfmpegBackend.name:
        ffmpeg_ok, soxr_ok = check_ffmpeg()
        if not ffmpeg_ok:
            print(f"Error: {get_ffmpeg_error_message(ffmpeg_ok, soxr_ok)}")
            return 1
        if not soxr_ok:
            print("Warning: ffmpeg built without soxr, using default resampler")

    options = ExportOptions(sample_rate=args.sample_rate, channels=args.channels)
    max_duration = args.max_duration if args.max_duration > 0 else None
    output_path = args.output or default_output_name(options, args.flat)

    export_stats.reset()

    try:
        backend = get_backend(args.backend)
        inputs = parse_inputs(args.inputs, args.flat)
        if not inputs:
            raise ConversionError("No input files found")

        if args.flat:
            build_flat_file(
                [path for _, path in inputs], output_path, options, backend, max_duration
            )
        else:
            explicit = [(note, path) for note, path in inputs if note is not None]
            bare = [path for note, path in inputs if note is None]
            note_paths = explicit + assign_ep40_notes(bare, [n for n, _ in explicit])
            build_kit_file(note_paths, output_path, options, backend, max_duration)
    except EpkitError as e:
        print(f"Error: {e}")
        return 1

    settings = {
        "flat": args.flat,
        "sample_rate": options.sample_rate,
        "channels": options.channels,
        "backend": args.backend,
        "max_duration": max_duration,
    }
    export_stats.print_summary(settings)
    return 0


if __name__ == "__main__":
    sys.exit(main())
