#!/usr/bin/env python3
"""Kit WAV inspector.

Prints the chunk layout, format, smpl header and TNGE key regions of a
kit WAV written by epkit (or by the EP-40 desktop tools).

Usage:
    inspect_kit.py <kit.wav>           # Human readable report
    inspect_kit.py <kit.wav> --json    # Raw TNGE metadata as JSON

Copyright (c) 2025, epkit contributors
"""

import argparse
import json
import struct
import sys
from pathlib import Path

from epkit import FormatError, midi_to_note_name, read_chunks, read_tnge, read_wav_info


# =============================================================================
# Output Functions
# =============================================================================


def print_chunks(chunks):
    """Print top-level chunk ids and sizes."""
    print("Chunks:")
    for chunk_id, payload in chunks:
        pad = " (+1 pad)" if len(payload) % 2 else ""
        print(f"  {chunk_id.decode('ascii', errors='replace')!r:8} {len(payload):>10} bytes{pad}")


def print_smpl(payload):
    """Print the fixed smpl header fields."""
    if len(payload) < 36:
        print("smpl: truncated")
        return
    fields = struct.unpack_from("<IIIIIIIII", payload, 0)
    names = (
        "manufacturer",
        "product",
        "sample_period_ns",
        "midi_unity_note",
        "midi_pitch_fraction",
        "smpte_format",
        "smpte_offset",
        "num_sample_loops",
        "sampler_data",
    )
    print("smpl:")
    for name, value in zip(names, fields):
        print(f"  {name:20} {value}")


def print_regions(tnge, sample_rate):
    """Print TNGE regions with key ranges and durations."""
    regions = tnge.get("regions", [])
    print(f"Regions ({len(regions)}):")
    for r in regions:
        frames = r["sample.end"] - r["sample.start"]
        seconds = frames / sample_rate if sample_rate else 0.0
        print(
            f"  root {midi_to_note_name(r['sound.rootnote']):>4}  "
            f"keys {midi_to_note_name(r['sample.lokey']):>4}-{midi_to_note_name(r['sample.hikey']):<4} "
            f"frames {r['sample.start']}-{r['sample.end']} ({seconds:.3f}s)"
        )


# =============================================================================
# Main
# =============================================================================


def main():
    parser = argparse.ArgumentParser(description="Inspect an EP-40 kit WAV file.")
    parser.add_argument("kit", metavar="KIT_WAV", help="Kit WAV file")
    parser.add_argument(
        "--json", action="store_true", help="Print the TNGE metadata as JSON"
    )
    args = parser.parse_args()

    data = Path(args.kit).read_bytes()
    try:
        info = read_wav_info(data)
        chunks = read_chunks(data)
        tnge = read_tnge(data)
    except FormatError as e:
        print(f"Error: {e}")
        sys.exit(1)

    if args.json:
        if tnge is None:
            print("Error: no TNGE metadata found")
            sys.exit(1)
        print(json.dumps(tnge, indent=2))
        return

    print(f"File: {args.kit}")
    print(
        f"Format: {info.channels} ch, {info.sample_rate} Hz, "
        f"{info.bits_per_sample} bit, {info.duration_sec:.3f}s"
    )
    print_chunks(chunks)

    for chunk_id, payload in chunks:
        if chunk_id == b"smpl":
            print_smpl(payload)

    if tnge is None:
        print("No TNGE metadata (not a kit file)")
    else:
        print(f"Play mode: {tnge.get('sound.playmode')}, sample mode: {tnge.get('sample.mode')}")
        print_regions(tnge, info.sample_rate)


if __name__ == "__main__":
    main()
