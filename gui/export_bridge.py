"""Bridge between GUI and the epkit export functions."""

import asyncio
import io
import os
from contextlib import redirect_stdout
from typing import Callable

from epkit import (
    EpkitError,
    ExportResult,
    ExportStats,
    assign_ep40_notes,
    build_flat_file,
    build_kit_file,
    default_output_name,
    get_backend,
    midi_to_note_name,
)

from .components.options_panel import KitOptions
from .strings import Strings


class ExportBridge:
    """Runs exports off the UI thread and reports to the GUI log."""

    def __init__(self, log_callback: Callable[[str, str], None], backend_name: str = "soundfile"):
        """Initialize bridge with log callback.

        Args:
            log_callback: Function(message, level) for logging
            backend_name: Audio backend used for decoding
        """
        self.log = log_callback
        self.backend_name = backend_name
        self.stats = ExportStats()
        self._debug_log: list[str] = []

    def get_debug_log(self) -> str:
        """Full stdout output captured from past exports."""
        return "\n".join(self._debug_log)

    def clear_debug_log(self):
        self._debug_log.clear()

    def default_name(self, options: KitOptions) -> str:
        return default_output_name(options.to_export_options(), options.flat)

    async def export_files(
        self, paths: list[str], output_path: str, options: KitOptions
    ) -> ExportResult | None:
        """Export the selected files as one kit (or flat) WAV.

        Kit exports map paths to C4, D4, ... C5 in the given order.

        Returns:
            ExportResult, or None when the export failed (already logged)
        """
        self.clear_debug_log()
        self.stats.reset()

        try:
            if options.flat:
                job = (paths,)
            else:
                note_paths = assign_ep40_notes(paths)
                for note, path in note_paths:
                    self.log(
                        Strings.ASSIGNED.format(
                            note=midi_to_note_name(note), filename=os.path.basename(path)
                        ),
                        "info",
                    )
                job = (note_paths,)

            # Decoding is blocking; keep it off the UI thread
            result = await asyncio.to_thread(self._export_single, job, output_path, options)
        except EpkitError as e:
            self.log(f"  -> Error: {e}", "error")
            return None
        except Exception as e:
            self.log(f"  -> Unexpected error: {e}", "error")
            return None

        for name, message in self.stats.warnings:
            self.log(f"  {name}: {message}", "warning")
        self.log(
            Strings.EXPORT_RESULT.format(
                name=os.path.basename(output_path), duration=result.duration_sec
            ),
            "success",
        )
        return result

    def _export_single(self, job, output_path: str, options: KitOptions) -> ExportResult:
        """Run one export (in a worker thread), capturing stdout for the debug log."""
        export = build_flat_file if options.flat else build_kit_file
        stdout_capture = io.StringIO()
        try:
            with redirect_stdout(stdout_capture):
                return export(
                    *job,
                    output_path,
                    options.to_export_options(),
                    get_backend(self.backend_name),
                    options.max_duration,
                    self.stats,
                )
        finally:
            captured = stdout_capture.getvalue()
            if captured:
                self._debug_log.append(captured)
