"""WAV sample selection component."""

from pathlib import Path
from typing import Callable

import flet as ft

from epkit import EP40_NOTES

from ..strings import Strings


class InputSelector:
    """Sample selection buttons (files and folder).

    Selected paths are passed on in selection order, capped at the number
    of EP-40 slots.
    """

    def __init__(
        self,
        page: ft.Page,
        file_picker: ft.FilePicker,
        on_files_selected: Callable[[list[str]], None],
        log_callback: Callable[[str, str], None],
    ):
        """Initialize input selector.

        Args:
            page: Flet page instance
            file_picker: FilePicker service
            on_files_selected: Async callback receiving the selected paths
            log_callback: Callback for logging (message, level)
        """
        self.page = page
        self.file_picker = file_picker
        self.on_files_selected = on_files_selected
        self.log = log_callback
        self._last_directory: str | None = None

        self.select_files_btn = ft.Button(
            Strings.SELECT_FILES,
            icon=ft.Icons.AUDIO_FILE,
            on_click=self._on_select_files,
            expand=True,
            disabled=True,
        )
        self.select_folder_btn = ft.Button(
            Strings.SELECT_FOLDER,
            icon=ft.Icons.FOLDER_OPEN,
            on_click=self._on_select_folder,
            expand=True,
            disabled=True,
        )

        self.container = self._build()

    def _build(self) -> ft.Container:
        return ft.Container(
            content=ft.Column(
                [
                    ft.Text(
                        Strings.SELECT_INPUT,
                        weight=ft.FontWeight.BOLD,
                        size=12,
                    ),
                    ft.Row(
                        [self.select_files_btn, self.select_folder_btn],
                        spacing=10,
                    ),
                    ft.Text(
                        Strings.INPUT_HINT,
                        size=11,
                        color=ft.Colors.GREY_500,
                        text_align=ft.TextAlign.CENTER,
                    ),
                ],
                spacing=8,
                horizontal_alignment=ft.CrossAxisAlignment.CENTER,
            ),
            padding=15,
            border=ft.Border.all(1, ft.Colors.GREY_300),
            border_radius=8,
        )

    def set_enabled(self, enabled: bool):
        """Enable or disable input buttons."""
        self.select_files_btn.disabled = not enabled
        self.select_folder_btn.disabled = not enabled
        self.page.update()

    async def _submit(self, paths: list[str]):
        slots = len(EP40_NOTES)
        if len(paths) > slots:
            self.log(
                Strings.TOO_MANY_FILES.format(count=len(paths), slots=slots),
                "warning",
            )
            paths = paths[:slots]
        self._last_directory = str(Path(paths[0]).parent)
        await self.on_files_selected(paths)

    async def _on_select_files(self, e):
        results = await self.file_picker.pick_files(
            dialog_title=Strings.SELECT_FILES_TITLE,
            file_type=ft.FilePickerFileType.CUSTOM,
            allowed_extensions=["wav"],
            allow_multiple=True,
            initial_directory=self._last_directory,
        )
        if results:
            await self._submit([f.path for f in results])

    async def _on_select_folder(self, e):
        result = await self.file_picker.get_directory_path(
            dialog_title=Strings.SELECT_INPUT_FOLDER_TITLE,
            initial_directory=self._last_directory,
        )
        if not result:
            return

        folder = Path(result)
        files = sorted(
            f for f in folder.iterdir() if f.is_file() and f.suffix.lower() == ".wav"
        )
        if not files:
            self._last_directory = str(folder)
            self.log(Strings.NO_FILES_FOUND.format(folder=folder.name), "warning")
            return

        self.log(f"Found {len(files)} WAV file(s) in {folder.name}/", "info")
        await self._submit([str(f) for f in files])
