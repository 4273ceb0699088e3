"""Output folder and file name component."""

import os
from typing import Callable

import flet as ft

from ..strings import Strings


class OutputPicker:
    """Output folder picker with an optional file name."""

    def __init__(
        self,
        page: ft.Page,
        file_picker: ft.FilePicker,
        on_selected: Callable[[str], None],
        log_callback: Callable[[str, str], None],
    ):
        """Initialize output picker.

        Args:
            page: Flet page instance
            file_picker: FilePicker service
            on_selected: Callback when folder is selected
            log_callback: Callback for logging (message, level)
        """
        self.page = page
        self.file_picker = file_picker
        self.on_selected = on_selected
        self.log = log_callback
        self.selected_path: str | None = None

        self.path_field = ft.TextField(
            label=Strings.OUTPUT_FOLDER,
            read_only=True,
            expand=True,
            hint_text=Strings.OUTPUT_HINT,
        )
        self.name_field = ft.TextField(
            label=Strings.OUTPUT_NAME,
            hint_text=Strings.OUTPUT_NAME_HINT,
            expand=True,
            dense=True,
        )

        self.container = self._build()

    def _build(self) -> ft.Container:
        return ft.Container(
            content=ft.Column(
                [
                    ft.Text(
                        Strings.OUTPUT_FOLDER,
                        weight=ft.FontWeight.BOLD,
                        size=12,
                    ),
                    ft.Row(
                        [
                            self.path_field,
                            ft.Button(Strings.BROWSE, on_click=self._on_browse),
                        ],
                    ),
                    ft.Row([self.name_field]),
                ],
                spacing=5,
            ),
            padding=10,
            border=ft.Border.all(1, ft.Colors.GREY_300),
            border_radius=8,
        )

    def output_path(self, default_name: str) -> str | None:
        """Full output path, using default_name when no name was typed.

        Returns None until a folder is selected. A warning is logged when
        the file already exists.
        """
        if not self.selected_path:
            return None
        name = (self.name_field.value or "").strip() or default_name
        if not name.lower().endswith(".wav"):
            name += ".wav"
        path = os.path.join(self.selected_path, name)
        if os.path.exists(path):
            self.log(Strings.OUTPUT_EXISTS_WARNING.format(name=name), "warning")
        return path

    async def _on_browse(self, e):
        result = await self.file_picker.get_directory_path(
            dialog_title=Strings.SELECT_OUTPUT_TITLE
        )
        if result:
            self.path_field.value = result
            self.selected_path = result
            self.log(f"Output folder: {result}", "info")
            self.on_selected(result)
            self.path_field.update()
