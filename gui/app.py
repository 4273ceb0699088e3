"""Main Flet application."""

import flet as ft

from epkit import __version__ as epkit_version

from .components import InputSelector, LogView, OptionsPanel, OutputPicker
from .export_bridge import ExportBridge
from .strings import Strings


class EpkitApp:
    """Main application class."""

    def __init__(self, page: ft.Page):
        """Initialize the application.

        Args:
            page: Flet page instance
        """
        self.page = page

        self._setup_page()
        self._setup_services()
        self._create_components()
        self._build_layout()

        self.log_view.add(Strings.READY_MESSAGE, "info")
        self.log_view.add(
            f"epkit v{epkit_version} (Flet {ft.version.__version__})", "info"
        )

    def _setup_page(self):
        self.page.title = Strings.APP_TITLE
        self.page.window.width = 550
        self.page.window.height = 800
        self.page.padding = 20

    def _setup_services(self):
        self.file_picker = ft.FilePicker()
        self.page.services.append(self.file_picker)

    def _create_components(self):
        # Bridge first: the log view needs its debug log callback
        self.exporter = ExportBridge(self._gui_log)

        self.log_view = LogView(
            page=self.page,
            get_debug_log=self.exporter.get_debug_log,
        )
        self.output_picker = OutputPicker(
            page=self.page,
            file_picker=self.file_picker,
            on_selected=self._on_output_selected,
            log_callback=self._gui_log,
        )
        self.options_panel = OptionsPanel(page=self.page)
        self.input_selector = InputSelector(
            page=self.page,
            file_picker=self.file_picker,
            on_files_selected=self._on_input_selected,
            log_callback=self._gui_log,
        )

    def _build_layout(self):
        self.page.add(
            ft.Text(
                Strings.APP_TITLE,
                size=20,
                weight=ft.FontWeight.BOLD,
            ),
            ft.Container(height=10),
            self.output_picker.container,
            ft.Container(height=10),
            self.options_panel.container,
            ft.Container(height=10),
            self.input_selector.container,
            ft.Container(height=10),
            self.log_view.container,
        )

    def _gui_log(self, message: str, level: str = "info"):
        self.log_view.add(message, level)

    def _on_output_selected(self, path: str):
        self.input_selector.set_enabled(True)

    async def _on_input_selected(self, paths: list[str]):
        """Handle sample selection, start export."""
        options = self.options_panel.get_options()
        output_path = self.output_picker.output_path(self.exporter.default_name(options))
        if not output_path:
            self._gui_log(Strings.SELECT_OUTPUT_FIRST, "error")
            return

        self._gui_log(Strings.STARTING_EXPORT.format(count=len(paths)), "info")
        self.input_selector.set_enabled(False)

        try:
            result = await self.exporter.export_files(paths, output_path, options)
            await self._show_completion_dialog(result, output_path)
        finally:
            self.input_selector.set_enabled(True)

    async def _show_completion_dialog(self, result, output_path: str):
        if result is None:
            title = Strings.EXPORT_FAILED
            body = self.log_view.entries[-1][1] if self.log_view.entries else ""
        else:
            title = Strings.EXPORT_COMPLETE
            body = f"{output_path}\n{result.duration_sec:.2f} s, {result.num_frames} frames"

        dialog = ft.AlertDialog(
            modal=True,
            title=ft.Text(title),
            content=ft.Text(body),
            actions=[
                ft.TextButton(
                    Strings.OK,
                    on_click=lambda e: self.page.pop_dialog(),
                ),
            ],
            actions_alignment=ft.MainAxisAlignment.END,
        )
        self.page.show_dialog(dialog)
