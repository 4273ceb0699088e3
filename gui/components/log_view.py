"""Export log display component."""

from typing import Callable

import flet as ft

from ..strings import Strings

LEVEL_COLORS = {
    "info": None,
    "warning": ft.Colors.ORANGE,
    "error": ft.Colors.RED,
    "success": ft.Colors.GREEN,
}


class LogView:
    """Scrolling log with copy, copy-debug and clear buttons."""

    def __init__(
        self,
        page: ft.Page,
        get_debug_log: Callable[[], str] | None = None,
    ):
        """Initialize log view.

        Args:
            page: Flet page instance for updates
            get_debug_log: Callback returning the captured export output
        """
        self.page = page
        self._get_debug_log = get_debug_log
        self.entries: list[tuple[str, str]] = []

        self.log_list = ft.ListView(expand=True, spacing=2, auto_scroll=True)
        self.container = self._build()

    def _build(self) -> ft.Container:
        buttons = ft.Row(
            [
                ft.TextButton(Strings.COPY, on_click=self._on_copy_click),
                ft.TextButton(Strings.COPY_DEBUG, on_click=self._on_copy_debug_click),
                ft.TextButton(Strings.CLEAR, on_click=lambda e: self.clear()),
            ],
            spacing=0,
        )
        return ft.Container(
            content=ft.Column(
                [
                    ft.Row(
                        [
                            ft.Text(Strings.EXPORT_LOG, weight=ft.FontWeight.BOLD, size=12),
                            buttons,
                        ],
                        alignment=ft.MainAxisAlignment.SPACE_BETWEEN,
                    ),
                    ft.Container(
                        content=self.log_list,
                        border=ft.Border.all(1, ft.Colors.GREY_300),
                        border_radius=5,
                        padding=10,
                        expand=True,
                    ),
                ],
                spacing=5,
                expand=True,
            ),
            expand=True,
        )

    def add(self, message: str, level: str = "info"):
        """Add a log entry.

        Args:
            message: Log message
            level: "info", "warning", "error", or "success"
        """
        self.entries.append((level, message))
        self.log_list.controls.append(
            ft.Text(message, color=LEVEL_COLORS.get(level), size=12)
        )
        if self.page.controls:
            self.page.update()

    def clear(self):
        """Clear all log entries."""
        self.entries.clear()
        self.log_list.controls.clear()
        self.page.update()

    def get_text(self) -> str:
        """All entries, warnings and errors prefixed with their level."""
        lines = []
        for level, message in self.entries:
            if level in ("warning", "error"):
                lines.append(f"[{level.upper()}] {message}")
            else:
                lines.append(message)
        return "\n".join(lines)

    async def _on_copy_click(self, e):
        await ft.Clipboard().set(self.get_text())
        self.add(Strings.LOG_COPIED)

    async def _on_copy_debug_click(self, e):
        debug_content = self._get_debug_log() if self._get_debug_log else ""
        if debug_content:
            await ft.Clipboard().set(debug_content)
            self.add(Strings.DEBUG_LOG_COPIED)
        else:
            self.add(Strings.NO_DEBUG_LOG, level="warning")
