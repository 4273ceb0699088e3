"""Export options panel component."""

from dataclasses import dataclass

import flet as ft

from epkit import (
    DEFAULT_CHANNELS,
    DEFAULT_SAMPLE_RATE,
    MAX_TOTAL_SECONDS,
    SUPPORTED_SAMPLE_RATES,
    ExportOptions,
)

from ..strings import Strings


@dataclass
class KitOptions:
    """Options chosen in the panel."""

    sample_rate: int = DEFAULT_SAMPLE_RATE
    channels: int = DEFAULT_CHANNELS
    flat: bool = False
    limit_duration: bool = True

    def to_export_options(self) -> ExportOptions:
        return ExportOptions(sample_rate=self.sample_rate, channels=self.channels)

    @property
    def max_duration(self) -> float | None:
        return MAX_TOTAL_SECONDS if self.limit_duration else None


class OptionsPanel:
    """Sample rate / channel radios plus export mode checkboxes."""

    def __init__(self, page: ft.Page):
        """Initialize options panel.

        Args:
            page: Flet page instance (for dialogs)
        """
        self.page = page

        self.rate_group = ft.RadioGroup(
            content=ft.Row(
                [
                    ft.Radio(value=str(rate), label=f"{rate} Hz")
                    for rate in SUPPORTED_SAMPLE_RATES
                ]
            ),
            value=str(DEFAULT_SAMPLE_RATE),
        )
        self.channels_group = ft.RadioGroup(
            content=ft.Row(
                [
                    ft.Radio(value="1", label=Strings.MONO),
                    ft.Radio(value="2", label=Strings.STEREO),
                ]
            ),
            value=str(DEFAULT_CHANNELS),
        )

        self.flat_cb = ft.Checkbox(label=Strings.FLAT_EXPORT, value=False)
        self.limit_cb = ft.Checkbox(
            label=Strings.LIMIT_DURATION.format(seconds=MAX_TOTAL_SECONDS),
            value=True,
        )

        self.options_help_btn = ft.IconButton(
            icon=ft.Icons.HELP_OUTLINE,
            icon_size=18,
            tooltip=Strings.OPTIONS_HELP_TITLE,
            on_click=self._show_options_help,
        )

        self.container = self._build()

    def _show_options_help(self, e):
        dialog = ft.AlertDialog(
            modal=False,
            title=ft.Text(Strings.OPTIONS_HELP_TITLE),
            content=ft.Text(Strings.OPTIONS_HELP_TEXT),
            actions=[
                ft.TextButton(Strings.OK, on_click=lambda e: self.page.pop_dialog()),
            ],
            actions_alignment=ft.MainAxisAlignment.END,
        )
        self.page.show_dialog(dialog)

    def _labelled(self, label: str, control: ft.Control) -> ft.Row:
        return ft.Row(
            [ft.Text(label, size=12, width=90), control],
            vertical_alignment=ft.CrossAxisAlignment.CENTER,
        )

    def _build(self) -> ft.Container:
        return ft.Container(
            content=ft.Column(
                [
                    ft.Row(
                        [
                            ft.Text(
                                Strings.OPTIONS,
                                weight=ft.FontWeight.BOLD,
                                size=12,
                            ),
                            self.options_help_btn,
                        ],
                        alignment=ft.MainAxisAlignment.SPACE_BETWEEN,
                    ),
                    self._labelled(Strings.SAMPLE_RATE, self.rate_group),
                    self._labelled(Strings.CHANNELS, self.channels_group),
                    ft.Row([self.flat_cb]),
                    ft.Row([self.limit_cb]),
                ],
                spacing=8,
            ),
            padding=10,
            border=ft.Border.all(1, ft.Colors.GREY_300),
            border_radius=8,
        )

    def get_options(self) -> KitOptions:
        """Get current options as dataclass."""
        return KitOptions(
            sample_rate=int(self.rate_group.value or DEFAULT_SAMPLE_RATE),
            channels=int(self.channels_group.value or DEFAULT_CHANNELS),
            flat=self.flat_cb.value or False,
            limit_duration=self.limit_cb.value or False,
        )
