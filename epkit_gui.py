#!/usr/bin/env python3
"""EP-40 Kit Builder - GUI Entry Point.

Usage: python epkit_gui.py

Requires: flet[all]>=0.80.0
"""

import flet as ft

from gui.app import EpkitApp


def main(page: ft.Page):
    """Main entry point for Flet application."""
    EpkitApp(page)


def run():
    """Entry point for the epkit-gui console script."""
    ft.run(main)


if __name__ == "__main__":
    run()
