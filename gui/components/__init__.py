"""GUI components for the EP-40 Kit Builder."""

from .input_selector import InputSelector
from .log_view import LogView
from .options_panel import KitOptions, OptionsPanel
from .output_picker import OutputPicker

__all__ = ["OutputPicker", "OptionsPanel", "KitOptions", "InputSelector", "LogView"]
