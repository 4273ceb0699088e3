"""EP-40 Kit Builder GUI package."""

__version__ = "1.0.0"

from .app import EpkitApp
from .strings import Strings

__all__ = ["EpkitApp", "Strings", "__version__"]
