"""
Terminal control panel rendering the sync engine's Stores.
"""

from .constants import ColorPairs
from .log_handler import TUILogHandler
from .tui import PanelTUI

__all__ = [
    "PanelTUI",
    "TUILogHandler",
    "ColorPairs",
]
