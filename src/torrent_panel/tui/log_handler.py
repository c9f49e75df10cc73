"""
Log handler feeding the TUI log pane.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .tui import PanelTUI


class TUILogHandler(logging.Handler):
    """Formats records and appends them to the panel's log buffer."""

    def __init__(self, tui: "PanelTUI") -> None:
        super().__init__()
        self.tui = tui
        self.setFormatter(logging.Formatter("%(asctime)s │ %(levelname)-7s │ %(message)s", datefmt="%H:%M:%S"))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.tui.add_log(self.format(record), record.levelno)
        except Exception:
            self.handleError(record)
