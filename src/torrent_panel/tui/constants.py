"""
Color pair constants for the TUI.
"""


class ColorPairs:
    """Color pair IDs for curses."""

    TITLE = 1
    PROGRESS = 2
    STATS = 3
    LOG_INFO = 4
    LOG_WARNING = 5
    LOG_ERROR = 6
    BORDER = 7
    SPEED = 8
    SELECTED = 9
    ERROR_BANNER = 10


LOG_BUFFER_SIZE = 500
MAX_TORRENT_ROWS = 12
MAX_PEER_ROWS = 10
