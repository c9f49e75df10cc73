"""
Curses control panel: torrent table, peers pane, footer and scrolling log.

The panel never talks to the API. It subscribes to the Stores to know when to
redraw and calls the engine to open and close the peers view.
"""

from __future__ import annotations

import asyncio
import curses
import logging
import sys
from collections import deque
from typing import Callable, Deque, List, Optional

from ..engine import SyncEngine
from ..filters import (
    PEER_COLUMN_LABELS,
    PEER_SORT_COLUMNS,
    PeerSortColumn,
    SortDirection,
    next_peer_sort,
    sort_peers,
    torrent_rows,
    visible_torrents,
)
from ..formatters import completion_eta, format_bytes, format_seconds_to_time, format_speed
from .constants import LOG_BUFFER_SIZE, MAX_PEER_ROWS, MAX_TORRENT_ROWS, ColorPairs
from .log_handler import TUILogHandler

logger = logging.getLogger(__name__)

Line = tuple[str, int]


class PanelTUI:
    """Live view of the panel Stores."""

    def __init__(self, engine: SyncEngine, refresh_interval: float = 0.1) -> None:
        self.engine = engine
        self.state = engine.state
        self.refresh_interval = refresh_interval
        self.stdscr: Optional["curses._CursesWindow"] = None
        self.enabled = sys.stdout.isatty()
        self.running = False

        self.selected = 0
        self.peer_sort_column: PeerSortColumn = "downloaded"
        self.peer_sort_direction: SortDirection = "desc"
        self.show_all_peers = False

        self.log_buffer: Deque[tuple[str, int]] = deque(maxlen=LOG_BUFFER_SIZE)
        self.log_scroll_offset = 0

        self._dirty = True
        self._unsubscribers: List[Callable[[], None]] = []
        self._log_handler: Optional[TUILogHandler] = None

    def start(self) -> None:
        """Initialize curses, capture logging and subscribe to the Stores."""
        for store in (
            self.state.torrents,
            self.state.torrent_stats,
            self.state.torrent_details,
            self.state.peers,
            self.state.session_stats,
            self.state.errors,
            self.state.version,
        ):
            self._unsubscribers.append(store.subscribe(self._mark_dirty))

        if not self.enabled:
            return

        self.stdscr = curses.initscr()
        curses.noecho()
        curses.cbreak()
        try:
            curses.curs_set(0)
        except curses.error:
            pass
        self.stdscr.nodelay(True)
        self.stdscr.keypad(True)

        if curses.has_colors():
            curses.start_color()
            curses.use_default_colors()
            curses.init_pair(ColorPairs.TITLE, curses.COLOR_CYAN, -1)
            curses.init_pair(ColorPairs.PROGRESS, curses.COLOR_GREEN, -1)
            curses.init_pair(ColorPairs.STATS, curses.COLOR_WHITE, -1)
            curses.init_pair(ColorPairs.LOG_INFO, curses.COLOR_WHITE, -1)
            curses.init_pair(ColorPairs.LOG_WARNING, curses.COLOR_YELLOW, -1)
            curses.init_pair(ColorPairs.LOG_ERROR, curses.COLOR_RED, -1)
            curses.init_pair(ColorPairs.BORDER, curses.COLOR_BLUE, -1)
            curses.init_pair(ColorPairs.SPEED, curses.COLOR_MAGENTA, -1)
            curses.init_pair(ColorPairs.SELECTED, curses.COLOR_BLACK, curses.COLOR_CYAN)
            curses.init_pair(ColorPairs.ERROR_BANNER, curses.COLOR_WHITE, curses.COLOR_RED)

        # Only WARNING and above reach the log pane
        self._log_handler = TUILogHandler(self)
        self._log_handler.setLevel(logging.WARNING)
        logging.getLogger().addHandler(self._log_handler)

    def stop(self) -> None:
        """Unsubscribe and restore the terminal."""
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()

        if self._log_handler:
            logging.getLogger().removeHandler(self._log_handler)
            self._log_handler = None

        if not self.enabled or not self.stdscr:
            return
        curses.nocbreak()
        curses.echo()
        curses.endwin()
        self.stdscr = None

    async def run(self) -> None:
        """Render until the user quits."""
        self.running = True
        self.start()
        try:
            while self.running:
                self._handle_input()
                if self._dirty:
                    self._dirty = False
                    self.render()
                await asyncio.sleep(self.refresh_interval)
        finally:
            self.stop()

    def add_log(self, message: str, level: int = logging.INFO) -> None:
        self.log_buffer.append((message, level))
        self.log_scroll_offset = 0
        self._dirty = True

    def _mark_dirty(self, _value: object) -> None:
        self._dirty = True

    def _attr(self, pair: int, extra: int = 0) -> int:
        if self.stdscr is not None and curses.has_colors():
            return curses.color_pair(pair) | extra
        return extra

    # Content

    def selected_torrent_id(self) -> Optional[int]:
        rows = self._torrent_rows()
        if not rows:
            return None
        self.selected = max(0, min(self.selected, len(rows) - 1))
        return rows[self.selected].torrent.id

    def _torrent_rows(self):
        return visible_torrents(
            torrent_rows(
                self.state.torrents.get().torrents,
                self.state.torrent_stats.get(),
                self.state.torrent_details.get(),
            )
        )

    def title_line(self) -> str:
        version = self.state.version.get()
        return f" ⚡ torrent panel{f' - v{version}' if version else ''} "

    def error_lines(self) -> List[Line]:
        errors = self.state.errors.get()
        lines: List[Line] = []
        for error in (errors.closeable_error, errors.other_error):
            if error is None:
                continue
            detail = f": {error.details.text}" if error.details and error.details.text else ""
            lines.append((f" ✖ {error.text}{detail}", self._attr(ColorPairs.ERROR_BANNER, curses.A_BOLD)))
        return lines

    def torrent_lines(self, width: int) -> List[Line]:
        list_state = self.state.torrents.get()
        if list_state.torrents is None:
            text = " Loading torrents..." if list_state.initially_loading else ""
            return [(text, 0)] if text else []
        rows = self._torrent_rows()
        if not rows:
            return [(" No torrents found.", 0)]

        name_width = max(10, width - 62)
        lines: List[Line] = [
            (
                f" {'ID':>4} {'Name':<{name_width}} {'Size':>10} {'Progress':>8} {'Down':>12} {'ETA':>10} {'Peers':>7}",
                self._attr(ColorPairs.TITLE, curses.A_BOLD),
            )
        ]
        for index, row in enumerate(rows[:MAX_TORRENT_ROWS]):
            stats = row.stats
            name = row.name or row.torrent.info_hash[:16]
            if stats is not None:
                snapshot = stats.snapshot
                size = format_bytes(snapshot.total_bytes)
                progress = f"{stats.progress_percent:5.1f}%"
                speed = stats.download_speed.human_readable
                peers = f"{snapshot.peer_stats.live}/{snapshot.peer_stats.seen}"
            else:
                size = progress = speed = peers = "-"
            text = (
                f" {row.torrent.id:>4} {name[:name_width]:<{name_width}} {size:>10} {progress:>8} "
                f"{speed:>12} {completion_eta(stats):>10} {peers:>7}"
            )
            if index == self.selected:
                attr = self._attr(ColorPairs.SELECTED)
            elif stats is not None and stats.finished:
                attr = self._attr(ColorPairs.PROGRESS)
            else:
                attr = self._attr(ColorPairs.STATS)
            lines.append((text, attr))
        if len(rows) > MAX_TORRENT_ROWS:
            lines.append((f" ... {len(rows) - MAX_TORRENT_ROWS} more", 0))
        return lines

    def peer_lines(self) -> List[Line]:
        view = self.engine.peers_view
        if view is None:
            return []

        arrow = "↑" if self.peer_sort_direction == "asc" else "↓"
        header = (
            f" Peers of torrent {view.torrent_id}"
            f"  │  sort: {PEER_COLUMN_LABELS[self.peer_sort_column]} {arrow}"
            f"  │  {'all' if self.show_all_peers else 'live'}"
        )
        lines: List[Line] = [(header, self._attr(ColorPairs.TITLE, curses.A_BOLD))]

        snapshot = self.state.peers.get()
        if snapshot is None:
            lines.append((" Loading peers...", 0))
            return lines

        rows = sort_peers(snapshot, self.peer_sort_column, self.peer_sort_direction, self.show_all_peers)
        lines.append(
            (
                f" {'Address':<40} {'Kind':<6} {'Downloaded':>11} {'Down':>13} {'Uploaded':>11} {'Up':>13}",
                self._attr(ColorPairs.STATS, curses.A_BOLD),
            )
        )
        for row in rows[:MAX_PEER_ROWS]:
            counters = row.stats.counters
            lines.append(
                (
                    f" {row.address[:40]:<40} {(row.stats.conn_kind or 'N/A')[:6]:<6} "
                    f"{format_bytes(counters.fetched_bytes):>11} {format_speed(row.speed.download):>13} "
                    f"{format_bytes(counters.uploaded_bytes):>11} {format_speed(row.speed.upload):>13}",
                    self._attr(ColorPairs.SPEED),
                )
            )
        if len(rows) > MAX_PEER_ROWS:
            lines.append((f" ... {len(rows) - MAX_PEER_ROWS} more", 0))
        return lines

    def footer_line(self) -> str:
        stats = self.state.session_stats.get()
        return (
            f" ↓ {stats.download_speed.human_readable} ({format_bytes(stats.fetched_bytes)})"
            f"  │  ↑ {stats.upload_speed.human_readable} ({format_bytes(stats.uploaded_bytes)})"
            f"  │  up {format_seconds_to_time(stats.uptime_seconds)}"
        )

    # Drawing

    def render(self) -> None:
        if not self.enabled or not self.stdscr:
            return

        try:
            height, width = self.stdscr.getmaxyx()
            self.stdscr.erase()
            if width < 40 or height < 15:
                self._safe_addstr(0, 0, "Terminal too small!")
                self.stdscr.refresh()
                return

            border_attr = self._attr(ColorPairs.BORDER)
            content_width = width - 4
            self._safe_addstr(0, 0, "╭" + "─" * (width - 2) + "╮", border_attr)
            self._safe_addstr(height - 1, 0, "╰" + "─" * (width - 2) + "╯", border_attr)
            for row in range(1, height - 1):
                self._safe_addstr(row, 0, "│", border_attr)
                self._safe_addstr(row, width - 1, "│", border_attr)

            title = self.title_line()
            self._safe_addstr(1, max(1, (width - len(title)) // 2), title, self._attr(ColorPairs.TITLE, curses.A_BOLD))

            lines = self.error_lines() + self.torrent_lines(content_width)
            peer_lines = self.peer_lines()
            if peer_lines:
                lines.append(("", 0))
                lines.extend(peer_lines)

            footer_row = height - 2
            log_limit = footer_row - 1
            row = 3
            for text, attr in lines:
                if row >= log_limit - 2:
                    break
                self._safe_addstr(row, 2, text[:content_width], attr)
                row += 1

            self._safe_addstr(row, 0, "├" + "─" * (width - 2) + "┤", border_attr)
            self._render_logs(row + 1, log_limit, content_width)

            self._safe_addstr(footer_row - 1, 0, "├" + "─" * (width - 2) + "┤", border_attr)
            self._safe_addstr(footer_row, 2, self.footer_line()[:content_width], self._attr(ColorPairs.SPEED))
            self.stdscr.refresh()
        except curses.error:
            logger.debug("Render failed", exc_info=True)

    def _render_logs(self, start_row: int, end_row: int, content_width: int) -> None:
        log_height = end_row - start_row
        if log_height <= 0:
            return

        logs = list(self.log_buffer)
        logs.reverse()
        if self.log_scroll_offset > 0:
            logs = logs[self.log_scroll_offset :]

        for i, (message, level) in enumerate(logs[:log_height]):
            if level >= logging.ERROR:
                attr = self._attr(ColorPairs.LOG_ERROR)
            elif level >= logging.WARNING:
                attr = self._attr(ColorPairs.LOG_WARNING)
            else:
                attr = self._attr(ColorPairs.LOG_INFO)
            self._safe_addstr(start_row + i, 2, message[:content_width], attr)

    def _safe_addstr(self, row: int, col: int, text: str, attr: int = 0) -> None:
        """Add a string, clipped to the screen."""
        if not self.stdscr:
            return
        height, width = self.stdscr.getmaxyx()
        if row >= height or col >= width or row < 0 or col < 0:
            return
        max_len = width - col - 1
        if max_len <= 0:
            return
        try:
            self.stdscr.addstr(row, col, text[:max_len], attr)
        except curses.error:
            pass

    # Input

    def _handle_input(self) -> None:
        if not self.stdscr:
            return
        key = self.stdscr.getch()
        if key == -1:
            return
        self.handle_key(key)

    def handle_key(self, key: int) -> None:
        """Apply one key press."""
        self._dirty = True
        if key in (ord("q"), 27):
            self.running = False
        elif key in (curses.KEY_DOWN, ord("j")):
            self.selected += 1
            self.selected_torrent_id()
        elif key in (curses.KEY_UP, ord("k")):
            self.selected = max(0, self.selected - 1)
        elif key == ord("p"):
            self.toggle_peers()
        elif key == ord("a"):
            self.show_all_peers = not self.show_all_peers
            if self.engine.peers_view is not None:
                self.engine.set_peers_show_all(self.show_all_peers)
        elif key == ord("s"):
            index = PEER_SORT_COLUMNS.index(self.peer_sort_column)
            self.sort_peers_by(PEER_SORT_COLUMNS[(index + 1) % len(PEER_SORT_COLUMNS)])
        elif key == ord("r"):
            self.sort_peers_by(self.peer_sort_column)
        elif key == ord("x"):
            self.state.set_closeable_error(None)
        elif key == curses.KEY_PPAGE:
            self.log_scroll_offset = min(self.log_scroll_offset + 10, max(0, len(self.log_buffer) - 1))
        elif key == curses.KEY_NPAGE:
            self.log_scroll_offset = max(0, self.log_scroll_offset - 10)
        elif key == ord("g"):
            self.log_scroll_offset = max(0, len(self.log_buffer) - 1)
        elif key == ord("G"):
            self.log_scroll_offset = 0

    def sort_peers_by(self, column: PeerSortColumn) -> None:
        self.peer_sort_column, self.peer_sort_direction = next_peer_sort(
            self.peer_sort_column, self.peer_sort_direction, column
        )

    def toggle_peers(self) -> None:
        """Open the peers view of the selected torrent, or close it if already open."""
        torrent_id = self.selected_torrent_id()
        view = self.engine.peers_view
        if view is not None and view.torrent_id == torrent_id:
            self.engine.close_peers_view()
        elif torrent_id is not None:
            self.engine.open_peers_view(torrent_id, self.show_all_peers)
        else:
            self.engine.close_peers_view()
