"""
Command-line interface for the torrent panel.
"""

import argparse
import asyncio
import logging
import sys

from .api import HttpTorrentApi
from .config import DEFAULT_API_URL, PanelConfig
from .engine import SyncEngine
from .formatters import format_bytes
from .state import PanelState
from .tui import PanelTUI

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Live control panel for a remote torrent client")
    parser.add_argument(
        "--url",
        type=str,
        default=DEFAULT_API_URL,
        help=f"Torrent client API URL (default: {DEFAULT_API_URL})",
    )
    parser.add_argument("--timeout", type=float, default=30.0, help="Request timeout in seconds (default: 30)")
    parser.add_argument("--no-tui", action="store_true", help="Print a summary line per update instead of the TUI")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
    return parser


def config_from_args(args: argparse.Namespace) -> PanelConfig:
    return PanelConfig(api_url=args.url, request_timeout=args.timeout)


def print_summary(state: PanelState) -> None:
    """Print one line describing the current session and torrents."""
    stats = state.session_stats.get()
    torrents = state.torrents.get().torrents or ()
    finished = sum(1 for s in state.torrent_stats.get().values() if s.finished)
    print(
        f"torrents: {len(torrents)} ({finished} finished)"
        f" │ ↓ {stats.download_speed.human_readable} ({format_bytes(stats.fetched_bytes)})"
        f" │ ↑ {stats.upload_speed.human_readable} ({format_bytes(stats.uploaded_bytes)})",
        flush=True,
    )


async def run_headless(engine: SyncEngine) -> None:
    """Print a summary whenever session stats change, until interrupted."""
    unsubscribe = engine.state.session_stats.subscribe(lambda _stats: print_summary(engine.state))
    try:
        await asyncio.Event().wait()
    finally:
        unsubscribe()


async def main() -> None:
    """Main CLI entry point."""
    args = build_parser().parse_args()
    config = config_from_args(args)
    use_tui = not args.no_tui and sys.stdout.isatty()

    # No console handlers with the TUI on, it renders the log itself
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=[] if use_tui else [logging.StreamHandler()],
    )

    async with HttpTorrentApi(config.api_url, config.request_timeout) as api:
        engine = SyncEngine(api, config=config)
        engine.start()
        try:
            if use_tui:
                await PanelTUI(engine).run()
            else:
                await run_headless(engine)
        finally:
            engine.stop()


def run() -> None:
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nStopping panel...")


if __name__ == "__main__":
    run()
