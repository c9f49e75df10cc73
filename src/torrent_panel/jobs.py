"""
Polling jobs that keep the panel Stores in sync with the torrent client.

Each job owns one scheduler. Its operation never raises: failures are logged,
optionally reported through the error Store, and turned into the next delay.
A job that was cancelled while a request was in flight drops the response.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Optional

from .api import ApiError, TorrentApi
from .config import PanelConfig
from .models import ErrorDetails, ErrorWithLabel, PeerStatsSnapshot, TorrentDetails, TorrentId
from .rate_window import RateWindow
from .scheduling import AdaptiveScheduler, RetryUntilSuccess, Sleep
from .state import PanelState, PeerSpeed, PeersSnapshot, TorrentListState

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


def monotonic_ms() -> float:
    return time.monotonic() * 1000


def error_details(error: Exception) -> ErrorDetails:
    if isinstance(error, ApiError):
        return error.details()
    return ErrorDetails(text=str(error))


class SyncJob:
    """Base class: an AdaptiveScheduler driving ``tick``."""

    name = "sync-job"

    def __init__(
        self,
        api: TorrentApi,
        state: PanelState,
        config: Optional[PanelConfig] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.api = api
        self.state = state
        self.config = config or PanelConfig()
        self._sleep = sleep
        self._scheduler: Optional[AdaptiveScheduler] = None
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.active

    def start(self, initial_delay_ms: float = 0) -> "SyncJob":
        if self._scheduler is None and not self._cancelled:
            self._scheduler = AdaptiveScheduler(self.tick, initial_delay_ms, sleep=self._sleep, name=self.name)
            self._scheduler.start()
        return self

    def cancel(self) -> None:
        self._cancelled = True
        if self._scheduler is not None:
            self._scheduler.cancel()

    async def wait(self) -> None:
        if self._scheduler is not None:
            await self._scheduler.wait()

    async def tick(self) -> float:
        """Poll once and return the delay before the next poll in milliseconds."""
        raise NotImplementedError


class TorrentListJob(SyncJob):
    """Refreshes the torrent list at a constant cadence."""

    name = "torrent-list"

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._in_flight: Optional[asyncio.Task] = None

    async def tick(self) -> float:
        await self.refresh()
        return self.config.torrent_list_interval_ms

    async def refresh(self) -> bool:
        """
        Fetch the torrent list once.

        A call made while another refresh is in flight waits for that one
        instead of sending a second request.

        Returns:
            True if the list was fetched
        """
        if self._cancelled:
            return False
        if self._in_flight is None:
            task = asyncio.get_running_loop().create_task(self._refresh(), name=f"{self.name}-refresh")
            task.add_done_callback(self._refresh_done)
            self._in_flight = task
        return await asyncio.shield(self._in_flight)

    def _refresh_done(self, task: asyncio.Task) -> None:
        if self._in_flight is task:
            self._in_flight = None

    async def _refresh(self) -> bool:
        torrents = self.state.torrents
        torrents.update(
            lambda current: current.model_copy(
                update={"loading": True, "initially_loading": current.torrents is None}
            )
        )

        try:
            response = await self.api.list_torrents()
            if self._cancelled:
                return False
            self._publish(response.torrents)
            return True
        except Exception as e:
            if not self._cancelled:
                logger.warning(f"Error refreshing torrents: {e}")
                self.state.set_other_error(ErrorWithLabel(text="Error refreshing torrents", details=error_details(e)))
            return False
        finally:
            if torrents.get().loading:
                torrents.update(
                    lambda current: current.model_copy(update={"loading": False, "initially_loading": False})
                )

    def _publish(self, new_torrents: tuple[TorrentId, ...]) -> None:
        torrents = self.state.torrents
        current = torrents.get()
        if current.torrents is not None and current.torrents == new_torrents:
            # model_copy skips validation, so the old tuple survives and consumers can compare by identity.
            torrents.set(current.model_copy(update={"loading": False, "initially_loading": False}))
        else:
            torrents.set(TorrentListState(torrents=new_torrents, loading=False, initially_loading=False))
        self.state.set_other_error(None)


class TorrentStatsJob(SyncJob):
    """Polls the stats of one torrent; slows down once the torrent is complete."""

    def __init__(self, torrent_id: int, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.torrent_id = torrent_id
        self.name = f"torrent-stats-{torrent_id}"

    async def tick(self) -> float:
        try:
            stats = await self.api.get_torrent_stats(self.torrent_id)
        except Exception as e:
            if not self._cancelled:
                logger.warning(f"Error fetching stats of torrent {self.torrent_id}: {e}")
            return self.config.stats_error_interval_ms

        if self._cancelled:
            return self.config.stats_finished_interval_ms

        self.state.set_torrent_stats(self.torrent_id, stats)
        if stats.finished:
            return self.config.stats_finished_interval_ms
        return self.config.stats_live_interval_ms


class TorrentDetailsBootstrap:
    """Fetches the details of a torrent, retrying until its metadata exists."""

    def __init__(
        self,
        torrent_id: int,
        api: TorrentApi,
        state: PanelState,
        config: Optional[PanelConfig] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.torrent_id = torrent_id
        self.api = api
        self.state = state
        self.config = config or PanelConfig()
        self._cancelled = False
        self._loop = RetryUntilSuccess(
            self._fetch,
            self.config.details_retry_interval_ms,
            sleep=sleep,
            name=f"torrent-details-{torrent_id}",
        )

    @property
    def done(self) -> bool:
        return self._loop.result is not None

    @property
    def attempts(self) -> int:
        return self._loop.attempts

    def start(self) -> "TorrentDetailsBootstrap":
        self._loop.start()
        return self

    def cancel(self) -> None:
        self._cancelled = True
        self._loop.cancel()

    async def wait(self) -> None:
        await self._loop.wait()

    async def _fetch(self) -> TorrentDetails:
        details = await self.api.get_torrent_details(self.torrent_id)
        if not self._cancelled:
            self.state.set_torrent_details(self.torrent_id, details)
        return details


class PeerRateTracker:
    """Download and upload RateWindows for the peers of one torrent."""

    def __init__(self, window_ms: float) -> None:
        self.downloads = RateWindow(window_ms)
        self.uploads = RateWindow(window_ms)

    def observe(self, snapshot: PeerStatsSnapshot, now: float) -> dict[str, PeerSpeed]:
        """
        Record the counters of every peer in snapshot and derive their speeds.

        Peers missing from the snapshot are forgotten after the speeds of this
        poll are computed.
        """
        rates: dict[str, PeerSpeed] = {}
        for address, peer in snapshot.peers.items():
            self.downloads.record(address, now, peer.counters.fetched_bytes)
            self.uploads.record(address, now, peer.counters.uploaded_bytes)
            rates[address] = PeerSpeed(
                download=self.downloads.rate(address),
                upload=self.uploads.rate(address),
            )

        present = set(snapshot.peers)
        stale = self.downloads.retain(present)
        self.uploads.retain(present)
        if stale:
            logger.debug(f"Forgot {len(stale)} peers that left")
        return rates

    def clear(self) -> None:
        self.downloads.clear()
        self.uploads.clear()


class PeersJob(SyncJob):
    """Polls the peers of one torrent while its peers view is open."""

    def __init__(
        self,
        torrent_id: int,
        show_all: bool,
        tracker: PeerRateTracker,
        *args,
        clock: Clock = monotonic_ms,
        **kwargs,
    ) -> None:
        super().__init__(*args, **kwargs)
        self.torrent_id = torrent_id
        self.show_all = show_all
        self.tracker = tracker
        self.clock = clock
        self.name = f"peers-{torrent_id}"

    async def tick(self) -> float:
        interval = self.config.peers_interval_ms
        try:
            snapshot = await self.api.get_peer_stats(self.torrent_id, "all" if self.show_all else "live")
        except Exception as e:
            if not self._cancelled:
                logger.warning(f"Error fetching peers of torrent {self.torrent_id}: {e}")
            return interval

        if self._cancelled:
            return interval

        now = self.clock()
        rates = self.tracker.observe(snapshot, now)
        self.state.peers.set(
            PeersSnapshot(
                torrent_id=self.torrent_id,
                show_all=self.show_all,
                timestamp=now,
                peers=dict(snapshot.peers),
                rates=rates,
            )
        )
        return interval


class SessionStatsJob(SyncJob):
    """Polls session-wide stats for the footer."""

    name = "session-stats"

    async def tick(self) -> float:
        try:
            stats = await self.api.session_stats()
        except Exception as e:
            if not self._cancelled:
                logger.debug(f"Error fetching session stats: {e}")
            return self.config.session_stats_error_interval_ms

        if not self._cancelled:
            self.state.session_stats.set(stats)
        return self.config.session_stats_interval_ms


class VersionJob(SyncJob):
    """Polls the client version shown in the panel title."""

    name = "version"

    async def tick(self) -> float:
        try:
            version = await self.api.get_version()
        except Exception as e:
            if not self._cancelled:
                logger.debug(f"Error fetching version: {e}")
            return self.config.version_error_interval_ms

        if not self._cancelled and self.state.version.get() != version:
            self.state.version.set(version)
        return self.config.version_interval_ms
