"""
Live synchronization engine: owns the lifecycle of every polling job.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, Optional

from .api import TorrentApi
from .config import PanelConfig
from .jobs import (
    Clock,
    PeerRateTracker,
    PeersJob,
    SessionStatsJob,
    TorrentDetailsBootstrap,
    TorrentListJob,
    TorrentStatsJob,
    VersionJob,
    monotonic_ms,
)
from .scheduling import Sleep
from .state import PanelState, TorrentListState
from .store import Unsubscribe

logger = logging.getLogger(__name__)


@dataclass
class TorrentJobs:
    """Jobs tracking a single torrent."""

    stats: TorrentStatsJob
    details: TorrentDetailsBootstrap

    def cancel(self) -> None:
        self.stats.cancel()
        self.details.cancel()


@dataclass
class PeersView:
    """An open peers view: its poller and the rate history it feeds."""

    torrent_id: int
    show_all: bool
    tracker: PeerRateTracker
    job: PeersJob


class SyncEngine:
    """
    Starts and stops the sync jobs.

    Session-wide jobs run between ``start`` and ``stop``. Per-torrent jobs
    follow the torrent list Store: they start when an id appears and are
    cancelled when it disappears. The peers job only runs while a peers view
    is open.
    """

    def __init__(
        self,
        api: TorrentApi,
        state: Optional[PanelState] = None,
        config: Optional[PanelConfig] = None,
        sleep: Sleep = asyncio.sleep,
        clock: Clock = monotonic_ms,
    ) -> None:
        self.api = api
        self.state = state or PanelState()
        self.config = config or PanelConfig()
        self._sleep = sleep
        self._clock = clock

        self._create_session_jobs()

        self.torrent_jobs: Dict[int, TorrentJobs] = {}
        self.peers_view: Optional[PeersView] = None
        self._unsubscribe: Optional[Unsubscribe] = None
        self.started = False

    def start(self) -> None:
        """Start the session-wide jobs. Must be called from a running event loop."""
        if self.started:
            return
        self.started = True
        logger.info(f"Starting sync engine for {self.config.api_url}")

        if self.torrent_list_job.cancelled:
            # Jobs cancelled by stop() never run again.
            self._create_session_jobs()

        self._unsubscribe = self.state.torrents.subscribe(self._sync_torrent_jobs)
        self._sync_torrent_jobs(self.state.torrents.get())

        self.torrent_list_job.start()
        self.session_stats_job.start()
        self.version_job.start()

    def _create_session_jobs(self) -> None:
        self.torrent_list_job = TorrentListJob(self.api, self.state, self.config, sleep=self._sleep)
        self.session_stats_job = SessionStatsJob(self.api, self.state, self.config, sleep=self._sleep)
        self.version_job = VersionJob(self.api, self.state, self.config, sleep=self._sleep)

    def stop(self) -> None:
        """Cancel every job. In-flight responses are discarded."""
        if not self.started:
            return
        self.started = False
        logger.info("Stopping sync engine")

        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

        self.close_peers_view()
        for jobs in self.torrent_jobs.values():
            jobs.cancel()
        self.torrent_jobs.clear()

        self.torrent_list_job.cancel()
        self.session_stats_job.cancel()
        self.version_job.cancel()

    async def refresh_torrents(self) -> bool:
        """
        Refresh the torrent list right away, outside the regular cadence.

        Joins the poll already in flight, if any, instead of racing it.
        """
        return await self.torrent_list_job.refresh()

    def start_torrent(self, torrent_id: int) -> TorrentJobs:
        """Start the stats job and details bootstrap of a torrent if not running."""
        jobs = self.torrent_jobs.get(torrent_id)
        if jobs is not None:
            return jobs

        logger.debug(f"Tracking torrent {torrent_id}")
        jobs = TorrentJobs(
            stats=TorrentStatsJob(torrent_id, self.api, self.state, self.config, sleep=self._sleep),
            details=TorrentDetailsBootstrap(torrent_id, self.api, self.state, self.config, sleep=self._sleep),
        )
        self.torrent_jobs[torrent_id] = jobs
        jobs.stats.start()
        jobs.details.start()
        return jobs

    def stop_torrent(self, torrent_id: int) -> None:
        """Cancel the jobs of a torrent and drop its Store slots."""
        jobs = self.torrent_jobs.pop(torrent_id, None)
        if jobs is None:
            return

        logger.debug(f"No longer tracking torrent {torrent_id}")
        jobs.cancel()
        self.state.drop_torrents([torrent_id])
        if self.peers_view is not None and self.peers_view.torrent_id == torrent_id:
            self.close_peers_view()

    def _sync_torrent_jobs(self, list_state: TorrentListState) -> None:
        if list_state.torrents is None:
            return

        current = set(list_state.ids())
        for torrent_id in list_state.ids():
            if torrent_id not in self.torrent_jobs:
                self.start_torrent(torrent_id)
        for torrent_id in list(self.torrent_jobs):
            if torrent_id not in current:
                self.stop_torrent(torrent_id)

    def open_peers_view(self, torrent_id: int, show_all: bool = False) -> PeersView:
        """
        Start polling the peers of a torrent.

        Opening the view of another torrent closes the current one first.
        """
        view = self.peers_view
        if view is not None and view.torrent_id == torrent_id:
            if view.show_all != show_all:
                return self.set_peers_show_all(show_all)
            return view

        self.close_peers_view()
        tracker = PeerRateTracker(self.config.rate_window_ms)
        view = PeersView(
            torrent_id=torrent_id,
            show_all=show_all,
            tracker=tracker,
            job=self._peers_job(torrent_id, show_all, tracker),
        )
        self.peers_view = view
        logger.debug(f"Opened peers view of torrent {torrent_id}")
        return view

    def set_peers_show_all(self, show_all: bool) -> PeersView:
        """Restart the peers job with another filter, keeping the rate history."""
        view = self.peers_view
        if view is None:
            raise RuntimeError("No peers view is open")
        if view.show_all == show_all:
            return view

        view.job.cancel()
        view.show_all = show_all
        view.job = self._peers_job(view.torrent_id, show_all, view.tracker)
        return view

    def close_peers_view(self) -> None:
        """Stop polling peers and discard their rate history."""
        view = self.peers_view
        if view is None:
            return

        self.peers_view = None
        view.job.cancel()
        view.tracker.clear()
        self.state.peers.set(None)
        logger.debug(f"Closed peers view of torrent {view.torrent_id}")

    def _peers_job(self, torrent_id: int, show_all: bool, tracker: PeerRateTracker) -> PeersJob:
        job = PeersJob(
            torrent_id,
            show_all,
            tracker,
            self.api,
            self.state,
            self.config,
            sleep=self._sleep,
            clock=self._clock,
        )
        job.start()
        return job
