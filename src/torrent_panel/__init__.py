"""
Live synchronization engine for a torrent client control panel.

Polls the client's API, derives per-peer transfer rates and publishes
consistent snapshots through Stores that a UI subscribes to.
"""

from .api import ApiError, HttpTorrentApi, TorrentApi
from .config import PanelConfig
from .engine import SyncEngine
from .rate_window import HistoryEntry, RateWindow
from .scheduling import AdaptiveScheduler, RetryUntilSuccess, ScheduledJob, schedule_adaptive, retry_until_success
from .state import PanelState
from .store import Store

__all__ = [
    "AdaptiveScheduler",
    "ApiError",
    "HistoryEntry",
    "HttpTorrentApi",
    "PanelConfig",
    "PanelState",
    "RateWindow",
    "RetryUntilSuccess",
    "ScheduledJob",
    "Store",
    "SyncEngine",
    "TorrentApi",
    "retry_until_success",
    "schedule_adaptive",
]
