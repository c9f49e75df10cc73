"""
Client for the torrent client's HTTP API.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Protocol

import aiohttp

from .config import DEFAULT_API_URL
from .models import (
    ErrorDetails,
    ListTorrentsResponse,
    PeerFilter,
    PeerStatsSnapshot,
    SessionStats,
    TorrentDetails,
    TorrentStats,
)

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """A failed API request: network error, timeout or non-2xx response."""

    def __init__(
        self,
        text: str,
        method: str | None = None,
        path: str | None = None,
        status: int | None = None,
        status_text: str | None = None,
        timed_out: bool = False,
    ) -> None:
        super().__init__(text)
        self.text = text
        self.method = method
        self.path = path
        self.status = status
        self.status_text = status_text
        self.timed_out = timed_out

    def details(self) -> ErrorDetails:
        """Details for display in the error banner."""
        return ErrorDetails(
            method=self.method,
            path=self.path,
            status=self.status,
            status_text=self.status_text,
            text=self.text,
            timed_out=self.timed_out,
        )

    def __str__(self) -> str:
        prefix = f"{self.method} {self.path}: " if self.method else ""
        status = f" ({self.status_text})" if self.status_text else ""
        return f"{prefix}{self.text}{status}"


class TorrentApi(Protocol):
    """The requests the sync jobs make."""

    async def list_torrents(self) -> ListTorrentsResponse: ...

    async def get_torrent_details(self, torrent_id: int) -> TorrentDetails: ...

    async def get_torrent_stats(self, torrent_id: int) -> TorrentStats: ...

    async def get_peer_stats(self, torrent_id: int, state: PeerFilter = "live") -> PeerStatsSnapshot: ...

    async def session_stats(self) -> SessionStats: ...

    async def get_version(self) -> str: ...


class HttpTorrentApi:
    """TorrentApi over HTTP using a shared aiohttp session."""

    def __init__(self, base_url: str = DEFAULT_API_URL, timeout: float = 30.0) -> None:
        """
        Initialize the API client.

        Args:
            base_url: Root URL of the torrent client's HTTP API
            timeout: Total timeout of each request in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> "HttpTorrentApi":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers={"Accept": "application/json"},
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )
        return self._session

    async def request(self, method: str, path: str, params: dict[str, str] | None = None) -> Any:
        """
        Perform a request and decode the JSON body.

        Raises:
            ApiError: On network errors, timeouts and non-2xx responses
        """
        logger.debug(f"{method} {path}")
        url = self.base_url + path
        session = self._get_session()

        try:
            async with session.request(method, url, params=params) as response:
                status_text = f"{response.status} {response.reason or ''}".strip()
                if response.status >= 400:
                    body = await response.text()
                    raise ApiError(
                        _error_text(body),
                        method=method,
                        path=path,
                        status=response.status,
                        status_text=status_text,
                    )
                return await response.json(content_type=None)
        except ApiError:
            raise
        except asyncio.TimeoutError as e:
            raise ApiError(
                f"request timed out after {self.timeout}s", method=method, path=path, timed_out=True
            ) from e
        except (aiohttp.ClientError, json.JSONDecodeError) as e:
            raise ApiError("network error", method=method, path=path) from e

    async def list_torrents(self) -> ListTorrentsResponse:
        return ListTorrentsResponse.model_validate(await self.request("GET", "/torrents"))

    async def get_torrent_details(self, torrent_id: int) -> TorrentDetails:
        return TorrentDetails.model_validate(await self.request("GET", f"/torrents/{torrent_id}"))

    async def get_torrent_stats(self, torrent_id: int) -> TorrentStats:
        return TorrentStats.model_validate(await self.request("GET", f"/torrents/{torrent_id}/stats"))

    async def get_peer_stats(self, torrent_id: int, state: PeerFilter = "live") -> PeerStatsSnapshot:
        data = await self.request("GET", f"/torrents/{torrent_id}/peer_stats", params={"state": state})
        return PeerStatsSnapshot.model_validate(data)

    async def session_stats(self) -> SessionStats:
        return SessionStats.model_validate(await self.request("GET", "/stats"))

    async def get_version(self) -> str:
        data = await self.request("GET", "/")
        return str(data.get("version", "")) if isinstance(data, dict) else ""


def _error_text(body: str) -> str:
    """Prefer the server's human readable message, fall back to the raw body."""
    try:
        data = json.loads(body)
    except ValueError:
        return body
    if isinstance(data, dict) and "human_readable" in data:
        return str(data["human_readable"])
    return json.dumps(data, indent=2)
