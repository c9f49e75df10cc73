"""Panel configuration."""

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_API_URL = "http://localhost:3030"


class PanelConfig(BaseModel):
    """Where the API lives and how often each job polls it (milliseconds)."""

    model_config = ConfigDict(frozen=True)

    api_url: str = DEFAULT_API_URL
    request_timeout: float = Field(default=30.0, gt=0, description="Per-request timeout in seconds")

    torrent_list_interval_ms: int = Field(default=1000, gt=0)

    stats_live_interval_ms: int = Field(default=500, gt=0)
    stats_finished_interval_ms: int = Field(default=5000, gt=0)
    stats_error_interval_ms: int = Field(default=10000, gt=0)

    details_retry_interval_ms: int = Field(default=1000, gt=0)

    peers_interval_ms: int = Field(default=1000, gt=0)

    session_stats_interval_ms: int = Field(default=1000, gt=0)
    session_stats_error_interval_ms: int = Field(default=5000, gt=0)

    version_interval_ms: int = Field(default=10000, gt=0)
    version_error_interval_ms: int = Field(default=1000, gt=0)

    rate_window_ms: int = Field(default=10000, gt=0, description="Span of the peer speed window")
