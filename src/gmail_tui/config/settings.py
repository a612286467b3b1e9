"""Configuration via pydantic-settings with .env support."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from gmail_tui.core.auth import default_token_path


class GmailTuiSettings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    model_config = SettingsConfigDict(
        env_prefix="GMAIL_TUI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # OAuth credentials
    credentials_path: Path = Path("credentials/client_secret.json")
    token_path: Path = Field(default_factory=default_token_path)

    # Listing policy
    page_size: int = 50
    list_query: str = "in:inbox category:primary newer_than:30d"
    header_fetch_workers: int = 50

    # Channel capacities
    header_channel_capacity: int = 10
    body_request_capacity: int = 10
    body_result_capacity: int = 10
    mark_read_capacity: int = 10

    # UI
    poll_interval_ms: int = 50
    html_width: int = 80

    # Rate limiting & retry
    max_retries: int = 5
    initial_backoff_seconds: float = 1.0
    max_backoff_seconds: float = 60.0
    num_retries: int = 3
    http_timeout_seconds: float = 30.0

    # Logging
    log_level: str = "INFO"
    log_path: Path = Path("logs/gmail_tui.log")

    def ensure_directories(self) -> None:
        """Create token and log directories if they don't exist."""
        self.token_path.parent.mkdir(parents=True, exist_ok=True)
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
