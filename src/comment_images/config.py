"""Configuration management using pydantic-settings.

Loads from environment variables (prefixed ``COMMENT_IMAGES_``) and .env file.
"""

import tempfile
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings for one comment image pipeline.

    Each orchestrator reads its own instance, so independent pipelines can
    run side by side with different settings.

    Attributes:
        enabled: Process line-change notifications at all.
        debounce_ms: Quiescence window before a batch of edits is processed.
        download_dir: Directory for downloaded images. Empty means a
            ``comment-images`` directory under the system temp dir.
        fetch_timeout: HTTP timeout for image downloads in seconds.
        fetch_attempts: Attempts made for transient transport errors.
        fetch_backoff: Base delay in seconds for exponential retry backoff.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_json: Output logs in JSON format.

    """

    model_config = SettingsConfigDict(
        env_prefix="COMMENT_IMAGES_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    enabled: bool = True

    # Edit batching
    debounce_ms: int = 200

    # Downloads
    download_dir: str = ""
    fetch_timeout: float = 30
    fetch_attempts: int = 3
    fetch_backoff: float = 1.0

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    @property
    def download_path(self) -> Path:
        """Return the download directory as a Path object.

        Returns:
            Path: Configured directory, or the temp-dir default.

        """
        if self.download_dir:
            return Path(self.download_dir)
        return Path(tempfile.gettempdir()) / "comment-images"

    @property
    def debounce_seconds(self) -> float:
        """Return the quiescence window in seconds."""
        return self.debounce_ms / 1000


# Global settings instance
settings = Settings()
