"""Pytest fixtures and configuration for comment-images tests.

This module provides shared fixtures for the parser, cache, downloader,
line tracker, batcher and orchestrator tests.
"""

import tempfile
from collections.abc import Generator
from io import BytesIO
from pathlib import Path

import pytest
from PIL import Image

from comment_images.config import Settings
from comment_images.images.base import FetchResult, LineOutcome
from comment_images.images.cache import ResolutionCache
from comment_images.images.downloader import DownloadCoordinator
from comment_images.rendering.base import LineRenderer

# --- Temporary Directory Fixtures ---


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmp:
        yield Path(tmp)


@pytest.fixture
def download_dir(temp_dir: Path) -> Path:
    """Create a temporary directory for downloaded images."""
    path = temp_dir / "downloads"
    path.mkdir()
    return path


# --- Image Fixtures ---


@pytest.fixture
def sample_image_bytes() -> bytes:
    """Create sample PNG bytes for testing."""
    img = Image.new("RGB", (40, 20), color="red")
    buffer = BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def sample_image_file(temp_dir: Path, sample_image_bytes: bytes) -> Path:
    """Write a sample PNG to disk."""
    path = temp_dir / "diagram.png"
    path.write_bytes(sample_image_bytes)
    return path


# --- Pipeline Fixtures ---


@pytest.fixture
def cache() -> ResolutionCache:
    """Create an empty resolution cache."""
    return ResolutionCache()


@pytest.fixture
def coordinator(cache: ResolutionCache, download_dir: Path) -> DownloadCoordinator:
    """Create a download coordinator that does not retry or back off."""
    return DownloadCoordinator(cache, download_dir, timeout=5, max_attempts=1, backoff_base=0)


@pytest.fixture
def test_settings(download_dir: Path) -> Settings:
    """Settings with a short debounce and no retries."""
    return Settings(
        enabled=True,
        debounce_ms=10,
        download_dir=str(download_dir),
        fetch_attempts=1,
        fetch_backoff=0,
    )


class RecordingRenderer(LineRenderer):
    """Renderer that records every published outcome in order."""

    def __init__(self):
        self.published: list[tuple[int, LineOutcome]] = []

    def publish_line_outcome(self, line_number: int, outcome: LineOutcome) -> None:
        self.published.append((line_number, outcome))

    def latest(self, line_number: int) -> LineOutcome | None:
        for number, outcome in reversed(self.published):
            if number == line_number:
                return outcome
        return None


@pytest.fixture
def renderer() -> RecordingRenderer:
    """Create a renderer that records outcomes."""
    return RecordingRenderer()


class FakeFetcher:
    """Fetcher that holds requests until the test completes them."""

    def __init__(self, cache: ResolutionCache | None = None):
        self.cache = cache if cache is not None else ResolutionCache()
        self.requests: list[str] = []
        self.waiters: dict[str, list] = {}

    def request_fetch(self, url, on_complete) -> None:
        cached = self.cache.get(url)
        if cached is not None:
            on_complete(FetchResult(url=url, local_path=cached))
            return
        self.requests.append(url)
        self.waiters.setdefault(url, []).append(on_complete)

    def complete(self, url: str, local_path: Path | None = None, error: str | None = None) -> None:
        if local_path is not None:
            self.cache.put(url, local_path)
        for waiter in self.waiters.pop(url, []):
            waiter(FetchResult(url=url, local_path=local_path, error=error))


@pytest.fixture
def fake_fetcher() -> FakeFetcher:
    """Create a fetcher controlled by the test."""
    return FakeFetcher()
