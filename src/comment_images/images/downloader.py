"""
Download coordination.

Fetches remote images at most once per URL at a time, stores them under the
download directory and records them in the resolution cache.
"""

import asyncio
import hashlib
import re
import threading
from collections.abc import Callable
from pathlib import Path
from urllib.parse import unquote, urlsplit

import httpx
from loguru import logger

from ..errors import FetchError
from .base import FetchResult
from .cache import ResolutionCache

FetchCallback = Callable[[FetchResult], None]

_UNSAFE_FILENAME_CHARS = re.compile(r"[^\w.\-]")


class _PendingFetch:
    """An in-flight transfer and everyone waiting for it."""

    __slots__ = ("url", "target", "waiters")

    def __init__(self, url: str, target: Path, waiter: FetchCallback):
        self.url = url
        self.target = target
        self.waiters: list[FetchCallback] = [waiter]


class DownloadCoordinator:
    """Deduplicates and runs asynchronous image downloads."""

    def __init__(
        self,
        cache: ResolutionCache,
        download_dir: Path | str,
        timeout: float = 30,
        max_attempts: int = 3,
        backoff_base: float = 1.0,
        client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize the coordinator.

        Args:
            cache: Shared URL to local path cache
            download_dir: Directory downloaded images are written to
            timeout: HTTP request timeout in seconds
            max_attempts: Attempts made for transient transport errors
            backoff_base: Base delay for exponential backoff between attempts
            client: Optional preconfigured HTTP client; closed by the caller
        """
        self.cache = cache
        self.download_dir = Path(download_dir)
        self.timeout = timeout
        self.max_attempts = max(1, max_attempts)
        self.backoff_base = backoff_base
        self._client = client
        self._owns_client = client is None
        self._pending: dict[str, _PendingFetch] = {}
        self._lock = threading.Lock()
        self._tasks: set[asyncio.Task] = set()

        self.download_dir.mkdir(parents=True, exist_ok=True)
        logger.debug(
            "DownloadCoordinator initialized: dir={}, timeout={}, attempts={}",
            self.download_dir,
            timeout,
            self.max_attempts,
        )

    @property
    def pending_urls(self) -> list[str]:
        """URLs with a transfer currently in flight."""
        with self._lock:
            return list(self._pending)

    def request_fetch(self, url: str, on_complete: FetchCallback) -> None:
        """
        Resolve ``url`` to a local file and report the result to ``on_complete``.

        A cached URL is reported immediately. Otherwise the caller joins the
        in-flight transfer for the URL, or a new transfer is started on the
        running event loop. Never blocks.

        Args:
            url: Remote image URL
            on_complete: Called exactly once with the FetchResult

        Raises:
            RuntimeError: If a transfer must be started outside a running event loop
            FetchError: If the URL cannot be mapped to a download target
        """
        with self._lock:
            cached = self.cache.get(url)
            if cached is None:
                pending = self._pending.get(url)
                if pending is not None:
                    pending.waiters.append(on_complete)
                    logger.debug(
                        "Joined pending fetch for {} ({} waiters)", url, len(pending.waiters)
                    )
                    return

                target = self.target_path(url)
                loop = asyncio.get_running_loop()
                pending = _PendingFetch(url, target, on_complete)
                self._pending[url] = pending

        if cached is not None:
            logger.debug("Cache hit for {}", url)
            on_complete(FetchResult(url=url, local_path=cached))
            return

        logger.info("Fetching image: {}", url)
        task = loop.create_task(self._fetch(pending))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def target_path(self, url: str) -> Path:
        """Return the local file a URL is downloaded to.

        The name is the URL's last path segment prefixed with a hash of the
        whole URL, so distinct URLs sharing a file name do not collide.
        """
        try:
            name = unquote(Path(urlsplit(url).path).name)
        except ValueError as e:
            raise FetchError(f"Could not fetch {url}: {e}") from e
        name = _UNSAFE_FILENAME_CHARS.sub("_", name)[:100] or "image"
        return self.download_dir / f"{self._hash_url(url)}-{name}"

    async def wait_idle(self) -> None:
        """Wait until no transfer is in flight."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    async def aclose(self) -> None:
        """Close the HTTP client if this coordinator created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _fetch(self, pending: _PendingFetch) -> None:
        url = pending.url
        try:
            data = await self._download(url)
            pending.target.write_bytes(data)
        except FetchError as e:
            logger.warning("Failed to fetch image {}: {}", url, e)
            result = FetchResult(url=url, error=str(e))
        except OSError as e:
            logger.warning("Failed to save image {} to {}: {}", url, pending.target, e)
            result = FetchResult(url=url, error=f"Could not save image to {pending.target}: {e}")
        except Exception as e:
            logger.exception("Unexpected error fetching {}", url)
            result = FetchResult(url=url, error=f"Unexpected error fetching image: {e}")
        else:
            logger.info("Saved image {} ({} bytes) to {}", url, len(data), pending.target)
            result = FetchResult(url=url, local_path=pending.target)

        # A URL is never both cached and pending
        with self._lock:
            if result.ok:
                self.cache.put(url, pending.target)
            self._pending.pop(url, None)

        for waiter in pending.waiters:
            try:
                waiter(result)
            except Exception:
                logger.exception("Fetch waiter for {} raised", url)

    async def _download(self, url: str) -> bytes:
        """Download ``url``, retrying transient transport errors."""
        client = self._get_client()
        for attempt in range(self.max_attempts):
            try:
                response = await client.get(url)
                response.raise_for_status()
                logger.debug("Fetched {}: {} bytes", url, len(response.content))
                return response.content
            except httpx.HTTPStatusError as e:
                raise FetchError(
                    f"Could not fetch {url}: HTTP {e.response.status_code}"
                ) from e
            except (httpx.HTTPError, httpx.InvalidURL) as e:
                if attempt == self.max_attempts - 1:
                    raise FetchError(f"Could not fetch {url}: {type(e).__name__}: {e}") from e
                logger.debug("Fetch attempt {} for {} failed, retrying: {}", attempt + 1, url, e)
                await asyncio.sleep(self.backoff_base * 2**attempt)
        raise FetchError(f"Could not fetch {url}")

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, follow_redirects=True)
        return self._client

    def _hash_url(self, url: str) -> str:
        """Generate a hash-based ID from a URL."""
        return hashlib.sha256(url.encode()).hexdigest()[:16]
