"""
Pipeline orchestration.

Connects editor notifications to the batcher, the directive parser, the line
state tracker and the renderer for one document view.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable, Mapping
from functools import partial
from pathlib import Path

from loguru import logger
from rich.console import Console

from ..config import Settings
from ..directives import get_dialect, parse_directive
from ..errors import DirectiveParseError
from ..images import DownloadCoordinator, LineOutcome, LineStateTracker, ResolutionCache
from ..rendering.base import LineRenderer
from .batcher import EditBatcher, LineTextProvider, current_loop

Dispatch = Callable[[Callable[[], None]], None]
UserNotifier = Callable[[str], None]

console = Console()


def run_inline(action: Callable[[], None]) -> None:
    """Dispatch that runs the action on the calling thread."""
    action()


def loop_dispatcher(loop: asyncio.AbstractEventLoop) -> Dispatch:
    """Return a dispatch that runs actions on ``loop``'s thread."""

    def dispatch(action: Callable[[], None]) -> None:
        loop.call_soon_threadsafe(action)

    return dispatch


def notify_console(message: str) -> None:
    """Show a user-facing message on the console."""
    console.print(f"[yellow]{message}[/]")


def toggle_enabled(settings: Settings, notify_user: UserNotifier = notify_console) -> bool:
    """Flip ``settings.enabled`` and tell the user.

    Returns:
        The new enabled state.

    """
    settings.enabled = not settings.enabled
    state = "enabled" if settings.enabled else "disabled"
    logger.info("Comment images {}", state)
    notify_user(f"Comment images {state}. Scroll editor window(s) to update.")
    return settings.enabled


class CommentImageOrchestrator:
    """Drives comment image resolution for one document view.

    Several orchestrators (one per open view) should share a single
    DownloadCoordinator so that the URL cache and in-flight transfers are
    shared process-wide.
    """

    def __init__(
        self,
        renderer: LineRenderer,
        get_line_text: Callable[[int], str],
        content_type: str | None,
        *,
        settings: Settings | None = None,
        downloader: DownloadCoordinator | None = None,
        dispatch: Dispatch = run_inline,
        notify_user: UserNotifier = notify_console,
        document_path: Path | str | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            renderer: Host rendering collaborator
            get_line_text: Returns the current text of a line
            content_type: Host content-type name used to pick the comment dialect
            settings: Settings for this view; a fresh Settings() if omitted
            downloader: Shared download coordinator; one with a private cache
                is created (and closed by aclose) if omitted
            dispatch: Runs outcome delivery on the thread the renderer requires
            notify_user: Shows messages about unexpected rendering failures
            document_path: Path of the document, used to resolve relative
                local image paths
            loop: Event loop that runs batching and downloads; defaults to
                the loop running at construction. Line-change notifications
                may then come from any thread.
        """
        self.settings = settings or Settings()
        self.renderer = renderer
        self.dialect = get_dialect(content_type)
        self.document_path = Path(document_path) if document_path else None
        self._get_line_text = get_line_text
        self._dispatch = dispatch
        self._notify_user = notify_user

        self._owns_downloader = downloader is None
        if downloader is None:
            downloader = DownloadCoordinator(
                ResolutionCache(),
                self.settings.download_path,
                timeout=self.settings.fetch_timeout,
                max_attempts=self.settings.fetch_attempts,
                backoff_base=self.settings.fetch_backoff,
            )
        self.downloader = downloader

        base_dir = self.document_path.parent if self.document_path else None
        self.tracker = LineStateTracker(self.downloader, self._publish, base_dir=base_dir)
        self.batcher = EditBatcher(
            self.process_lines,
            delay=self.settings.debounce_seconds,
            loop=loop or current_loop(),
        )

        logger.debug(
            "Orchestrator created: dialect={}, document={}",
            self.dialect.name if self.dialect else None,
            self.document_path,
        )

    def notify_lines_changed(self, line_numbers: Iterable[int]) -> None:
        """Queue changed lines; their text is read when the batch is flushed."""
        if not self.settings.enabled:
            return
        self.batcher.notify({n: partial(self._get_line_text, n) for n in line_numbers})

    def notify_content_type_changed(self, content_type: str | None) -> None:
        """Switch comment dialect, dropping state parsed under the old one."""
        dialect = get_dialect(content_type)
        if dialect == self.dialect:
            return
        logger.info(
            "Content type changed to {} (dialect={})",
            content_type,
            dialect.name if dialect else None,
        )
        self.dialect = dialect
        self.tracker.clear()

    def process_lines(self, providers: Mapping[int, LineTextProvider]) -> None:
        """Parse and resolve a batch of changed lines."""
        for line_number in sorted(providers):
            try:
                text = providers[line_number]()
            except IndexError:
                # Line was deleted after it was reported
                self.tracker.resolve(line_number, None)
                continue

            try:
                self._process_line(line_number, text)
            except Exception as e:
                # One bad line never costs the rest of the batch
                logger.exception("Failed to resolve line {}", line_number)
                self.tracker.fail(line_number, f"Could not resolve image: {e}")

    async def drain(self) -> None:
        """Flush pending edits and wait for the downloads they started."""
        self.batcher.flush_now()
        await self.downloader.wait_idle()

    async def aclose(self) -> None:
        """Stop batching and release the downloader if this view owns it."""
        self.batcher.close()
        if self._owns_downloader:
            await self.downloader.aclose()

    def _process_line(self, line_number: int, text: str) -> None:
        try:
            directive = parse_directive(self.dialect, text)
        except DirectiveParseError as e:
            logger.debug("Line {}: {}", line_number, e)
            column = len(text) - len(text.lstrip())
            self.tracker.fail(line_number, f"XML parse error: {e}", column=column)
            return
        self.tracker.resolve(line_number, directive)

    def _publish(self, line_number: int, outcome: LineOutcome) -> None:
        self._dispatch(partial(self._deliver, line_number, outcome))

    def _deliver(self, line_number: int, outcome: LineOutcome) -> None:
        try:
            self.renderer.publish_line_outcome(line_number, outcome)
        except Exception as e:
            logger.exception("Renderer failed for line {}", line_number)
            self._notify_user(f"Could not display comment image on line {line_number + 1}: {e}")
