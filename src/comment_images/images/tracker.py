"""
Per-line resolution state.

Decides, for each line, whether an image can be reused, must be reloaded or
should be cleared, and applies asynchronous fetch results without letting a
late result overwrite a newer directive.
"""

import itertools
from collections.abc import Callable
from pathlib import Path
from typing import Protocol

from loguru import logger

from ..directives.base import Directive
from ..errors import FetchError, ImageDecodeError, LocalResolutionError
from .base import FetchResult, LineOutcome, LineState, LineStatus
from .downloader import FetchCallback
from .probe import probe_image

REMOTE_SCHEMES = ("http://", "https://")

PublishCallback = Callable[[int, LineOutcome], None]


class Fetcher(Protocol):
    def request_fetch(self, url: str, on_complete: FetchCallback) -> None:
        ...


def is_remote_source(source: str) -> bool:
    """Return True if ``source`` is a URL with a supported remote scheme."""
    return source.strip().lower().startswith(REMOTE_SCHEMES)


class LineStateTracker:
    """Owns one LineState per line and is the only writer to them.

    Line identity is the raw line index. A directive that moves to another
    line (e.g. after an insertion above it) is resolved afresh on its new
    line, which is cheap because remote images are served from the cache.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        publish: PublishCallback,
        base_dir: Path | None = None,
    ):
        """
        Initialize the tracker.

        Args:
            fetcher: Resolves remote URLs, usually a DownloadCoordinator
            publish: Receives every outcome change as (line_number, outcome)
            base_dir: Directory relative local paths are resolved against
        """
        self.fetcher = fetcher
        self.base_dir = base_dir
        self._publish = publish
        self._states: dict[int, LineState] = {}
        self._tokens = itertools.count(1)

    def get(self, line_number: int) -> LineState | None:
        """Return the state record for a line, if it has one."""
        return self._states.get(line_number)

    def lines(self) -> list[int]:
        """Return the line numbers that currently have a record."""
        return sorted(self._states)

    def resolve(self, line_number: int, directive: Directive | None) -> None:
        """
        Bring a line's state in line with its current directive.

        Args:
            line_number: Line the directive was parsed from
            directive: Parsed directive, or None if the line has none
        """
        state = self._states.get(line_number)

        if directive is None:
            if state is not None:
                del self._states[line_number]
                logger.debug("Line {}: directive removed", line_number)
                self._publish(line_number, LineOutcome.cleared())
            return

        if state is not None and state.current_source == directive.source:
            state.column = directive.column
            if directive.same_target(state.current_source, state.current_scale):
                return

            logger.debug(
                "Line {}: scale {} -> {}", line_number, state.current_scale, directive.scale
            )
            state.current_scale = directive.scale
            if state.status == LineStatus.READY:
                self._publish(line_number, LineOutcome.from_state(state))
                return
            # A pending fetch picks the new scale up when it completes; a
            # failed line is resolved again below
            if state.status != LineStatus.ERROR:
                return

        state = LineState(
            line_number=line_number,
            current_source=directive.source,
            current_scale=directive.scale,
            column=directive.column,
            status=LineStatus.LOADING,
            request_token=next(self._tokens),
        )
        self._states[line_number] = state
        logger.debug("Line {}: loading {}", line_number, directive.source)
        self._start_resolution(state)

    def fail(self, line_number: int, message: str, column: int = 0) -> None:
        """Put a line into the error state, e.g. for an unparseable directive."""
        state = self._states.get(line_number)
        if (
            state is not None
            and state.status == LineStatus.ERROR
            and state.current_source is None
            and state.diagnostic == message
        ):
            return

        state = LineState(
            line_number=line_number,
            column=column,
            status=LineStatus.ERROR,
            diagnostic=message,
            request_token=next(self._tokens),
        )
        self._states[line_number] = state
        self._publish(line_number, LineOutcome.from_state(state))

    def clear(self) -> None:
        """Drop every record, publishing a cleared outcome for each line."""
        for line_number in self.lines():
            del self._states[line_number]
            self._publish(line_number, LineOutcome.cleared())

    def _start_resolution(self, state: LineState) -> None:
        source = state.current_source
        line_number = state.line_number
        token = state.request_token

        if is_remote_source(source):
            try:
                self.fetcher.request_fetch(
                    source, lambda result: self._on_fetched(line_number, token, result)
                )
            except FetchError as e:
                self._apply_error(state, str(e))
                return
            # Cache hits complete synchronously and have already published
            if self._states.get(line_number) is state and state.status == LineStatus.LOADING:
                self._publish(line_number, LineOutcome.from_state(state))
            return

        try:
            path = self._resolve_local(source)
        except LocalResolutionError as e:
            self._apply_error(state, str(e))
        else:
            self._apply_path(state, path)

    def _on_fetched(self, line_number: int, token: int, result: FetchResult) -> None:
        state = self._states.get(line_number)
        if state is None or state.request_token != token:
            logger.debug("Line {}: discarding stale result for {}", line_number, result.url)
            return

        if result.ok:
            self._apply_path(state, result.local_path)
        else:
            self._apply_error(state, result.error or f"Could not fetch {result.url}")

    def _resolve_local(self, source: str) -> Path:
        try:
            path = Path(source).expanduser()
            if not path.is_absolute() and self.base_dir is not None:
                path = self.base_dir / path
            found = path.is_file()
        except (RuntimeError, OSError, ValueError) as e:
            # Unknown ~user, over-long names, embedded NUL characters
            raise LocalResolutionError(f"Invalid image path {source}: {e}") from e
        if not found:
            raise LocalResolutionError(f"Image file not found: {path}")
        return path

    def _apply_path(self, state: LineState, path: Path) -> None:
        try:
            width, height = probe_image(path)
        except ImageDecodeError as e:
            self._apply_error(state, str(e))
            return

        state.status = LineStatus.READY
        state.resolved_local_path = path
        state.width = width
        state.height = height
        state.diagnostic = None
        logger.debug("Line {}: ready {} ({}x{})", state.line_number, path, width, height)
        self._publish(state.line_number, LineOutcome.from_state(state))

    def _apply_error(self, state: LineState, message: str) -> None:
        state.status = LineStatus.ERROR
        state.resolved_local_path = None
        state.width = None
        state.height = None
        state.diagnostic = message
        logger.debug("Line {}: error {}", state.line_number, message)
        self._publish(state.line_number, LineOutcome.from_state(state))
