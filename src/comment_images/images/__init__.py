"""
Image resolution package.

Provides the URL cache, download coordination and per-line state tracking.
"""

from .base import FetchResult, LineOutcome, LineState, LineStatus, OutcomeKind
from .cache import ResolutionCache
from .downloader import DownloadCoordinator
from .tracker import LineStateTracker, is_remote_source

__all__ = [
    "DownloadCoordinator",
    "FetchResult",
    "LineOutcome",
    "LineState",
    "LineStateTracker",
    "LineStatus",
    "OutcomeKind",
    "ResolutionCache",
    "is_remote_source",
]
