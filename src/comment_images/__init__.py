"""
Comment Images.

Resolves image directives embedded in source code comments to local image
files, downloading and caching remote images, and keeps one resolution state
per line as the document is edited.

Usage:
    # Resolve the directives in a file
    comment-images scan src/Program.cs

    # Show configuration
    comment-images info
"""

__version__ = "0.1.0"

from .directives import Directive, parse_directive
from .editing import CommentImageOrchestrator, toggle_enabled
from .images import DownloadCoordinator, LineOutcome, OutcomeKind, ResolutionCache
from .rendering import LineRenderer

__all__ = [
    "CommentImageOrchestrator",
    "Directive",
    "DownloadCoordinator",
    "LineOutcome",
    "LineRenderer",
    "OutcomeKind",
    "ResolutionCache",
    "parse_directive",
    "toggle_enabled",
]
