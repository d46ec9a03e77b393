"""Exception types for directive parsing and image resolution.

None of these are fatal: each is caught at line granularity and turned
into an error outcome for that line.
"""


class CommentImageError(Exception):
    """Base class for comment image failures."""


class DirectiveParseError(CommentImageError):
    """The directive payload is malformed or carries invalid attributes."""


class FetchError(CommentImageError):
    """A remote image could not be downloaded or written to disk."""


class LocalResolutionError(CommentImageError):
    """A local image path does not exist."""


class ImageDecodeError(CommentImageError):
    """A resolved file could not be decoded as an image."""
