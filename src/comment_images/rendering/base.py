"""
Abstract base class for outcome renderers.

The host editor implements this to place images, or diagnostics, next to
the lines they belong to. Geometry and drawing are entirely its concern.
"""

from abc import ABC, abstractmethod

from ..images.base import LineOutcome


class LineRenderer(ABC):
    """Abstract interface for the rendering side of the host editor."""

    @abstractmethod
    def publish_line_outcome(self, line_number: int, outcome: LineOutcome) -> None:
        """
        Show the outcome for a line, replacing whatever was shown before.

        Args:
            line_number: Zero-based line index
            outcome: Cleared, loading, ready (image path and scale) or error
        """
        pass
