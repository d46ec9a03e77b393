"""
Rendering package.

Defines the interface the host editor implements to display outcomes.
"""

from .base import LineRenderer
from .console import ConsoleRenderer

__all__ = [
    "ConsoleRenderer",
    "LineRenderer",
]
