"""
Data models for image resolution.

Provides Pydantic models for per-line state, fetch results and the outcomes
published to the renderer.
"""

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field


class LineStatus(str, Enum):
    """Resolution status of one line."""

    EMPTY = "empty"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


class OutcomeKind(str, Enum):
    """Kind of outcome published for a line."""

    CLEARED = "cleared"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


class LineState(BaseModel):
    """Authoritative resolution record for one line."""

    line_number: int = Field(description="Zero-based line index in the document")
    current_source: str | None = Field(
        default=None, description="Source last requested for this line"
    )
    current_scale: float = Field(default=1.0, description="Scale of the current directive")
    column: int = Field(default=0, description="Column of the directive's comment opener")
    status: LineStatus = Field(default=LineStatus.EMPTY)
    resolved_local_path: Path | None = Field(
        default=None, description="Local image file, set when READY"
    )
    width: int | None = Field(default=None, description="Image width in pixels")
    height: int | None = Field(default=None, description="Image height in pixels")
    diagnostic: str | None = Field(default=None, description="Error message, set when ERROR")
    request_token: int = Field(
        default=0, description="Identifies the resolution request currently expected"
    )


class LineOutcome(BaseModel):
    """What the renderer should show for a line."""

    kind: OutcomeKind
    column: int = 0
    local_path: Path | None = None
    scale: float | None = None
    width: int | None = None
    height: int | None = None
    message: str | None = None

    @classmethod
    def cleared(cls) -> "LineOutcome":
        return cls(kind=OutcomeKind.CLEARED)

    @classmethod
    def from_state(cls, state: LineState) -> "LineOutcome":
        """Build the outcome that reflects ``state``."""
        if state.status == LineStatus.READY:
            return cls(
                kind=OutcomeKind.READY,
                column=state.column,
                local_path=state.resolved_local_path,
                scale=state.current_scale,
                width=state.width,
                height=state.height,
            )
        if state.status == LineStatus.ERROR:
            return cls(kind=OutcomeKind.ERROR, column=state.column, message=state.diagnostic)
        if state.status == LineStatus.LOADING:
            return cls(kind=OutcomeKind.LOADING, column=state.column, scale=state.current_scale)
        return cls.cleared()


class FetchResult(BaseModel):
    """Result of a remote fetch, delivered to every waiter for the URL."""

    url: str
    local_path: Path | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.local_path is not None
