"""Console renderer.

Keeps the latest outcome per line and prints them as a rich table. Used by
the ``scan`` command and handy for inspecting a document outside an editor.
"""

from loguru import logger
from rich.console import Console
from rich.table import Table

from ..images.base import LineOutcome, OutcomeKind
from .base import LineRenderer

_STATUS_STYLES = {
    OutcomeKind.LOADING: "yellow",
    OutcomeKind.READY: "green",
    OutcomeKind.ERROR: "red",
}


class ConsoleRenderer(LineRenderer):
    """Renderer that records outcomes instead of drawing them."""

    def __init__(self, console: Console | None = None):
        self.console = console or Console()
        self.outcomes: dict[int, LineOutcome] = {}

    def publish_line_outcome(self, line_number: int, outcome: LineOutcome) -> None:
        logger.debug("Line {} -> {}", line_number, outcome.kind.value)
        if outcome.kind == OutcomeKind.CLEARED:
            self.outcomes.pop(line_number, None)
        else:
            self.outcomes[line_number] = outcome

    @property
    def error_count(self) -> int:
        return sum(1 for o in self.outcomes.values() if o.kind == OutcomeKind.ERROR)

    def build_table(self, title: str = "Comment Images") -> Table:
        """Return a table with one row per line that has an outcome."""
        table = Table(title=title)
        table.add_column("Line", style="cyan", justify="right")
        table.add_column("Status")
        table.add_column("Scale", justify="right")
        table.add_column("Image / Diagnostic")

        for line_number in sorted(self.outcomes):
            outcome = self.outcomes[line_number]
            style = _STATUS_STYLES.get(outcome.kind, "white")
            if outcome.kind == OutcomeKind.READY:
                size = f" ({outcome.width}x{outcome.height})" if outcome.width else ""
                detail = f"{outcome.local_path}{size}"
            else:
                detail = outcome.message or ""
            table.add_row(
                str(line_number + 1),
                f"[{style}]{outcome.kind.value}[/]",
                f"{outcome.scale:g}" if outcome.scale is not None else "",
                detail,
            )
        return table

    def print_summary(self) -> None:
        self.console.print(self.build_table())
