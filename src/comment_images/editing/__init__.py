"""
Editing integration package.

Batches editor notifications and drives the resolution pipeline.
"""

from .batcher import EditBatcher
from .orchestrator import (
    CommentImageOrchestrator,
    loop_dispatcher,
    notify_console,
    run_inline,
    toggle_enabled,
)

__all__ = [
    "CommentImageOrchestrator",
    "EditBatcher",
    "loop_dispatcher",
    "notify_console",
    "run_inline",
    "toggle_enabled",
]
