"""Logging setup for comment-images, built on loguru.

The pipeline logs through ``loguru.logger`` directly:

- DEBUG: per-line decisions (reuse, reload, clear, stale results)
- INFO: transfers started and images saved
- WARNING: failed fetches and unsaved files

An editor host embedding the pipeline usually wants its own sink, so nothing
is configured on import. The ``comment-images`` CLI calls
:func:`setup_logging` from its callback, driven by ``--verbose``,
``--log-file`` and the ``COMMENT_IMAGES_LOG_*`` settings.
"""

import sys
from typing import Any

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)


def setup_logging(
    level: str = "INFO",
    json_output: bool = False,
    log_file: str | None = None,
) -> Any:
    """Route comment-images logs to stderr and, optionally, a file.

    Stderr keeps the CLI's stdout free for the scan table. Millisecond
    timestamps make debounce windows and fetch timings readable.

    Args:
        level: Minimum log level. One of DEBUG, INFO, WARNING, ERROR, CRITICAL.
        json_output: Emit serialized JSON records, e.g. for an editor's log pane.
        log_file: Optional file that also receives logs, rotated at 10 MB.

    Returns:
        The configured loguru logger.

    """
    logger.remove()

    if json_output:
        logger.add(sys.stderr, format="{message}", serialize=True, level=level)
    else:
        logger.add(sys.stderr, format=CONSOLE_FORMAT, level=level, colorize=True)

    if log_file:
        logger.add(
            log_file,
            format=CONSOLE_FORMAT,
            level=level,
            rotation="10 MB",
            retention="7 days",
            compression="gz",
        )

    return logger
