"""
Image probing.

Checks that a resolved file really is an image before it is handed to the
renderer.
"""

from pathlib import Path

from loguru import logger
from PIL import Image as PILImage
from PIL import UnidentifiedImageError

from ..errors import ImageDecodeError


def probe_image(path: Path) -> tuple[int, int]:
    """
    Open an image file just far enough to validate it.

    Args:
        path: Local image file

    Returns:
        Tuple of (width, height) in pixels

    Raises:
        ImageDecodeError: If the file is not a readable, supported image
    """
    try:
        with PILImage.open(path) as img:
            width, height = img.size
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        # PIL reports truncated or broken files as OSError or SyntaxError
        logger.debug("Could not decode image {}: {}", path, e)
        raise ImageDecodeError(
            f"{e}\nThis problem could be caused by a corrupt, invalid or unsupported image file."
        ) from e

    return width, height
