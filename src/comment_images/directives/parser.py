"""
Directive parsing.

Finds ``<image url="..." scale="..." />`` elements embedded in a comment
at the start of a line, e.g.::

    /// <image url="https://example.com/diagram.png" scale="0.5" />
    # <image url="docs/flow.png" />

The parser is a pure function of the dialect and the line text.
"""

import math
import re
from xml.etree import ElementTree

from loguru import logger

from ..errors import DirectiveParseError
from .base import Dialect, Directive

_IMAGE_ELEMENT = re.compile(r"<image\b", re.IGNORECASE)
# Start tag up to its closing ">", skipping ">" inside quoted attribute values
_START_TAG = re.compile(r"""<image\b(?:[^>"']|"[^"]*"|'[^']*')*>""", re.IGNORECASE)
_END_TAG = re.compile(r"</image\s*>", re.IGNORECASE)

SOURCE_ATTRIBUTES = ("url", "src")
SCALE_ATTRIBUTE = "scale"
DEFAULT_SCALE = 1.0


def parse_directive(dialect: Dialect | None, line_text: str) -> Directive | None:
    """
    Parse an image directive out of one line of text.

    Args:
        dialect: Comment syntax of the document, or None if unsupported
        line_text: Raw text of the line

    Returns:
        The Directive, or None if the line carries no directive
        (no comment opener, or a comment that is not an image element)

    Raises:
        DirectiveParseError: If the line has an image element that is
            malformed, lacks a source or has an invalid scale
    """
    if dialect is None:
        return None

    stripped = line_text.lstrip()
    opener = _match_opener(dialect, stripped)
    if opener is None:
        return None

    body = stripped[len(opener):].lstrip()
    if not _IMAGE_ELEMENT.match(body):
        return None

    column = len(line_text) - len(stripped)
    end = _element_end(body)
    try:
        element = ElementTree.fromstring(body[:end])
    except ElementTree.ParseError as e:
        raise DirectiveParseError(f"Problem with comment format: {e}") from e

    attributes = {name.lower(): value for name, value in element.attrib.items()}
    source = _source_attribute(attributes)
    scale = _scale_attribute(attributes)

    logger.trace("Parsed directive at column {}: source={} scale={}", column, source, scale)
    return Directive(source=source, scale=scale, column=column)


def _match_opener(dialect: Dialect, stripped: str) -> str | None:
    """Return the comment opener that starts ``stripped``, if any."""
    upper = stripped.upper()
    for opener in dialect.comment_openers:
        if upper.startswith(opener.upper()):
            return opener
    return None


def _element_end(body: str) -> int:
    """Return the index just past the ``<image`` element that starts ``body``.

    Text after the element, such as a block-comment closer or a note, is not
    part of the directive.
    """
    start_tag = _START_TAG.match(body)
    if start_tag is None:
        raise DirectiveParseError("Problem with comment format: unterminated <image> element")
    if start_tag.group().endswith("/>"):
        return start_tag.end()

    end_tag = _END_TAG.search(body, start_tag.end())
    # Without a closing tag the parser reports the missing end itself
    return end_tag.end() if end_tag else start_tag.end()


def _source_attribute(attributes: dict[str, str]) -> str:
    for name in SOURCE_ATTRIBUTES:
        value = attributes.get(name, "").strip()
        if value:
            return value
    raise DirectiveParseError("Problem with comment format: <image> element has no url attribute")


def _scale_attribute(attributes: dict[str, str]) -> float:
    raw = attributes.get(SCALE_ATTRIBUTE)
    if raw is None:
        return DEFAULT_SCALE

    try:
        scale = float(raw.strip())
    except ValueError:
        raise DirectiveParseError(f"Invalid scale '{raw}': not a number") from None

    # float() accepts "nan" and "inf"
    if not math.isfinite(scale) or scale <= 0:
        raise DirectiveParseError(f"Invalid scale '{raw}': must be a positive number")
    return scale
