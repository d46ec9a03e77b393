"""
Data models for comment directives.

Provides the parsed directive model and the registry of comment dialects.
"""

from pydantic import BaseModel, ConfigDict, Field


class Directive(BaseModel):
    """An image directive extracted from a comment line."""

    model_config = ConfigDict(frozen=True)

    source: str = Field(description="Remote URL or local filesystem path of the image")
    scale: float = Field(default=1.0, description="Render scale factor, always > 0")
    column: int = Field(default=0, description="Column where the comment opener starts")

    def same_target(self, source: str | None, scale: float | None) -> bool:
        """Return True if this directive points at ``source`` with ``scale``."""
        return self.source == source and self.scale == scale


class Dialect(BaseModel):
    """Comment syntax for one family of source languages."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Canonical dialect name")
    comment_openers: tuple[str, ...] = Field(
        description="Tokens that open a comment, longest first",
    )
    content_types: tuple[str, ...] = Field(
        default=(),
        description="Host content-type names and file suffixes mapped to this dialect",
    )


_C_STYLE = ("///", "/**", "//", "/*")

DIALECTS: dict[str, Dialect] = {
    d.name: d
    for d in (
        Dialect(
            name="csharp",
            comment_openers=_C_STYLE,
            content_types=("csharp", "c#", "cs"),
        ),
        Dialect(
            name="cpp",
            comment_openers=_C_STYLE,
            content_types=("c/c++", "cpp", "c++", "c", "h", "hpp", "cc"),
        ),
        Dialect(
            name="javascript",
            comment_openers=_C_STYLE,
            content_types=("javascript", "js", "jsx", "mjs"),
        ),
        Dialect(
            name="typescript",
            comment_openers=_C_STYLE,
            content_types=("typescript", "ts", "tsx"),
        ),
        Dialect(
            name="fsharp",
            comment_openers=("///", "//", "(**", "(*"),
            content_types=("f#", "fsharp", "fs", "fsx"),
        ),
        Dialect(
            name="basic",
            comment_openers=("'''", "'", "REM "),
            content_types=("basic", "visualbasic", "vb"),
        ),
        Dialect(
            name="python",
            comment_openers=("#",),
            content_types=("python", "py"),
        ),
    )
}

_BY_CONTENT_TYPE: dict[str, Dialect] = {
    alias: dialect for dialect in DIALECTS.values() for alias in (dialect.name, *dialect.content_types)
}


def get_dialect(content_type: str | None) -> Dialect | None:
    """Look up the dialect for a host content-type name or file suffix.

    Matching is case-insensitive and ignores a leading dot, so ``"CSharp"``,
    ``"cs"`` and ``".cs"`` all resolve to the C# dialect.

    Returns:
        The matching Dialect, or None for unsupported content types.

    """
    if not content_type:
        return None
    return _BY_CONTENT_TYPE.get(content_type.strip().lstrip(".").lower())
