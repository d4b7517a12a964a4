"""Locate, strip, compose and splice summary blocks inside file content.

Content is handled as an opaque list of lines (``content.split("\\n")``);
only lines that exactly equal a sentinel are recognised as block markers.
"""
from __future__ import annotations

from pathlib import PurePath
from typing import Dict, List, Optional, Sequence, Tuple

from .types import MarkerDialect

_SHEBANG_PREFIX = "#!"

_SCRIPT_DIALECT = MarkerDialect(
    header="/** AUTO-SUMMARY **",
    footer="*** END-SUMMARY **/",
    line_prefix="   ",
)
_HASH_DIALECT = MarkerDialect(
    header="### AUTO-SUMMARY ###",
    footer="### END-SUMMARY ###",
    line_prefix="#  ",
)

_DIALECTS: Dict[str, MarkerDialect] = {
    ".ts": _SCRIPT_DIALECT,
    ".js": _SCRIPT_DIALECT,
    ".tsx": _SCRIPT_DIALECT,
    ".jsx": _SCRIPT_DIALECT,
    ".yaml": _HASH_DIALECT,
    ".yml": _HASH_DIALECT,
    ".sh": _HASH_DIALECT,
}


def file_extension(file_path: str) -> str:
    """Return the final suffix including the dot, e.g. ``".ts"``."""
    return PurePath(file_path).suffix


def resolve_dialect(extension: str) -> Optional[MarkerDialect]:
    """Return the dialect for ``extension`` (case-sensitive) or ``None``."""
    return _DIALECTS.get(extension)


def split_lines(content: str) -> List[str]:
    return content.split("\n")


def join_lines(lines: Sequence[str]) -> str:
    return "\n".join(lines)


def has_shebang(line: str) -> bool:
    return line.startswith(_SHEBANG_PREFIX)


def _find_markers(lines: Sequence[str], header: str, footer: str) -> Optional[Tuple[int, int]]:
    try:
        start = lines.index(header)
        end = lines.index(footer)
    except ValueError:
        return None
    if end <= start:
        return None
    return start, end


def has_block(lines: Sequence[str], header: str, footer: str) -> bool:
    return _find_markers(lines, header, footer) is not None


def extract_block(
    lines: Sequence[str], header: str, footer: str, line_prefix: str
) -> Optional[List[str]]:
    """Return the de-prefixed body lines between the markers, or ``None``."""
    markers = _find_markers(lines, header, footer)
    if markers is None:
        return None
    start, end = markers
    body: List[str] = []
    for line in lines[start + 1 : end]:
        if line_prefix and line.startswith(line_prefix):
            line = line[len(line_prefix) :]
        body.append(line)
    return body


def remove_block(lines: Sequence[str], header: str, footer: str) -> List[str]:
    """Drop the block, markers inclusive; return a copy of ``lines`` if absent."""
    markers = _find_markers(lines, header, footer)
    if markers is None:
        return list(lines)
    start, end = markers
    return list(lines[:start]) + list(lines[end + 1 :])


def compose_block(summary: str, dialect: MarkerDialect) -> List[str]:
    body = [f"{dialect.line_prefix}{line}" for line in split_lines(summary)]
    return [dialect.header, *body, dialect.footer]


def prefix_content(lines: Sequence[str], block: Sequence[str]) -> List[str]:
    """Insert ``block`` as the first construct, keeping any shebang line first.

    The directive line and the block's marker lines are trimmed; body lines keep
    their indentation prefix and the rest of the file is left byte-for-byte.
    A blank line separates the footer from the following content.
    """
    lines = list(lines)
    head: List[str] = []
    if lines and has_shebang(lines[0]):
        head = [lines[0].strip()]
        lines = lines[1:]

    spliced = list(block)
    if spliced:
        spliced[0] = spliced[0].strip()
        spliced[-1] = spliced[-1].strip()

    separator = [] if lines and not lines[0].strip() else [""]
    return head + spliced + separator + lines
