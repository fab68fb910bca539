"""Value escaping, structured-value splitting and optional line folding."""
from __future__ import annotations

import io
import re

from vobject.base import foldOneLine

_NEWLINES_RE = re.compile(r"\r\n?")
_UNESCAPE_RE = re.compile(r"\\([\\;,nN])")
_UNESCAPED = {"\\": "\\", ";": ";", ",": ",", "n": "\n", "N": "\n"}

FOLD_WIDTH = 75


def escape(value: str) -> str:
    """Escape a text value for a content line.

    Backslash goes first so the later substitutions are not escaped twice.
    """
    if not isinstance(value, str):
        value = str(value)
    return (
        value.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\n", "\\n")
    )


def unescape(value: str) -> str:
    """Exact inverse of :func:`escape`, done in one left-to-right pass.

    Backslash pairs that :func:`escape` never produces are left as they are.
    """
    if not isinstance(value, str):
        value = str(value)
    return _UNESCAPE_RE.sub(lambda m: _UNESCAPED[m.group(1)], value)


def normalize_newlines(value: str) -> str:
    """Turn ``\\r\\n`` and lone ``\\r`` into ``\\n``."""
    if not isinstance(value, str):
        value = str(value)
    return _NEWLINES_RE.sub("\n", value)


def escape_text(value: str) -> str:
    """Escape a value coming from a record; carriage returns become newlines."""
    return escape(normalize_newlines(value))


def split_structured(value: str, sep: str = ";") -> list[str]:
    """Split an escaped structured value on unescaped ``sep``.

    Components are returned still escaped; unescape each one separately.
    """
    parts: list[str] = []
    buf: list[str] = []
    i = 0
    while i < len(value):
        ch = value[i]
        if ch == "\\" and i + 1 < len(value):
            buf.append(value[i:i + 2])
            i += 2
            continue
        if ch == sep:
            parts.append("".join(buf))
            buf = []
        else:
            buf.append(ch)
        i += 1
    parts.append("".join(buf))
    return parts


# ── Folding ────────────────────────────────────────────────────────────────────
#
# Generation never folds. This is a separate pass for callers that need
# strict RFC line lengths; unfolding its output gives back the input.

def fold_line(line: str, width: int = FOLD_WIDTH) -> str:
    """Fold one logical line with vobject's folder, using ``\\n`` line ends."""
    buf = io.StringIO()
    foldOneLine(buf, line, width)
    return buf.getvalue().replace("\r\n", "\n").removesuffix("\n")


def fold_lines(text: str, width: int = FOLD_WIDTH) -> str:
    lines = re.split(r"\r\n|\r|\n", text)
    return "\n".join(fold_line(line, width) for line in lines)
