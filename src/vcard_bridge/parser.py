from __future__ import annotations

import logging
import re
from collections.abc import Callable

from .codec import unescape
from .model import (
    SINGLE_VALUED,
    Parameters,
    ParsedDocument,
    PropertyKind,
    PropertyLineError,
    PropertyValue,
    VCardStructureError,
    property_kind,
)

logger = logging.getLogger(__name__)

_LINE_BREAK = re.compile(r"\r\n|\r|\n")

BEGIN_MARKER = "BEGIN:VCARD"
END_MARKER = "END:VCARD"

LineParser = Callable[[str], tuple[str, PropertyValue]]


# ── Unfolding ──────────────────────────────────────────────────────────────────

def unfold_lines(text: str) -> list[str]:
    """Join continuation lines (leading space or tab) onto the previous line.

    Exactly one leading whitespace character is removed per continuation.
    Blank logical lines are dropped.
    """
    logical: list[str] = []
    current: str | None = None
    for line in _LINE_BREAK.split(text):
        if line[:1] in (" ", "\t") and current is not None:
            current += line[1:]
            continue
        if current is not None:
            logical.append(current)
        current = line
    if current is not None:
        logical.append(current)
    return [line for line in logical if line.strip()]


def is_marker(line: str) -> bool:
    upper = line.strip().upper()
    return upper.startswith(BEGIN_MARKER) or upper.startswith(END_MARKER)


# ── Property lines ─────────────────────────────────────────────────────────────

def parse_parameters(text: str) -> Parameters:
    params = Parameters()
    if not text:
        return params
    for piece in text.split(";"):
        key, sep, value = piece.partition("=")
        if not sep:
            continue
        params[key] = value
    return params


def split_line(line: str) -> tuple[str, str, str]:
    """Return (name, parameter text, raw value) for a logical line."""
    head, sep, raw_value = line.partition(":")
    if not sep:
        raise PropertyLineError(f"Invalid property line (no colon): {line!r}")
    name, _, param_text = head.partition(";")
    return name, param_text, raw_value


def parse_line(line: str) -> tuple[str, PropertyValue]:
    """Parse ``NAME;K=V;...:value`` into an upper-cased name and a PropertyValue.

    A group prefix such as ``item1.`` is not interpreted and stays in the name.
    """
    name, param_text, raw_value = split_line(line)
    return name.upper(), PropertyValue(
        value=unescape(raw_value),
        parameters=parse_parameters(param_text),
        raw_value=raw_value,
    )


# ── Document ───────────────────────────────────────────────────────────────────

def check_structure(text: object) -> str:
    """Raise VCardStructureError unless ``text`` looks like a vCard."""
    if not isinstance(text, str):
        raise VCardStructureError(f"Invalid vCard input: expected str, got {type(text).__name__}")
    if not text.strip():
        raise VCardStructureError("Empty vCard string provided")
    upper = text.upper()
    if BEGIN_MARKER not in upper:
        raise VCardStructureError("Missing BEGIN:VCARD")
    if END_MARKER not in upper:
        raise VCardStructureError("Missing END:VCARD")
    return text


def add_property(
    doc: ParsedDocument,
    name: str,
    prop: PropertyValue,
    single_valued: frozenset[str] = SINGLE_VALUED,
) -> None:
    if property_kind(name, single_valued) is PropertyKind.SINGLE:
        doc.properties[name] = prop.value
    else:
        doc.properties.setdefault(name, []).append(prop)
    if name == "VERSION":
        doc.version = prop.value.strip()


def parse_vcard(
    text: str,
    *,
    line_parser: LineParser = parse_line,
    single_valued: frozenset[str] = SINGLE_VALUED,
) -> ParsedDocument:
    """Parse one vCard into a ParsedDocument.

    Structural problems raise VCardStructureError. A line that cannot be
    parsed is logged and skipped; the rest of the card is still read.
    """
    check_structure(text)
    doc = ParsedDocument()
    skipped = 0
    for line in unfold_lines(text):
        if is_marker(line):
            continue
        try:
            name, prop = line_parser(line)
        except PropertyLineError as exc:
            skipped += 1
            logger.warning("Skipping malformed vCard line: %s", exc)
            continue
        add_property(doc, name, prop, single_valued)
        doc.raw_lines.setdefault(name, []).append(line)
    if skipped:
        logger.debug("%d line(s) skipped while parsing", skipped)
    return doc
