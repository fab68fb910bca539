from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

_LINE_BREAK = re.compile(r"\r\n|\r|\n")


@dataclass
class SplitResult:
    cards: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


# ── Multi-card content ─────────────────────────────────────────────────────────

def split_vcards(content: str) -> SplitResult:
    """Cut a .vcf export into one text block per BEGIN:VCARD … END:VCARD.

    Folded continuation lines are kept as they are; each block is handed
    to the parser unchanged. Anything odd is reported as a warning.
    """
    result = SplitResult()
    current: list[str] = []
    inside = False

    for lineno, line in enumerate(_LINE_BREAK.split(content or ""), start=1):
        marker = line.strip().upper()
        if marker == "BEGIN:VCARD":
            if inside:
                result.warnings.append(f"Line {lineno}: BEGIN:VCARD found inside existing vCard block")
            inside = True
            current = [line.strip()]
        elif marker == "END:VCARD":
            if not inside:
                result.warnings.append(f"Line {lineno}: END:VCARD found without matching BEGIN:VCARD")
                continue
            current.append(line.strip())
            result.cards.append("\n".join(current))
            current = []
            inside = False
        elif inside:
            current.append(line)
        elif line.strip() and ":" in line and not line.lstrip().startswith(("#", "//")):
            result.warnings.append(f"Line {lineno}: Property outside vCard block ignored: {line.strip()[:50]}")

    if inside:
        result.warnings.append("Incomplete vCard block at end of file, missing END:VCARD")

    for w in result.warnings:
        logger.warning(w)
    return result


# ── Files ──────────────────────────────────────────────────────────────────────

def read_vcards_from_files(paths: list[Path]) -> list[tuple[str, str]]:
    """Return (card text, source label) pairs for every card in every file."""
    results: list[tuple[str, str]] = []
    for p in paths:
        label = p.stem
        raw = p.read_text(encoding="utf-8", errors="replace")
        split = split_vcards(raw)
        logger.debug("%s: %d card(s), %d warning(s)", label, len(split.cards), len(split.warnings))
        results.extend((card, label) for card in split.cards)
    return results


def collect_sources(directory: Path) -> list[Path]:
    """Return all .vcf files found directly inside ``directory``, sorted by name."""
    if not directory.is_dir():
        return []
    return sorted(p for p in directory.iterdir() if p.suffix.lower() == ".vcf")
