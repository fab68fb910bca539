from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .dedupe import DuplicateMatch
from .model import Address, Contact, ContactItem, DisplayData, ValidationResult

console = Console()

# ── Palette ────────────────────────────────────────────────────────────────────
_ACCENT  = "#4d9fff"
_GREEN   = "#3ecf8e"
_AMBER   = "#f0a500"
_RED     = "#f05c5c"
_TEXT    = "#c9d1e0"
_MID     = "#8896af"
_DIM     = "#546075"
_BORDER  = "#2a3347"


def _format_item(item: ContactItem) -> str:
    if isinstance(item.value, Address):
        value = ", ".join(p for p in item.value.fields() if p)
    else:
        value = item.value
    star = " ★" if item.primary else ""
    return f"{value}  ({item.type}){star}"


def validation_table(rows: list[tuple[str, ValidationResult]]) -> Table:
    table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
    table.add_column("Card")
    table.add_column("Version")
    table.add_column("Status")
    table.add_column("Findings")
    for label, result in rows:
        status = Text("valid", style=f"bold {_GREEN}") if result.is_valid else Text("invalid", style=f"bold {_RED}")
        findings = Text()
        for e in result.errors:
            findings.append(f"✗ {e}\n", style=_RED)
        for w in result.warnings:
            findings.append(f"! {w}\n", style=_AMBER)
        findings.rstrip()
        table.add_row(label, result.version or "?", status, findings)
    return table


def print_validation(rows: list[tuple[str, ValidationResult]]) -> None:
    console.print(validation_table(rows))
    invalid = sum(1 for _, r in rows if not r.is_valid)
    colour = _RED if invalid else _GREEN
    console.print(Text(f"  {len(rows) - invalid}/{len(rows)} card(s) valid", style=f"dim {colour}"))


def display_panel(data: DisplayData | Contact, source: str = "") -> Panel:
    body = Text()
    for label, value in (("Organization", data.organization), ("Title", data.title), ("Birthday", data.birthday)):
        if value:
            body.append(f"{label:<13}", style=f"dim {_DIM}")
            body.append(f"{value}\n", style=_TEXT)
    for label, items in (
        ("Phones", data.phones), ("Emails", data.emails), ("URLs", data.urls),
        ("Addresses", data.addresses), ("Notes", data.notes),
    ):
        for i, item in enumerate(items):
            body.append(f"{label if i == 0 else '':<13}", style=f"dim {_DIM}")
            body.append(f"{_format_item(item)}\n", style=_TEXT)
    body.rstrip()
    title = Text(f"  {data.fn}  ", style=f"bold {_ACCENT}")
    return Panel(
        body,
        title=title,
        title_align="left",
        subtitle=Text(source, style=f"dim {_MID}") if source else None,
        border_style=_BORDER,
        padding=(0, 2),
    )


def print_duplicates(pairs: list[tuple[Contact, DuplicateMatch]]) -> None:
    if not pairs:
        console.print(Text("  No likely duplicates found.", style=f"dim {_DIM}"))
        return
    table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
    table.add_column("Contact")
    table.add_column("Looks like")
    table.add_column("Confidence", justify="right")
    table.add_column("Match")
    for contact, match in pairs:
        other = match.contact.fn if match.contact else ""
        table.add_row(contact.fn, other, f"{match.confidence:.0%}", match.match_type)
    console.print(table)
