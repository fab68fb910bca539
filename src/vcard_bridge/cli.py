from __future__ import annotations

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from .codec import fold_lines
from .config import DEFAULT_CONF_PATH, load_settings, write_default_config
from .dedupe import find_duplicates
from .formats import SUPPORTED_VERSIONS, convert_vcard, import_vcard, to_standard
from .io import read_vcards_from_files
from .model import VCardError
from .normalize import extract_display
from .report import display_panel, print_duplicates, print_validation
from .validator import validate_vcard

app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help="vcard-bridge: validate, inspect and convert vCard 4.0 and vendor 3.0 files.",
)
console = Console()
logger = logging.getLogger(__name__)


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
    config: Path = typer.Option(DEFAULT_CONF_PATH, "--config", "-c", help="Path to the TOML config file"),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )
    ctx.obj = load_settings(config)


def _read_cards(files: list[Path]) -> list[tuple[str, str]]:
    missing = [f for f in files if not f.is_file()]
    if missing:
        console.print(f"[bold red]File not found: {', '.join(str(m) for m in missing)}[/bold red]")
        raise typer.Exit(code=2)
    cards = read_vcards_from_files(files)
    if not cards:
        console.print("[bold red]No vCards found.[/bold red]")
        raise typer.Exit(code=2)
    return cards


# ── validate ───────────────────────────────────────────────────────────────────

@app.command()
def validate(
    files: list[Path] = typer.Argument(..., help=".vcf file(s) to check"),
    strict: bool = typer.Option(False, "--strict", help="Also cross-check with vobject"),
) -> None:
    """Check every card for structure, required properties and version."""
    rows = []
    for i, (card, label) in enumerate(_read_cards(files), start=1):
        rows.append((f"{label}#{i}", validate_vcard(card, strict=strict)))
    print_validation(rows)
    if any(not r.is_valid for _, r in rows):
        raise typer.Exit(code=1)


# ── show ───────────────────────────────────────────────────────────────────────

@app.command()
def show(file: Path = typer.Argument(..., help=".vcf file to display")) -> None:
    """Print the display data of every card; vendor cards are converted first."""
    for card, label in _read_cards([file]):
        try:
            text, _ = to_standard(card)
            console.print(display_panel(extract_display(text), source=label))
        except VCardError as exc:
            console.print(f"[red]{label}: {exc}[/red]")


# ── convert ────────────────────────────────────────────────────────────────────

@app.command()
def convert(
    ctx: typer.Context,
    file: Path = typer.Argument(..., help=".vcf file to convert"),
    to: str | None = typer.Option(None, "--to", "-t", help="Target version: 4.0 or 3.0 (vendor)"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write here instead of stdout"),
    fold: bool | None = typer.Option(None, "--fold/--no-fold", help="Fold lines to 75 octets"),
) -> None:
    """Convert all cards in a file between vCard 4.0 and the vendor 3.0 flavour."""
    settings = ctx.obj
    target = to or settings.default_version
    if target not in SUPPORTED_VERSIONS:
        console.print(f"[bold red]Unsupported target version: {target}[/bold red]")
        raise typer.Exit(code=2)
    do_fold = settings.fold_output if fold is None else fold

    out: list[str] = []
    converted = 0
    for card, label in _read_cards([file]):
        try:
            result = convert_vcard(card, target)
        except VCardError as exc:
            logger.warning("%s: skipped (%s)", label, exc)
            continue
        converted += result.converted
        out.append(fold_lines(result.content) if do_fold else result.content)

    text = "\n".join(out) + "\n"
    if output is None:
        typer.echo(text, nl=False)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text, encoding="utf-8")
    console.print(f"[bold green]✓ Wrote {len(out)} card(s) ({converted} converted) → {output}[/bold green]")


# ── dupes ──────────────────────────────────────────────────────────────────────

@app.command()
def dupes(
    ctx: typer.Context,
    files: list[Path] = typer.Argument(..., help=".vcf file(s) to compare"),
    threshold: float | None = typer.Option(None, "--threshold", help="0..1, default from config"),
) -> None:
    """List cards that look like duplicates of an earlier card."""
    limit = ctx.obj.duplicate_threshold if threshold is None else threshold
    contacts = []
    for card, label in _read_cards(files):
        try:
            contacts.append(import_vcard(card))
        except VCardError as exc:
            logger.warning("%s: skipped (%s)", label, exc)

    pairs = []
    for i, contact in enumerate(contacts):
        for match in find_duplicates(contact, contacts[:i], threshold=limit):
            pairs.append((contact, match))
    print_duplicates(pairs)


# ── init-config ────────────────────────────────────────────────────────────────

@app.command("init-config")
def init_config(
    path: Path = typer.Argument(DEFAULT_CONF_PATH, help="Where to write the config"),
) -> None:
    """Write a default config file (left alone if it exists)."""
    conf = write_default_config(path)
    console.print(f"[dim]Config → {conf}[/dim]")


if __name__ == "__main__":
    app()
