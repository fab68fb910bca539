from __future__ import annotations

import re
from datetime import datetime, UTC
from pathlib import Path

from .codec import escape_text, fold_lines
from .model import Address, Contact, ContactItem, ExportResult, VCardError
from .normalize import MULTI_VALUE_FIELDS, UNNAMED

VCARD_MIME_TYPE = "text/vcard;charset=utf-8"

_NON_ALNUM = re.compile(r"[^A-Za-z0-9]")

# Record field → property, for the scalar lines that follow VERSION.
SCALAR_FIELDS: tuple[tuple[str, str], ...] = (
    ("fn", "FN"),
    ("organization", "ORG"),
    ("title", "TITLE"),
    ("birthday", "BDAY"),
)


def format_rev(now: datetime | None = None) -> str:
    now = now or datetime.now(UTC)
    if now.tzinfo is not None:
        now = now.astimezone(UTC)
    return now.strftime("%Y-%m-%dT%H:%M:%SZ")


def format_address_value(address: Address | str) -> str:
    """Always exactly 7 escaped, semicolon-delimited fields."""
    if isinstance(address, str):
        address = Address(street=address)
    return ";".join(escape_text(part) for part in address.fields())


def preferred_flags(items: list[ContactItem]) -> list[bool]:
    """Resolve PREF for one field.

    Explicit flags win. Only when no item is flagged does the first item
    become preferred; parsing the output back therefore shows an explicit
    primary on that first item.
    """
    if any(item.primary for item in items):
        return [bool(item.primary) for item in items]
    return [i == 0 for i in range(len(items))]


def build_parameters(type_: str | None, pref: bool) -> str:
    params: list[str] = []
    if type_ and type_.lower() != "other":
        params.append(f"TYPE={type_.lower()}")
    if pref:
        params.append("PREF=1")
    return "".join(f";{p}" for p in params)


def _item_lines(prop: str, items: list[ContactItem], pref_fallback: bool = True) -> list[str]:
    flags = preferred_flags(items) if pref_fallback else [bool(i.primary) for i in items]
    lines: list[str] = []
    for item, pref in zip(items, flags):
        if prop == "ADR":
            value = format_address_value(item.value)
        else:
            value = escape_text(item.value)
        lines.append(f"{prop}{build_parameters(item.type, pref)}:{value}")
    return lines


def generate_vcard(
    contact: Contact,
    now: datetime | None = None,
    pref_fallback: bool = True,
) -> str:
    """Serialise a contact record to vCard 4.0 text (unfolded, ``\\n`` line ends).

    ``pref_fallback=False`` marks only explicitly primary items, for
    conversions that must keep the source's preferences as they are.
    """
    if not contact.fn:
        raise VCardError("Missing required FN (full name)")

    lines = ["BEGIN:VCARD", "VERSION:4.0"]
    for attr, prop in SCALAR_FIELDS:
        value = getattr(contact, attr)
        if value:
            lines.append(f"{prop}:{escape_text(value)}")
    for attr, prop in MULTI_VALUE_FIELDS:
        lines.extend(_item_lines(prop, getattr(contact, attr), pref_fallback))
    lines.append(f"REV:{format_rev(now)}")
    lines.append("END:VCARD")
    return "\n".join(lines)


# ── Export helpers ─────────────────────────────────────────────────────────────

def export_filename(full_name: str | None, suffix: str = ".vcf") -> str:
    base = _NON_ALNUM.sub("", full_name or "")
    return f"{base or 'contact'}{suffix}"


def export_vcard(contact: Contact) -> ExportResult:
    content = contact.raw if contact.raw else generate_vcard(contact)
    return ExportResult(
        filename=export_filename(contact.fn or UNNAMED),
        content=content,
        mime_type=VCARD_MIME_TYPE,
    )


def write_vcards(
    contacts: list[Contact],
    path: Path,
    target_version: str = "4.0",
    fold: bool = False,
) -> int:
    """Write all contacts to one .vcf file, in the order given."""
    if target_version == "3.0":
        from .proprietary import contact_to_vendor
        render = contact_to_vendor
    else:
        render = generate_vcard

    cards: list[str] = []
    for c in contacts:
        text = render(c)
        cards.append(fold_lines(text) if fold else text)

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(cards) + "\n" if cards else "", encoding="utf-8")
    return len(cards)
