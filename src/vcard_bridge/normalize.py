from __future__ import annotations

from .codec import split_structured, unescape
from .model import Address, ContactItem, DisplayData, ParsedDocument, PropertyValue
from .parser import parse_vcard

UNNAMED = "Unnamed Contact"

# Record field → vCard property, in generation order.
MULTI_VALUE_FIELDS: tuple[tuple[str, str], ...] = (
    ("phones", "TEL"),
    ("emails", "EMAIL"),
    ("urls", "URL"),
    ("addresses", "ADR"),
    ("notes", "NOTE"),
)


def _is_primary(pv: PropertyValue) -> bool:
    pref = pv.parameters.get("PREF")
    return pref in ("1", 1)


def parse_address_value(raw: str) -> Address:
    """Decompose an escaped ADR value into its 7 positional fields."""
    return Address.from_fields(unescape(part) for part in split_structured(raw, ";"))


def normalize_property_value(pv: PropertyValue, *, structured: bool = False) -> ContactItem:
    value: str | Address = pv.value
    if structured:
        value = parse_address_value(pv.raw_value)
    return ContactItem(
        value=value,
        type=pv.parameters.get("TYPE") or "other",
        primary=_is_primary(pv),
    )


def extract_multi_value(doc: ParsedDocument, name: str) -> list[ContactItem]:
    structured = name.upper() == "ADR"
    return [normalize_property_value(pv, structured=structured) for pv in doc.get_multi(name)]


def extract_display(source: str | ParsedDocument) -> DisplayData:
    """Project raw text (or an already parsed document) into display data."""
    doc = source if isinstance(source, ParsedDocument) else parse_vcard(source)
    data = DisplayData(
        fn=doc.get_single("FN") or UNNAMED,
        organization=doc.get_single("ORG"),
        title=doc.get_single("TITLE"),
        birthday=doc.get_single("BDAY"),
    )
    for attr, prop in MULTI_VALUE_FIELDS:
        setattr(data, attr, extract_multi_value(doc, prop))
    return data
