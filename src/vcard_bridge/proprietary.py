"""Vendor vCard 3.0 compatibility (the flavour Apple/iCloud exports).

The vendor flavour differs from RFC 9553 mainly in parameter casing
(``type=HOME``), repeated TYPE parameters, ``type=pref`` for preference and
its own upper-case type vocabulary. Everything here is best effort: unknown
tokens fall back to defaults and bad lines are skipped, never raised.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType

from .codec import escape_text, unescape
from .exporter import format_address_value, generate_vcard
from .model import SINGLE_VALUED, Address, Contact, ContactItem, Parameters, ParsedDocument, PropertyValue
from .normalize import UNNAMED, extract_display, parse_address_value
from .parser import parse_vcard, split_line, unfold_lines

logger = logging.getLogger(__name__)

VENDOR_VERSION = "3.0"

# ── Type vocabularies ──────────────────────────────────────────────────────────

PHONE_TYPES = MappingProxyType({
    "MOBILE": "cell",
    "CELL": "cell",
    "MAIN": "work",
    "WORK": "work",
    "HOME": "home",
    "OTHER": "other",
    "FAX": "fax",
    "VOICE": "voice",
})
EMAIL_TYPES = MappingProxyType({
    "WORK": "work",
    "HOME": "home",
    "OTHER": "other",
    "INTERNET": "internet",
})
URL_TYPES = MappingProxyType({
    "WORK": "work",
    "HOME": "home",
    "PERSONAL": "personal",
    "SOCIAL": "social",
    "BLOG": "blog",
    "OTHER": "other",
})
ADDRESS_TYPES = MappingProxyType({
    "WORK": "work",
    "HOME": "home",
    "OTHER": "other",
})

TYPE_TABLES = MappingProxyType({
    "phone": PHONE_TYPES,
    "email": EMAIL_TYPES,
    "url": URL_TYPES,
    "address": ADDRESS_TYPES,
})

# Not a plain inversion: several vendor tokens share one standard token.
REVERSE_TYPE_TABLES = MappingProxyType({
    "phone": MappingProxyType({
        "work": "WORK", "home": "HOME", "cell": "CELL", "mobile": "CELL",
        "fax": "FAX", "voice": "VOICE", "other": "OTHER",
    }),
    "email": MappingProxyType({
        "work": "WORK", "home": "HOME", "internet": "INTERNET", "other": "OTHER",
    }),
    "url": MappingProxyType({
        "work": "WORK", "home": "HOME", "personal": "PERSONAL", "blog": "BLOG",
        "social": "OTHER", "other": "OTHER",
    }),
    "address": MappingProxyType({
        "work": "WORK", "home": "HOME", "other": "OTHER",
    }),
})

# For compound tokens like "CELL,VOICE": most specific first.
_PRIORITY = MappingProxyType({
    "phone": ("WORK", "HOME", "CELL", "MOBILE", "FAX", "MAIN", "OTHER", "VOICE"),
    "email": ("WORK", "HOME", "OTHER", "INTERNET"),
    "url": ("WORK", "HOME", "PERSONAL", "BLOG", "SOCIAL", "OTHER"),
    "address": ("WORK", "HOME", "OTHER"),
})

DEFAULT_STANDARD_TYPE = "other"
DEFAULT_VENDOR_TYPE = "WORK"

VENDOR_SINGLE_VALUED: frozenset[str] = SINGLE_VALUED | {"N"}

# Field on the record → (property, vocabulary kind).
_VENDOR_FIELDS: tuple[tuple[str, str, str], ...] = (
    ("phones", "TEL", "phone"),
    ("emails", "EMAIL", "email"),
    ("urls", "URL", "url"),
)


def _type_tokens(token: str | None) -> list[str]:
    if not token:
        return []
    return [t.strip().upper() for t in token.split(",") if t.strip() and t.strip().upper() != "PREF"]


def vendor_type_to_standard(token: str | None, kind: str) -> str:
    """Translate a vendor TYPE value (possibly compound) for one property kind."""
    table = TYPE_TABLES.get(kind)
    tokens = _type_tokens(token)
    if not table or not tokens:
        return DEFAULT_STANDARD_TYPE
    if len(tokens) > 1:
        for candidate in _PRIORITY[kind]:
            if candidate in tokens and candidate in table:
                return table[candidate]
    for t in tokens:
        if t in table:
            return table[t]
    return DEFAULT_STANDARD_TYPE


def standard_type_to_vendor(type_: str | None, kind: str) -> str:
    reverse = REVERSE_TYPE_TABLES.get(kind, {})
    return reverse.get((type_ or DEFAULT_STANDARD_TYPE).lower(), DEFAULT_VENDOR_TYPE)


# ── Detection ──────────────────────────────────────────────────────────────────

# Same families of markers the normaliser used to strip as Apple noise.
APPLE_PATTERNS: tuple[tuple[re.Pattern, str], ...] = (
    (re.compile(r"^item\d+\.", re.I), "itemN. group prefix"),
    (re.compile(r"^X-AB", re.I), "X-AB property"),
    (re.compile(r"^X-ADDRESSBOOKSERVER", re.I), "X-ADDRESSBOOKSERVER property"),
)
_LOWER_TYPE = re.compile(r";type=")
_URL_CATEGORY = re.compile(r"^(?:item\d+\.)?URL;.*\b(PERSONAL|SOCIAL|BLOG)\b", re.I)


@dataclass
class FormatDetection:
    version: str | None
    is_vendor: bool
    indicators: list[str] = field(default_factory=list)


def detect_format(text: str) -> FormatDetection:
    """Classify a document as vendor 3.0 or standard.

    Vendor iff VERSION is 3.0 and at least one vendor telltale is present.
    A vendor export that happens to avoid every telltale reads as standard.
    """
    version: str | None = None
    indicators: list[str] = []
    for line in unfold_lines(text or ""):
        head = line.partition(":")[0]
        if head.upper() == "VERSION":
            version = line.partition(":")[2].strip()
            continue
        if _LOWER_TYPE.search(head) and "lower-case type= parameter" not in indicators:
            indicators.append("lower-case type= parameter")
        cat = _URL_CATEGORY.match(head)
        if cat:
            label = f"{cat.group(1).upper()} URL category"
            if label not in indicators:
                indicators.append(label)
        for pattern, label in APPLE_PATTERNS:
            if pattern.match(head) and label not in indicators:
                indicators.append(label)
    is_vendor = version == VENDOR_VERSION and bool(indicators)
    logger.debug("format detection: version=%s vendor=%s indicators=%s", version, is_vendor, indicators)
    return FormatDetection(version=version, is_vendor=is_vendor, indicators=indicators)


def is_vendor_format(text: str) -> bool:
    return detect_format(text).is_vendor


# ── Vendor parsing ─────────────────────────────────────────────────────────────

_ITEM_GROUP = re.compile(r"^item\d+\.", re.I)


def parse_vendor_parameters(text: str) -> Parameters:
    """Lower-case keys, repeated TYPE, bare tokens and bare ``pref`` all accepted."""
    params = Parameters()
    types: list[str] = []
    for piece in text.split(";") if text else []:
        key, sep, value = piece.partition("=")
        key = key.strip().upper()
        if not key:
            continue
        if not sep:
            # 2.1-style bare token: "TEL;CELL;PREF:..."
            if key == "PREF":
                params["PREF"] = "1"
            else:
                types.append(key)
            continue
        if key == "TYPE":
            types.extend(v.strip().upper() for v in value.split(",") if v.strip())
        elif key == "PREF":
            params["PREF"] = value or "1"
        elif key == "CHARSET":
            continue
        else:
            params[key] = value
    if types:
        params["TYPE"] = ",".join(types)
    return params


def parse_vendor_line(line: str) -> tuple[str, PropertyValue]:
    name, param_text, raw_value = split_line(line)
    name = _ITEM_GROUP.sub("", name).upper()
    return name, PropertyValue(
        value=unescape(raw_value),
        parameters=parse_vendor_parameters(param_text),
        raw_value=raw_value,
    )


def parse_vendor_vcard(text: str) -> ParsedDocument:
    return parse_vcard(text, line_parser=parse_vendor_line, single_valued=VENDOR_SINGLE_VALUED)


def _vendor_primary(pv: PropertyValue) -> bool:
    if pv.parameters.get("PREF", "").strip() == "1":
        return True
    tokens = [t.strip().upper() for t in pv.parameters.get("TYPE", "").split(",")]
    return "PREF" in tokens


def _vendor_birthday(value: str) -> str:
    if re.fullmatch(r"\d{8}", value):
        return f"{value[:4]}-{value[4:6]}-{value[6:]}"
    return value


def _name_from_n(value: str) -> str:
    parts = value.split(";")
    family = parts[0].strip() if parts else ""
    given = parts[1].strip() if len(parts) > 1 else ""
    return " ".join(p for p in (given, family) if p)


def vendor_to_contact(text: str) -> Contact:
    """Read a vendor 3.0 card into a record, translating type tokens."""
    doc = parse_vendor_vcard(text)
    contact = Contact(
        fn=doc.get_single("FN") or _name_from_n(doc.get_single("N")) or UNNAMED,
        organization=doc.get_single("ORG").rstrip(";"),
        title=doc.get_single("TITLE"),
        birthday=_vendor_birthday(doc.get_single("BDAY")),
        raw=text,
    )
    for attr, prop, kind in _VENDOR_FIELDS:
        setattr(contact, attr, [
            ContactItem(
                value=pv.value,
                type=vendor_type_to_standard(pv.parameters.get("TYPE"), kind),
                primary=_vendor_primary(pv),
            )
            for pv in doc.get_multi(prop)
        ])
    contact.addresses = [
        ContactItem(
            value=parse_address_value(pv.raw_value),
            type=(_type_tokens(pv.parameters.get("TYPE")) or [DEFAULT_STANDARD_TYPE])[0].lower(),
            primary=_vendor_primary(pv),
        )
        for pv in doc.get_multi("ADR")
    ]
    contact.notes = [ContactItem(value=pv.value) for pv in doc.get_multi("NOTE")]
    return contact


def vendor_to_standard(text: str, now: datetime | None = None) -> str:
    """Re-emit a vendor card as vCard 4.0.

    Preference is carried over exactly as the source states it; the
    first-item fallback of plain generation is not applied here.
    """
    return generate_vcard(vendor_to_contact(text), now=now, pref_fallback=False)


# ── Vendor generation ──────────────────────────────────────────────────────────

def split_full_name(full_name: str) -> tuple[str, str]:
    """Return (family, given) by splitting on the last whitespace.

    Deliberately naive: "Ludwig van Beethoven" gives family "Beethoven".
    """
    parts = (full_name or "").strip().rsplit(None, 1)
    if len(parts) == 2:
        return parts[1], parts[0]
    if parts:
        return parts[0], ""
    return "", ""


def _vendor_params(kind: str, item: ContactItem, extra: str | None = None) -> str:
    vendor_type = standard_type_to_vendor(item.type, kind)
    params = [f"type={vendor_type}"]
    if extra and extra != vendor_type:
        params.append(f"type={extra}")
    if item.primary:
        params.append("type=pref")
    return "".join(f";{p}" for p in params)


def contact_to_vendor(contact: Contact) -> str:
    """Serialise a record in the vendor 3.0 flavour."""
    fn = contact.fn or UNNAMED
    family, given = split_full_name(fn)
    lines = [
        "BEGIN:VCARD",
        f"VERSION:{VENDOR_VERSION}",
        f"FN:{escape_text(fn)}",
        f"N:{escape_text(family)};{escape_text(given)};;;",
    ]
    for item in contact.phones:
        lines.append(f"TEL{_vendor_params('phone', item, 'VOICE')}:{escape_text(item.value)}")
    for item in contact.emails:
        lines.append(f"EMAIL{_vendor_params('email', item, 'INTERNET')}:{escape_text(item.value)}")
    for item in contact.urls:
        lines.append(f"URL{_vendor_params('url', item)}:{escape_text(item.value)}")

    # The vendor address book expects an ADR line even when there is none.
    addresses = contact.addresses or [ContactItem(value=Address(), type="home")]
    for item in addresses:
        lines.append(f"ADR{_vendor_params('address', item)}:{format_address_value(item.value)}")

    if contact.organization:
        lines.append(f"ORG:{escape_text(contact.organization)}")
    if contact.title:
        lines.append(f"TITLE:{escape_text(contact.title)}")
    if contact.birthday:
        lines.append(f"BDAY:{escape_text(contact.birthday)}")
    for note in contact.notes:
        lines.append(f"NOTE:{escape_text(note.value)}")
    lines.append("END:VCARD")
    return "\n".join(lines)


def standard_to_vendor(text: str) -> str:
    """Convert vCard 4.0 text to the vendor 3.0 flavour."""
    return contact_to_vendor(extract_display(text).to_contact(raw=text))
