from __future__ import annotations

import enum
from collections.abc import Iterable, Iterator, MutableMapping
from dataclasses import dataclass, field
from datetime import datetime, UTC

from .identifiers import generate_contact_id

ADDRESS_FIELD_COUNT = 7


# ── Errors ─────────────────────────────────────────────────────────────────────

class VCardError(ValueError):
    """Base class for everything this package raises."""


class VCardStructureError(VCardError):
    """Input is not a vCard at all (empty, wrong type, missing BEGIN/END)."""


class PropertyLineError(VCardError):
    """A single logical line could not be split into name and value."""


class VCardImportError(VCardError):
    """Document parsed but failed validation on import."""


# ── Property kinds ─────────────────────────────────────────────────────────────

class PropertyKind(enum.Enum):
    SINGLE = "single"
    MULTI = "multi"


SINGLE_VALUED: frozenset[str] = frozenset({"FN", "ORG", "TITLE", "BDAY"})


def property_kind(name: str, single_valued: frozenset[str] = SINGLE_VALUED) -> PropertyKind:
    """Single-valued names overwrite; everything else, unknown names included, appends."""
    return PropertyKind.SINGLE if name.upper() in single_valued else PropertyKind.MULTI


# ── Parameters ─────────────────────────────────────────────────────────────────

class Parameters(MutableMapping):
    """Case-insensitive parameter mapping. Keys are stored upper-case."""

    def __init__(self, data: Iterable[tuple[str, str]] | dict[str, str] | None = None):
        self._data: dict[str, str] = {}
        if data:
            items = data.items() if isinstance(data, dict) else data
            for k, v in items:
                self[k] = v

    def __getitem__(self, key: str) -> str:
        return self._data[key.upper()]

    def __setitem__(self, key: str, value: str) -> None:
        self._data[key.upper()] = value

    def __delitem__(self, key: str) -> None:
        del self._data[key.upper()]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Parameters):
            return self._data == other._data
        if isinstance(other, dict):
            return self._data == {k.upper(): v for k, v in other.items()}
        return NotImplemented

    def __repr__(self) -> str:
        return f"Parameters({self._data!r})"


# ── Parsed document ────────────────────────────────────────────────────────────

@dataclass
class PropertyValue:
    value: str
    parameters: Parameters = field(default_factory=Parameters)
    raw_value: str = ""  # as it appeared on the line, still escaped


@dataclass
class ParsedDocument:
    version: str | None = None
    properties: dict[str, str | list[PropertyValue]] = field(default_factory=dict)
    raw_lines: dict[str, list[str]] = field(default_factory=dict)  # diagnostics only

    def has(self, name: str) -> bool:
        return name.upper() in self.properties

    def get_single(self, name: str, default: str = "") -> str:
        val = self.properties.get(name.upper())
        if val is None:
            return default
        if isinstance(val, str):
            return val
        return val[-1].value if val else default

    def get_multi(self, name: str) -> list[PropertyValue]:
        val = self.properties.get(name.upper())
        if val is None:
            return []
        if isinstance(val, str):
            return [PropertyValue(value=val, raw_value=val)]
        return list(val)


# ── Contact record ─────────────────────────────────────────────────────────────

@dataclass
class Address:
    po_box: str = ""
    extended: str = ""  # reserved by RFC 9553, kept for positional fidelity
    street: str = ""
    city: str = ""
    state: str = ""
    postal_code: str = ""
    country: str = ""

    def fields(self) -> list[str]:
        return [
            self.po_box, self.extended, self.street, self.city,
            self.state, self.postal_code, self.country,
        ]

    @classmethod
    def from_fields(cls, parts: Iterable[str]) -> Address:
        values = list(parts)[:ADDRESS_FIELD_COUNT]
        values += [""] * (ADDRESS_FIELD_COUNT - len(values))
        return cls(*values)

    def is_empty(self) -> bool:
        return not any(self.fields())


@dataclass
class ContactItem:
    value: str | Address = ""
    type: str = "other"
    primary: bool = False


def _now_iso() -> str:
    return datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclass
class ContactMetadata:
    created_at: str = field(default_factory=_now_iso)
    last_updated: str = field(default_factory=_now_iso)
    is_imported: bool = False
    import_source: str | None = None


@dataclass
class Contact:
    fn: str = ""
    organization: str = ""
    title: str = ""
    birthday: str = ""
    phones: list[ContactItem] = field(default_factory=list)
    emails: list[ContactItem] = field(default_factory=list)
    urls: list[ContactItem] = field(default_factory=list)
    addresses: list[ContactItem] = field(default_factory=list)
    notes: list[ContactItem] = field(default_factory=list)
    raw: str | None = None
    card_name: str = ""
    contact_id: str = field(default_factory=generate_contact_id)
    metadata: ContactMetadata = field(default_factory=ContactMetadata)


@dataclass
class DisplayData:
    fn: str = ""
    organization: str = ""
    title: str = ""
    birthday: str = ""
    phones: list[ContactItem] = field(default_factory=list)
    emails: list[ContactItem] = field(default_factory=list)
    urls: list[ContactItem] = field(default_factory=list)
    addresses: list[ContactItem] = field(default_factory=list)
    notes: list[ContactItem] = field(default_factory=list)

    def to_contact(self, raw: str | None = None, card_name: str = "") -> Contact:
        """Create a new record (fresh id) carrying these values."""
        return Contact(
            fn=self.fn,
            organization=self.organization,
            title=self.title,
            birthday=self.birthday,
            phones=list(self.phones),
            emails=list(self.emails),
            urls=list(self.urls),
            addresses=list(self.addresses),
            notes=list(self.notes),
            raw=raw,
            card_name=card_name or self.fn,
        )


# ── Results ────────────────────────────────────────────────────────────────────

@dataclass
class ValidationResult:
    is_valid: bool
    version: str | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass
class ExportResult:
    filename: str
    content: str
    mime_type: str = "text/vcard;charset=utf-8"
