"""Document conformance checks and edit-form (contact data) checks."""
from __future__ import annotations

import logging
import re
from datetime import date

import phonenumbers
import vobject
from phonenumbers import NumberParseException

from .model import Contact, ContactItem, ValidationResult, VCardError
from .parser import BEGIN_MARKER, END_MARKER, parse_vcard

logger = logging.getLogger(__name__)

REQUIRED_PROPERTIES: tuple[str, ...] = ("VERSION", "FN")
EXPECTED_VERSION = "4.0"

_VERSION_RE = re.compile(r"^VERSION:(.+)$", re.MULTILINE | re.IGNORECASE)


def extract_version(text: str) -> str | None:
    match = _VERSION_RE.search(text)
    return match.group(1).strip() if match else None


def validate_vcard(text: str, strict: bool = False) -> ValidationResult:
    """Check structure, required properties and version.

    Findings are returned, never raised. ``is_valid`` only looks at errors.
    With ``strict`` the document is also handed to vobject; a rejection
    there is reported as a warning.
    """
    errors: list[str] = []
    warnings: list[str] = []

    if not isinstance(text, str):
        return ValidationResult(is_valid=False, errors=["Parse error: vCard input must be a string"])

    upper = text.upper()
    if BEGIN_MARKER not in upper:
        errors.append("Missing BEGIN:VCARD")
    if END_MARKER not in upper:
        errors.append("Missing END:VCARD")

    try:
        doc = parse_vcard(text)
    except VCardError as exc:
        if not errors:
            errors.append(f"Parse error: {exc}")
        return ValidationResult(is_valid=False, version=extract_version(text), errors=errors, warnings=warnings)

    for name in REQUIRED_PROPERTIES:
        if not doc.has(name):
            errors.append(f"Missing required property: {name}")

    version = doc.version
    if version is not None and version != EXPECTED_VERSION:
        warnings.append(f"Non-standard version: {version}, expected {EXPECTED_VERSION}")

    if strict:
        warnings.extend(_strict_check(text))

    return ValidationResult(is_valid=not errors, version=version, errors=errors, warnings=warnings)


def _strict_check(text: str) -> list[str]:
    try:
        vobject.readOne(text)
    except Exception as exc:  # vobject raises a range of parse/validation errors
        logger.debug("vobject rejected document: %s", exc)
        return [f"Strict parser rejected document: {exc}"]
    return []


# ── Contact data (edit form) ───────────────────────────────────────────────────

MAX_LENGTHS = {"fn": 255, "organization": 255, "title": 255}
MAX_NOTE_LENGTH = 1000

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_PHONE_CHARS_RE = re.compile(r"^\+?[\d\s\-().]+$")
_URL_RE = re.compile(r"^https?://\S+$", re.IGNORECASE)
_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

STANDARD_TYPES: dict[str, frozenset[str]] = {
    "phone": frozenset({"work", "home", "cell", "mobile", "fax", "pager", "voice", "text", "other"}),
    "email": frozenset({"work", "home", "internet", "personal", "other"}),
    "url": frozenset({"work", "home", "personal", "website", "blog", "portfolio", "social", "other"}),
}


def _check_duplicates(items: list[ContactItem], label: str, warnings: list[str]) -> None:
    seen: set[str] = set()
    dupes: list[str] = []
    for item in items:
        key = str(item.value).lower()
        if key in seen and key not in dupes:
            dupes.append(key)
        seen.add(key)
    if dupes:
        warnings.append(f"Duplicate {label} detected: {', '.join(dupes)}")


def _check_types(items: list[ContactItem], kind: str, warnings: list[str]) -> None:
    allowed = STANDARD_TYPES[kind]
    for i, item in enumerate(items, start=1):
        if item.type and item.type.lower() not in allowed:
            warnings.append(f"Non-standard {kind} type at position {i}: {item.type!r}")


def _check_phones(phones: list[ContactItem], region: str, errors: list[str], warnings: list[str]) -> None:
    for i, item in enumerate(phones, start=1):
        value = str(item.value).strip()
        if not value:
            errors.append(f"Phone number {i} is missing a value")
            continue
        if not _PHONE_CHARS_RE.match(value):
            errors.append(f"Invalid phone number format at position {i}: {value!r}")
            continue
        try:
            parsed = phonenumbers.parse(value, region)
            possible = phonenumbers.is_possible_number(parsed)
        except NumberParseException:
            possible = False
        if not possible:
            warnings.append(f"Phone number at position {i} does not look dialable in {region}: {value!r}")


def _check_birthday(birthday: str, errors: list[str], today: date | None = None) -> None:
    if not _DATE_RE.match(birthday):
        errors.append("birthday must be in YYYY-MM-DD format")
        return
    try:
        parsed = date.fromisoformat(birthday)
    except ValueError:
        errors.append("birthday is not a valid date")
        return
    today = today or date.today()
    if parsed > today:
        errors.append("Birthday cannot be in the future")
    elif parsed.year < today.year - 150:
        errors.append("Birthday seems unreasonably old")


def validate_contact_data(
    contact: Contact,
    default_region: str = "GB",
    today: date | None = None,
) -> ValidationResult:
    """Check a record coming from an edit form before it is generated."""
    errors: list[str] = []
    warnings: list[str] = []

    if not contact.fn or not contact.fn.strip():
        errors.append("Full name is required")
    for attr, limit in MAX_LENGTHS.items():
        value = getattr(contact, attr) or ""
        if len(value) > limit:
            errors.append(f"{attr} exceeds maximum length of {limit} characters")

    _check_phones(contact.phones, default_region, errors, warnings)
    _check_types(contact.phones, "phone", warnings)
    _check_duplicates(contact.phones, "phone numbers", warnings)

    for i, item in enumerate(contact.emails, start=1):
        if not _EMAIL_RE.match(str(item.value)):
            errors.append(f"Invalid email address format at position {i}: {item.value!r}")
    _check_types(contact.emails, "email", warnings)
    _check_duplicates(contact.emails, "email addresses", warnings)

    for i, item in enumerate(contact.urls, start=1):
        if not _URL_RE.match(str(item.value)):
            errors.append(f"Invalid URL format at position {i}: {item.value!r}")
    _check_types(contact.urls, "url", warnings)
    _check_duplicates(contact.urls, "URLs", warnings)

    for i, note in enumerate(contact.notes, start=1):
        if len(str(note.value)) > MAX_NOTE_LENGTH:
            errors.append(f"Note {i} exceeds maximum length of {MAX_NOTE_LENGTH} characters")

    if contact.birthday:
        _check_birthday(contact.birthday, errors, today)

    return ValidationResult(is_valid=not errors, version=None, errors=errors, warnings=warnings)
