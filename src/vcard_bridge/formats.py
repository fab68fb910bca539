"""Import, export and version conversion with format routing.

Routing rule: detection is reported, but the route is chosen by the
declared version. Any 3.0 card is read with the vendor parser, whose
tables are case-insensitive and accept standard tokens too, so a vendor
export without telltale tokens still converts correctly.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, UTC

from .exporter import VCARD_MIME_TYPE, export_filename, export_vcard, generate_vcard
from .model import Contact, ContactMetadata, ExportResult, VCardImportError
from .normalize import UNNAMED, extract_display
from .parser import check_structure
from .proprietary import (
    VENDOR_VERSION,
    contact_to_vendor,
    detect_format,
    vendor_to_standard,
)
from .validator import validate_vcard

logger = logging.getLogger(__name__)

STANDARD_VERSION = "4.0"
SUPPORTED_VERSIONS = (STANDARD_VERSION, VENDOR_VERSION)

SOURCE_STANDARD = "vcard-4.0"
SOURCE_VENDOR = "vcard-3.0-vendor"


@dataclass
class ConversionResult:
    converted: bool
    content: str
    source_version: str | None
    target_version: str


def _stamp() -> str:
    return datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


def to_standard(text: str, now: datetime | None = None) -> tuple[str, str]:
    """Return (vCard 4.0 text, import source label) for any supported card."""
    check_structure(text)
    detection = detect_format(text)
    if detection.version == VENDOR_VERSION:
        if not detection.is_vendor:
            logger.debug("3.0 card without vendor telltales; reading it as vendor anyway")
        return vendor_to_standard(text, now=now), SOURCE_VENDOR
    return text, SOURCE_STANDARD


def import_vcard(text: str, card_name: str | None = None) -> Contact:
    """Create a new contact record from one card of either flavour.

    Raises VCardStructureError for non-vCard input and VCardImportError
    when the (converted) card fails validation.
    """
    standard, source = to_standard(text)
    result = validate_vcard(standard)
    if not result.is_valid:
        raise VCardImportError(f"Invalid vCard: {', '.join(result.errors)}")
    for w in result.warnings:
        logger.warning("Import warning: %s", w)

    display = extract_display(standard)
    contact = display.to_contact(raw=standard, card_name=card_name or display.fn or "Imported Contact")
    stamp = _stamp()
    contact.metadata = ContactMetadata(
        created_at=stamp,
        last_updated=stamp,
        is_imported=True,
        import_source=source,
    )
    logger.debug("imported %s as %s (%s)", contact.card_name, contact.contact_id, source)
    return contact


def export_contact(contact: Contact, target: str = STANDARD_VERSION) -> ExportResult:
    if target not in SUPPORTED_VERSIONS:
        raise ValueError(f"Unsupported export format: {target}")
    if target == VENDOR_VERSION:
        return ExportResult(
            filename=export_filename(contact.fn or UNNAMED, suffix="_apple.vcf"),
            content=contact_to_vendor(contact),
            mime_type=VCARD_MIME_TYPE,
        )
    return export_vcard(contact)


def convert_vcard(text: str, target_version: str, now: datetime | None = None) -> ConversionResult:
    """Convert one card between 4.0 and the vendor 3.0 flavour."""
    if target_version not in SUPPORTED_VERSIONS:
        raise ValueError(f"Unsupported vCard version: {target_version}")
    check_structure(text)
    detection = detect_format(text)
    if detection.version == target_version:
        return ConversionResult(False, text, detection.version, target_version)

    standard, _ = to_standard(text, now=now)
    if target_version == STANDARD_VERSION:
        content = standard
        if detection.version != VENDOR_VERSION:
            # 2.1 or undeclared: normalise through the record
            content = generate_vcard(extract_display(standard).to_contact(), now=now)
    else:
        content = contact_to_vendor(extract_display(standard).to_contact())
    logger.debug("converted %s -> %s", detection.version, target_version)
    return ConversionResult(True, content, detection.version, target_version)
