from __future__ import annotations

import re
from dataclasses import dataclass

from rapidfuzz import fuzz

from .model import Contact

NAME_WEIGHT = 0.4
EMAIL_WEIGHT = 0.5
PHONE_WEIGHT = 0.3
DEFAULT_THRESHOLD = 0.8


@dataclass
class DuplicateMatch:
    contact: Contact | None
    confidence: float
    match_type: str  # none | name | email | phone


def _tel_key(t: str) -> str:
    digits = re.sub(r"\D", "", t)
    return digits[-9:] if len(digits) >= 9 else digits


def _name(c: Contact) -> str:
    return (c.fn or c.card_name or "").lower()


def similarity(a: Contact, b: Contact) -> DuplicateMatch:
    """Score how likely ``a`` and ``b`` describe the same person (0..1)."""
    score = 0.0
    match_type = "none"

    if _name(a) and _name(b):
        name_score = fuzz.ratio(_name(a), _name(b)) / 100.0
        score += NAME_WEIGHT * name_score
        if name_score > 0.8:
            match_type = "name"

    a_emails = {str(e.value).lower() for e in a.emails if e.value}
    b_emails = {str(e.value).lower() for e in b.emails if e.value}
    if a_emails & b_emails:
        score += EMAIL_WEIGHT
        match_type = "email"

    a_tels = {_tel_key(str(t.value)) for t in a.phones} - {""}
    b_tels = {_tel_key(str(t.value)) for t in b.phones} - {""}
    if a_tels & b_tels:
        score += PHONE_WEIGHT
        if match_type == "none":
            match_type = "phone"

    return DuplicateMatch(contact=b, confidence=min(score, 1.0), match_type=match_type)


def find_duplicates(
    candidate: Contact,
    existing: list[Contact],
    threshold: float = DEFAULT_THRESHOLD,
) -> list[DuplicateMatch]:
    """Existing records at or above ``threshold``, best match first."""
    matches = [similarity(candidate, other) for other in existing if other is not candidate]
    matches = [m for m in matches if m.confidence >= threshold]
    return sorted(matches, key=lambda m: m.confidence, reverse=True)


def merge_contacts(existing: Contact, imported: Contact) -> Contact:
    """Fold an imported record into an existing one; the existing id survives."""
    return Contact(
        fn=imported.fn or existing.fn,
        organization=imported.organization or existing.organization,
        title=imported.title or existing.title,
        birthday=imported.birthday or existing.birthday,
        phones=existing.phones + imported.phones,
        emails=existing.emails + imported.emails,
        urls=existing.urls + imported.urls,
        addresses=existing.addresses + imported.addresses,
        notes=existing.notes + imported.notes,
        raw=None,
        card_name=existing.card_name or imported.card_name,
        contact_id=existing.contact_id,
        metadata=existing.metadata,
    )
