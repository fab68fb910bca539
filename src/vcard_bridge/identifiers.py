from __future__ import annotations

import uuid

CONTACT_ID_PREFIX = "contact_"


def generate_contact_id(prefix: str = CONTACT_ID_PREFIX) -> str:
    """Return a prefixed random (version 4) UUID, e.g. ``contact_1b4e…``.

    Called once when a record is created; records keep their id for life.
    """
    return f"{prefix}{uuid.uuid4()}"
