from datetime import date

from vcard_bridge.model import Contact, ContactItem
from vcard_bridge.validator import extract_version, validate_contact_data, validate_vcard

VALID = "BEGIN:VCARD\nVERSION:4.0\nFN:Jane Doe\nEND:VCARD"


# ── Documents ──────────────────────────────────────────────────────────────────

def test_minimal_card_is_valid():
    result = validate_vcard(VALID)
    assert result.is_valid
    assert result.version == "4.0"
    assert result.errors == []
    assert result.warnings == []


def test_missing_fn_is_an_error():
    result = validate_vcard("BEGIN:VCARD\nVERSION:4.0\nEND:VCARD")
    assert not result.is_valid
    assert "Missing required property: FN" in result.errors


def test_missing_version_is_an_error_without_version_warning():
    result = validate_vcard("BEGIN:VCARD\nFN:A\nEND:VCARD")
    assert "Missing required property: VERSION" in result.errors
    assert result.warnings == []
    assert result.version is None


def test_other_version_is_only_a_warning():
    result = validate_vcard("BEGIN:VCARD\nVERSION:3.0\nFN:A\nEND:VCARD")
    assert result.is_valid
    assert result.version == "3.0"
    assert result.warnings == ["Non-standard version: 3.0, expected 4.0"]


def test_missing_begin_reported_once():
    result = validate_vcard("VERSION:4.0\nFN:A\nEND:VCARD")
    assert not result.is_valid
    assert result.errors == ["Missing BEGIN:VCARD"]
    assert result.version == "4.0"


def test_empty_input():
    result = validate_vcard("")
    assert not result.is_valid
    assert "Missing BEGIN:VCARD" in result.errors
    assert "Missing END:VCARD" in result.errors


def test_non_string_input_never_raises():
    result = validate_vcard(None)  # type: ignore[arg-type]
    assert not result.is_valid
    assert result.errors[0].startswith("Parse error")


def test_strict_mode_accepts_clean_card():
    result = validate_vcard(VALID, strict=True)
    assert result.is_valid
    assert result.warnings == []


def test_extract_version():
    assert extract_version("BEGIN:VCARD\nversion: 3.0 \nEND:VCARD") == "3.0"
    assert extract_version("BEGIN:VCARD\nEND:VCARD") is None


# ── Contact data ───────────────────────────────────────────────────────────────

TODAY = date(2024, 6, 1)


def _contact(**kw) -> Contact:
    base = dict(
        fn="Jane Doe",
        phones=[ContactItem("+44 7911 123456", "cell", True)],
        emails=[ContactItem("jane@example.com", "work", True)],
        urls=[ContactItem("https://example.com", "website", True)],
        birthday="1990-01-15",
    )
    base.update(kw)
    return Contact(**base)


def test_clean_contact_passes():
    result = validate_contact_data(_contact(), today=TODAY)
    assert result.is_valid, result.errors
    assert result.warnings == []


def test_name_required_and_length_limits():
    result = validate_contact_data(_contact(fn="  ", title="x" * 256), today=TODAY)
    assert "Full name is required" in result.errors
    assert "title exceeds maximum length of 255 characters" in result.errors


def test_bad_email_and_url():
    result = validate_contact_data(
        _contact(emails=[ContactItem("not-an-email")], urls=[ContactItem("ftp://example.com")]),
        today=TODAY,
    )
    assert not result.is_valid
    assert any(e.startswith("Invalid email address format at position 1") for e in result.errors)
    assert any(e.startswith("Invalid URL format at position 1") for e in result.errors)


def test_phone_characters_and_dialability():
    bad = validate_contact_data(_contact(phones=[ContactItem("call me")]), today=TODAY)
    assert any(e.startswith("Invalid phone number format") for e in bad.errors)

    short = validate_contact_data(_contact(phones=[ContactItem("12", "cell")]), today=TODAY)
    assert short.is_valid
    assert any("does not look dialable in GB" in w for w in short.warnings)


def test_birthday_checks():
    assert "birthday must be in YYYY-MM-DD format" in validate_contact_data(
        _contact(birthday="15/01/1990"), today=TODAY).errors
    assert "Birthday cannot be in the future" in validate_contact_data(
        _contact(birthday="2030-01-01"), today=TODAY).errors
    assert "Birthday seems unreasonably old" in validate_contact_data(
        _contact(birthday="1800-01-01"), today=TODAY).errors
    assert "birthday is not a valid date" in validate_contact_data(
        _contact(birthday="1990-02-30"), today=TODAY).errors


def test_duplicates_and_odd_types_are_warnings():
    result = validate_contact_data(
        _contact(emails=[ContactItem("a@x.com", "work"), ContactItem("A@x.com", "carrier-pigeon")]),
        today=TODAY,
    )
    assert result.is_valid
    assert "Duplicate email addresses detected: a@x.com" in result.warnings
    assert any(w.startswith("Non-standard email type at position 2") for w in result.warnings)


def test_long_note_is_an_error():
    result = validate_contact_data(_contact(notes=[ContactItem("n" * 1001)]), today=TODAY)
    assert "Note 1 exceeds maximum length of 1000 characters" in result.errors
