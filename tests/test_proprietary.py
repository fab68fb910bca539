from datetime import datetime, timezone

import pytest

from vcard_bridge.model import Address, Contact, ContactItem
from vcard_bridge.normalize import extract_display
from vcard_bridge.proprietary import (
    PHONE_TYPES,
    contact_to_vendor,
    detect_format,
    is_vendor_format,
    parse_vendor_vcard,
    split_full_name,
    standard_to_vendor,
    standard_type_to_vendor,
    vendor_to_contact,
    vendor_to_standard,
    vendor_type_to_standard,
)

NOW = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


def _vendor(*lines: str) -> str:
    return "\n".join(["BEGIN:VCARD", "VERSION:3.0", *lines, "END:VCARD"])


# ── Type tables ────────────────────────────────────────────────────────────────

def test_tables_are_read_only():
    with pytest.raises(TypeError):
        PHONE_TYPES["PAGER"] = "pager"  # type: ignore[index]


@pytest.mark.parametrize(
    "token,kind,expected",
    [
        ("MOBILE", "phone", "cell"),
        ("main", "phone", "work"),
        ("CELL,VOICE", "phone", "cell"),
        ("VOICE", "phone", "voice"),
        ("VOICE,PREF", "phone", "voice"),
        ("INTERNET,HOME", "email", "home"),
        ("INTERNET", "email", "internet"),
        ("SOCIAL", "url", "social"),
        ("PAGER", "phone", "other"),
        (None, "phone", "other"),
        ("", "email", "other"),
    ],
)
def test_vendor_type_to_standard(token, kind, expected):
    assert vendor_type_to_standard(token, kind) == expected


def test_standard_type_to_vendor():
    assert standard_type_to_vendor("cell", "phone") == "CELL"
    assert standard_type_to_vendor("mobile", "phone") == "CELL"
    assert standard_type_to_vendor("social", "url") == "OTHER"
    assert standard_type_to_vendor("pager", "phone") == "WORK"
    assert standard_type_to_vendor(None, "email") == "OTHER"


# ── Detection ──────────────────────────────────────────────────────────────────

def test_detects_vendor_by_lowercase_type():
    detection = detect_format(_vendor("FN:Bob", "TEL;type=CELL:555"))
    assert detection.version == "3.0"
    assert detection.is_vendor
    assert "lower-case type= parameter" in detection.indicators


def test_detects_vendor_by_item_prefix_and_url_category():
    text = _vendor("FN:Bob", "item1.URL;TYPE=PERSONAL:https://bob.example", "item1.X-ABLabel:_$!<HomePage>!$_")
    detection = detect_format(text)
    assert detection.is_vendor
    assert "itemN. group prefix" in detection.indicators
    assert "PERSONAL URL category" in detection.indicators


def test_plain_3_0_and_4_0_are_not_vendor():
    assert not is_vendor_format(_vendor("FN:Bob", "TEL;TYPE=CELL:555"))
    assert not is_vendor_format("BEGIN:VCARD\nVERSION:4.0\nFN:Bob\nTEL;type=cell:555\nEND:VCARD")


# ── Vendor → record / 4.0 ──────────────────────────────────────────────────────

def test_mobile_converts_to_cell_without_pref():
    text = _vendor("FN:Bob", "TEL;type=MOBILE:555")
    assert "TEL;TYPE=cell:555" in vendor_to_standard(text, now=NOW).split("\n")


def test_vendor_parameters_normalised():
    doc = parse_vendor_vcard(_vendor(
        "FN:Bob",
        "TEL;type=CELL;type=VOICE;type=pref:1",
        "NOTE;CHARSET=UTF-8:hello",
        "item1.URL:https://bob.example",
    ))
    tel = doc.get_multi("TEL")[0]
    assert tel.parameters["TYPE"] == "CELL,VOICE,PREF"
    assert "CHARSET" not in doc.get_multi("NOTE")[0].parameters
    assert [pv.value for pv in doc.get_multi("URL")] == ["https://bob.example"]


def test_bare_tokens_and_pref():
    c = vendor_to_contact(_vendor("FN:Bob", "TEL;HOME;PREF:1", "TEL;WORK:2"))
    assert [(p.type, p.primary) for p in c.phones] == [("home", True), ("work", False)]


def test_type_pref_sets_primary():
    c = vendor_to_contact(_vendor("FN:Bob", "EMAIL;type=INTERNET;type=HOME;type=pref:bob@example.com"))
    assert c.emails == [ContactItem("bob@example.com", "home", True)]


def test_birthday_org_and_name_fallback():
    c = vendor_to_contact(_vendor("N:Doe;Jane;;;", "ORG:Acme;", "BDAY:19900115"))
    assert c.fn == "Jane Doe"
    assert c.organization == "Acme"
    assert c.birthday == "1990-01-15"


def test_address_type_passed_through():
    c = vendor_to_contact(_vendor("FN:Bob", "ADR;type=HOME;type=pref:;;1 Main St;Town;ST;12345;USA"))
    assert c.addresses == [
        ContactItem(Address(street="1 Main St", city="Town", state="ST", postal_code="12345", country="USA"), "home", True)
    ]


def test_bad_line_skipped():
    c = vendor_to_contact(_vendor("FN:Bob", "this is not a property", "TEL;type=CELL:555"))
    assert [p.value for p in c.phones] == ["555"]


# ── Record / 4.0 → vendor ──────────────────────────────────────────────────────

def test_split_full_name():
    assert split_full_name("Jane Mary Doe") == ("Doe", "Jane Mary")
    assert split_full_name("Cher") == ("Cher", "")
    assert split_full_name("") == ("", "")


def test_contact_to_vendor_lines():
    c = Contact(
        fn="Jane Doe",
        organization="Acme",
        phones=[ContactItem("555", "cell", True), ContactItem("556", "voice")],
        emails=[ContactItem("jane@example.com", "work")],
        urls=[ContactItem("https://jane.example", "social")],
    )
    lines = contact_to_vendor(c).split("\n")
    assert lines[:4] == ["BEGIN:VCARD", "VERSION:3.0", "FN:Jane Doe", "N:Doe;Jane;;;"]
    assert "TEL;type=CELL;type=VOICE;type=pref:555" in lines
    assert "TEL;type=VOICE:556" in lines
    assert "EMAIL;type=WORK;type=INTERNET:jane@example.com" in lines
    assert "URL;type=OTHER:https://jane.example" in lines
    assert "ADR;type=HOME:;;;;;;" in lines
    assert "ORG:Acme" in lines
    assert lines[-1] == "END:VCARD"


def test_vendor_output_detected_as_vendor():
    assert is_vendor_format(contact_to_vendor(Contact(fn="Jane Doe")))


def test_standard_to_vendor():
    text = "BEGIN:VCARD\nVERSION:4.0\nFN:Jane Doe\nTEL;TYPE=cell;PREF=1:555\nEND:VCARD"
    out = standard_to_vendor(text)
    assert "VERSION:3.0" in out
    assert "TEL;type=CELL;type=VOICE;type=pref:555" in out


def test_vendor_round_trip_keeps_types():
    original = _vendor("FN:Bob Smith", "TEL;type=CELL;type=VOICE;type=pref:555", "EMAIL;type=HOME:bob@example.com")
    back = vendor_to_contact(standard_to_vendor(vendor_to_standard(original, now=NOW)))
    assert back.fn == "Bob Smith"
    assert back.phones == [ContactItem("555", "cell", True)]
    assert back.emails == [ContactItem("bob@example.com", "home", False)]
    assert extract_display(vendor_to_standard(original, now=NOW)).phones[0].type == "cell"


def test_only_pref_one_marks_primary():
    c = vendor_to_contact(_vendor("FN:Bob", "TEL;type=CELL;PREF=0:1", "TEL;type=HOME;PREF=100:2", "TEL;type=WORK;PREF=1:3"))
    assert [p.primary for p in c.phones] == [False, False, True]


def test_vendor_output_has_no_carriage_returns():
    c = Contact(fn="Jane Doe", notes=[ContactItem("a\r\nb")], organization="Acme\rLtd")
    text = contact_to_vendor(c)
    assert "\r" not in text
    back = vendor_to_contact(text)
    assert [n.value for n in back.notes] == ["a\nb"]
    assert back.organization == "Acme\nLtd"
