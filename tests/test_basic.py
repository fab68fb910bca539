from pathlib import Path

from vcard_bridge.exporter import write_vcards
from vcard_bridge.model import Contact, ContactItem


def test_export(tmp_path: Path):
    c1 = Contact(fn="Alice", emails=[ContactItem("alice@example.com")], phones=[ContactItem("+4412345678")])
    out = tmp_path / "out.vcf"
    n = write_vcards([c1], out)
    assert n == 1
    text = out.read_text(encoding="utf-8")
    assert "FN:Alice" in text
