from pathlib import Path

from vcard_bridge.config import Settings, load_settings, write_default_config


def test_first_run_creates_conf(tmp_path: Path):
    conf = tmp_path / "local" / "vcard-bridge.toml"

    write_default_config(conf)

    assert conf.exists()
    txt = conf.read_text()
    assert 'default_version = "4.0"' in txt
    assert "fold_output = false" in txt
    # defaults read back unchanged
    assert load_settings(conf) == Settings()


def test_existing_conf_left_alone(tmp_path: Path):
    conf = tmp_path / "vcard-bridge.toml"
    conf.write_text('default_region = "us"\nduplicate_threshold = 0.6\n')

    write_default_config(conf)
    settings = load_settings(conf)

    assert settings.default_region == "US"
    assert settings.duplicate_threshold == 0.6
    assert settings.default_version == "4.0"


def test_missing_conf_gives_defaults(tmp_path: Path):
    assert load_settings(tmp_path / "nope.toml") == Settings()


def test_malformed_conf_gives_defaults(tmp_path: Path):
    conf = tmp_path / "broken.toml"
    conf.write_text("default_version = \n[[[")
    assert load_settings(conf) == Settings()
