from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_CONF_PATH = Path("local") / "vcard-bridge.toml"


@dataclass
class Settings:
    default_version: str = "4.0"
    default_region: str = "GB"
    fold_output: bool = False
    duplicate_threshold: float = 0.8


DEFAULT_CONF = """# vcard-bridge local config (TOML)
default_version = "4.0"      # "4.0" or "3.0" (vendor flavour)
default_region = "GB"        # ISO-2 region used to check phone numbers
fold_output = false          # fold written lines to 75 octets
duplicate_threshold = 0.8    # 0..1, used by `vcard-bridge dupes`
"""


def load_settings(path: Path | None = None) -> Settings:
    """Read settings from TOML; a missing or broken file yields defaults."""
    conf = Path(path or DEFAULT_CONF_PATH)
    settings = Settings()
    if not conf.exists():
        return settings
    try:
        data = tomllib.loads(conf.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError) as exc:
        logger.warning("Ignoring malformed config %s: %s", conf, exc)
        return settings

    settings.default_version = str(data.get("default_version", settings.default_version))
    settings.default_region = str(data.get("default_region", settings.default_region)).upper()
    settings.fold_output = bool(data.get("fold_output", settings.fold_output))
    try:
        settings.duplicate_threshold = float(data.get("duplicate_threshold", settings.duplicate_threshold))
    except (TypeError, ValueError):
        logger.warning("duplicate_threshold in %s is not a number; using %s", conf, settings.duplicate_threshold)
    return settings


def write_default_config(path: Path | None = None) -> Path:
    """Create the config file with defaults unless it already exists."""
    conf = Path(path or DEFAULT_CONF_PATH)
    conf.parent.mkdir(parents=True, exist_ok=True)
    if not conf.exists():
        conf.write_text(DEFAULT_CONF, encoding="utf-8")
    return conf
