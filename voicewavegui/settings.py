"""Persistent player configuration (voicewave.config.json).

On first launch the file is created in the OS-specific user preferences
directory with all built-in defaults.  On subsequent launches it is read,
merged with the current defaults so that newly added keys always receive a
value, and validated.

The file has two sections::

    {
        "waveform": { ... },   # library config (bars, colors, timing)
        "gui":      { ... },   # player-only preferences
    }

Locations:
    Windows : %APPDATA%\\voicewave\\voicewave.config.json
    macOS   : ~/Library/Application Support/voicewave/voicewave.config.json
    Linux   : $XDG_CONFIG_HOME/voicewave/voicewave.config.json
              (defaults to ~/.config/voicewave/voicewave.config.json)
"""

from __future__ import annotations

import copy
import json
import logging
import os
import platform
from typing import Any

from voicewavelib.config import default_config, validate_config_fields

log = logging.getLogger(__name__)

CONFIG_FILENAME = "voicewave.config.json"

_GUI_DEFAULTS: dict[str, Any] = {
    "last_dir": "",
    "volume": 1.0,
    "autoplay": False,
}


def _config_dir() -> str:
    """Return the OS-specific configuration directory."""
    system = platform.system()
    if system == "Windows":
        base = os.environ.get("APPDATA") or os.path.expanduser("~")
        return os.path.join(base, "voicewave")
    if system == "Darwin":
        return os.path.join(os.path.expanduser("~"), "Library",
                            "Application Support", "voicewave")
    base = os.environ.get("XDG_CONFIG_HOME")
    if not base:
        base = os.path.join(os.path.expanduser("~"), ".config")
    return os.path.join(base, "voicewave")


def config_path() -> str:
    return os.path.join(_config_dir(), CONFIG_FILENAME)


def build_defaults() -> dict[str, Any]:
    return {"waveform": default_config(), "gui": copy.deepcopy(_GUI_DEFAULTS)}


def load_config() -> dict[str, Any]:
    """Load the player config, creating it with defaults if needed.

    A corrupt file, or one whose waveform section fails validation, is
    backed up as ``*.bak`` and replaced by defaults (the gui section is
    kept where possible).
    """
    path = config_path()
    defaults = build_defaults()

    if not os.path.isfile(path):
        log.info("Config file not found, creating %s", path)
        save_config(defaults)
        return defaults

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as exc:
        log.warning("Cannot read config (%s), recreating from defaults", exc)
        _backup_corrupt(path)
        save_config(defaults)
        return defaults

    if not isinstance(data, dict):
        log.warning("Config root is %s, expected object; recreating",
                    type(data).__name__)
        _backup_corrupt(path)
        save_config(defaults)
        return defaults

    merged = _merge(defaults, data)

    errors = validate_config_fields(merged["waveform"])
    if errors:
        log.warning("Config validation failed (%s), resetting waveform section",
                    "; ".join(e.message for e in errors))
        _backup_corrupt(path)
        defaults["gui"] = merged["gui"]
        save_config(defaults)
        return defaults

    if merged != data:
        save_config(merged)
    return merged


def save_config(config: dict[str, Any]) -> str:
    """Write *config* to the preferences file and return its path."""
    path = config_path()
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(config, f, indent=4, ensure_ascii=False)
        f.write("\n")
    log.info("Config saved to %s", path)
    return path


def _merge(defaults: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    """Overlay known keys of *overrides* onto a copy of *defaults*."""
    merged = copy.deepcopy(defaults)
    for section in ("waveform", "gui"):
        values = overrides.get(section)
        if not isinstance(values, dict):
            continue
        for k, v in values.items():
            if k in merged[section]:
                merged[section][k] = v
    return merged


def _backup_corrupt(path: str) -> None:
    """Rename a corrupt config file to ``*.bak`` (best-effort)."""
    backup = path + ".bak"
    try:
        if os.path.isfile(backup):
            os.remove(backup)
        os.rename(path, backup)
        log.info("Backed up corrupt config to %s", backup)
    except OSError as exc:
        log.warning("Could not back up %s: %s", path, exc)
