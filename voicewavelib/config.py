from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass
from typing import Any

PRESET_SCHEMA_VERSION = "1.0"

# Keys that are CLI-only and should not be saved in presets
_INTERNAL_KEYS = {"export_dir", "delegate", "mode"}

_HEX_COLOR = re.compile(r"^#?(?:[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")


class ConfigError(Exception):
    """Raised when configuration validation fails."""
    pass


@dataclass
class ConfigFieldError:
    """A single validation error for one configuration field.

    Attributes:
        key:     The config key that failed validation.
        value:   The offending value.
        message: Human-readable explanation of what is wrong.
    """
    key: str
    value: Any
    message: str


@dataclass(frozen=True)
class ParamSpec:
    """Declarative specification for a single configuration parameter.

    Describes type, default, valid range, allowed values and labels so the
    CLI, the GUI settings file and presets validate the same way.
    """
    key: str
    type: type | tuple              # expected Python type(s)
    default: Any
    label: str                       # short UI label
    description: str = ""            # longer tooltip / help text
    min: float | int | None = None   # inclusive lower bound (unless min_exclusive)
    max: float | int | None = None   # inclusive upper bound (unless max_exclusive)
    min_exclusive: bool = False
    max_exclusive: bool = False
    choices: list | None = None      # allowed string values
    nullable: bool = False           # True if None is valid


# ---------------------------------------------------------------------------
# Parameter sections
# ---------------------------------------------------------------------------

WAVEFORM_PARAMS: list[ParamSpec] = [
    ParamSpec(
        key="envelope_blocks", type=int, default=200, min=1,
        label="Waveform bars",
        description="Number of equal-duration blocks the decoded audio is "
                    "reduced to. One bar is drawn per block.",
    ),
    ParamSpec(
        key="height_ratio", type=(int, float), default=0.8,
        min=0.0, max=1.0, min_exclusive=True,
        label="Bar height ratio",
        description="Fraction of the surface height a full-scale bar uses.",
    ),
    ParamSpec(
        key="bar_gap", type=int, default=1, min=0,
        label="Bar gap (px)",
        description="Horizontal gap subtracted from every bar's width.",
    ),
    ParamSpec(
        key="canvas_width", type=int, default=400, min=1,
        label="Surface width (px)",
    ),
    ParamSpec(
        key="canvas_height", type=int, default=80, min=1,
        label="Surface height (px)",
    ),
    ParamSpec(
        key="played_color", type=str, default="#3B82F6",
        label="Played bar color",
    ),
    ParamSpec(
        key="unplayed_color", type=str, default="#E5E7EB",
        label="Unplayed bar color",
    ),
    ParamSpec(
        key="fetch_timeout", type=(int, float), default=30.0,
        min=0.0, min_exclusive=True,
        label="Fetch timeout (s)",
        description="Timeout for downloading remote audio sources.",
    ),
    ParamSpec(
        key="cursor_interval_ms", type=int, default=30, min=1,
        label="Cursor update interval (ms)",
        description="How often the player reports its position while playing.",
    ),
]

BATCH_PARAMS: list[ParamSpec] = [
    ParamSpec(
        key="max_batch_files", type=int, default=50, min=1,
        label="Max files per add",
        description="Larger drops are rejected as a whole.",
    ),
    ParamSpec(
        key="export_delay_ms", type=int, default=500, min=0,
        label="Export delay (ms)",
        description="Pause between consecutive exported items.",
    ),
    ParamSpec(
        key="result_template", type=str, default="processed-{id}.mp3",
        label="Result name template",
        description="Result reference given to items the processing "
                    "function did not name explicitly. '{id}' is replaced "
                    "by the item id.",
    ),
    ParamSpec(
        key="error_message", type=str, default="Processing failed",
        label="Batch failure message",
        description="Message attached to every item of a failed run.",
    ),
]


def default_config() -> dict[str, Any]:
    """Returns the built-in default configuration."""
    return {p.key: p.default for p in WAVEFORM_PARAMS + BATCH_PARAMS}


def merge_configs(*configs: dict[str, Any]) -> dict[str, Any]:
    """Merge multiple config dicts left-to-right. Later values override
    earlier ones; ``None`` values never override."""
    result: dict[str, Any] = {}
    for cfg in configs:
        for k, v in cfg.items():
            if v is None and k in result:
                continue
            result[k] = v
    return result


def load_preset(path: str) -> dict[str, Any]:
    """
    Load a JSON preset file. Returns a partial config dict.
    Raises ConfigError if the file cannot be read or parsed.
    """
    if not os.path.isfile(path):
        raise ConfigError(f"Preset file not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in preset file {path}: {e}")
    except OSError as e:
        raise ConfigError(f"Cannot read preset file {path}: {e}")

    if not isinstance(data, dict):
        raise ConfigError(f"Preset file must contain a JSON object, got {type(data).__name__}")

    return {k: v for k, v in data.items() if k not in ("schema_version", "_description")}


def save_preset(config: dict[str, Any], path: str, *, description: str | None = None) -> None:
    """
    Save a config dict as a JSON preset file.
    CLI-only keys and values equal to the defaults are left out.
    """
    preset: dict[str, Any] = {"schema_version": PRESET_SCHEMA_VERSION}
    if description:
        preset["_description"] = description

    defaults = default_config()
    for k, v in config.items():
        if k in _INTERNAL_KEYS or k.startswith("_"):
            continue
        if k in defaults and defaults[k] == v:
            continue
        preset[k] = v

    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(preset, f, indent=4, ensure_ascii=False)


# ---------------------------------------------------------------------------
# Validation  (ParamSpec-driven)
# ---------------------------------------------------------------------------

def validate_param_values(
    params: list[ParamSpec],
    values: dict[str, Any],
) -> list[ConfigFieldError]:
    """Validate *values* against a list of :class:`ParamSpec` definitions.

    Only keys present in *values* are checked; missing keys are not errors
    (they will receive their default).
    """
    errors: list[ConfigFieldError] = []

    for spec in params:
        if spec.key not in values:
            continue

        value = values[spec.key]

        if value is None:
            if spec.nullable:
                continue
            errors.append(ConfigFieldError(
                spec.key, value,
                f"{spec.label} must not be empty.",
            ))
            continue

        # bool is an int subclass; never accept it for numeric fields
        expected = spec.type
        if expected is not bool and isinstance(value, bool):
            errors.append(ConfigFieldError(
                spec.key, value,
                f"{spec.label} must be {_type_label(expected)}, got boolean.",
            ))
            continue
        if not isinstance(value, expected):
            errors.append(ConfigFieldError(
                spec.key, value,
                f"{spec.label} must be {_type_label(expected)}, "
                f"got {type(value).__name__}.",
            ))
            continue

        if spec.choices is not None and value not in spec.choices:
            opts = ", ".join(repr(c) for c in spec.choices)
            errors.append(ConfigFieldError(
                spec.key, value,
                f"{spec.label} must be one of {opts}.",
            ))
            continue

        if isinstance(value, (int, float)):
            message = _range_error(spec, value)
            if message:
                errors.append(ConfigFieldError(spec.key, value, message))

    return errors


def validate_config_fields(config: dict[str, Any]) -> list[ConfigFieldError]:
    """Validate a flat config dict against every known parameter.
    Never raises."""
    errors = validate_param_values(WAVEFORM_PARAMS + BATCH_PARAMS, config)
    template = config.get("result_template")
    if isinstance(template, str) and "{id}" not in template:
        errors.append(ConfigFieldError(
            "result_template", template,
            "Result name template must contain '{id}'.",
        ))
    for key in ("played_color", "unplayed_color"):
        color = config.get(key)
        if isinstance(color, str) and not _HEX_COLOR.match(color):
            errors.append(ConfigFieldError(
                key, color, f"{key} must be a hex color like '#3B82F6'.",
            ))
    return errors


def validate_config(config: dict[str, Any]) -> None:
    """Validate a flat config dict.

    Raises :class:`ConfigError` listing every invalid field.
    """
    errors = validate_config_fields(config)
    if errors:
        lines = [e.message for e in errors]
        raise ConfigError(
            "Configuration has invalid values:\n  • " + "\n  • ".join(lines)
        )


def _range_error(spec: ParamSpec, value: float) -> str | None:
    if spec.min is not None:
        if spec.min_exclusive and value <= spec.min:
            return f"{spec.label} must be greater than {spec.min}."
        if not spec.min_exclusive and value < spec.min:
            return f"{spec.label} must be at least {spec.min}."
    if spec.max is not None:
        if spec.max_exclusive and value >= spec.max:
            return f"{spec.label} must be less than {spec.max}."
        if not spec.max_exclusive and value > spec.max:
            return f"{spec.label} must be at most {spec.max}."
    return None


def _type_label(t) -> str:
    """Human-readable label for an expected type or tuple of types."""
    if isinstance(t, tuple):
        return " or ".join(x.__name__ for x in t)
    return t.__name__
