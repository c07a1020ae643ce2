"""
Default theme anchors and avoidance configuration.

The packaged document ``bgtheme/data/theme_defaults.json`` provides the
design-system default colors for each mode, the secondary palette slots and
the avoid colors. A user document may override any mode of any section; a
malformed user document is reported and ignored.
"""

import json
import re
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from loguru import logger
from pydantic import BaseModel, Field, ValidationError, field_validator

from bgtheme.config import Mode, mode_name
from bgtheme.errors import ConfigError
from .ranking import AvoidanceSet
from .space import Lch

HEX_PATTERN = r"^#[0-9A-Fa-f]{6}$"


class AvoidColor(BaseModel):
    """A named reference color to stay away from."""
    name: str = Field(..., min_length=1)
    color: str = Field(..., pattern=HEX_PATTERN)


class AvoidanceConfig(BaseModel):
    background: List[AvoidColor] = Field(default_factory=list)
    accent: List[AvoidColor] = Field(default_factory=list)


class ThemeAnchors(BaseModel):
    """Default colors of one mode."""
    background: str = Field(..., pattern=HEX_PATTERN)
    background_alpha: float = Field(1.0, ge=0.0, le=1.0)
    accent: str = Field(..., pattern=HEX_PATTERN)
    neutral: str = Field(..., pattern=HEX_PATTERN)
    palette: Dict[str, str] = Field(..., min_length=1)

    @field_validator("palette")
    @classmethod
    def validate_palette(cls, v):
        for slot, color in v.items():
            if not isinstance(color, str) or not re.fullmatch(HEX_PATTERN, color):
                raise ValueError(f"palette slot {slot} must be #RRGGBB")
        return v


class ThemeDefaultsDocument(BaseModel):
    version: int = 1
    themes: Dict[Mode, ThemeAnchors]
    avoid: Dict[Mode, AvoidanceConfig]

    @field_validator("themes")
    @classmethod
    def validate_both_modes(cls, v):
        missing = {"dark", "light"} - set(v)
        if missing:
            raise ValueError(f"missing theme modes: {sorted(missing)}")
        return v


@dataclass(frozen=True)
class ThemeDefaults:
    """Resolved default anchors of one mode, in LCh."""
    background: Lch
    background_alpha: float
    accent: Lch
    neutral: Lch
    palette: Dict[str, Lch]


class DefaultsBundle:
    """Validated defaults document with per-mode accessors."""

    def __init__(self, document: ThemeDefaultsDocument, source: str = "packaged"):
        self.document = document
        self.source = source

    def theme(self, is_dark: bool) -> ThemeDefaults:
        anchors = self.document.themes[mode_name(is_dark)]
        return ThemeDefaults(
            background=Lch.from_hex(anchors.background),
            background_alpha=anchors.background_alpha,
            accent=Lch.from_hex(anchors.accent),
            neutral=Lch.from_hex(anchors.neutral),
            palette={slot: Lch.from_hex(color) for slot, color in anchors.palette.items()},
        )

    def avoidance(self, is_dark: bool) -> AvoidanceSet:
        avoid = self.document.avoid.get(mode_name(is_dark), AvoidanceConfig())
        return AvoidanceSet(
            background=tuple(Lch.from_hex(c.color) for c in avoid.background),
            accent=tuple(Lch.from_hex(c.color) for c in avoid.accent),
        )


def parse_defaults_document(raw: Any) -> ThemeDefaultsDocument:
    """Validate a raw defaults mapping."""
    try:
        return ThemeDefaultsDocument.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid theme defaults: {e.error_count()} error(s): {e}")


def packaged_defaults_raw() -> Dict[str, Any]:
    text = resources.files("bgtheme").joinpath("data/theme_defaults.json").read_text(encoding="utf-8")
    return json.loads(text)


def merge_defaults(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Override ``base`` per section and mode; unknown sections are kept for validation."""
    merged = dict(base)
    for section, value in override.items():
        if section in ("themes", "avoid"):
            if not isinstance(value, dict):
                raise ConfigError(f"Section '{section}' must be an object")
            merged[section] = {**base.get(section, {}), **value}
        else:
            merged[section] = value
    return merged


def read_user_defaults(path: Union[str, Path]) -> Dict[str, Any]:
    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Cannot read theme defaults {path}: {e}")
    if not isinstance(raw, dict):
        raise ConfigError(f"Theme defaults {path} must contain a JSON object")
    return raw


def load_defaults(path: Optional[Union[str, Path]] = None) -> DefaultsBundle:
    """
    Load the defaults bundle, applying the user document at ``path`` if any.

    A user document that cannot be read or validated is logged and the
    packaged defaults are used instead.
    """
    base = packaged_defaults_raw()
    if path:
        try:
            merged = merge_defaults(base, read_user_defaults(path))
            bundle = DefaultsBundle(parse_defaults_document(merged), source=str(path))
            logger.info(f"Loaded theme defaults from {path}")
            return bundle
        except ConfigError as e:
            logger.error(f"Falling back to packaged theme defaults: {e}")

    return DefaultsBundle(parse_defaults_document(base))
