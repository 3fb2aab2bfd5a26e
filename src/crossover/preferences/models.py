"""Preference aggregate and the value rules every surface applies to it."""

from __future__ import annotations

import logging
import re
from dataclasses import asdict, dataclass, fields
from typing import Any, Mapping

from ..errors import ValidationError

__all__ = [
    "Preferences",
    "DEFAULT_CROSSHAIR",
    "FALLBACK_CROSSHAIR",
    "DEFAULT_SIZE",
    "MIN_SIZE",
    "MAX_SIZE",
    "DEFAULT_OPACITY",
    "DEFAULT_COLOR",
    "DEFAULT_RETICLE",
    "RETICLE_CHOICES",
    "COLOR_PATTERN",
    "READABLE_FIELDS",
    "is_valid_color",
    "validate_color",
    "clamp_size",
    "clamp_opacity",
    "opacity_from_percent",
    "opacity_to_percent",
    "normalize_reticle",
    "normalize_field",
    "field_names",
]

LOGGER = logging.getLogger(__name__)

DEFAULT_CROSSHAIR = "target-dot.svg"
# Rendered whenever the stored identifier is missing from the catalog.
FALLBACK_CROSSHAIR = "crosshair-default.svg"
DEFAULT_SIZE = 100
MIN_SIZE = 10
MAX_SIZE = 500
DEFAULT_OPACITY = 1.0
DEFAULT_COLOR = "#00FF00"
DEFAULT_RETICLE = "dot"
RETICLE_CHOICES: tuple[str, ...] = ("none", "circle", "cross", "dot")
COLOR_PATTERN = re.compile(r"^#[0-9A-Fa-f]{6}$")

# Fields a freshly opened surface reads during hydration, in read order.
READABLE_FIELDS: tuple[str, ...] = (
    "crosshair",
    "size",
    "opacity",
    "color",
    "locked",
    "visible",
    "reticle",
    "follow_mouse",
    "hide_on_ads",
)


@dataclass(slots=True)
class Preferences:
    """The replicated crosshair configuration.

    The preference owner holds the authoritative instance; every surface keeps
    its own copy, built with :meth:`copy`, and never shares a reference.
    """

    crosshair: str = DEFAULT_CROSSHAIR
    size: int = DEFAULT_SIZE
    opacity: float = DEFAULT_OPACITY
    color: str = DEFAULT_COLOR
    locked: bool = False
    visible: bool = True
    follow_mouse: bool = False
    hide_on_ads: bool = False
    reticle: str = DEFAULT_RETICLE
    position_x: int | None = None
    position_y: int | None = None

    def copy(self) -> "Preferences":
        return Preferences(**self.to_payload())

    def to_payload(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any] | None) -> "Preferences":
        """Build preferences from a loosely typed mapping.

        Unknown keys are ignored and values that cannot be normalised keep
        their defaults, so a damaged file never prevents startup.
        """

        prefs = cls()
        if not payload:
            return prefs
        for name in field_names():
            if name not in payload:
                continue
            try:
                setattr(prefs, name, normalize_field(name, payload[name]))
            except (TypeError, ValueError) as exc:
                LOGGER.warning("Ignoring invalid preference %s=%r: %s", name, payload[name], exc)
        return prefs


def field_names() -> tuple[str, ...]:
    return tuple(f.name for f in fields(Preferences))


def is_valid_color(value: Any) -> bool:
    return isinstance(value, str) and COLOR_PATTERN.match(value) is not None


def validate_color(value: Any) -> str:
    """Return ``value`` unchanged when it is a ``#RRGGBB`` string."""

    if not is_valid_color(value):
        raise ValidationError("color", value, "Invalid color format (use #RRGGBB)")
    return value


def clamp_size(value: Any) -> int:
    size = int(round(float(value)))
    return max(MIN_SIZE, min(MAX_SIZE, size))


def clamp_opacity(value: Any) -> float:
    opacity = float(value)
    return max(0.0, min(1.0, opacity))


def opacity_from_percent(percent: Any) -> float:
    return clamp_opacity(int(percent) / 100)


def opacity_to_percent(opacity: float) -> int:
    return int(round(clamp_opacity(opacity) * 100))


def normalize_reticle(value: Any) -> str:
    lowered = str(value or "").strip().lower()
    return lowered if lowered in RETICLE_CHOICES else "none"


def _coerce_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"1", "true", "yes", "on"}:
            return True
        if lowered in {"0", "false", "no", "off", ""}:
            return False
    raise ValueError(f"Cannot coerce {value!r} to a boolean")


def _coerce_position(value: Any) -> int | None:
    if value is None:
        return None
    return int(value)


def normalize_field(name: str, value: Any) -> Any:
    """Coerce ``value`` into the type and range of preference ``name``."""

    if name == "crosshair":
        if not isinstance(value, str) or not value.strip():
            raise ValueError("crosshair must be a non-empty string")
        return value.strip()
    if name == "size":
        return clamp_size(value)
    if name == "opacity":
        return clamp_opacity(value)
    if name == "color":
        return validate_color(value)
    if name == "reticle":
        return normalize_reticle(value)
    if name in {"locked", "visible", "follow_mouse", "hide_on_ads"}:
        return _coerce_bool(value)
    if name in {"position_x", "position_y"}:
        return _coerce_position(value)
    raise KeyError(name)
