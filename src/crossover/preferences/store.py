"""JSON persistence for :class:`~crossover.preferences.models.Preferences`."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping

from .models import Preferences, normalize_field

__all__ = ["PreferencesFile", "DEFAULT_PREFERENCES_PATH"]

LOGGER = logging.getLogger(__name__)
_PREFERENCES_DIR = Path.home() / ".crossover"
DEFAULT_PREFERENCES_PATH = _PREFERENCES_DIR / "preferences.json"
_PREFERENCES_VERSION = 1
_ENV_OVERRIDES: Mapping[str, str] = {
    "CROSSOVER_CROSSHAIR": "crosshair",
    "CROSSOVER_COLOR": "color",
    "CROSSOVER_RETICLE": "reticle",
    "CROSSOVER_SIZE": "size",
    "CROSSOVER_OPACITY": "opacity",
    "CROSSOVER_LOCKED": "locked",
    "CROSSOVER_FOLLOW_MOUSE": "follow_mouse",
    "CROSSOVER_HIDE_ON_ADS": "hide_on_ads",
}


class PreferencesFile:
    """Persistence adapter for the preference aggregate."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or DEFAULT_PREFERENCES_PATH

    @property
    def path(self) -> Path:
        """Return the resolved path backing this file."""

        return self._path

    def load(self, *, overrides: Mapping[str, Any] | None = None) -> Preferences:
        """Load preferences from disk, applying CLI and environment overrides."""

        payload = self._read_payload()
        preferences = Preferences.from_payload(payload.get("preferences") if payload else None)
        if payload:
            LOGGER.info("Preferences loaded from %s", self._path)
        else:
            LOGGER.info("No saved preferences found at %s, using defaults", self._path)

        if overrides:
            preferences = self._apply_overrides(preferences, overrides, source="CLI")
        return self._apply_env_overrides(preferences)

    def save(self, preferences: Preferences) -> Path:
        """Persist preferences with an atomic file replace."""

        payload = {"version": _PREFERENCES_VERSION, "preferences": preferences.to_payload()}
        body = json.dumps(payload, indent=2, sort_keys=True)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(".tmp")
        tmp_path.write_text(body, encoding="utf-8")
        tmp_path.replace(self._path)
        LOGGER.debug("Preferences saved to %s", self._path)
        return self._path

    def _read_payload(self) -> Dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            text = self._path.read_text(encoding="utf-8")
            payload = json.loads(text)
        except FileNotFoundError:
            return {}
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            LOGGER.warning("Preferences file %s is not valid JSON: %s", self._path, exc)
            return {}
        if not isinstance(payload, dict):
            LOGGER.warning("Preferences file %s does not hold an object", self._path)
            return {}
        if payload.get("version") != _PREFERENCES_VERSION:
            LOGGER.debug("Preferences file %s has version %r", self._path, payload.get("version"))
        return payload

    def _apply_overrides(
        self,
        preferences: Preferences,
        overrides: Mapping[str, Any],
        *,
        source: str = "runtime",
    ) -> Preferences:
        allowed = {field.name for field in fields(Preferences)}
        filtered: Dict[str, Any] = {}
        for key, value in overrides.items():
            if key not in allowed:
                continue
            try:
                filtered[key] = normalize_field(key, value)
            except (TypeError, ValueError) as exc:
                LOGGER.warning("Ignoring %s override %s=%r: %s", source, key, value, exc)
        if filtered:
            LOGGER.debug("Applying %s preference overrides: %s", source, sorted(filtered))
            preferences = replace(preferences, **filtered)
        return preferences

    def _apply_env_overrides(self, preferences: Preferences) -> Preferences:
        overrides: Dict[str, Any] = {}
        for env_name, field_name in _ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is not None:
                overrides[field_name] = value
        if overrides:
            preferences = self._apply_overrides(preferences, overrides, source="environment")
        return preferences
