"""Preference aggregate, persistence and the crosshair catalog."""

from .catalog import CrosshairCatalog, resolve_crosshair
from .models import Preferences
from .store import PreferencesFile

__all__ = ["CrosshairCatalog", "Preferences", "PreferencesFile", "resolve_crosshair"]
