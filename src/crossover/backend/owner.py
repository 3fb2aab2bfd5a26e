"""In-process preference owner.

:class:`OverlayBackend` holds the authoritative
:class:`~crossover.preferences.models.Preferences`, answers every request a
:class:`~crossover.sync.commands.CommandClient` can make and publishes the
matching notification after each mutation. Mutations always publish, even
when the value did not change; surfaces treat repeated notifications as
idempotent.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

from ..errors import CatalogError
from ..preferences.catalog import CrosshairCatalog
from ..preferences.models import READABLE_FIELDS, Preferences, normalize_field
from ..preferences.store import PreferencesFile
from ..sync.bus import NotificationBus
from ..sync.events import (
    Notification,
    OpenChooser,
    OpenSettings,
    PlaySound,
    ShowAbout,
    SyncSettings,
    field_event,
)
from .windows import MAIN_LABEL, ShadowRegistry, WindowPlatform

__all__ = ["OverlayBackend"]

LOGGER = logging.getLogger(__name__)


class OverlayBackend:
    """Authoritative store plus broadcast for the crosshair preferences."""

    def __init__(
        self,
        preferences: Preferences | None = None,
        *,
        store: PreferencesFile | None = None,
        catalog: CrosshairCatalog | None = None,
        bus: NotificationBus | None = None,
        platform: WindowPlatform | None = None,
        shadows: ShadowRegistry | None = None,
    ) -> None:
        self._preferences = preferences.copy() if preferences is not None else Preferences()
        self._store = store
        self._catalog = catalog
        self._bus = bus or NotificationBus()
        self._platform = platform
        self._shadows = shadows if shadows is not None else ShadowRegistry()

    @property
    def bus(self) -> NotificationBus:
        return self._bus

    @property
    def shadows(self) -> ShadowRegistry:
        return self._shadows

    @property
    def catalog(self) -> CrosshairCatalog | None:
        return self._catalog

    @property
    def snapshot(self) -> Preferences:
        """Copy of the live aggregate, including uncommitted values."""

        return self._preferences.copy()

    def attach_platform(self, platform: WindowPlatform | None) -> None:
        self._platform = platform

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    async def get_crosshair(self) -> str:
        return self._preferences.crosshair

    async def get_size(self) -> int:
        return self._preferences.size

    async def get_opacity(self) -> float:
        return self._preferences.opacity

    async def get_color(self) -> str:
        return self._preferences.color

    async def is_locked(self) -> bool:
        return self._preferences.locked

    async def is_visible(self) -> bool:
        return self._preferences.visible

    async def get_reticle(self) -> str:
        return self._preferences.reticle

    async def get_follow_mouse(self) -> bool:
        return self._preferences.follow_mouse

    async def get_hide_on_ads(self) -> bool:
        return self._preferences.hide_on_ads

    async def get_crosshair_list(self) -> list[str]:
        if self._catalog is None:
            return []
        return self._catalog.list()

    async def get_preferences(self) -> Preferences:
        return self.snapshot

    # ------------------------------------------------------------------
    # Field mutations
    # ------------------------------------------------------------------
    async def set_crosshair(self, crosshair: str) -> None:
        self._set("crosshair", crosshair)

    async def set_size(self, size: int) -> None:
        self._set("size", size)

    async def set_opacity(self, opacity: float) -> None:
        self._set("opacity", opacity)

    async def set_color(self, color: str) -> None:
        self._set("color", color)

    async def set_reticle(self, reticle: str) -> None:
        self._set("reticle", reticle)

    async def set_follow_mouse(self, follow: bool) -> None:
        self._set("follow_mouse", follow)

    async def set_hide_on_ads(self, hide: bool) -> None:
        self._set("hide_on_ads", hide)

    async def set_locked(self, locked: bool) -> None:
        self._apply_lock(bool(locked))

    async def set_position(self, x: int, y: int) -> None:
        self._preferences.position_x = int(x)
        self._preferences.position_y = int(y)

    async def toggle_lock(self) -> bool:
        locked = not self._preferences.locked
        self._apply_lock(locked)
        self._publish(PlaySound("lock" if locked else "unlock"))
        return locked

    async def toggle_visibility(self) -> bool:
        visible = not self._preferences.visible
        self._apply_visibility(visible)
        return visible

    async def save_preferences(self) -> None:
        if self._store is None:
            LOGGER.debug("No preferences file configured, skipping save")
            return
        self._store.save(self._preferences)

    async def reset_preferences(self) -> None:
        """Restore defaults, announce every field and re-center the overlay."""

        self._preferences = Preferences()
        self._apply_click_through(self._preferences.locked)
        self._apply_visible_surfaces(self._preferences.visible)
        for name in READABLE_FIELDS:
            self._publish(field_event(name, getattr(self._preferences, name)))
        if self._platform is not None:
            self._platform.center(MAIN_LABEL)
            self._remember_position()
        LOGGER.info("Preferences reset to defaults")

    # ------------------------------------------------------------------
    # Windows
    # ------------------------------------------------------------------
    async def center_window(self) -> None:
        if self._platform is not None:
            self._platform.center(MAIN_LABEL)
            self._remember_position()
        self._publish(PlaySound("center"))

    async def move_to_next_display(self) -> None:
        if self._platform is not None:
            self._platform.move_to_next_display(MAIN_LABEL)
            self._remember_position()

    async def create_shadow_window(self) -> str:
        """Open a shadow overlay and hydrate it with a targeted snapshot."""

        label, offset = self._shadows.reserve(locked=self._preferences.locked)
        if self._platform is not None:
            self._platform.create_surface(label, offset)
        self._shadows.add(label)
        self._publish(SyncSettings(preferences=self.snapshot, target=label))
        LOGGER.info("Created shadow window %s", label)
        return label

    async def close_shadow_window(self, label: str) -> None:
        if self._platform is not None:
            self._platform.close_surface(label)
        self._shadows.remove(label)

    async def close_all_shadow_windows(self) -> None:
        for label in self._shadows.clear():
            if self._platform is not None:
                self._platform.close_surface(label)

    async def open_settings_window(self) -> None:
        if self._platform is None:
            raise RuntimeError("No window platform available")
        self._platform.show_settings()

    async def import_crosshair(self, path: str) -> str:
        if self._catalog is None:
            raise CatalogError("No crosshair catalog configured")
        return self._catalog.import_file(path)

    # ------------------------------------------------------------------
    # Global commands
    # ------------------------------------------------------------------
    def request_settings(self) -> None:
        self._publish(OpenSettings())

    def request_chooser(self) -> None:
        """Ask the primary surface for the chooser; it unlocks before showing it."""

        self._publish(OpenChooser())
        if self._platform is not None:
            self._platform.set_visible(MAIN_LABEL, True)
            self._platform.focus_surface(MAIN_LABEL)

    def show_about(self) -> None:
        self._publish(ShowAbout())

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _set(self, name: str, value: Any) -> Any:
        normalized = normalize_field(name, value)
        setattr(self._preferences, name, normalized)
        self._publish(field_event(name, normalized))
        return normalized

    def _apply_lock(self, locked: bool) -> None:
        self._preferences.locked = locked
        self._apply_click_through(locked)
        self._publish(field_event("locked", locked))

    def _apply_visibility(self, visible: bool) -> None:
        self._preferences.visible = visible
        self._apply_visible_surfaces(visible)
        self._publish(field_event("visible", visible))

    def _remember_position(self) -> None:
        position = self._platform.position(MAIN_LABEL) if self._platform is not None else None
        if position is not None:
            self._preferences.position_x, self._preferences.position_y = position

    def _overlay_labels(self) -> Iterable[str]:
        return (MAIN_LABEL, *self._shadows.labels)

    def _apply_click_through(self, enabled: bool) -> None:
        if self._platform is None:
            return
        for label in self._overlay_labels():
            self._platform.set_click_through(label, enabled)

    def _apply_visible_surfaces(self, visible: bool) -> None:
        if self._platform is None:
            return
        for label in self._overlay_labels():
            self._platform.set_visible(label, visible)

    def _publish(self, event: Notification) -> None:
        self._bus.publish(event)
