"""Qt implementation of the owner's window operations."""

from __future__ import annotations

import logging

from PySide6.QtCore import QPoint, Qt
from PySide6.QtGui import QGuiApplication
from PySide6.QtWidgets import QWidget

from ..backend.windows import MAIN_LABEL, SETTINGS_LABEL
from ..preferences.catalog import CrosshairCatalog
from ..sync.bus import NotificationBus
from ..sync.commands import CommandClient, PreferenceService
from ..sync.surface import SurfaceController, SurfaceRole
from .overlay_window import OverlayWindow
from .settings_window import SettingsWindow

__all__ = ["QtWindowPlatform"]

LOGGER = logging.getLogger(__name__)


class QtWindowPlatform:
    """Creates, places and tracks every surface window.

    Each window gets its own :class:`CommandClient` and
    :class:`SurfaceController`; surfaces never share a cache.
    """

    def __init__(
        self,
        service: PreferenceService,
        bus: NotificationBus,
        catalog: CrosshairCatalog,
    ) -> None:
        self._service = service
        self._bus = bus
        self._catalog = catalog
        self._overlays: dict[str, OverlayWindow] = {}
        self._controllers: dict[str, SurfaceController] = {}
        self._settings: SettingsWindow | None = None

    @property
    def labels(self) -> tuple[str, ...]:
        return tuple(self._controllers)

    def controller(self, label: str) -> SurfaceController | None:
        return self._controllers.get(label)

    def window(self, label: str) -> QWidget | None:
        if label == SETTINGS_LABEL:
            return self._settings
        return self._overlays.get(label)

    # ------------------------------------------------------------------
    # Surfaces
    # ------------------------------------------------------------------
    def open_primary(self, position: tuple[int | None, int | None] = (None, None)) -> SurfaceController:
        """Create the main overlay at ``position`` (centred when unknown)."""

        controller = self._new_controller(SurfaceRole.PRIMARY, MAIN_LABEL)
        window = OverlayWindow(controller, catalog=self._catalog)
        self._overlays[MAIN_LABEL] = window
        x, y = position
        if x is not None and y is not None:
            window.move(x, y)
        else:
            self._center_on(window, window.screen() or QGuiApplication.primaryScreen())
        window.show()
        return controller

    def create_surface(self, label: str, offset: int) -> None:
        main = self._overlays.get(MAIN_LABEL)
        controller = self._new_controller(SurfaceRole.SHADOW, label)
        window = OverlayWindow(controller, catalog=self._catalog)
        if main is not None:
            window.resize(main.size())
            window.move(main.pos() + QPoint(offset, offset))
        self._overlays[label] = window
        window.show()
        controller.spawn(controller.hydrate())
        LOGGER.debug("Opened shadow surface %s", label)

    def close_surface(self, label: str) -> None:
        window = self._overlays.pop(label, None)
        controller = self._controllers.pop(label, None)
        if controller is not None:
            controller.close()
        if window is not None:
            window.close()
            window.deleteLater()

    def show_settings(self) -> None:
        if self._settings is None:
            controller = self._new_controller(SurfaceRole.SETTINGS, SETTINGS_LABEL)
            self._settings = SettingsWindow(controller, catalog=self._catalog)
            controller.spawn(controller.hydrate())
        self._settings.show()
        self._settings.raise_()
        self._settings.activateWindow()

    def close_all(self) -> None:
        for label in list(self._overlays):
            self.close_surface(label)
        if self._settings is not None:
            self._settings.controller.close()
            self._settings.deleteLater()
            self._settings = None
            self._controllers.pop(SETTINGS_LABEL, None)

    # ------------------------------------------------------------------
    # Placement
    # ------------------------------------------------------------------
    def center(self, label: str) -> None:
        window = self._require(label)
        self._center_on(window, window.screen() or QGuiApplication.primaryScreen())

    def move_to_next_display(self, label: str) -> None:
        window = self._require(label)
        screens = QGuiApplication.screens()
        if len(screens) < 2:
            LOGGER.debug("Only one display available")
            return
        current = window.screen()
        index = screens.index(current) if current in screens else 0
        self._center_on(window, screens[(index + 1) % len(screens)])

    def position(self, label: str) -> tuple[int, int] | None:
        window = self._overlays.get(label)
        if window is None:
            return None
        return window.x(), window.y()

    def set_click_through(self, label: str, enabled: bool) -> None:
        window = self._overlays.get(label)
        if window is None:
            return
        was_visible = window.isVisible()
        # Changing window flags hides the window on every platform
        window.setWindowFlag(Qt.WindowType.WindowTransparentForInput, enabled)
        if was_visible:
            window.show()

    def set_visible(self, label: str, visible: bool) -> None:
        window = self._overlays.get(label)
        if window is not None:
            window.setVisible(visible)

    def focus_surface(self, label: str) -> None:
        window = self._require(label)
        window.raise_()
        window.activateWindow()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _new_controller(self, role: SurfaceRole, label: str) -> SurfaceController:
        client = CommandClient(self._service, label=label)
        controller = SurfaceController(role, client, self._bus, label=label)
        self._controllers[label] = controller
        return controller

    def _require(self, label: str) -> QWidget:
        window = self.window(label)
        if window is None:
            raise LookupError(f"No surface named {label}")
        return window

    @staticmethod
    def _center_on(window: QWidget, screen) -> None:
        if screen is None:
            return
        available = screen.availableGeometry()
        window.move(available.center() - QPoint(window.width() // 2, window.height() // 2))
