"""System tray menu: the way back in while the overlay is locked."""

from __future__ import annotations

import logging
from typing import Callable

from PySide6.QtGui import QAction, QIcon
from PySide6.QtWidgets import QMenu, QSystemTrayIcon, QWidget

from ..backend.owner import OverlayBackend
from ..sync.surface import SurfaceController
from .rendering import crosshair_icon

__all__ = ["create_tray"]

LOGGER = logging.getLogger(__name__)


def create_tray(
    backend: OverlayBackend,
    primary: SurfaceController,
    *,
    on_quit: Callable[[], object],
    parent: QWidget | None = None,
) -> QSystemTrayIcon | None:
    """Install the tray icon, or return ``None`` where no tray exists."""

    if not QSystemTrayIcon.isSystemTrayAvailable():
        LOGGER.info("System tray unavailable; use the overlay context menu instead")
        return None

    catalog = backend.catalog
    icon_path = catalog.resolve_path(primary.preferences.crosshair) if catalog is not None else None
    tray = QSystemTrayIcon(crosshair_icon(icon_path, 32) if icon_path else QIcon(), parent)
    tray.setToolTip("CrossOver")

    menu = QMenu(parent)
    entries: list[tuple[str, Callable[[], object]]] = [
        ("Lock / Unlock", lambda: primary.spawn(primary.toggle_lock())),
        ("Show / Hide", lambda: primary.spawn(primary.toggle_visibility())),
        ("Choose Crosshair…", backend.request_chooser),
        ("Settings…", backend.request_settings),
        ("Center", lambda: primary.spawn(primary.center())),
        ("Next Display", lambda: primary.spawn(primary.next_display())),
        ("Duplicate", lambda: primary.spawn(primary.duplicate())),
        ("Close Duplicates", lambda: primary.spawn(primary.close_duplicates())),
        ("Reset", lambda: primary.spawn(primary.reset())),
        ("About", backend.show_about),
    ]
    for text, callback in entries:
        action = QAction(text, menu)
        action.triggered.connect(callback)
        menu.addAction(action)
    menu.addSeparator()
    quit_action = QAction("Quit", menu)
    quit_action.triggered.connect(on_quit)
    menu.addAction(quit_action)

    tray.setContextMenu(menu)
    tray.show()
    return tray
