"""Frameless crosshair overlay used by the primary and shadow surfaces."""

from __future__ import annotations

import logging
from typing import Callable, Sequence

from PySide6.QtCore import QPoint, QRectF, Qt
from PySide6.QtGui import QAction, QColor, QImage, QKeyEvent, QMouseEvent, QPainter, QPaintEvent, QPen
from PySide6.QtWidgets import QApplication, QMenu, QMessageBox, QToolButton, QWidget

from .. import __version__
from ..preferences.catalog import CrosshairCatalog
from ..preferences.models import DEFAULT_COLOR, DEFAULT_RETICLE, DEFAULT_SIZE
from ..sync.commands import NoticeLevel
from ..sync.surface import SurfaceController, SurfaceRole
from .chooser import CrosshairChooser, ToastLabel
from .rendering import paint_reticle, render_crosshair_image

__all__ = ["OverlayWindow"]

LOGGER = logging.getLogger(__name__)

_PADDING = 24
_NUDGE_STEP = 1
_NUDGE_STEP_FAST = 10
_ACK_COLOR = "#FFD54F"


class OverlayWindow(QWidget):
    """Always-on-top, translucent window painting the crosshair.

    The window implements the render hooks of
    :class:`~crossover.sync.surface.SurfaceView`; every user gesture is
    forwarded to its controller.
    """

    def __init__(
        self,
        controller: SurfaceController,
        *,
        catalog: CrosshairCatalog,
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self.setObjectName(f"overlay-{controller.label}")
        self.setWindowTitle("CrossOver" if controller.role is SurfaceRole.PRIMARY else "Shadow")
        self.setWindowFlags(
            Qt.WindowType.FramelessWindowHint | Qt.WindowType.WindowStaysOnTopHint | Qt.WindowType.Tool
        )
        self.setAttribute(Qt.WidgetAttribute.WA_TranslucentBackground)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)

        self._controller = controller
        self._catalog = catalog
        self._identifier: str | None = None
        self._size = DEFAULT_SIZE
        self._opacity = 1.0
        self._color = DEFAULT_COLOR
        self._reticle = DEFAULT_RETICLE
        self._locked = False
        self._acknowledging = False
        self._image: QImage | None = None
        self._chooser: CrosshairChooser | None = None

        self._settings_button = QToolButton(self)
        self._settings_button.setObjectName("settings_button")
        self._settings_button.setText("⚙")
        self._settings_button.setToolTip("Settings")
        self._settings_button.clicked.connect(self._handle_settings_clicked)
        self._settings_button.setVisible(controller.role is SurfaceRole.PRIMARY)

        self._toast = ToastLabel(self)
        self._resize_to_crosshair()
        controller.attach_view(self)

    # ------------------------------------------------------------------
    # Render hooks
    # ------------------------------------------------------------------
    def render_crosshair(self, identifier: str) -> None:
        self._identifier = identifier
        self._rebuild_image()

    def render_size(self, size: int) -> None:
        self._size = size
        self._resize_to_crosshair()
        self._rebuild_image()

    def render_opacity(self, opacity: float) -> None:
        self._opacity = opacity
        self.update()

    def render_color(self, color: str) -> None:
        self._color = color
        self._rebuild_image()

    def render_reticle(self, reticle: str) -> None:
        self._reticle = reticle
        self.update()

    def render_lock(self, locked: bool) -> None:
        self._locked = locked
        self._settings_button.setVisible(not locked and self._controller.role is SurfaceRole.PRIMARY)
        self.setCursor(Qt.CursorShape.ArrowCursor if locked else Qt.CursorShape.OpenHandCursor)
        if locked and self._chooser is not None:
            self._chooser.hide()
        self.update()

    def render_acknowledgement(self, active: bool) -> None:
        self._acknowledging = active
        self.update()

    def render_visibility(self, visible: bool) -> None:
        self.setVisible(visible)

    def move_to(self, x: int, y: int) -> None:
        self.move(x, y)

    def show_notice(self, message: str, level: NoticeLevel) -> None:
        self._toast.setMaximumWidth(max(160, self.width() - 8))
        self._toast.show_message(message, level)
        self._toast.move(max(0, (self.width() - self._toast.width()) // 2), 4)

    def show_chooser(self, crosshairs: Sequence[str], active: str) -> None:
        if self._chooser is None:
            self._chooser = CrosshairChooser(
                self._catalog,
                on_select=self._controller.select_crosshair,
                on_import=self._handle_import,
                parent=self,
            )
        self._chooser.present(crosshairs, active)

    def show_about(self) -> None:
        QMessageBox.about(
            self,
            "About CrossOver",
            f"CrossOver {__version__}\nA crosshair overlay for any game.",
        )

    def play_sound(self, name: str) -> None:
        LOGGER.debug("Sound cue %s", name)
        QApplication.beep()

    # ------------------------------------------------------------------
    # Qt events
    # ------------------------------------------------------------------
    def paintEvent(self, event: QPaintEvent) -> None:  # noqa: N802 - Qt override
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        rect = self._crosshair_rect()
        painter.setOpacity(self._opacity)
        if self._image is not None:
            painter.drawImage(rect, self._image)
        paint_reticle(painter, rect, self._reticle, self._color)
        if self._acknowledging:
            painter.setOpacity(1.0)
            pen = QPen(QColor(_ACK_COLOR))
            pen.setWidth(3)
            painter.setPen(pen)
            painter.drawRoundedRect(rect.adjusted(-8, -8, 8, 8), 8, 8)
        painter.end()

    def mousePressEvent(self, event: QMouseEvent) -> None:  # noqa: N802 - Qt override
        if event.button() == Qt.MouseButton.LeftButton:
            pointer = event.globalPosition().toPoint()
            if self._controller.begin_drag(pointer.x(), pointer.y(), self.x(), self.y()):
                self.setCursor(Qt.CursorShape.ClosedHandCursor)
                event.accept()
                return
        super().mousePressEvent(event)

    def mouseMoveEvent(self, event: QMouseEvent) -> None:  # noqa: N802 - Qt override
        if self._controller.dragging:
            pointer = event.globalPosition().toPoint()
            self._controller.drag_to(pointer.x(), pointer.y())
            event.accept()
            return
        super().mouseMoveEvent(event)

    def mouseReleaseEvent(self, event: QMouseEvent) -> None:  # noqa: N802 - Qt override
        if event.button() == Qt.MouseButton.LeftButton and self._controller.end_drag():
            self.setCursor(Qt.CursorShape.OpenHandCursor)
            event.accept()
            return
        super().mouseReleaseEvent(event)

    def keyPressEvent(self, event: QKeyEvent) -> None:  # noqa: N802 - Qt override
        step = _NUDGE_STEP_FAST if event.modifiers() & Qt.KeyboardModifier.ShiftModifier else _NUDGE_STEP
        offsets = {
            Qt.Key.Key_Left: (-step, 0),
            Qt.Key.Key_Right: (step, 0),
            Qt.Key.Key_Up: (0, -step),
            Qt.Key.Key_Down: (0, step),
        }
        key = Qt.Key(event.key())
        if key in offsets:
            dx, dy = offsets[key]
            self._controller.nudge(self.x(), self.y(), dx, dy)
            event.accept()
            return
        if key == Qt.Key.Key_Escape and self._chooser is not None:
            self._chooser.hide()
            event.accept()
            return
        super().keyPressEvent(event)

    def contextMenuEvent(self, event) -> None:  # noqa: N802 - Qt override
        if self._locked:
            return
        menu = QMenu(self)
        for text, callback in self._menu_entries():
            action = QAction(text, menu)
            action.triggered.connect(callback)
            menu.addAction(action)
        menu.exec(event.globalPos())

    def resizeEvent(self, event) -> None:  # noqa: N802 - Qt override
        super().resizeEvent(event)
        self._settings_button.move(self.width() - self._settings_button.sizeHint().width() - 2, 2)

    def closeEvent(self, event) -> None:  # noqa: N802 - Qt override
        controller = self._controller
        if controller.role is SurfaceRole.SHADOW and not controller.closed:
            # The owner closes the window once it has released the slot
            event.ignore()
            controller.spawn(controller.request_close())
            return
        controller.close()
        super().closeEvent(event)
        if controller.role is SurfaceRole.PRIMARY:
            QApplication.quit()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _menu_entries(self) -> list[tuple[str, Callable[[], object]]]:
        controller = self._controller
        entries: list[tuple[str, Callable[[], object]]] = [
            ("Lock", lambda: controller.spawn(controller.toggle_lock())),
            ("Choose Crosshair…", lambda: controller.spawn(controller.open_chooser())),
            ("Settings…", lambda: controller.spawn(controller.open_settings())),
            ("Duplicate", lambda: controller.spawn(controller.duplicate())),
            ("Center", lambda: controller.spawn(controller.center())),
            ("Next Display", lambda: controller.spawn(controller.next_display())),
            ("Reset", lambda: controller.spawn(controller.reset())),
        ]
        if controller.role is SurfaceRole.SHADOW:
            entries.append(("Close", lambda: controller.spawn(controller.request_close())))
        else:
            entries.append(("Close Duplicates", lambda: controller.spawn(controller.close_duplicates())))
        return entries

    def _crosshair_rect(self) -> QRectF:
        left = (self.width() - self._size) / 2
        top = (self.height() - self._size) / 2
        return QRectF(left, top, self._size, self._size)

    def _resize_to_crosshair(self) -> None:
        side = self._size + 2 * _PADDING
        center = self.geometry().center() if self.isVisible() else None
        self.resize(side, side)
        if center is not None:
            self.move(center - QPoint(side // 2, side // 2))

    def _rebuild_image(self) -> None:
        path = self._catalog.resolve_path(self._identifier) if self._identifier else None
        self._image = render_crosshair_image(path, self._size, self._color)
        self.update()

    def _handle_settings_clicked(self) -> None:
        self._controller.spawn(self._controller.open_settings())

    def _handle_import(self, path: str) -> None:
        self._controller.spawn(self._controller.import_crosshair(path))
