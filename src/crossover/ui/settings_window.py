"""Settings panel surface."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, Sequence

from PySide6.QtCore import QObject, Qt
from PySide6.QtGui import QCloseEvent, QColor
from PySide6.QtWidgets import (
    QButtonGroup,
    QCheckBox,
    QColorDialog,
    QFileDialog,
    QFormLayout,
    QGroupBox,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QPushButton,
    QSlider,
    QVBoxLayout,
    QWidget,
)

from ..preferences.catalog import SUPPORTED_IMAGE_EXTENSIONS, CrosshairCatalog
from ..preferences.models import MAX_SIZE, MIN_SIZE, RETICLE_CHOICES, opacity_to_percent
from ..sync.commands import NoticeLevel
from ..sync.surface import SurfaceController
from .chooser import CrosshairList, ToastLabel

__all__ = ["SettingsWindow"]

LOGGER = logging.getLogger(__name__)


class SettingsWindow(QWidget):
    """Window exposing every preference with live preview.

    Slider and picker drags stream values to the owner and commit once on
    release; typed colours, reticle buttons, list picks and toggles commit
    immediately.
    """

    def __init__(
        self,
        controller: SurfaceController,
        *,
        catalog: CrosshairCatalog,
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self.setObjectName("settings_window")
        self.setWindowTitle("CrossOver Settings")
        self._controller = controller
        self._catalog = catalog
        self._color_dialog: QColorDialog | None = None

        self._init_crosshair_widgets()
        self._init_appearance_widgets()
        self._init_toggle_widgets()
        self._init_action_widgets()
        self._build_layout()
        controller.attach_view(self)

    @property
    def controller(self) -> SurfaceController:
        return self._controller

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------
    def _init_crosshair_widgets(self) -> None:
        self._crosshair_list = CrosshairList(self._catalog, self)
        self._crosshair_list.currentItemChanged.connect(self._handle_crosshair_changed)
        self._import_button = QPushButton("Import…")
        self._import_button.setObjectName("import_button")
        self._import_button.clicked.connect(self._handle_import_clicked)

    def _init_appearance_widgets(self) -> None:
        self._size_slider = QSlider(Qt.Orientation.Horizontal)
        self._size_slider.setObjectName("size_slider")
        self._size_slider.setRange(MIN_SIZE, MAX_SIZE)
        self._size_slider.valueChanged.connect(self._handle_size_changed)
        self._size_slider.sliderReleased.connect(self._controller.release_size)
        self._size_value = QLabel()
        self._size_value.setObjectName("size_value")

        self._opacity_slider = QSlider(Qt.Orientation.Horizontal)
        self._opacity_slider.setObjectName("opacity_slider")
        self._opacity_slider.setRange(0, 100)
        self._opacity_slider.valueChanged.connect(self._handle_opacity_changed)
        self._opacity_slider.sliderReleased.connect(self._controller.release_opacity)
        self._opacity_value = QLabel()
        self._opacity_value.setObjectName("opacity_value")

        self._color_input = QLineEdit()
        self._color_input.setObjectName("color_input")
        self._color_input.setPlaceholderText("#RRGGBB")
        self._color_input.setMaxLength(7)
        self._color_input.editingFinished.connect(self._handle_color_submitted)
        self._color_button = QPushButton("Pick…")
        self._color_button.setObjectName("color_button")
        self._color_button.clicked.connect(self._handle_pick_color)

        self._reticle_group = QButtonGroup(self)
        self._reticle_group.setExclusive(True)
        self._reticle_buttons: dict[str, QPushButton] = {}
        for reticle in RETICLE_CHOICES:
            button = QPushButton(reticle.title())
            button.setObjectName(f"reticle_{reticle}")
            button.setCheckable(True)
            button.clicked.connect(lambda _checked=False, choice=reticle: self._controller.select_reticle(choice))
            self._reticle_group.addButton(button)
            self._reticle_buttons[reticle] = button

    def _init_toggle_widgets(self) -> None:
        self._follow_mouse_checkbox = QCheckBox("Follow mouse")
        self._follow_mouse_checkbox.setObjectName("follow_mouse_checkbox")
        self._follow_mouse_checkbox.toggled.connect(self._controller.set_follow_mouse)
        self._hide_on_ads_checkbox = QCheckBox("Hide while aiming down sights")
        self._hide_on_ads_checkbox.setObjectName("hide_on_ads_checkbox")
        self._hide_on_ads_checkbox.toggled.connect(self._controller.set_hide_on_ads)

    def _init_action_widgets(self) -> None:
        controller = self._controller
        self._lock_button = QPushButton("Lock")
        self._lock_button.setObjectName("lock_button")
        self._lock_button.clicked.connect(lambda: controller.spawn(controller.toggle_lock()))
        self._visibility_button = QPushButton("Hide")
        self._visibility_button.setObjectName("visibility_button")
        self._visibility_button.clicked.connect(lambda: controller.spawn(controller.toggle_visibility()))
        self._center_button = QPushButton("Center")
        self._center_button.setObjectName("center_button")
        self._center_button.clicked.connect(lambda: controller.spawn(controller.center()))
        self._next_display_button = QPushButton("Next Display")
        self._next_display_button.setObjectName("next_display_button")
        self._next_display_button.clicked.connect(lambda: controller.spawn(controller.next_display()))
        self._duplicate_button = QPushButton("Duplicate")
        self._duplicate_button.setObjectName("duplicate_button")
        self._duplicate_button.clicked.connect(lambda: controller.spawn(controller.duplicate()))
        self._reset_button = QPushButton("Reset")
        self._reset_button.setObjectName("reset_button")
        self._reset_button.clicked.connect(lambda: controller.spawn(controller.reset()))

    def _build_layout(self) -> None:
        crosshair_box = QGroupBox("Crosshair")
        crosshair_layout = QVBoxLayout(crosshair_box)
        crosshair_layout.addWidget(self._crosshair_list, 1)
        crosshair_layout.addWidget(self._import_button, 0, Qt.AlignmentFlag.AlignRight)

        appearance_box = QGroupBox("Appearance")
        form = QFormLayout(appearance_box)
        form.addRow("Size", _row(self._size_slider, self._size_value))
        form.addRow("Opacity", _row(self._opacity_slider, self._opacity_value))
        form.addRow("Color", _row(self._color_input, self._color_button))
        form.addRow("Reticle", _row(*self._reticle_buttons.values()))
        form.addRow(self._follow_mouse_checkbox)
        form.addRow(self._hide_on_ads_checkbox)

        actions = _row(
            self._lock_button,
            self._visibility_button,
            self._center_button,
            self._next_display_button,
            self._duplicate_button,
            self._reset_button,
        )

        layout = QVBoxLayout(self)
        layout.addWidget(crosshair_box, 1)
        layout.addWidget(appearance_box)
        layout.addWidget(actions)
        self._toast = ToastLabel(self)
        self.resize(520, 560)

    # ------------------------------------------------------------------
    # Render hooks
    # ------------------------------------------------------------------
    def render_crosshair(self, identifier: str) -> None:
        LOGGER.debug("Settings showing crosshair %s", identifier)

    def render_catalog(self, crosshairs: Sequence[str], active: str) -> None:
        self._crosshair_list.populate(crosshairs, active)

    def render_size(self, size: int) -> None:
        with _signals_blocked(self._size_slider):
            self._size_slider.setValue(size)
        self._size_value.setText(f"{size}px")

    def render_opacity(self, opacity: float) -> None:
        percent = opacity_to_percent(opacity)
        with _signals_blocked(self._opacity_slider):
            self._opacity_slider.setValue(percent)
        self._opacity_value.setText(f"{percent}%")

    def render_color(self, color: str) -> None:
        if not self._color_input.hasFocus():
            self._color_input.setText(color)
        self._color_button.setStyleSheet(f"QPushButton#color_button {{ border-left: 12px solid {color}; }}")

    def render_reticle(self, reticle: str) -> None:
        button = self._reticle_buttons.get(reticle)
        if button is not None:
            with _signals_blocked(button):
                button.setChecked(True)

    def render_toggles(self, follow_mouse: bool, hide_on_ads: bool) -> None:
        with _signals_blocked(self._follow_mouse_checkbox):
            self._follow_mouse_checkbox.setChecked(follow_mouse)
        with _signals_blocked(self._hide_on_ads_checkbox):
            self._hide_on_ads_checkbox.setChecked(hide_on_ads)

    def render_lock(self, locked: bool) -> None:
        self._lock_button.setText("Unlock" if locked else "Lock")
        for button in (self._center_button, self._next_display_button, self._duplicate_button):
            button.setEnabled(not locked)

    def render_visibility(self, visible: bool) -> None:
        self._visibility_button.setText("Hide" if visible else "Show")

    def show_notice(self, message: str, level: NoticeLevel) -> None:
        self._toast.setMaximumWidth(self.width() - 16)
        self._toast.show_message(message, level)
        self._toast.move((self.width() - self._toast.width()) // 2, 8)

    # ------------------------------------------------------------------
    # Signal handlers
    # ------------------------------------------------------------------
    def _handle_crosshair_changed(self, item, _previous) -> None:
        if item is None:
            return
        identifier = item.data(Qt.ItemDataRole.UserRole)
        if identifier:
            self._controller.select_crosshair(identifier)

    def _handle_size_changed(self, value: int) -> None:
        size = self._controller.input_size(value)
        self._size_value.setText(f"{size}px")
        if not self._size_slider.isSliderDown():
            # Keyboard and wheel steps are complete gestures on their own
            self._controller.release_size()

    def _handle_opacity_changed(self, value: int) -> None:
        self._controller.input_opacity_percent(value)
        self._opacity_value.setText(f"{value}%")
        if not self._opacity_slider.isSliderDown():
            self._controller.release_opacity()

    def _handle_color_submitted(self) -> None:
        text = self._color_input.text()
        if text.strip() == self._controller.preferences.color:
            return
        self._controller.submit_color_text(text)

    def _handle_pick_color(self) -> None:
        if self._color_dialog is None:
            self._color_dialog = QColorDialog(self)
            self._color_dialog.currentColorChanged.connect(self._handle_picker_color)
            self._color_dialog.finished.connect(lambda _result: self._controller.release_color())
        with _signals_blocked(self._color_dialog):
            self._color_dialog.setCurrentColor(QColor(self._controller.preferences.color))
        self._color_dialog.open()

    def _handle_picker_color(self, color: QColor) -> None:
        self._controller.input_color(color.name().upper())

    def _handle_import_clicked(self) -> None:
        patterns = " ".join(f"*.{extension}" for extension in SUPPORTED_IMAGE_EXTENSIONS)
        path, _ = QFileDialog.getOpenFileName(self, "Import Crosshair", "", f"Images ({patterns})")
        if path:
            self._controller.spawn(self._controller.import_crosshair(path))

    def closeEvent(self, event: QCloseEvent) -> None:  # noqa: N802 - Qt override
        # The settings surface stays subscribed while hidden
        self._controller.release_size()
        self._controller.release_opacity()
        event.ignore()
        self.hide()


def _row(*widgets: QWidget) -> QWidget:
    container = QWidget()
    layout = QHBoxLayout(container)
    layout.setContentsMargins(0, 0, 0, 0)
    for widget in widgets:
        layout.addWidget(widget)
    return container


@contextmanager
def _signals_blocked(widget: QObject) -> Iterator[None]:
    blocked = widget.blockSignals(True)
    try:
        yield
    finally:
        widget.blockSignals(blocked)
