"""Widget tests for the settings panel surface."""

from __future__ import annotations

import pytest

pytest.importorskip("PySide6.QtWidgets")

from PySide6.QtCore import Qt
from PySide6.QtWidgets import QCheckBox, QLabel, QLineEdit, QPushButton, QSlider

from crossover.preferences import CrosshairCatalog
from crossover.sync import SurfaceRole
from crossover.sync.events import FollowMouseChanged, LockChanged, OpacityChanged, ReticleChanged, SizeChanged
from crossover.ui.chooser import CrosshairList
from crossover.ui.settings_window import SettingsWindow


@pytest.fixture
def settings_surface(qtbot, make_surface, catalog: CrosshairCatalog):
    controller, service, _ = make_surface(SurfaceRole.SETTINGS)
    window = SettingsWindow(controller, catalog=catalog)
    qtbot.addWidget(window)
    return window, controller, service


def test_settings_window_exposes_named_controls(settings_surface) -> None:
    window, _, _ = settings_surface

    for widget_type, name in (
        (QSlider, "size_slider"),
        (QSlider, "opacity_slider"),
        (QLineEdit, "color_input"),
        (QPushButton, "color_button"),
        (QPushButton, "reticle_circle"),
        (QCheckBox, "follow_mouse_checkbox"),
        (QCheckBox, "hide_on_ads_checkbox"),
        (QPushButton, "lock_button"),
        (QPushButton, "duplicate_button"),
        (QPushButton, "reset_button"),
        (CrosshairList, "crosshair_list"),
    ):
        assert window.findChild(widget_type, name) is not None, name


def test_notifications_render_without_echoing_mutations(settings_surface) -> None:
    """Rendering a broadcast value must not look like a user gesture."""
    window, controller, service = settings_surface

    controller.handle(SizeChanged(250))
    controller.handle(OpacityChanged(0.4))
    controller.handle(ReticleChanged("cross"))
    controller.handle(FollowMouseChanged(True))

    assert window.findChild(QSlider, "size_slider").value() == 250
    assert window.findChild(QLabel, "size_value").text() == "250px"
    assert window.findChild(QSlider, "opacity_slider").value() == 40
    assert window.findChild(QPushButton, "reticle_cross").isChecked()
    assert window.findChild(QCheckBox, "follow_mouse_checkbox").isChecked()
    assert sum(service.calls.values()) == 0


def test_lock_disables_movement_actions(settings_surface) -> None:
    window, controller, _ = settings_surface

    controller.handle(LockChanged(True))

    assert window.findChild(QPushButton, "lock_button").text() == "Unlock"
    for name in ("center_button", "next_display_button", "duplicate_button"):
        assert not window.findChild(QPushButton, name).isEnabled(), name

    controller.handle(LockChanged(False))

    assert window.findChild(QPushButton, "lock_button").text() == "Lock"
    assert window.findChild(QPushButton, "duplicate_button").isEnabled()


def test_catalog_render_selects_active_crosshair(settings_surface) -> None:
    window, _, service = settings_surface

    window.render_catalog(["cross-thin.svg", "target-dot.svg"], "target-dot.svg")

    crosshair_list = window.findChild(CrosshairList, "crosshair_list")
    assert crosshair_list.identifiers() == ["cross-thin.svg", "target-dot.svg"]
    assert crosshair_list.currentItem().data(Qt.ItemDataRole.UserRole) == "target-dot.svg"
    assert service.calls["set_crosshair"] == 0


def test_invalid_typed_color_shows_notice(settings_surface) -> None:
    window, _, service = settings_surface
    color_input = window.findChild(QLineEdit, "color_input")

    color_input.setText("#12345")
    color_input.editingFinished.emit()

    toast = window.findChild(QLabel, "crossover-toast")
    assert toast.text() == "Invalid color format (use #RRGGBB)"
    assert service.calls["set_color"] == 0


def test_close_hides_instead_of_closing(settings_surface) -> None:
    window, controller, _ = settings_surface
    window.show()

    window.close()

    assert window.isHidden()
    assert not controller.closed
