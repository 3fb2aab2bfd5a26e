"""Widget tests for the crosshair overlay surface."""

from __future__ import annotations

import pytest

pytest.importorskip("PySide6.QtWidgets")

from PySide6.QtCore import Qt
from PySide6.QtWidgets import QLabel, QToolButton

from crossover.backend import OverlayBackend
from crossover.preferences import CrosshairCatalog
from crossover.sync import NoticeLevel, NotificationBus, SurfaceController, SurfaceRole
from crossover.sync.events import LockChanged, SizeChanged, VisibilityChanged
from crossover.ui.chooser import CrosshairChooser
from crossover.ui.overlay_window import OverlayWindow
from crossover.ui.platform import QtWindowPlatform


@pytest.fixture
def make_overlay(qtbot, make_surface, catalog: CrosshairCatalog):
    controllers: list[SurfaceController] = []

    def _factory(role: SurfaceRole = SurfaceRole.SHADOW, label: str | None = "shadow-1"):
        if role is SurfaceRole.PRIMARY:
            label = None
        controller, service, _ = make_surface(role, label=label)
        window = OverlayWindow(controller, catalog=catalog)
        qtbot.addWidget(window, before_close_func=lambda _: controller.close())
        controllers.append(controller)
        return window, controller, service

    yield _factory
    # Closed controllers let qtbot close shadow windows without asking the owner
    for controller in controllers:
        controller.close()


def test_settings_affordance_only_on_primary(make_overlay) -> None:
    primary, _, _ = make_overlay(SurfaceRole.PRIMARY)
    shadow, _, _ = make_overlay()

    assert not primary.findChild(QToolButton, "settings_button").isHidden()
    assert shadow.findChild(QToolButton, "settings_button").isHidden()


def test_lock_hides_settings_affordance(make_overlay) -> None:
    window, controller, _ = make_overlay(SurfaceRole.PRIMARY)

    controller.handle(LockChanged(True))
    assert window.findChild(QToolButton, "settings_button").isHidden()

    controller.handle(LockChanged(False))
    assert not window.findChild(QToolButton, "settings_button").isHidden()


def test_size_notification_resizes_window(make_overlay) -> None:
    window, controller, _ = make_overlay()

    controller.handle(SizeChanged(200))

    assert window.width() == 248
    assert window.height() == 248


def test_keyboard_nudge_rejected_while_locked(qtbot, make_overlay) -> None:
    window, controller, service = make_overlay()
    controller.handle(LockChanged(True))

    qtbot.keyClick(window, Qt.Key.Key_Left)

    assert controller.lock_gate.rejection_count == 1
    assert service.calls["set_position"] == 0


def test_visibility_notification_hides_window(make_overlay) -> None:
    window, controller, _ = make_overlay()
    window.show()

    controller.handle(VisibilityChanged(False))

    assert window.isHidden()


def test_notice_uses_toast(make_overlay) -> None:
    window, controller, _ = make_overlay()

    controller.post_notice("Duplicate window created", NoticeLevel.SUCCESS)

    toast = window.findChild(QLabel, "crossover-toast")
    assert toast.text() == "Duplicate window created"
    assert toast.property("level") == "success"


def test_paint_with_acknowledgement(make_overlay) -> None:
    window, _, _ = make_overlay()
    window.render_reticle("circle")
    window.render_acknowledgement(True)

    assert not window.grab().isNull()


def test_chooser_reports_user_selection_only(qtbot, catalog: CrosshairCatalog) -> None:
    selected: list[str] = []
    chooser = CrosshairChooser(catalog, on_select=selected.append, on_import=lambda path: None)
    qtbot.addWidget(chooser)

    chooser.present(["cross-thin.svg", "target-dot.svg"], "target-dot.svg")
    assert selected == []

    chooser.crosshair_list.setCurrentRow(0)
    assert selected == ["cross-thin.svg"]


def test_shadow_menu_offers_close_and_primary_closes_duplicates(make_overlay) -> None:
    primary, _, _ = make_overlay(SurfaceRole.PRIMARY)
    shadow, _, _ = make_overlay()

    primary_entries = [text for text, _ in primary._menu_entries()]
    shadow_entries = [text for text, _ in shadow._menu_entries()]

    assert primary_entries[-1] == "Close Duplicates"
    assert shadow_entries[-1] == "Close"
    assert "Close" not in primary_entries


@pytest.mark.asyncio
async def test_closing_shadow_window_releases_owner_slot(
    qtbot, bus: NotificationBus, catalog: CrosshairCatalog
) -> None:
    backend = OverlayBackend(bus=bus, catalog=catalog)
    platform = QtWindowPlatform(backend, bus, catalog)
    backend.attach_platform(platform)
    label = await backend.create_shadow_window()
    controller = platform.controller(label)
    window = platform.window(label)

    window.close()
    await controller.drain()

    assert label not in backend.shadows
    assert platform.window(label) is None
    assert platform.controller(label) is None
    assert controller.closed
    assert window.isHidden()
