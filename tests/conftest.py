"""Shared pytest fixtures."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from crossover.backend import OverlayBackend, ShadowRegistry
from crossover.preferences import CrosshairCatalog, Preferences
from crossover.sync import CommandClient, NotificationBus, SurfaceController, SurfaceRole
from tests.helpers import FakePlatform, RecordingView, ScriptedService


@pytest.fixture
def crosshair_dirs(tmp_path: Path) -> tuple[Path, Path]:
    builtin = tmp_path / "builtin"
    custom = tmp_path / "custom"
    builtin.mkdir()
    for name in ("crosshair-default.svg", "target-dot.svg", "cross-thin.svg"):
        (builtin / name).write_text("<svg xmlns='http://www.w3.org/2000/svg'/>", encoding="utf-8")
    (builtin / "notes.txt").write_text("not an image", encoding="utf-8")
    return builtin, custom


@pytest.fixture
def catalog(crosshair_dirs: tuple[Path, Path]) -> CrosshairCatalog:
    builtin, custom = crosshair_dirs
    return CrosshairCatalog(builtin_dir=builtin, custom_dir=custom)


@pytest.fixture
def bus() -> NotificationBus:
    return NotificationBus()


@pytest.fixture
def backend(bus: NotificationBus, catalog: CrosshairCatalog) -> OverlayBackend:
    return OverlayBackend(Preferences(), catalog=catalog, bus=bus)


@pytest.fixture
def platform(backend: OverlayBackend) -> FakePlatform:
    fake = FakePlatform(backend)
    backend.attach_platform(fake)
    return fake


@pytest.fixture
def small_registry() -> ShadowRegistry:
    return ShadowRegistry(limit=2, offset=20)


@pytest.fixture
def make_surface(backend: OverlayBackend):
    """Build a controller with its own scripted service and recording view."""

    def _factory(
        role: SurfaceRole = SurfaceRole.PRIMARY,
        *,
        label: str | None = None,
        **kwargs: Any,
    ) -> tuple[SurfaceController, ScriptedService, RecordingView]:
        service = ScriptedService(backend)
        view = RecordingView()
        kwargs.setdefault("acknowledge_seconds", 0.01)
        controller = SurfaceController(
            role,
            CommandClient(service, label=label or SurfaceRole(role).value),
            backend.bus,
            view=view,
            label=label,
            **kwargs,
        )
        return controller, service, view

    return _factory
