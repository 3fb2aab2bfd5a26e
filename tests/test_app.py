"""Tests covering the application bootstrap helpers."""

from __future__ import annotations

import asyncio
import io
import json
import sys
from pathlib import Path
from typing import Any

import pytest

from crossover import app
from crossover.backend import OverlayBackend
from crossover.preferences import CrosshairCatalog, Preferences, PreferencesFile


def test_drain_event_loop_cancels_pending_tasks() -> None:
    loop = asyncio.new_event_loop()

    cancellation_flag = {"called": False}

    async def pending() -> None:
        try:
            await asyncio.sleep(0.1)
        except asyncio.CancelledError:  # pragma: no cover - cancellation path exercised
            cancellation_flag["called"] = True
            raise

    loop.create_task(pending())

    try:
        app._drain_event_loop(loop)
        assert cancellation_flag["called"] is True
    finally:
        loop.close()


def test_drain_event_loop_ignores_closed_loop() -> None:
    loop = asyncio.new_event_loop()
    loop.close()

    app._drain_event_loop(loop)


def test_coerce_cli_overrides_casts_types() -> None:
    overrides = app._coerce_cli_overrides(
        [
            "color=#FF0000",
            "locked=true",
            "size=150",
            "opacity=0.25",
            "position_x=none",
        ]
    )

    assert overrides["color"] == "#FF0000"
    assert overrides["locked"] is True
    assert overrides["size"] == 150
    assert overrides["opacity"] == pytest.approx(0.25)
    assert overrides["position_x"] is None


def test_coerce_cli_overrides_rejects_unknown_field() -> None:
    with pytest.raises(ValueError, match="Unknown preference"):
        app._coerce_cli_overrides(["volume=3"])


def test_coerce_cli_overrides_requires_key_value_syntax() -> None:
    with pytest.raises(ValueError):
        app._coerce_cli_overrides(["locked"])
    with pytest.raises(ValueError):
        app._coerce_cli_overrides(["visible=sometimes"])


def test_load_preferences_falls_back_on_os_error(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    store = PreferencesFile(tmp_path / "preferences.json")

    def _explode(**_kwargs: Any) -> Preferences:
        raise PermissionError("denied")

    monkeypatch.setattr(store, "load", _explode)

    assert app.load_preferences(store=store) == Preferences()


def test_dump_preferences_lists_catalog_and_overrides(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path, catalog: CrosshairCatalog
) -> None:
    monkeypatch.setenv("CROSSOVER_DEBUG", "1")
    store = PreferencesFile(tmp_path / "preferences.json")
    buffer = io.StringIO()

    app._dump_preferences(Preferences(size=64), store, catalog, overrides={"size": 64}, stream=buffer)

    payload = json.loads(buffer.getvalue())
    assert payload["preferences"]["size"] == 64
    assert payload["meta"]["path"] == str(store.path)
    assert "target-dot.svg" in payload["meta"]["crosshairs"]
    assert payload["meta"]["cli_overrides"] == ["size"]
    assert "CROSSOVER_DEBUG" in payload["meta"]["environment_variables"]


def test_main_dump_preferences_exits_without_qt(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    logged_beside: list[Path | None] = []

    def _configure(debug: bool = False, *, preferences_path: Path | None = None, force: bool = False) -> Path:
        logged_beside.append(preferences_path)
        return tmp_path / "logs" / "crossover.log"

    monkeypatch.setattr(app, "configure_logging", _configure)
    monkeypatch.setattr(sys, "argv", ["crossover"])
    monkeypatch.delenv("CROSSOVER_SIZE", raising=False)
    monkeypatch.delenv("CROSSOVER_RETICLE", raising=False)
    path = tmp_path / "preferences.json"
    PreferencesFile(path).save(Preferences(size=42))

    app.main(
        [
            "--dump-preferences",
            "--preferences-path",
            str(path),
            "--crosshairs-dir",
            str(tmp_path / "imports"),
            "--set",
            "reticle=circle",
        ]
    )

    payload = json.loads(capsys.readouterr().out)
    assert payload["preferences"]["size"] == 42
    assert payload["preferences"]["reticle"] == "circle"
    assert str(tmp_path / "imports") in payload["meta"]["crosshair_dirs"]
    assert payload["meta"]["log_path"] == str(tmp_path / "logs" / "crossover.log")
    assert logged_beside == [path]


def test_main_rejects_bad_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(app, "configure_logging", lambda debug=False, **_kwargs: None)
    monkeypatch.setattr(sys, "argv", ["crossover"])

    with pytest.raises(SystemExit) as excinfo:
        app.main(["--set", "nonsense"])

    assert excinfo.value.code == 2


class _BrokenStore:
    path = Path("/unwritable/preferences.json")

    def save(self, preferences: Preferences) -> Path:
        raise PermissionError("read-only")


class _StubPlatform:
    def __init__(self, controllers: dict[str, Any]) -> None:
        self._controllers = controllers
        self.closed = False

    @property
    def labels(self) -> tuple[str, ...]:
        return tuple(self._controllers)

    def controller(self, label: str) -> Any:
        return self._controllers.get(label)

    def close_all(self) -> None:
        self.closed = True


@pytest.mark.asyncio
async def test_shutdown_overlay_flushes_then_closes(make_surface, backend: OverlayBackend) -> None:
    controller, service, _ = make_surface()
    controller.input_size(77)
    controller.release_size()
    platform = _StubPlatform({"main": controller})
    runtime = app.OverlayRuntime(backend=backend, platform=platform, primary=controller)

    await app._shutdown_overlay(runtime)

    assert backend.snapshot.size == 77
    assert service.calls["save_preferences"] == 1
    assert platform.closed


@pytest.mark.asyncio
async def test_shutdown_overlay_survives_save_failure(bus) -> None:
    backend = OverlayBackend(store=_BrokenStore(), bus=bus)  # type: ignore[arg-type]
    platform = _StubPlatform({})
    runtime = app.OverlayRuntime(backend=backend, platform=platform, primary=None)

    await app._shutdown_overlay(runtime)

    assert platform.closed
