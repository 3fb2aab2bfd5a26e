"""Test doubles shared across the suite.

Import from here instead of duplicating these classes in individual test files.
"""

from __future__ import annotations

import asyncio
from collections import Counter
from typing import Any

from crossover.backend import OverlayBackend
from crossover.sync import CommandClient, SurfaceController, SurfaceRole

_HOOK_PREFIXES = ("render_", "show_", "move_to", "play_sound")


class RecordingView:
    """View double that records every render hook the controller calls."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.last: dict[str, tuple[Any, ...]] = {}

    def __getattr__(self, name: str) -> Any:
        if not name.startswith(_HOOK_PREFIXES):
            raise AttributeError(name)

        def _record(*args: Any) -> None:
            self.calls.append((name, args))
            self.last[name] = args

        return _record

    def names(self) -> list[str]:
        return [name for name, _ in self.calls]

    def calls_to(self, name: str) -> list[tuple[Any, ...]]:
        return [args for hook, args in self.calls if hook == name]

    def notices(self) -> list[tuple[str, Any]]:
        return [(args[0], args[1]) for args in self.calls_to("show_notice")]


class _Hold:
    def __init__(self) -> None:
        self.entered = asyncio.Event()
        self.release = asyncio.Event()


class ScriptedService:
    """Wraps a real owner, counting calls and injecting failures or delays.

    ``fail(name, exc)`` makes every call to ``name`` raise; ``hold(name)``
    lets the call run against the owner, then parks the reply until the
    test releases it, so the returned value is stale by then.
    """

    def __init__(self, inner: OverlayBackend) -> None:
        self.inner = inner
        self.calls: Counter[str] = Counter()
        self.order: list[str] = []
        self._failures: dict[str, BaseException] = {}
        self._holds: dict[str, _Hold] = {}
        self._replacements: dict[str, Any] = {}

    def fail(self, name: str, exc: BaseException) -> None:
        self._failures[name] = exc

    def hold(self, name: str) -> _Hold:
        hold = _Hold()
        self._holds[name] = hold
        return hold

    def replace(self, name: str, coroutine_function: Any) -> None:
        self._replacements[name] = coroutine_function

    def __getattr__(self, name: str) -> Any:
        target = self._replacements.get(name) or getattr(self.inner, name)

        async def _call(*args: Any) -> Any:
            self.calls[name] += 1
            self.order.append(name)
            if name in self._failures:
                raise self._failures[name]
            value = await target(*args)
            hold = self._holds.get(name)
            if hold is not None:
                hold.entered.set()
                await hold.release.wait()
            return value

        return _call


class FakePlatform:
    """Window platform double; shadow surfaces become real controllers."""

    def __init__(self, backend: OverlayBackend | None = None) -> None:
        self.backend = backend
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.positions: dict[str, tuple[int, int]] = {"main": (640, 360)}
        self.surfaces: dict[str, SurfaceController] = {}
        self.views: dict[str, RecordingView] = {}
        self.services: dict[str, ScriptedService] = {}

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append((name, args))

    def called(self, name: str) -> list[tuple[Any, ...]]:
        return [args for call, args in self.calls if call == name]

    def create_surface(self, label: str, offset: int) -> None:
        self._record("create_surface", label, offset)
        if self.backend is None:
            return
        view = RecordingView()
        service = ScriptedService(self.backend)
        controller = SurfaceController(
            SurfaceRole.SHADOW,
            CommandClient(service, label=label),
            self.backend.bus,
            view=view,
            label=label,
            acknowledge_seconds=0.01,
        )
        self.surfaces[label] = controller
        self.views[label] = view
        self.services[label] = service

    def close_surface(self, label: str) -> None:
        self._record("close_surface", label)
        controller = self.surfaces.pop(label, None)
        if controller is not None:
            controller.close()

    def center(self, label: str) -> None:
        self._record("center", label)
        self.positions[label] = (100, 100)

    def move_to_next_display(self, label: str) -> None:
        self._record("move_to_next_display", label)
        self.positions[label] = (2020, 100)

    def set_click_through(self, label: str, enabled: bool) -> None:
        self._record("set_click_through", label, enabled)

    def set_visible(self, label: str, visible: bool) -> None:
        self._record("set_visible", label, visible)

    def focus_surface(self, label: str) -> None:
        self._record("focus_surface", label)

    def position(self, label: str) -> tuple[int, int] | None:
        return self.positions.get(label)

    def show_settings(self) -> None:
        self._record("show_settings")
