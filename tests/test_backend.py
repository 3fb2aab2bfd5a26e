"""Tests for the in-process preference owner and its shadow bookkeeping."""

from __future__ import annotations

from pathlib import Path

import pytest

from crossover.backend import MAX_SHADOW_WINDOWS, OverlayBackend, ShadowRegistry
from crossover.errors import CatalogError, ShadowLimitError
from crossover.preferences import CrosshairCatalog, Preferences, PreferencesFile
from crossover.preferences.models import READABLE_FIELDS
from crossover.sync import NotificationBus
from crossover.sync.events import (
    FieldChanged,
    LockChanged,
    Notification,
    OpenChooser,
    OpenSettings,
    PlaySound,
    ShowAbout,
    SizeChanged,
    SyncSettings,
)

from tests.helpers import FakePlatform


@pytest.fixture
def published(bus: NotificationBus) -> list[Notification]:
    events: list[Notification] = []
    bus.subscribe(Notification, events.append)
    return events


class TestShadowRegistry:
    def test_default_limit(self) -> None:
        assert ShadowRegistry().limit == MAX_SHADOW_WINDOWS == 14

    def test_labels_and_offsets_grow(self) -> None:
        registry = ShadowRegistry()
        first = registry.reserve(locked=False)
        registry.add(first[0])
        second = registry.reserve(locked=False)

        assert first == ("shadow-1", 20)
        assert second == ("shadow-2", 40)

    def test_refuses_while_locked(self) -> None:
        with pytest.raises(ShadowLimitError, match="while locked"):
            ShadowRegistry().reserve(locked=True)

    def test_refuses_past_limit(self, small_registry: ShadowRegistry) -> None:
        for _ in range(small_registry.limit):
            label, _offset = small_registry.reserve(locked=False)
            small_registry.add(label)

        with pytest.raises(ShadowLimitError, match="Maximum"):
            small_registry.reserve(locked=False)

    def test_labels_are_not_reused(self) -> None:
        registry = ShadowRegistry()
        label, _ = registry.reserve(locked=False)
        registry.add(label)
        assert registry.remove(label)
        assert not registry.remove(label)

        assert registry.reserve(locked=False)[0] == "shadow-2"

    def test_labels_sort_numerically(self) -> None:
        registry = ShadowRegistry(limit=20)
        for _ in range(11):
            registry.add(registry.reserve(locked=False)[0])

        assert registry.labels[-2:] == ("shadow-10", "shadow-11")
        assert registry.clear()[0] == "shadow-1"
        assert len(registry) == 0


class TestFieldMutations:
    @pytest.mark.asyncio
    async def test_every_mutation_publishes(self, backend: OverlayBackend, published: list[Notification]) -> None:
        """Setting an unchanged value still broadcasts."""
        await backend.set_size(100)
        await backend.set_size(100)

        assert published == [SizeChanged(100), SizeChanged(100)]

    @pytest.mark.asyncio
    async def test_values_are_normalised_before_publishing(
        self, backend: OverlayBackend, published: list[Notification]
    ) -> None:
        await backend.set_size(9000)
        await backend.set_reticle("CIRCLE")

        assert [event.payload for event in published if isinstance(event, FieldChanged)] == [500, "circle"]
        assert backend.snapshot.size == 500

    @pytest.mark.asyncio
    async def test_invalid_value_raises_without_publishing(
        self, backend: OverlayBackend, published: list[Notification]
    ) -> None:
        with pytest.raises(ValueError):
            await backend.set_color("blue")

        assert published == []

    @pytest.mark.asyncio
    async def test_position_has_no_topic(self, backend: OverlayBackend, published: list[Notification]) -> None:
        await backend.set_position(12, 34)

        assert published == []
        assert (backend.snapshot.position_x, backend.snapshot.position_y) == (12, 34)

    @pytest.mark.asyncio
    async def test_snapshot_is_a_copy(self, backend: OverlayBackend) -> None:
        snapshot = backend.snapshot
        snapshot.size = 11

        assert (await backend.get_preferences()).size != 11


class TestLockAndVisibility:
    @pytest.mark.asyncio
    async def test_toggle_lock_publishes_state_then_sound(
        self, backend: OverlayBackend, platform: FakePlatform, published: list[Notification]
    ) -> None:
        assert await backend.toggle_lock() is True
        assert await backend.toggle_lock() is False

        assert published == [LockChanged(True), PlaySound("lock"), LockChanged(False), PlaySound("unlock")]
        assert platform.called("set_click_through") == [("main", True), ("main", False)]

    @pytest.mark.asyncio
    async def test_set_locked_has_no_sound(self, backend: OverlayBackend, published: list[Notification]) -> None:
        await backend.set_locked(True)

        assert published == [LockChanged(True)]

    @pytest.mark.asyncio
    async def test_visibility_does_not_touch_the_lock(
        self, backend: OverlayBackend, platform: FakePlatform
    ) -> None:
        assert await backend.toggle_visibility() is False

        snapshot = backend.snapshot
        assert snapshot.visible is False
        assert snapshot.locked is False
        assert platform.called("set_visible") == [("main", False)]


class TestPersistence:
    @pytest.mark.asyncio
    async def test_save_writes_the_aggregate(self, tmp_path: Path, catalog: CrosshairCatalog) -> None:
        store = PreferencesFile(tmp_path / "preferences.json")
        backend = OverlayBackend(Preferences(), store=store, catalog=catalog)
        await backend.set_color("#0000FF")

        await backend.save_preferences()

        assert store.load().color == "#0000FF"

    @pytest.mark.asyncio
    async def test_save_without_store_is_a_no_op(self, backend: OverlayBackend) -> None:
        await backend.save_preferences()

    @pytest.mark.asyncio
    async def test_reset_announces_every_field(
        self, backend: OverlayBackend, platform: FakePlatform, published: list[Notification]
    ) -> None:
        await backend.set_size(321)
        await backend.set_locked(True)
        published.clear()

        await backend.reset_preferences()

        announced = [event.field_name for event in published if isinstance(event, FieldChanged)]
        assert announced == list(READABLE_FIELDS)
        assert backend.snapshot.size == Preferences().size
        assert ("main", False) in platform.called("set_click_through")
        assert platform.called("center") == [("main",)]
        assert (backend.snapshot.position_x, backend.snapshot.position_y) == (100, 100)


class TestWindows:
    @pytest.mark.asyncio
    async def test_create_shadow_publishes_targeted_snapshot(
        self, backend: OverlayBackend, platform: FakePlatform, published: list[Notification]
    ) -> None:
        await backend.set_size(222)
        published.clear()

        label = await backend.create_shadow_window()

        assert label == "shadow-1"
        assert label in backend.shadows
        assert platform.called("create_surface") == [("shadow-1", 20)]
        assert len(published) == 1
        sync = published[0]
        assert isinstance(sync, SyncSettings)
        assert sync.target == "shadow-1"
        assert sync.preferences.size == 222

    @pytest.mark.asyncio
    async def test_shadow_limit_is_enforced(self, bus: NotificationBus, small_registry: ShadowRegistry) -> None:
        backend = OverlayBackend(bus=bus, shadows=small_registry)
        assert backend.shadows is small_registry
        await backend.create_shadow_window()
        await backend.create_shadow_window()

        with pytest.raises(ShadowLimitError):
            await backend.create_shadow_window()

    @pytest.mark.asyncio
    async def test_shadow_refused_while_locked(self, backend: OverlayBackend) -> None:
        await backend.set_locked(True)

        with pytest.raises(ShadowLimitError):
            await backend.create_shadow_window()
        assert len(backend.shadows) == 0

    @pytest.mark.asyncio
    async def test_close_shadows(self, backend: OverlayBackend, platform: FakePlatform) -> None:
        first = await backend.create_shadow_window()
        second = await backend.create_shadow_window()

        await backend.close_shadow_window(first)
        assert backend.shadows.labels == (second,)

        await backend.close_all_shadow_windows()
        assert len(backend.shadows) == 0
        assert platform.called("close_surface") == [(first,), (second,)]

    @pytest.mark.asyncio
    async def test_center_remembers_position_and_plays_sound(
        self, backend: OverlayBackend, platform: FakePlatform, published: list[Notification]
    ) -> None:
        await backend.center_window()

        assert published == [PlaySound("center")]
        assert backend.snapshot.position_x == 100

    @pytest.mark.asyncio
    async def test_next_display_remembers_position(self, backend: OverlayBackend, platform: FakePlatform) -> None:
        await backend.move_to_next_display()

        assert platform.called("move_to_next_display") == [("main",)]
        assert backend.snapshot.position_x == 2020

    @pytest.mark.asyncio
    async def test_open_settings_requires_platform(self, backend: OverlayBackend) -> None:
        with pytest.raises(RuntimeError, match="No window platform"):
            await backend.open_settings_window()

    @pytest.mark.asyncio
    async def test_import_requires_catalog(self, bus: NotificationBus) -> None:
        backend = OverlayBackend(bus=bus)

        with pytest.raises(CatalogError):
            await backend.import_crosshair("/tmp/x.png")
        assert await backend.get_crosshair_list() == []


class TestGlobalCommands:
    def test_request_chooser_raises_primary(
        self, backend: OverlayBackend, platform: FakePlatform, published: list[Notification]
    ) -> None:
        backend.request_chooser()

        assert isinstance(published[0], OpenChooser)
        assert platform.called("set_visible") == [("main", True)]
        assert platform.called("focus_surface") == [("main",)]

    def test_request_settings_and_about(self, backend: OverlayBackend, published: list[Notification]) -> None:
        backend.request_settings()
        backend.show_about()

        assert [type(event) for event in published] == [OpenSettings, ShowAbout]
