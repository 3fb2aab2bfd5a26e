"""Surface controller: one per open window.

A controller keeps a private copy of the preference aggregate, renders it
through whatever bindings its view provides, turns user gestures into
:class:`~crossover.sync.commands.CommandClient` calls and reconciles every
notification from the bus into its copy. The primary overlay, the settings
panel and shadow overlays all use this class; only their role and their
view differ.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Mapping, Protocol, Sequence

from ..errors import CommandError, LockTransitionTimeout
from ..preferences.catalog import resolve_crosshair
from ..preferences.models import (
    READABLE_FIELDS,
    RETICLE_CHOICES,
    Preferences,
    clamp_size,
    is_valid_color,
    normalize_field,
    opacity_from_percent,
)
from .bus import NotificationBus
from .commands import CommandClient, NoticeLevel
from .events import (
    FieldChanged,
    Notification,
    OpenChooser,
    OpenSettings,
    PlaySound,
    ShowAbout,
    SyncSettings,
)
from .gestures import ContinuousGesture
from .lock_gate import LOCK_ACK_SECONDS, LockGate, LockState

__all__ = ["SurfaceController", "SurfaceRole", "SurfaceView"]

LOGGER = logging.getLogger(__name__)


class SurfaceRole(str, Enum):
    PRIMARY = "primary"
    SETTINGS = "settings"
    SHADOW = "shadow"


_DEFAULT_LABELS: Mapping[SurfaceRole, str] = {
    SurfaceRole.PRIMARY: "main",
    SurfaceRole.SETTINGS: "settings",
    SurfaceRole.SHADOW: "shadow",
}

# UI-only notifications a role reacts to; field updates reach every role
_ROLE_SIGNALS: Mapping[SurfaceRole, frozenset[type[Notification]]] = {
    SurfaceRole.PRIMARY: frozenset({PlaySound, ShowAbout, OpenSettings, OpenChooser}),
    SurfaceRole.SETTINGS: frozenset(),
    SurfaceRole.SHADOW: frozenset(),
}


class SurfaceView(Protocol):
    """Render hooks a view may implement.

    Every hook is optional: a controller only calls the hooks its view
    defines, so the settings panel can skip ``move_to`` and an overlay can
    skip ``render_catalog``.
    """

    def render_crosshair(self, identifier: str) -> None: ...

    def render_size(self, size: int) -> None: ...

    def render_opacity(self, opacity: float) -> None: ...

    def render_color(self, color: str) -> None: ...

    def render_reticle(self, reticle: str) -> None: ...

    def render_lock(self, locked: bool) -> None: ...

    def render_acknowledgement(self, active: bool) -> None: ...

    def render_visibility(self, visible: bool) -> None: ...

    def render_toggles(self, follow_mouse: bool, hide_on_ads: bool) -> None: ...

    def render_catalog(self, crosshairs: Sequence[str], active: str) -> None: ...

    def move_to(self, x: int, y: int) -> None: ...

    def show_notice(self, message: str, level: NoticeLevel) -> None: ...

    def show_chooser(self, crosshairs: Sequence[str], active: str) -> None: ...

    def show_about(self) -> None: ...

    def play_sound(self, name: str) -> None: ...


class SurfaceController:
    """Keeps one surface consistent with the preference owner.

    Reconciliation rules:

    - field notifications replace one field of the local copy; the last
      notification to arrive for a field wins, whatever the order across
      fields;
    - ``sync-settings`` replaces the whole copy, but only on the surface it
      targets;
    - a notification that arrives while a hydration read is in flight is
      newer than that read, so the read result for that field is dropped;
    - local gestures update the copy optimistically and are corrected by the
      notification that follows the mutation.
    """

    def __init__(
        self,
        role: SurfaceRole | str,
        client: CommandClient,
        bus: NotificationBus,
        *,
        view: Any = None,
        label: str | None = None,
        hydrate_via_sync: bool | None = None,
        sync_timeout: float = 1.0,
        unlock_timeout: float = 2.0,
        acknowledge_seconds: float = LOCK_ACK_SECONDS,
    ) -> None:
        self.role = SurfaceRole(role)
        self.label = label or _DEFAULT_LABELS[self.role]
        self._client = client
        self._client.set_sink(self.post_notice)
        self._bus = bus
        self._view = view
        self._hydrate_via_sync = self.role is SurfaceRole.SHADOW if hydrate_via_sync is None else hydrate_via_sync
        self._sync_timeout = sync_timeout
        self._unlock_timeout = unlock_timeout

        self._cache = Preferences()
        self._catalog: list[str] = []
        self._lock_gate = LockGate(
            on_state_change=self._on_lock_state,
            on_acknowledge=self._on_acknowledge,
            acknowledge_seconds=acknowledge_seconds,
            label=self.label,
        )
        self._gestures: dict[str, ContinuousGesture] = {
            name: ContinuousGesture(f"{self.label}.{name}") for name in ("size", "opacity", "color", "drag")
        }
        self._drag_origin: tuple[int, int, int, int] | None = None
        self._notified_during_read: set[str] | None = None
        self._synced = asyncio.Event()
        self._tasks: set[asyncio.Future[Any]] = set()
        self._hydrated = False
        self._closed = False

        bus.subscribe(Notification, self.handle)
        LOGGER.debug("Surface %s (%s) opened", self.label, self.role.value)

    # ------------------------------------------------------------------
    # Public state
    # ------------------------------------------------------------------
    @property
    def preferences(self) -> Preferences:
        """A copy of the local cache."""

        return self._cache.copy()

    @property
    def catalog(self) -> tuple[str, ...]:
        return tuple(self._catalog)

    @property
    def lock_gate(self) -> LockGate:
        return self._lock_gate

    @property
    def client(self) -> CommandClient:
        return self._client

    @property
    def hydrated(self) -> bool:
        return self._hydrated

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def dragging(self) -> bool:
        return self._drag_origin is not None

    def gesture(self, name: str) -> ContinuousGesture:
        return self._gestures[name]

    def attach_view(self, view: Any) -> None:
        """Bind a view; it is rendered immediately when the surface is hydrated."""

        self._view = view
        if self._hydrated:
            self._render_all()

    # ------------------------------------------------------------------
    # Hydration
    # ------------------------------------------------------------------
    async def hydrate(self) -> bool:
        """Fill the local cache from the owner and render it.

        Shadow surfaces wait for their targeted ``sync-settings`` snapshot
        and fall back to field reads if it does not arrive in time.
        """

        if self._hydrate_via_sync:
            try:
                await asyncio.wait_for(self._synced.wait(), self._sync_timeout)
            except asyncio.TimeoutError:
                LOGGER.warning("%s: no sync-settings within %.1fs, reading fields", self.label, self._sync_timeout)
            else:
                await self._load_catalog()
                return True
        return await self._hydrate_from_reads()

    async def _hydrate_from_reads(self) -> bool:
        self._notified_during_read = set()
        try:
            reads, catalog = await asyncio.gather(
                self._client.read_fields(READABLE_FIELDS),
                self._client.get_crosshair_list(),
                return_exceptions=True,
            )
        finally:
            notified = self._notified_during_read or set()
            self._notified_during_read = None

        if isinstance(reads, BaseException):
            raise reads
        values, failures = reads
        problems: list[str] = [f"{name}: {error}" for name, error in failures.items()]

        for name in READABLE_FIELDS:
            if name in notified or name not in values:
                continue
            try:
                setattr(self._cache, name, normalize_field(name, values[name]))
            except (TypeError, ValueError) as exc:
                problems.append(f"{name}: {exc}")

        if isinstance(catalog, CommandError):
            problems.append(f"catalog: {catalog}")
        elif isinstance(catalog, BaseException):
            raise catalog
        else:
            self._catalog = list(catalog)

        if "locked" in failures and "locked" not in notified:
            recovered = await self._recover_lock_flag()
            if recovered is not None:
                self._cache.locked = recovered
                self._lock_gate.hydrate(recovered)
        elif "locked" not in notified:
            self._lock_gate.hydrate(self._cache.locked)
        self._hydrated = True
        self._render_all()

        if problems:
            LOGGER.warning("%s: hydration incomplete (%s)", self.label, "; ".join(problems))
            self.post_notice("Failed to load settings", NoticeLevel.ERROR)
            return False
        LOGGER.debug("%s: hydrated from %d reads", self.label, len(values))
        return True

    async def _recover_lock_flag(self) -> bool | None:
        """Second chance for the lock flag after its field read failed.

        Reads the bulk snapshot instead. If that fails too the gate starts
        locked, so drags stay rejected until a ``lock-changed`` arrives.
        Returns ``None`` when such a notification already settled the gate.
        """

        self._notified_during_read = set()
        try:
            snapshot = await self._client.get_preferences()
        except CommandError as exc:
            LOGGER.warning("%s: lock flag unknown, starting locked (%s)", self.label, exc)
            snapshot = None
        finally:
            notified = self._notified_during_read or set()
            self._notified_during_read = None
        if "locked" in notified:
            return None
        return True if snapshot is None else bool(snapshot.locked)

    async def _load_catalog(self) -> bool:
        try:
            catalog = await self._client.get_crosshair_list()
        except CommandError as exc:
            LOGGER.warning("%s: %s", self.label, exc)
            self.post_notice("Failed to load crosshairs", NoticeLevel.ERROR)
            return False
        self._catalog = list(catalog)
        self._render_field("crosshair")
        return True

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------
    def handle(self, event: Notification) -> None:
        """Reconcile one notification from the bus."""

        if self._closed:
            return
        if isinstance(event, FieldChanged):
            self._apply_field(event.field_name, event.payload)
            return
        if isinstance(event, SyncSettings):
            if event.target is None or event.target == self.label:
                self._apply_snapshot(event.preferences)
            return
        if type(event) not in _ROLE_SIGNALS[self.role]:
            return
        if isinstance(event, PlaySound):
            self._render("play_sound", event.name)
        elif isinstance(event, ShowAbout):
            self._render("show_about")
        elif isinstance(event, OpenSettings):
            self.spawn(self.open_settings())
        elif isinstance(event, OpenChooser):
            self.spawn(self.open_chooser())

    def _apply_field(self, name: str, value: Any) -> None:
        try:
            normalized = normalize_field(name, value)
        except (KeyError, TypeError, ValueError) as exc:
            LOGGER.warning("%s: ignoring %s notification %r: %s", self.label, name, value, exc)
            return
        if self._notified_during_read is not None:
            self._notified_during_read.add(name)
        setattr(self._cache, name, normalized)
        if name == "locked":
            self._lock_gate.apply(normalized)
        else:
            self._render_field(name)

    def _apply_snapshot(self, preferences: Preferences) -> None:
        self._cache = preferences.copy()
        if self._notified_during_read is not None:
            self._notified_during_read.update(READABLE_FIELDS)
        self._lock_gate.hydrate(self._cache.locked)
        self._hydrated = True
        self._synced.set()
        self._render_all()
        LOGGER.debug("%s: replaced cache from sync-settings", self.label)

    # ------------------------------------------------------------------
    # Continuous gestures
    # ------------------------------------------------------------------
    def input_size(self, value: Any) -> int:
        size = clamp_size(value)
        self._gestures["size"].input(size)
        self._optimistic("size", size)
        self.spawn(self._client.set_size(size))
        return size

    def release_size(self) -> bool:
        return self._end_gesture("size")

    def input_opacity_percent(self, percent: Any) -> float:
        opacity = opacity_from_percent(percent)
        self._gestures["opacity"].input(opacity)
        self._optimistic("opacity", opacity)
        self.spawn(self._client.set_opacity(opacity))
        return opacity

    def release_opacity(self) -> bool:
        return self._end_gesture("opacity")

    def input_color(self, value: str) -> bool:
        """Live colour input (picker); invalid values never leave the surface."""

        if not is_valid_color(value):
            LOGGER.info("%s: rejected color %r", self.label, value)
            self.post_notice("Invalid color format (use #RRGGBB)", NoticeLevel.ERROR)
            return False
        self._gestures["color"].input(value)
        self._optimistic("color", value)
        self.spawn(self._client.set_color(value))
        return True

    def release_color(self) -> bool:
        return self._end_gesture("color")

    def submit_color_text(self, text: str) -> bool:
        """Typed colour: validated, sent once and committed once."""

        color = (text or "").strip()
        if not self.input_color(color):
            return False
        self.release_color()
        self.post_notice("Color updated", NoticeLevel.SUCCESS)
        return True

    def _end_gesture(self, name: str) -> bool:
        if not self._gestures[name].end():
            return False
        self.spawn(self._client.save_preferences())
        return True

    # ------------------------------------------------------------------
    # Discrete gestures
    # ------------------------------------------------------------------
    def select_reticle(self, reticle: str) -> bool:
        choice = (reticle or "").strip().lower()
        if choice not in RETICLE_CHOICES:
            self.post_notice(f"Unknown reticle: {reticle}", NoticeLevel.ERROR)
            return False
        self._optimistic("reticle", choice)
        self._set_and_commit(self._client.set_reticle(choice))
        return True

    def select_crosshair(self, identifier: str) -> bool:
        if self._catalog and identifier not in self._catalog:
            LOGGER.warning("%s: crosshair %s is not in the catalog", self.label, identifier)
            self.post_notice(f"Crosshair not found: {identifier}", NoticeLevel.ERROR)
            return False
        self._optimistic("crosshair", identifier)
        self._set_and_commit(self._client.set_crosshair(identifier))
        return True

    def set_follow_mouse(self, follow: bool) -> None:
        self._optimistic("follow_mouse", bool(follow))
        self._set_and_commit(self._client.set_follow_mouse(bool(follow)))

    def set_hide_on_ads(self, hide: bool) -> None:
        self._optimistic("hide_on_ads", bool(hide))
        self._set_and_commit(self._client.set_hide_on_ads(bool(hide)))

    async def toggle_lock(self) -> bool | None:
        """Ask the owner to flip the lock; the gate follows the broadcast."""

        locked = await self._client.toggle_lock()
        if locked is not None:
            await self._client.save_preferences()
        return locked

    async def toggle_visibility(self) -> bool | None:
        visible = await self._client.toggle_visibility()
        if visible is not None:
            await self._client.save_preferences()
        return visible

    def _set_and_commit(self, mutation: Awaitable[bool]) -> None:
        self.spawn(mutation)
        self.spawn(self._client.save_preferences())

    # ------------------------------------------------------------------
    # Position
    # ------------------------------------------------------------------
    def begin_drag(self, pointer_x: int, pointer_y: int, window_x: int, window_y: int) -> bool:
        if not self._lock_gate.permits("drag"):
            return False
        self._drag_origin = (pointer_x, pointer_y, window_x, window_y)
        self._gestures["drag"].begin()
        return True

    def drag_to(self, pointer_x: int, pointer_y: int) -> tuple[int, int] | None:
        if self._drag_origin is None:
            return None
        if not self._lock_gate.permits("drag"):
            self._cancel_drag()
            return None
        start_x, start_y, window_x, window_y = self._drag_origin
        target = (window_x + pointer_x - start_x, window_y + pointer_y - start_y)
        self._gestures["drag"].input(target)
        self._render("move_to", *target)
        return target

    def end_drag(self) -> bool:
        if self._drag_origin is None:
            return False
        return self._finish_drag()

    def nudge(self, window_x: int, window_y: int, dx: int, dy: int) -> tuple[int, int] | None:
        """Move the window by a keyboard step."""

        if not self._lock_gate.permits("nudge"):
            return None
        target = (window_x + dx, window_y + dy)
        self._render("move_to", *target)
        self._store_position(*target)
        return target

    def _finish_drag(self) -> bool:
        self._drag_origin = None
        gesture = self._gestures["drag"]
        if not gesture.end():
            return False
        self._store_position(*gesture.last_value)
        return True

    def _cancel_drag(self) -> None:
        """Drop a drag the lock interrupted and put the window back where it started."""

        if self._drag_origin is None:
            return
        _, _, window_x, window_y = self._drag_origin
        self._drag_origin = None
        self._gestures["drag"].cancel()
        self._render("move_to", window_x, window_y)

    def _store_position(self, x: int, y: int) -> None:
        self._cache.position_x = x
        self._cache.position_y = y
        self._set_and_commit(self._client.set_position(x, y))

    async def center(self) -> bool:
        if not self._lock_gate.permits("center"):
            return False
        if not await self._client.center_window():
            return False
        return await self._client.save_preferences()

    async def next_display(self) -> bool:
        """Move to the next screen; the owner records the new position and it is committed."""

        if not self._lock_gate.permits("next_display"):
            return False
        if not await self._client.move_to_next_display():
            return False
        return await self._client.save_preferences()

    # ------------------------------------------------------------------
    # Surface-level operations
    # ------------------------------------------------------------------
    async def duplicate(self) -> str | None:
        """Ask for a shadow surface mirroring the live state."""

        if not self._lock_gate.permits("duplicate"):
            self.post_notice("Unlock the crosshair to duplicate it", NoticeLevel.INFO)
            return None
        label = await self._client.create_shadow_window()
        if label is not None:
            self.post_notice("Duplicate window created", NoticeLevel.SUCCESS)
        return label

    async def request_close(self) -> bool:
        """Ask the owner to close this shadow surface and release its slot."""

        if self.role is not SurfaceRole.SHADOW:
            return False
        return await self._client.close_shadow_window(self.label)

    async def close_duplicates(self) -> bool:
        return await self._client.close_all_shadow_windows()

    async def reset(self) -> bool:
        """Reset the owner to defaults, then re-read this surface's cache."""

        if not await self._client.reset_preferences():
            return False
        await self._hydrate_from_reads()
        self.post_notice("Settings reset to defaults", NoticeLevel.SUCCESS)
        return True

    async def open_settings(self) -> bool:
        if not await self._ensure_unlocked():
            return False
        return await self._client.open_settings_window()

    async def open_chooser(self) -> bool:
        """Show the crosshair chooser, unlocking first when needed."""

        if not await self._ensure_unlocked():
            return False
        await self._load_catalog()
        self._render("show_chooser", tuple(self._catalog), self._cache.crosshair)
        return True

    async def import_crosshair(self, path: str) -> str | None:
        identifier = await self._client.import_crosshair(path)
        if identifier is None:
            return None
        await self._load_catalog()
        if self.select_crosshair(identifier):
            self.post_notice(f"Imported {identifier}", NoticeLevel.SUCCESS)
        return identifier

    async def _ensure_unlocked(self) -> bool:
        try:
            return await self._lock_gate.ensure_unlocked(
                lambda: self._client.set_locked(False),
                timeout=self._unlock_timeout,
            )
        except LockTransitionTimeout as exc:
            LOGGER.warning("%s", exc)
            self.post_notice("Could not unlock the crosshair", NoticeLevel.ERROR)
            return False

    # ------------------------------------------------------------------
    # Task management
    # ------------------------------------------------------------------
    def spawn(self, awaitable: Awaitable[Any]) -> asyncio.Future[Any]:
        """Schedule ``awaitable`` on the running loop and keep track of it."""

        task = asyncio.ensure_future(awaitable, loop=asyncio.get_running_loop())
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    async def drain(self) -> None:
        """Wait until every spawned task, including ones spawned meanwhile, finished."""

        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _task_done(self, task: asyncio.Future[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            LOGGER.error("%s: background task failed", self.label, exc_info=exc)

    def close(self) -> None:
        """Stop listening to the bus; pending requests still complete."""

        if self._closed:
            return
        self._closed = True
        self._bus.unsubscribe(Notification, self.handle)
        self._lock_gate.close()
        LOGGER.debug("Surface %s closed", self.label)

    # ------------------------------------------------------------------
    # Notices and rendering
    # ------------------------------------------------------------------
    def post_notice(self, message: str, level: NoticeLevel = NoticeLevel.INFO) -> None:
        """Single sink for every local notice and reported failure."""

        if level is NoticeLevel.ERROR:
            LOGGER.warning("%s: %s", self.label, message)
        else:
            LOGGER.info("%s: %s", self.label, message)
        self._render("show_notice", message, level)

    def _optimistic(self, name: str, value: Any) -> None:
        setattr(self._cache, name, value)
        self._render_field(name)

    def _on_lock_state(self, state: LockState) -> None:
        locked = state is LockState.LOCKED
        if locked:
            self._cancel_drag()
        self._render("render_lock", locked)

    def _on_acknowledge(self, active: bool) -> None:
        self._render("render_acknowledgement", active)

    def _render_all(self) -> None:
        for name in ("crosshair", "size", "opacity", "color", "reticle", "visible", "follow_mouse"):
            self._render_field(name)
        self._render("render_lock", self._cache.locked)

    def _render_field(self, name: str) -> None:
        cache = self._cache
        if name == "crosshair":
            self._render("render_crosshair", resolve_crosshair(cache.crosshair, self._catalog))
            if self._catalog:
                self._render("render_catalog", tuple(self._catalog), cache.crosshair)
        elif name == "size":
            self._render("render_size", cache.size)
        elif name == "opacity":
            self._render("render_opacity", cache.opacity)
        elif name == "color":
            self._render("render_color", cache.color)
        elif name == "reticle":
            self._render("render_reticle", cache.reticle)
        elif name == "visible":
            self._render("render_visibility", cache.visible)
        elif name in {"follow_mouse", "hide_on_ads"}:
            self._render("render_toggles", cache.follow_mouse, cache.hide_on_ads)
        elif name == "locked":
            self._render("render_lock", cache.locked)

    def _render(self, hook: str, *args: Any) -> None:
        if self._view is None:
            return
        method = getattr(self._view, hook, None)
        if not callable(method):
            return
        try:
            method(*args)
        except Exception:
            LOGGER.warning("%s: view hook %s failed", self.label, hook, exc_info=True)

