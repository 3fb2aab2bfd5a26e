"""Request/response access to the preference owner.

Every surface talks to the owner through one :class:`CommandClient`. Reads
raise :class:`~crossover.errors.CommandError` on failure; mutations never
raise. A failed mutation is logged and handed to the client's notice sink
exactly once, the caller's optimistic state is left alone, and nothing is
retried.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterable, Mapping, Protocol, Sequence

from ..errors import CommandError
from ..preferences.models import Preferences

__all__ = [
    "CommandClient",
    "MutationResult",
    "NoticeLevel",
    "NoticeSink",
    "PreferenceService",
    "READ_OPERATIONS",
]

LOGGER = logging.getLogger(__name__)


class NoticeLevel(str, Enum):
    """Severity of a transient, non-blocking notice."""

    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"


NoticeSink = Callable[[str, NoticeLevel], None]

# Preference field -> read operation used during hydration
READ_OPERATIONS: Mapping[str, str] = {
    "crosshair": "get_crosshair",
    "size": "get_size",
    "opacity": "get_opacity",
    "color": "get_color",
    "locked": "is_locked",
    "visible": "is_visible",
    "reticle": "get_reticle",
    "follow_mouse": "get_follow_mouse",
    "hide_on_ads": "get_hide_on_ads",
}

_FAILURE_MESSAGES: Mapping[str, str] = {
    "save_preferences": "Failed to save preferences",
    "reset_preferences": "Failed to reset preferences",
    "create_shadow_window": "Could not duplicate the crosshair",
    "close_shadow_window": "Could not close the duplicate",
    "close_all_shadow_windows": "Could not close the duplicates",
    "import_crosshair": "Could not import crosshair",
    "toggle_lock": "Could not toggle the lock",
    "set_locked": "Could not unlock the crosshair",
}


class PreferenceService(Protocol):
    """Operations the preference owner exposes to surfaces."""

    async def get_crosshair(self) -> str: ...

    async def get_size(self) -> int: ...

    async def get_opacity(self) -> float: ...

    async def get_color(self) -> str: ...

    async def is_locked(self) -> bool: ...

    async def is_visible(self) -> bool: ...

    async def get_reticle(self) -> str: ...

    async def get_follow_mouse(self) -> bool: ...

    async def get_hide_on_ads(self) -> bool: ...

    async def get_crosshair_list(self) -> Sequence[str]: ...

    async def get_preferences(self) -> Preferences: ...

    async def set_crosshair(self, crosshair: str) -> None: ...

    async def set_size(self, size: int) -> None: ...

    async def set_opacity(self, opacity: float) -> None: ...

    async def set_color(self, color: str) -> None: ...

    async def set_reticle(self, reticle: str) -> None: ...

    async def set_follow_mouse(self, follow: bool) -> None: ...

    async def set_hide_on_ads(self, hide: bool) -> None: ...

    async def set_locked(self, locked: bool) -> None: ...

    async def set_position(self, x: int, y: int) -> None: ...

    async def toggle_lock(self) -> bool: ...

    async def toggle_visibility(self) -> bool: ...

    async def save_preferences(self) -> None: ...

    async def reset_preferences(self) -> None: ...

    async def center_window(self) -> None: ...

    async def move_to_next_display(self) -> None: ...

    async def create_shadow_window(self) -> str: ...

    async def close_shadow_window(self, label: str) -> None: ...

    async def close_all_shadow_windows(self) -> None: ...

    async def open_settings_window(self) -> None: ...

    async def import_crosshair(self, path: str) -> str: ...


@dataclass(slots=True)
class MutationResult:
    """Outcome of a mutation request."""

    ok: bool
    value: Any = None
    error: CommandError | None = None


class CommandClient:
    """Per-surface gateway to a :class:`PreferenceService`.

    Mutations from one client are serialised, so the owner sees them in the
    order they were issued even when the transport is slow.
    """

    def __init__(
        self,
        service: PreferenceService,
        *,
        sink: NoticeSink | None = None,
        label: str = "surface",
    ) -> None:
        self._service = service
        self._sink = sink
        self._label = label
        self._mutation_lock = asyncio.Lock()
        self._failures = 0

    @property
    def label(self) -> str:
        return self._label

    @property
    def failure_count(self) -> int:
        """Number of failed mutations reported so far."""

        return self._failures

    def set_sink(self, sink: NoticeSink | None) -> None:
        self._sink = sink

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    async def get_crosshair(self) -> str:
        return await self._read("get_crosshair")

    async def get_size(self) -> int:
        return await self._read("get_size")

    async def get_opacity(self) -> float:
        return await self._read("get_opacity")

    async def get_color(self) -> str:
        return await self._read("get_color")

    async def is_locked(self) -> bool:
        return await self._read("is_locked")

    async def is_visible(self) -> bool:
        return await self._read("is_visible")

    async def get_reticle(self) -> str:
        return await self._read("get_reticle")

    async def get_follow_mouse(self) -> bool:
        return await self._read("get_follow_mouse")

    async def get_hide_on_ads(self) -> bool:
        return await self._read("get_hide_on_ads")

    async def get_crosshair_list(self) -> list[str]:
        return list(await self._read("get_crosshair_list"))

    async def get_preferences(self) -> Preferences:
        return await self._read("get_preferences")

    async def read_fields(self, names: Iterable[str]) -> tuple[dict[str, Any], dict[str, CommandError]]:
        """Read every field in ``names`` concurrently.

        Returns the values that arrived and, separately, the failures keyed
        by field; one failing read does not discard the others.
        """

        ordered = list(dict.fromkeys(names))
        results = await asyncio.gather(
            *(self._read(READ_OPERATIONS[name]) for name in ordered),
            return_exceptions=True,
        )
        values: dict[str, Any] = {}
        failures: dict[str, CommandError] = {}
        for name, result in zip(ordered, results):
            if isinstance(result, CommandError):
                failures[name] = result
            elif isinstance(result, BaseException):
                raise result
            else:
                values[name] = result
        return values, failures

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    async def set_crosshair(self, crosshair: str) -> bool:
        return (await self._mutate("set_crosshair", crosshair)).ok

    async def set_size(self, size: int) -> bool:
        return (await self._mutate("set_size", size)).ok

    async def set_opacity(self, opacity: float) -> bool:
        return (await self._mutate("set_opacity", opacity)).ok

    async def set_color(self, color: str) -> bool:
        return (await self._mutate("set_color", color)).ok

    async def set_reticle(self, reticle: str) -> bool:
        return (await self._mutate("set_reticle", reticle)).ok

    async def set_follow_mouse(self, follow: bool) -> bool:
        return (await self._mutate("set_follow_mouse", follow)).ok

    async def set_hide_on_ads(self, hide: bool) -> bool:
        return (await self._mutate("set_hide_on_ads", hide)).ok

    async def set_locked(self, locked: bool) -> bool:
        return (await self._mutate("set_locked", locked)).ok

    async def set_position(self, x: int, y: int) -> bool:
        return (await self._mutate("set_position", x, y)).ok

    async def toggle_lock(self) -> bool | None:
        result = await self._mutate("toggle_lock")
        return bool(result.value) if result.ok else None

    async def toggle_visibility(self) -> bool | None:
        result = await self._mutate("toggle_visibility")
        return bool(result.value) if result.ok else None

    async def save_preferences(self) -> bool:
        return (await self._mutate("save_preferences")).ok

    async def reset_preferences(self) -> bool:
        return (await self._mutate("reset_preferences")).ok

    async def center_window(self) -> bool:
        return (await self._mutate("center_window")).ok

    async def move_to_next_display(self) -> bool:
        return (await self._mutate("move_to_next_display")).ok

    async def create_shadow_window(self) -> str | None:
        result = await self._mutate("create_shadow_window")
        return str(result.value) if result.ok else None

    async def close_shadow_window(self, label: str) -> bool:
        return (await self._mutate("close_shadow_window", label)).ok

    async def close_all_shadow_windows(self) -> bool:
        return (await self._mutate("close_all_shadow_windows")).ok

    async def open_settings_window(self) -> bool:
        return (await self._mutate("open_settings_window")).ok

    async def import_crosshair(self, path: str) -> str | None:
        result = await self._mutate("import_crosshair", path)
        return str(result.value) if result.ok else None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    async def _read(self, operation: str) -> Any:
        try:
            return await getattr(self._service, operation)()
        except CommandError:
            raise
        except Exception as exc:
            raise CommandError(operation, exc) from exc

    async def _mutate(self, operation: str, *args: Any) -> MutationResult:
        async with self._mutation_lock:
            try:
                value = await getattr(self._service, operation)(*args)
            except Exception as exc:
                error = exc if isinstance(exc, CommandError) else CommandError(operation, exc)
                self._report(operation, error)
                return MutationResult(ok=False, error=error)
        LOGGER.debug("%s: %s%r ok", self._label, operation, args)
        return MutationResult(ok=True, value=value)

    def _report(self, operation: str, error: CommandError) -> None:
        self._failures += 1
        LOGGER.warning("%s: %s", self._label, error)
        if self._sink is None:
            return
        cause = error.cause if error.cause is not None else error
        message = _FAILURE_MESSAGES.get(operation, f"Could not {operation.replace('_', ' ')}")
        try:
            self._sink(f"{message}: {cause}", NoticeLevel.ERROR)
        except Exception:
            LOGGER.debug("Notice sink failed for %s", operation, exc_info=True)
