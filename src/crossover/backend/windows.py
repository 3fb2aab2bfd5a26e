"""Window bookkeeping for the preference owner."""

from __future__ import annotations

import logging
from typing import Protocol

from ..errors import ShadowLimitError

__all__ = [
    "MAIN_LABEL",
    "SETTINGS_LABEL",
    "MAX_SHADOW_WINDOWS",
    "SHADOW_WINDOW_OFFSET",
    "ShadowRegistry",
    "WindowPlatform",
]

LOGGER = logging.getLogger(__name__)

MAIN_LABEL = "main"
SETTINGS_LABEL = "settings"
MAX_SHADOW_WINDOWS = 14
SHADOW_WINDOW_OFFSET = 20


class WindowPlatform(Protocol):
    """Native window operations the owner delegates to the UI toolkit.

    Every method addresses a surface by label. Implementations raise on
    failure; the owner lets the error travel back to the requesting surface.
    """

    def create_surface(self, label: str, offset: int) -> None:
        """Open a shadow overlay ``offset`` pixels right of and below ``main``."""
        ...

    def close_surface(self, label: str) -> None: ...

    def center(self, label: str) -> None: ...

    def move_to_next_display(self, label: str) -> None: ...

    def set_click_through(self, label: str, enabled: bool) -> None: ...

    def set_visible(self, label: str, visible: bool) -> None: ...

    def focus_surface(self, label: str) -> None: ...

    def position(self, label: str) -> tuple[int, int] | None: ...

    def show_settings(self) -> None: ...


class ShadowRegistry:
    """Labels of the open shadow overlays.

    Labels are ``shadow-1``, ``shadow-2`` and so on; numbers are never reused
    within a session, so a closed shadow's late notifications cannot be
    mistaken for a new one's.
    """

    def __init__(self, *, limit: int = MAX_SHADOW_WINDOWS, offset: int = SHADOW_WINDOW_OFFSET) -> None:
        self._limit = limit
        self._offset = offset
        self._labels: set[str] = set()
        self._counter = 0

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def labels(self) -> tuple[str, ...]:
        return tuple(sorted(self._labels, key=_label_number))

    def __len__(self) -> int:
        return len(self._labels)

    def __contains__(self, label: object) -> bool:
        return label in self._labels

    def reserve(self, *, locked: bool) -> tuple[str, int]:
        """Return the next label and its placement offset.

        Raises:
            ShadowLimitError: while locked, or when ``limit`` shadows are open.
        """

        if locked:
            raise ShadowLimitError("Cannot create shadow window while locked")
        if len(self._labels) >= self._limit:
            raise ShadowLimitError("Maximum shadow windows reached")
        self._counter += 1
        return f"shadow-{self._counter}", (len(self._labels) + 1) * self._offset

    def add(self, label: str) -> None:
        self._labels.add(label)
        LOGGER.debug("Shadow %s registered (%d open)", label, len(self._labels))

    def remove(self, label: str) -> bool:
        if label not in self._labels:
            return False
        self._labels.discard(label)
        return True

    def clear(self) -> list[str]:
        labels = list(self.labels)
        self._labels.clear()
        return labels


def _label_number(label: str) -> int:
    _, _, number = label.rpartition("-")
    return int(number) if number.isdigit() else 0
