"""Gesture bookkeeping for continuous controls.

Sliders, colour pickers and window drags emit many intermediate values. Each
one is forwarded to the owner for live preview, but the aggregate is only
committed once the gesture ends, so commit frequency follows gestures rather
than input events.
"""

from __future__ import annotations

import logging
from typing import Any

__all__ = ["ContinuousGesture"]

LOGGER = logging.getLogger(__name__)


class ContinuousGesture:
    """Tracks one continuous input and decides when a commit is due.

    ``input()`` records an intermediate value; ``end()`` returns ``True``
    exactly once per gesture that saw at least one input. Repeated end
    signals (pointer release followed by a change event, say) and ends
    without any input do not produce a commit.
    """

    __slots__ = ("name", "_active", "_dirty", "_last_value", "input_count", "commit_count")

    def __init__(self, name: str) -> None:
        self.name = name
        self._active = False
        self._dirty = False
        self._last_value: Any = None
        self.input_count = 0
        self.commit_count = 0

    @property
    def active(self) -> bool:
        return self._active

    @property
    def last_value(self) -> Any:
        return self._last_value

    def begin(self) -> None:
        self._active = True

    def input(self, value: Any) -> None:
        self._active = True
        self._dirty = True
        self._last_value = value
        self.input_count += 1

    def end(self) -> bool:
        """Finish the gesture; return ``True`` when its values need a commit."""

        self._active = False
        if not self._dirty:
            return False
        self._dirty = False
        self.commit_count += 1
        LOGGER.debug("Gesture %s ended after %d input(s)", self.name, self.input_count)
        return True

    def cancel(self) -> None:
        """Drop the gesture without committing."""

        self._active = False
        self._dirty = False
