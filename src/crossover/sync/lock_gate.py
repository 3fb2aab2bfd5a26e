"""Lock gate: the per-surface replica of the global lock flag.

Each surface controller owns one gate. The gate only changes state when a
``lock-changed`` notification (or the initial hydration read) says so; a
surface that asks for a toggle waits for the broadcast like everyone else.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum, auto
from typing import Awaitable, Callable, Protocol

from ..errors import LockTransitionTimeout

__all__ = [
    "LockGate",
    "LockState",
    "LockStateListener",
    "AcknowledgementListener",
    "LOCK_ACK_SECONDS",
]

LOGGER = logging.getLogger(__name__)

LOCK_ACK_SECONDS = 1.0


class LockState(Enum):
    """State of the interaction lock."""

    UNLOCKED = auto()
    LOCKED = auto()


class LockStateListener(Protocol):
    """Callback for lock state changes."""

    def __call__(self, state: LockState) -> None:
        """Called after the gate changed state."""
        ...


class AcknowledgementListener(Protocol):
    """Callback for the transient lock acknowledgement."""

    def __call__(self, active: bool) -> None:
        """Called when the acknowledgement starts and when it clears."""
        ...


class LockGate:
    """Enables or disables a surface's interactions from the shared lock flag.

    While ``LOCKED``:

    - drag-to-move and keyboard nudges are rejected (:meth:`permits`);
    - configuration affordances are hidden (:attr:`settings_enabled`);
    - entering the state plays a one-shot acknowledgement that clears itself
      after ``acknowledge_seconds``. The acknowledgement is local only.
    """

    def __init__(
        self,
        *,
        on_state_change: LockStateListener | None = None,
        on_acknowledge: AcknowledgementListener | None = None,
        acknowledge_seconds: float = LOCK_ACK_SECONDS,
        label: str = "surface",
    ) -> None:
        self._on_state_change = on_state_change
        self._on_acknowledge = on_acknowledge
        self._acknowledge_seconds = acknowledge_seconds
        self._label = label

        self._state = LockState.UNLOCKED
        self._hydrated = False
        self._acknowledging = False
        self._ack_handle: asyncio.TimerHandle | None = None
        self._waiters: list[tuple[LockState, asyncio.Future[None]]] = []
        self._unlock_task: asyncio.Future[bool] | None = None
        self._transitions = 0
        self._rejections = 0

    # ------------------------------------------------------------------
    # Public State
    # ------------------------------------------------------------------

    @property
    def state(self) -> LockState:
        return self._state

    @property
    def is_locked(self) -> bool:
        return self._state is LockState.LOCKED

    @property
    def hydrated(self) -> bool:
        return self._hydrated

    @property
    def acknowledging(self) -> bool:
        """Whether the lock acknowledgement is currently showing."""

        return self._acknowledging

    @property
    def drag_enabled(self) -> bool:
        return not self.is_locked

    @property
    def settings_enabled(self) -> bool:
        return not self.is_locked

    @property
    def transition_count(self) -> int:
        """Number of state changes applied from notifications."""

        return self._transitions

    @property
    def rejection_count(self) -> int:
        return self._rejections

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def hydrate(self, locked: bool) -> None:
        """Adopt the owner's lock flag at surface creation, without acknowledgement."""

        self._hydrated = True
        self._state = LockState.LOCKED if locked else LockState.UNLOCKED
        self._clear_acknowledgement()
        self._notify_state_change(self._state)
        self._resolve_waiters()

    def apply(self, locked: bool) -> bool:
        """Apply a ``lock-changed`` notification; return ``True`` on a transition.

        Re-applying the current state is a no-op apart from waking waiters,
        so duplicate deliveries are harmless.
        """

        self._hydrated = True
        new_state = LockState.LOCKED if locked else LockState.UNLOCKED
        if new_state is self._state:
            self._resolve_waiters()
            return False

        self._state = new_state
        self._transitions += 1
        if new_state is LockState.LOCKED:
            self._start_acknowledgement()
        else:
            self._clear_acknowledgement()
        self._notify_state_change(new_state)
        self._resolve_waiters()
        LOGGER.info("%s: %s", self._label, "locked" if locked else "unlocked")
        return True

    def permits(self, action: str) -> bool:
        """Return whether ``action`` may run; records the rejection otherwise."""

        if not self.is_locked:
            return True
        self._rejections += 1
        LOGGER.debug("%s: %s rejected while locked", self._label, action)
        return False

    # ------------------------------------------------------------------
    # Waiting
    # ------------------------------------------------------------------

    async def wait_for(self, state: LockState, *, timeout: float | None = None) -> None:
        """Suspend until the gate reaches ``state``."""

        if self._state is state:
            return
        waiter = self._add_waiter(state)
        try:
            await asyncio.wait_for(asyncio.shield(waiter), timeout)
        except asyncio.TimeoutError as exc:
            raise LockTransitionTimeout(
                f"{self._label}: no lock-changed notification for {state.name} within {timeout}s"
            ) from exc
        finally:
            self._discard_waiter(waiter)

    async def ensure_unlocked(
        self,
        unlock: Callable[[], Awaitable[bool]],
        *,
        timeout: float | None = 2.0,
    ) -> bool:
        """Make sure the gate is unlocked before a configuration surface opens.

        When locked, ``unlock`` is called once (concurrent callers share the
        same request) and the gate waits for the resulting notification.
        Returns ``False`` when the unlock request failed.
        """

        if not self.is_locked:
            return True
        if self._unlock_task is None or self._unlock_task.done():
            self._unlock_task = asyncio.ensure_future(self._request_unlock(unlock, timeout))
        return await asyncio.shield(self._unlock_task)

    async def _request_unlock(self, unlock: Callable[[], Awaitable[bool]], timeout: float | None) -> bool:
        # Register before asking; the notification may arrive before the reply
        waiter = self._add_waiter(LockState.UNLOCKED)
        try:
            if not await unlock():
                return False
            try:
                await asyncio.wait_for(asyncio.shield(waiter), timeout)
            except asyncio.TimeoutError as exc:
                raise LockTransitionTimeout(f"{self._label}: unlock was never confirmed") from exc
            return True
        finally:
            self._discard_waiter(waiter)

    def close(self) -> None:
        """Cancel the acknowledgement timer and any pending waiters."""

        if self._ack_handle is not None:
            self._ack_handle.cancel()
            self._ack_handle = None
        for _, waiter in self._waiters:
            if not waiter.done():
                waiter.cancel()
        self._waiters.clear()

    # ------------------------------------------------------------------
    # Private Helpers
    # ------------------------------------------------------------------

    def _add_waiter(self, state: LockState) -> asyncio.Future[None]:
        waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._waiters.append((state, waiter))
        return waiter

    def _discard_waiter(self, waiter: asyncio.Future[None]) -> None:
        self._waiters = [(state, item) for state, item in self._waiters if item is not waiter]

    def _resolve_waiters(self) -> None:
        for state, waiter in self._waiters:
            if state is self._state and not waiter.done():
                waiter.set_result(None)

    def _start_acknowledgement(self) -> None:
        if self._ack_handle is not None:
            self._ack_handle.cancel()
            self._ack_handle = None
        self._acknowledging = True
        self._notify_acknowledge(True)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop to time the animation with; play it as a single frame
            self._clear_acknowledgement()
            return
        self._ack_handle = loop.call_later(self._acknowledge_seconds, self._clear_acknowledgement)

    def _clear_acknowledgement(self) -> None:
        if self._ack_handle is not None:
            self._ack_handle.cancel()
            self._ack_handle = None
        if not self._acknowledging:
            return
        self._acknowledging = False
        self._notify_acknowledge(False)

    def _notify_state_change(self, state: LockState) -> None:
        if self._on_state_change:
            try:
                self._on_state_change(state)
            except Exception:
                LOGGER.debug("Lock state listener failed", exc_info=True)

    def _notify_acknowledge(self, active: bool) -> None:
        if self._on_acknowledge:
            try:
                self._on_acknowledge(active)
            except Exception:
                LOGGER.debug("Lock acknowledgement listener failed", exc_info=True)
