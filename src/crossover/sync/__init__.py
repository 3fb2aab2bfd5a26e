"""Surface-side synchronization: commands, notifications and lock gating."""

from .bus import NotificationBus
from .commands import CommandClient, NoticeLevel, PreferenceService
from .lock_gate import LockGate, LockState
from .surface import SurfaceController, SurfaceRole

__all__ = [
    "CommandClient",
    "LockGate",
    "LockState",
    "NoticeLevel",
    "NotificationBus",
    "PreferenceService",
    "SurfaceController",
    "SurfaceRole",
]
