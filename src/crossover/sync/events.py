"""Notification types broadcast by the preference owner.

Every notification is a slotted dataclass with a class-level ``topic``: the
wire-level name used on the IPC channel (``"lock-changed"``,
``"size-changed"`` and so on). Field notifications additionally name the
preference field they carry so that surfaces can reconcile them generically.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Mapping

from ..errors import UnknownTopicError
from ..preferences.models import Preferences

__all__ = [
    "Event",
    "Notification",
    "FieldChanged",
    "LockChanged",
    "CrosshairChanged",
    "OpacityChanged",
    "SizeChanged",
    "ColorChanged",
    "ReticleChanged",
    "VisibilityChanged",
    "FollowMouseChanged",
    "HideOnAdsChanged",
    "SyncSettings",
    "PlaySound",
    "ShowAbout",
    "OpenSettings",
    "OpenChooser",
    "TOPICS",
    "FIELD_EVENTS",
    "field_event",
    "decode_notification",
]


@dataclass(slots=True)
class Event:
    """Base class for everything published on the notification bus."""


@dataclass(slots=True)
class Notification(Event):
    """An event with a wire-level topic name."""

    topic: ClassVar[str] = ""


@dataclass(slots=True)
class FieldChanged(Notification):
    """A single preference field changed at the owner.

    Subclasses declare ``value`` with the payload type of their topic.
    """

    field_name: ClassVar[str] = ""

    @property
    def payload(self) -> Any:
        return getattr(self, "value")


# =============================================================================
# Field notifications
# =============================================================================


@dataclass(slots=True)
class LockChanged(FieldChanged):
    """The global lock flag changed."""

    topic: ClassVar[str] = "lock-changed"
    field_name: ClassVar[str] = "locked"
    value: bool


@dataclass(slots=True)
class CrosshairChanged(FieldChanged):
    topic: ClassVar[str] = "crosshair-changed"
    field_name: ClassVar[str] = "crosshair"
    value: str


@dataclass(slots=True)
class OpacityChanged(FieldChanged):
    topic: ClassVar[str] = "opacity-changed"
    field_name: ClassVar[str] = "opacity"
    value: float


@dataclass(slots=True)
class SizeChanged(FieldChanged):
    topic: ClassVar[str] = "size-changed"
    field_name: ClassVar[str] = "size"
    value: int


@dataclass(slots=True)
class ColorChanged(FieldChanged):
    topic: ClassVar[str] = "color-changed"
    field_name: ClassVar[str] = "color"
    value: str


@dataclass(slots=True)
class ReticleChanged(FieldChanged):
    topic: ClassVar[str] = "reticle-changed"
    field_name: ClassVar[str] = "reticle"
    value: str


@dataclass(slots=True)
class VisibilityChanged(FieldChanged):
    """Rendering was shown or hidden; the lock is unaffected."""

    topic: ClassVar[str] = "visibility-changed"
    field_name: ClassVar[str] = "visible"
    value: bool


@dataclass(slots=True)
class FollowMouseChanged(FieldChanged):
    topic: ClassVar[str] = "follow-mouse-changed"
    field_name: ClassVar[str] = "follow_mouse"
    value: bool


@dataclass(slots=True)
class HideOnAdsChanged(FieldChanged):
    topic: ClassVar[str] = "hide-on-ads-changed"
    field_name: ClassVar[str] = "hide_on_ads"
    value: bool


# =============================================================================
# Bulk and UI-only notifications
# =============================================================================


@dataclass(slots=True)
class SyncSettings(Notification):
    """The whole aggregate, used to hydrate a freshly created surface.

    Attributes:
        preferences: Snapshot of the owner's aggregate, including values that
            were set but not yet committed.
        target: Label of the surface that should apply the snapshot, or
            ``None`` to address every surface.
    """

    topic: ClassVar[str] = "sync-settings"
    preferences: Preferences = field(default_factory=Preferences)
    target: str | None = None


@dataclass(slots=True)
class PlaySound(Notification):
    topic: ClassVar[str] = "play-sound"
    name: str


@dataclass(slots=True)
class ShowAbout(Notification):
    topic: ClassVar[str] = "show-about"


@dataclass(slots=True)
class OpenSettings(Notification):
    """A global command asked for the settings surface."""

    topic: ClassVar[str] = "open-settings"


@dataclass(slots=True)
class OpenChooser(Notification):
    """A global command asked for the crosshair chooser."""

    topic: ClassVar[str] = "open-chooser"


_FIELD_EVENT_TYPES: tuple[type[FieldChanged], ...] = (
    LockChanged,
    CrosshairChanged,
    OpacityChanged,
    SizeChanged,
    ColorChanged,
    ReticleChanged,
    VisibilityChanged,
    FollowMouseChanged,
    HideOnAdsChanged,
)

FIELD_EVENTS: Mapping[str, type[FieldChanged]] = {
    event_type.field_name: event_type for event_type in _FIELD_EVENT_TYPES
}

TOPICS: Mapping[str, type[Notification]] = {
    event_type.topic: event_type
    for event_type in (*_FIELD_EVENT_TYPES, SyncSettings, PlaySound, ShowAbout, OpenSettings, OpenChooser)
}


def field_event(field_name: str, value: Any) -> FieldChanged:
    """Build the notification announcing ``field_name`` = ``value``."""

    try:
        event_type = FIELD_EVENTS[field_name]
    except KeyError:
        raise UnknownTopicError(field_name) from None
    return event_type(value)  # type: ignore[call-arg]


def decode_notification(topic: str, payload: Any = None) -> Notification:
    """Turn a wire-level ``(topic, payload)`` pair into a notification."""

    try:
        event_type = TOPICS[topic]
    except KeyError:
        raise UnknownTopicError(topic) from None
    if issubclass(event_type, FieldChanged):
        return event_type(payload)  # type: ignore[call-arg]
    if event_type is SyncSettings:
        if isinstance(payload, SyncSettings):
            return payload
        if isinstance(payload, Preferences):
            return SyncSettings(preferences=payload.copy())
        mapping = dict(payload or {})
        target = mapping.pop("target", None)
        return SyncSettings(preferences=Preferences.from_payload(mapping), target=target)
    if event_type is PlaySound:
        return PlaySound(str(payload))
    return event_type()
